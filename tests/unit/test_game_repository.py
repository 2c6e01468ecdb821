"""Tests for deck and result persistence."""

from datetime import timedelta

import pytest

from blackjack_table.services.game_repository import MemoryGameRepository, SqlGameRepository
from blackjack_table.services.payouts import GameResult, HandResult
from blackjack_table.services.scoring import Result
from blackjack_table.utils import utc_now
from tests.helpers import cards


def _game(channel_id: str, minutes_ago: int = 0, players=("alice",)) -> GameResult:
    return GameResult(
        channel_id=channel_id,
        dealer_cards=cards("10", "7"),
        completed_at=utc_now() - timedelta(minutes=minutes_ago),
        hands=[
            HandResult(player, player, Result.WIN, 19, 100, 200, cards=cards("10", "9"))
            for player in players
        ],
    )


@pytest.fixture(params=["memory", "sql"])
def repository(request, session_factory):
    if request.param == "memory":
        return MemoryGameRepository()
    return SqlGameRepository(session_factory)


@pytest.mark.asyncio
async def test_missing_deck_is_none(repository):
    assert await repository.get_deck("nowhere") is None


@pytest.mark.asyncio
async def test_deck_saved_and_replaced(repository):
    await repository.save_deck("c", cards("A", "2", "3"))
    await repository.save_deck("c", cards("K"))

    assert await repository.get_deck("c") == cards("K")


@pytest.mark.asyncio
async def test_channel_results_most_recent_first(repository):
    await repository.save_game_result(_game("c", minutes_ago=10))
    latest = _game("c", minutes_ago=1)
    await repository.save_game_result(latest)
    await repository.save_game_result(_game("other"))

    results = await repository.get_channel_results("c", limit=1)

    assert [r.id for r in results] == [latest.id]


@pytest.mark.asyncio
async def test_result_fields_survive_storage(repository):
    game = _game("c", players=("alice", "bob"))
    await repository.save_game_result(game)

    [stored] = await repository.get_channel_results("c")

    assert stored.id == game.id
    assert stored.dealer_cards == cards("10", "7")
    assert [h.player_id for h in stored.hands] == ["alice", "bob"]
    assert stored.hands[0].result is Result.WIN
    assert stored.hands[0].cards == cards("10", "9")


@pytest.mark.asyncio
async def test_player_results_only_include_player(repository):
    await repository.save_game_result(_game("c", players=("alice", "bob")))
    await repository.save_game_result(_game("c", players=("carol",)))

    results = await repository.get_player_results("bob")

    assert len(results) == 1
    assert [h.player_id for h in results[0].hands] == ["bob"]
