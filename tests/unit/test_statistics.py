"""Tests for player statistics."""

import pytest

from blackjack_table.services.game_repository import MemoryGameRepository
from blackjack_table.services.payouts import GameResult, HandResult
from blackjack_table.services.scoring import Result
from blackjack_table.services.statistics import (
    PlayerStatistics,
    StatisticsService,
    build_leaderboard,
)
from tests.helpers import cards


def _results():
    return [
        GameResult(
            channel_id="c",
            dealer_cards=cards("10", "7"),
            hands=[
                HandResult("alice", "alice", Result.BLACKJACK, 21, 100, 250),
                HandResult("bob", "bob", Result.LOSE, 25, 100, 0),
            ],
        ),
        GameResult(
            channel_id="c",
            dealer_cards=cards("10", "8"),
            hands=[
                HandResult("alice", "alice", Result.WIN, 20, 100, 400, double_down_bet=100),
                HandResult("bob", "bob", Result.PUSH, 18, 100, 100, is_split=True),
                HandResult("bob", "bob_split", Result.LOSE, 17, 100, 0,
                           parent_hand_id="bob", is_split=True),
            ],
        ),
    ]


def test_player_statistics_from_results():
    stats = PlayerStatistics.from_results("alice", _results())

    assert stats.games_played == 2
    assert stats.wins == 2
    assert stats.blackjacks == 1
    assert stats.double_downs == 1
    assert stats.total_bet == 300
    assert stats.total_winnings == 650
    assert stats.net_profit == 350
    assert stats.win_rate == 100.0


def test_split_and_bust_counts():
    stats = PlayerStatistics.from_results("bob", _results())

    assert stats.games_played == 3
    assert stats.losses == 2
    assert stats.pushes == 1
    assert stats.busts == 1
    assert stats.splits == 1


def test_empty_statistics():
    stats = PlayerStatistics(player_id="nobody")
    assert stats.win_rate == 0.0
    assert stats.net_profit == 0


def test_leaderboard_ranks_by_winnings():
    board = build_leaderboard(_results(), page=1, players_per_page=1)

    assert board.total_players == 2
    assert board.total_pages == 2
    [top] = board.players
    assert top.stats.player_id == "alice"
    assert top.rank == 1
    assert top.is_top_winner


def test_leaderboard_page_clamped():
    board = build_leaderboard(_results(), page=9, players_per_page=1)

    assert board.current_page == 2
    assert board.players[0].stats.player_id == "bob"
    assert board.players[0].is_top_player


@pytest.mark.asyncio
async def test_service_reads_repository():
    repository = MemoryGameRepository()
    for result in _results():
        await repository.save_game_result(result)
    service = StatisticsService(repository)

    stats = await service.get_player_statistics("bob")
    board = await service.get_channel_leaderboard("c")

    assert stats.games_played == 3
    assert [p.stats.player_id for p in board.players] == ["alice", "bob"]
