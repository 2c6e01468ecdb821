"""Tests for the per-channel table registry."""

import asyncio

import pytest

from blackjack_table.services.blackjack import TableRules
from blackjack_table.services.errors import GameInProgressError
from blackjack_table.services.phase import GamePhase
from blackjack_table.services.table_manager import TableManager


@pytest.fixture
def manager() -> TableManager:
    return TableManager(rules=TableRules(), random_func=lambda: 0.25)


def test_one_game_per_channel(manager):
    game = manager.get_or_create_game("c1")

    assert manager.get_or_create_game("c1") is game
    assert manager.get_or_create_game("c2") is not game
    assert manager.has_game("c1")
    assert sorted(manager.active_channels()) == ["c1", "c2"]


def test_end_game(manager):
    manager.get_or_create_game("c1")

    assert manager.end_game("c1") is True
    assert manager.end_game("c1") is False
    assert manager.get_game("c1") is None


@pytest.mark.asyncio
async def test_end_game_releases_idle_lock(manager):
    async with manager.table("c1"):
        pass

    manager.end_game("c1")

    assert "c1" not in manager._locks


@pytest.mark.asyncio
async def test_end_game_keeps_held_lock(manager):
    async with manager.table("c1"):
        manager.end_game("c1")
        assert "c1" in manager._locks

    assert not manager.has_game("c1")


@pytest.mark.asyncio
async def test_table_serializes_access(manager):
    order = []

    async def worker(name: str):
        async with manager.table("c1"):
            order.append(f"{name}-in")
            await asyncio.sleep(0.01)
            order.append(f"{name}-out")

    await asyncio.gather(worker("a"), worker("b"))

    assert order in (["a-in", "a-out", "b-in", "b-out"], ["b-in", "b-out", "a-in", "a-out"])


@pytest.mark.asyncio
async def test_tables_do_not_block_each_other(manager):
    async with manager.table("c1") as first:
        async with manager.table("c2") as second:
            assert first is not second


def test_new_round_requires_finished_game(manager):
    game = manager.get_or_create_game("c1")
    game.add_player("alice")

    with pytest.raises(GameInProgressError):
        manager.new_round("c1")


def test_new_round_reseats_players(manager):
    game = manager.get_or_create_game("c1")
    game.add_player("alice")
    game.add_player("bob")
    game.phase = GamePhase.COMPLETE

    fresh = manager.new_round("c1")

    assert fresh is not game
    assert fresh.phase is GamePhase.WAITING
    assert list(fresh.players) == ["alice", "bob"]
    assert manager.get_game("c1") is fresh
