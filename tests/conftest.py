"""Pytest configuration and fixtures."""

from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker

from blackjack_table.database.session import Base
from blackjack_table.database import models  # noqa: F401
from blackjack_table.services.blackjack import Game, TableRules
from blackjack_table.services.game_repository import MemoryGameRepository
from blackjack_table.services.wallet_service import Wallet


@pytest.fixture
def rules() -> TableRules:
    return TableRules(decks=6, reshuffle_threshold=75, max_players=7, special_bets=False)


@pytest.fixture
def repository() -> MemoryGameRepository:
    return MemoryGameRepository()


@pytest.fixture
def wallet() -> MagicMock:
    """Wallet collaborator with plenty of funds."""
    service = MagicMock()
    service.get_standard_loan_increment.return_value = 100
    service.ensure_funds_with_loan = AsyncMock(
        side_effect=lambda user_id, required, loan: (Wallet(user_id=user_id, balance=1000), False)
    )
    service.remove_funds = AsyncMock(return_value=None)
    service.add_funds = AsyncMock(return_value=None)
    service.get_or_create_wallet = AsyncMock(
        side_effect=lambda user_id: (Wallet(user_id=user_id, balance=1000), False)
    )
    return service


@pytest.fixture
def make_game(repository, rules):
    """Factory for a game seated with the given players."""

    def _make(*player_ids: str, channel_id: str = "channel-1", **overrides) -> Game:
        table_rules = TableRules(**{**rules.__dict__, **overrides})
        game = Game(channel_id, repository, rules=table_rules, random_func=lambda: 0.5)
        for player_id in player_ids:
            game.add_player(player_id)
        return game

    return _make


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator:
    """In-memory database with all tables created."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, expire_on_commit=False)

    yield factory

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()
