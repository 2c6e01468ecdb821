"""Table Manager for tracking one active game per channel.

Games are kept in memory. Each channel has its own ``asyncio.Lock``; every
caller that touches a game goes through ``table()`` so that concurrent
actions on the same channel are serialized while other channels proceed.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Dict, Optional

from blackjack_table.services.blackjack import Game, TableRules
from blackjack_table.services.errors import GameInProgressError
from blackjack_table.services.game_repository import GameRepository, MemoryGameRepository
from blackjack_table.services.phase import GamePhase

logger = logging.getLogger(__name__)


class TableManager:
    """Owns the active game and the lock of every channel."""

    def __init__(
        self,
        repository: Optional[GameRepository] = None,
        rules: Optional[TableRules] = None,
        random_func: Optional[Callable[[], float]] = None,
    ):
        """Initialize TableManager.

        Args:
            repository: Deck/result storage shared by all tables.
                Defaults to an in-memory repository.
            rules: House rules for new tables. Defaults to configured rules.
            random_func: Shuffle source passed to every new game.
        """
        self.repository = repository or MemoryGameRepository()
        self.rules = rules
        self._random = random_func
        self._games: Dict[str, Game] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock_for(self, channel_id: str) -> asyncio.Lock:
        lock = self._locks.get(channel_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[channel_id] = lock
        return lock

    def _new_game(self, channel_id: str) -> Game:
        return Game(
            channel_id,
            self.repository,
            rules=self.rules,
            random_func=self._random,
        )

    def has_game(self, channel_id: str) -> bool:
        return channel_id in self._games

    def get_game(self, channel_id: str) -> Optional[Game]:
        return self._games.get(channel_id)

    def get_or_create_game(self, channel_id: str) -> Game:
        """Get the channel's game, creating an empty one if needed."""
        game = self._games.get(channel_id)
        if game is None:
            game = self._new_game(channel_id)
            self._games[channel_id] = game
            logger.info(f"Created game {game.id} for channel {channel_id}")
        return game

    @asynccontextmanager
    async def table(self, channel_id: str) -> AsyncIterator[Game]:
        """Exclusive access to the channel's game for the duration of the block.

        Usage:
            async with table_manager.table(channel_id) as game:
                game.hit(player_id)
        """
        async with self._lock_for(channel_id):
            yield self.get_or_create_game(channel_id)

    def new_round(self, channel_id: str) -> Game:
        """Replace a finished game with a fresh one seating the same players.

        Raises:
            GameInProgressError: the current game is not complete yet.
        """
        previous = self._games.get(channel_id)
        if previous is not None and previous.phase is not GamePhase.COMPLETE:
            raise GameInProgressError()

        game = self._new_game(channel_id)
        if previous is not None:
            for seat in previous.player_order or list(previous.players):
                owner = previous.owner_of(seat)
                if owner not in game.players:
                    game.add_player(owner)

        self._games[channel_id] = game
        logger.info(f"New round {game.id} in channel {channel_id} with {len(game.players)} players")
        return game

    def end_game(self, channel_id: str) -> bool:
        """Forget the channel's game; its lock goes too unless currently held.

        Returns:
            True if a game was removed, False if none existed.
        """
        lock = self._locks.get(channel_id)
        if lock is not None and not lock.locked():
            del self._locks[channel_id]

        if channel_id in self._games:
            del self._games[channel_id]
            logger.info(f"Ended game in channel {channel_id}")
            return True
        return False

    def active_channels(self) -> list:
        return list(self._games)


# Global table manager instance
table_manager = TableManager()
