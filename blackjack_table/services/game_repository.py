"""
Game Repository - deck snapshots per channel and finished-game results.

The table engine only needs the ``GameRepository`` protocol. Two backends
are provided: an in-memory one for tests and single-process tables, and the
SQLAlchemy one used in production.
"""

import logging
from typing import Dict, List, Optional, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from blackjack_table.database.models import ChannelDeck, GameRecord, HandRecord
from blackjack_table.database.session import get_session
from blackjack_table.services.cards import Card
from blackjack_table.services.payouts import GameResult, HandResult
from blackjack_table.services.scoring import Result
from blackjack_table.utils import utc_now

logger = logging.getLogger(__name__)

DEFAULT_RESULTS_LIMIT = 10


class GameRepository(Protocol):
    """Persistence the table engine depends on."""

    async def save_deck(self, channel_id: str, cards: List[Card]) -> None: ...

    async def get_deck(self, channel_id: str) -> Optional[List[Card]]: ...

    async def save_game_result(self, result: GameResult) -> None: ...

    async def get_player_results(self, player_id: str) -> List[GameResult]: ...

    async def get_channel_results(
        self, channel_id: str, limit: int = DEFAULT_RESULTS_LIMIT
    ) -> List[GameResult]: ...


class MemoryGameRepository:
    """In-process repository; results are kept in completion order."""

    def __init__(self):
        self._decks: Dict[str, List[Card]] = {}
        self._results: List[GameResult] = []

    async def save_deck(self, channel_id: str, cards: List[Card]) -> None:
        self._decks[channel_id] = list(cards)

    async def get_deck(self, channel_id: str) -> Optional[List[Card]]:
        cards = self._decks.get(channel_id)
        return list(cards) if cards is not None else None

    async def save_game_result(self, result: GameResult) -> None:
        self._results.append(result)

    async def get_player_results(self, player_id: str) -> List[GameResult]:
        matching = [
            result.for_player(player_id)
            for result in self._results
            if player_id in result.player_ids
        ]
        matching.sort(key=lambda r: r.completed_at, reverse=True)
        return matching

    async def get_channel_results(
        self, channel_id: str, limit: int = DEFAULT_RESULTS_LIMIT
    ) -> List[GameResult]:
        matching = [r for r in self._results if r.channel_id == channel_id]
        matching.sort(key=lambda r: r.completed_at, reverse=True)
        return matching[:limit]


def _to_game_result(record: GameRecord) -> GameResult:
    return GameResult(
        id=record.id,
        channel_id=record.channel_id,
        game_type=record.game_type,
        completed_at=record.completed_at,
        dealer_cards=[Card.from_dict(c) for c in record.dealer_cards or []],
        hands=[
            HandResult(
                player_id=hand.player_id,
                hand_id=hand.hand_id,
                result=Result(hand.result),
                score=hand.score,
                bet=hand.bet,
                payout=hand.payout,
                cards=[Card.from_dict(c) for c in hand.cards or []],
                parent_hand_id=hand.parent_hand_id,
                is_split=hand.is_split,
                double_down_bet=hand.double_down_bet,
                insurance_bet=hand.insurance_bet,
                insurance_payout=hand.insurance_payout,
            )
            for hand in record.hands
        ],
    )


class SqlGameRepository:
    """SQLAlchemy-backed repository."""

    def __init__(self, session_factory: Optional[async_sessionmaker[AsyncSession]] = None):
        self._session_factory = session_factory

    def _sessions(self) -> async_sessionmaker[AsyncSession]:
        return self._session_factory or get_session()

    async def save_deck(self, channel_id: str, cards: List[Card]) -> None:
        payload = [card.to_dict() for card in cards]
        async with self._sessions()() as session:
            deck = await session.get(ChannelDeck, channel_id)
            if deck is None:
                session.add(ChannelDeck(channel_id=channel_id, cards=payload, updated_at=utc_now()))
            else:
                deck.cards = payload
                deck.updated_at = utc_now()
            await session.commit()
        logger.debug(f"Saved deck for channel {channel_id}: {len(cards)} cards")

    async def get_deck(self, channel_id: str) -> Optional[List[Card]]:
        async with self._sessions()() as session:
            deck = await session.get(ChannelDeck, channel_id)
            if deck is None:
                return None
            return [Card.from_dict(c) for c in deck.cards or []]

    async def save_game_result(self, result: GameResult) -> None:
        async with self._sessions()() as session:
            record = GameRecord(
                id=result.id,
                channel_id=result.channel_id,
                game_type=result.game_type,
                completed_at=result.completed_at,
                dealer_cards=[card.to_dict() for card in result.dealer_cards],
                dealer_score=result.dealer_score,
                dealer_blackjack=result.dealer_blackjack,
                dealer_bust=result.dealer_bust,
            )
            for hand in result.hands:
                record.hands.append(HandRecord(
                    player_id=hand.player_id,
                    hand_id=hand.hand_id,
                    parent_hand_id=hand.parent_hand_id,
                    cards=[card.to_dict() for card in hand.cards],
                    score=hand.score,
                    result=hand.result.value,
                    bet=hand.bet,
                    payout=hand.payout,
                    is_split=hand.is_split,
                    double_down_bet=hand.double_down_bet,
                    insurance_bet=hand.insurance_bet,
                    insurance_payout=hand.insurance_payout,
                ))
            session.add(record)
            await session.commit()
        logger.info(f"Saved game result {result.id} for channel {result.channel_id} ({len(result.hands)} hands)")

    async def get_player_results(self, player_id: str) -> List[GameResult]:
        async with self._sessions()() as session:
            result = await session.execute(
                select(GameRecord)
                .join(HandRecord, HandRecord.game_id == GameRecord.id)
                .where(HandRecord.player_id == player_id)
                .order_by(GameRecord.completed_at.desc())
                .distinct()
            )
            return [
                _to_game_result(record).for_player(player_id)
                for record in result.scalars().all()
            ]

    async def get_channel_results(
        self, channel_id: str, limit: int = DEFAULT_RESULTS_LIMIT
    ) -> List[GameResult]:
        async with self._sessions()() as session:
            result = await session.execute(
                select(GameRecord)
                .where(GameRecord.channel_id == channel_id)
                .order_by(GameRecord.completed_at.desc())
                .limit(limit)
            )
            return [_to_game_result(record) for record in result.scalars().all()]
