"""
Payout calculation and the finished-game snapshot.

Settlement is per hand; crediting is per player, with split hands rolled up
into their owner's total.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from blackjack_table.services.cards import Card
from blackjack_table.services.hand import Hand
from blackjack_table.services.scoring import (
    Result,
    best_score,
    compare_hands,
    is_blackjack,
    is_bust,
)
from blackjack_table.utils import utc_now

logger = logging.getLogger(__name__)

GAME_TYPE = "blackjack"

# Insurance pays 2:1 on top of the returned stake
INSURANCE_PAYOUT_MULTIPLIER = 3


@dataclass
class HandResult:
    """Settlement of one seat against the dealer."""
    player_id: str
    hand_id: str
    result: Result
    score: int
    bet: int
    payout: int
    cards: List[Card] = field(default_factory=list)
    parent_hand_id: Optional[str] = None
    is_split: bool = False
    double_down_bet: int = 0
    insurance_bet: int = 0
    insurance_payout: int = 0

    @property
    def is_doubled_down(self) -> bool:
        return self.double_down_bet > 0

    @property
    def has_insurance(self) -> bool:
        return self.insurance_bet > 0

    @property
    def total_bet(self) -> int:
        return self.bet + self.double_down_bet + self.insurance_bet

    @property
    def total_payout(self) -> int:
        return self.payout + self.insurance_payout

    @property
    def is_bust(self) -> bool:
        return self.score > 21

    def to_dict(self) -> Dict[str, Any]:
        return {
            "player_id": self.player_id,
            "hand_id": self.hand_id,
            "result": self.result.value,
            "score": self.score,
            "bet": self.bet,
            "payout": self.payout,
            "cards": [card.to_dict() for card in self.cards],
            "parent_hand_id": self.parent_hand_id,
            "is_split": self.is_split,
            "double_down_bet": self.double_down_bet,
            "insurance_bet": self.insurance_bet,
            "insurance_payout": self.insurance_payout,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HandResult":
        data = dict(data)
        data["result"] = Result(data["result"])
        data["cards"] = [Card.from_dict(c) for c in data.get("cards", [])]
        return cls(**data)


@dataclass
class GameResult:
    """Snapshot of a completed game, persisted once per game."""
    channel_id: str
    dealer_cards: List[Card]
    hands: List[HandResult]
    completed_at: datetime = field(default_factory=utc_now)
    game_type: str = GAME_TYPE
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def dealer_score(self) -> int:
        return best_score(self.dealer_cards)

    @property
    def dealer_blackjack(self) -> bool:
        return is_blackjack(self.dealer_cards)

    @property
    def dealer_bust(self) -> bool:
        return is_bust(self.dealer_cards)

    def for_player(self, player_id: str) -> "GameResult":
        """Same game narrowed to one player's hands."""
        return GameResult(
            channel_id=self.channel_id,
            dealer_cards=list(self.dealer_cards),
            hands=[h for h in self.hands if h.player_id == player_id],
            completed_at=self.completed_at,
            game_type=self.game_type,
            id=self.id,
        )

    @property
    def player_ids(self) -> List[str]:
        seen: List[str] = []
        for hand in self.hands:
            if hand.player_id not in seen:
                seen.append(hand.player_id)
        return seen


@dataclass
class PayoutReport:
    """Outcome of crediting winnings; failures never block other players."""
    payouts: Dict[str, int] = field(default_factory=dict)
    credited: Dict[str, int] = field(default_factory=dict)
    failures: Dict[str, str] = field(default_factory=dict)
    already_processed: bool = False

    @property
    def all_credited(self) -> bool:
        return not self.failures


def _settle(hand: Hand, dealer_cards: List[Card]) -> Result:
    if hand.is_bust:
        return Result.LOSE

    if hand.is_blackjack and hand.is_split:
        # A split 21 is not a natural
        if is_blackjack(dealer_cards):
            return Result.LOSE
        if is_bust(dealer_cards):
            return Result.WIN
        dealer_score = best_score(dealer_cards)
        if hand.value > dealer_score:
            return Result.WIN
        return Result.PUSH if hand.value == dealer_score else Result.LOSE

    outcome = compare_hands(hand.cards, dealer_cards)
    if outcome > 0:
        return Result.BLACKJACK if hand.is_blackjack else Result.WIN
    if outcome < 0:
        return Result.LOSE
    return Result.PUSH


def settle_hand(
    hand_id: str,
    hand: Hand,
    bet: int,
    dealer_cards: List[Card],
    player_id: Optional[str] = None,
) -> HandResult:
    """Evaluate one seat against the dealer and price it."""
    result = _settle(hand, dealer_cards)

    double_down_bet = hand.double_down.bet if hand.double_down else 0
    insurance_bet = hand.insurance.bet if hand.insurance else 0
    insurance_payout = 0
    if insurance_bet and is_blackjack(dealer_cards):
        insurance_payout = insurance_bet * INSURANCE_PAYOUT_MULTIPLIER

    parent_hand_id = hand.split.parent_hand_id if hand.split else None
    return HandResult(
        player_id=player_id or parent_hand_id or hand_id,
        hand_id=hand_id,
        result=result,
        score=hand.value,
        bet=bet,
        payout=result.payout(bet + double_down_bet),
        cards=list(hand.cards),
        parent_hand_id=parent_hand_id,
        is_split=hand.is_split,
        double_down_bet=double_down_bet,
        insurance_bet=insurance_bet,
        insurance_payout=insurance_payout,
    )


def calculate_payouts(results: List[HandResult]) -> Dict[str, int]:
    """
    Total amount owed to each player, split hands included.

    Does not touch any wallet.
    """
    payouts: Dict[str, int] = {}
    for result in results:
        payout = result.total_payout
        payouts[result.player_id] = payouts.get(result.player_id, 0) + payout

        msg = f"Player {result.player_id} hand {result.hand_id} bet {result.bet}"
        if result.is_doubled_down:
            msg += f" (doubled down +{result.double_down_bet})"
        msg += f", result: {result.result.value}, payout: {payout}"
        if result.has_insurance:
            msg += f" (includes insurance payout: {result.insurance_payout})"
        logger.debug(msg)

    return payouts
