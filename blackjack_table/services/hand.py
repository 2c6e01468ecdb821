"""
A blackjack hand.

Status only moves forward: PLAYING -> BUST or PLAYING -> STAND. Once a hand
is terminal every further card or stand is rejected with a typed error.
Special-bet bookkeeping lives in explicit optional records instead of a
free-form metadata dict.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional

from blackjack_table.services.cards import Card
from blackjack_table.services.errors import HandBustError, HandStandError, InvalidCardError
from blackjack_table.services.scoring import BLACKJACK_SCORE, best_score, is_blackjack, is_soft


class HandStatus(str, Enum):
    PLAYING = "PLAYING"
    BUST = "BUST"
    STAND = "STAND"


@dataclass
class DoubleDownInfo:
    """Extra stake placed when doubling down."""
    bet: int


@dataclass
class SplitInfo:
    """Links the two halves of a split pair."""
    parent_hand_id: Optional[str] = None
    split_hand_id: Optional[str] = None

    @property
    def is_child(self) -> bool:
        return self.parent_hand_id is not None


@dataclass
class InsuranceInfo:
    """Side bet against a dealer natural."""
    bet: int


class Hand:
    """A hand of cards in Blackjack."""

    def __init__(self, cards: Optional[Iterable[Card]] = None):
        self.cards: List[Card] = []
        self._status = HandStatus.PLAYING
        self.double_down: Optional[DoubleDownInfo] = None
        self.split: Optional[SplitInfo] = None
        self.insurance: Optional[InsuranceInfo] = None
        for card in cards or ():
            self.add_card(card)

    @property
    def status(self) -> HandStatus:
        return self._status

    @property
    def is_terminal(self) -> bool:
        return self._status is not HandStatus.PLAYING

    def guard_terminal(self) -> None:
        """Raise the hand error matching a terminal status."""
        if self._status is HandStatus.BUST:
            raise HandBustError()
        if self._status is HandStatus.STAND:
            raise HandStandError()

    def add_card(self, card: Card) -> None:
        """Add a card; the hand busts automatically once it passes 21."""
        self.guard_terminal()
        if card is None:
            raise InvalidCardError()

        self.cards.append(card)
        if best_score(self.cards) > BLACKJACK_SCORE:
            self._status = HandStatus.BUST

    def stand(self) -> None:
        self.guard_terminal()
        self._status = HandStatus.STAND

    def split_off(self) -> Card:
        """Remove and return the second card of a live two-card hand."""
        self.guard_terminal()
        if len(self.cards) != 2:
            raise InvalidCardError("only a two-card hand can be split")
        return self.cards.pop()

    @property
    def value(self) -> int:
        return best_score(self.cards)

    @property
    def is_blackjack(self) -> bool:
        return is_blackjack(self.cards)

    @property
    def is_bust(self) -> bool:
        return self._status is HandStatus.BUST

    @property
    def is_soft(self) -> bool:
        return is_soft(self.cards)

    @property
    def is_doubled_down(self) -> bool:
        return self.double_down is not None

    @property
    def is_split(self) -> bool:
        return self.split is not None

    @property
    def has_insurance(self) -> bool:
        return self.insurance is not None

    def __len__(self) -> int:
        return len(self.cards)

    def __str__(self) -> str:
        cards_str = " ".join(str(card) for card in self.cards)
        return f"{cards_str} ({self.value})"

    def __repr__(self) -> str:
        return f"Hand(cards={self.cards!r}, status={self._status.value})"
