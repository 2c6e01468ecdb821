"""
Cards and the shoe they are dealt from.

A shoe is several concatenated 52-card decks drawn from the front. The
shuffle takes an injectable random function so deals can be replayed in
tests; production code uses ``random.random``.
"""

import random
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional


class Suit(str, Enum):
    """Card suit."""
    HEARTS = "HEARTS"
    DIAMONDS = "DIAMONDS"
    CLUBS = "CLUBS"
    SPADES = "SPADES"

    @property
    def symbol(self) -> str:
        return _SUIT_SYMBOLS[self]


_SUIT_SYMBOLS = {
    Suit.HEARTS: "♥",
    Suit.DIAMONDS: "♦",
    Suit.CLUBS: "♣",
    Suit.SPADES: "♠",
}


class Rank(str, Enum):
    """Card rank."""
    ACE = "A"
    TWO = "2"
    THREE = "3"
    FOUR = "4"
    FIVE = "5"
    SIX = "6"
    SEVEN = "7"
    EIGHT = "8"
    NINE = "9"
    TEN = "10"
    JACK = "J"
    QUEEN = "Q"
    KING = "K"

    @property
    def points(self) -> int:
        """
        Blackjack value of the rank.

        Face cards (J, Q, K) = 10
        Number cards = face value
        Ace = 11 (soft value, degraded to 1 by scoring)
        """
        if self in (Rank.JACK, Rank.QUEEN, Rank.KING):
            return 10
        if self is Rank.ACE:
            return 11
        return int(self._value_)


SUITS: List[Suit] = list(Suit)
RANKS: List[Rank] = list(Rank)
TEN_VALUE_RANKS = (Rank.TEN, Rank.JACK, Rank.QUEEN, Rank.KING)

CARDS_PER_DECK = 52
STANDARD_DECKS = 6
RESHUFFLE_THRESHOLD = 75


@dataclass(frozen=True)
class Card:
    """A playing card with suit and rank."""
    suit: Suit
    rank: Rank

    @property
    def points(self) -> int:
        return self.rank.points

    @property
    def is_ace(self) -> bool:
        return self.rank is Rank.ACE

    def to_dict(self) -> Dict[str, str]:
        return {"suit": self.suit.value, "rank": self.rank.value}

    @classmethod
    def from_dict(cls, data: Dict[str, str]) -> "Card":
        return cls(suit=Suit(data["suit"]), rank=Rank(data["rank"]))

    def __str__(self) -> str:
        return f"{self.rank.value}{self.suit.symbol}"


def new_deck() -> List[Card]:
    """Create a standard, ordered 52-card deck."""
    return [Card(suit, rank) for suit in SUITS for rank in RANKS]


def shuffle_cards(cards: List[Card], random_func: Callable[[], float]) -> List[Card]:
    """Shuffle a copy of the cards using Fisher-Yates algorithm."""
    cards = list(cards)
    n = len(cards)
    for i in range(n - 1, 0, -1):
        j = int(random_func() * (i + 1))
        cards[i], cards[j] = cards[j], cards[i]
    return cards


class Shoe:
    """Multi-deck card source drawn from the front."""

    def __init__(
        self,
        cards: Optional[Iterable[Card]] = None,
        reshuffle_threshold: int = RESHUFFLE_THRESHOLD,
    ):
        self.cards: List[Card] = list(cards or [])
        self.reshuffle_threshold = reshuffle_threshold

    @classmethod
    def fresh(
        cls,
        decks: int = STANDARD_DECKS,
        random_func: Optional[Callable[[], float]] = None,
        reshuffle_threshold: int = RESHUFFLE_THRESHOLD,
    ) -> "Shoe":
        """Build a brand-new shuffled shoe of ``decks`` concatenated decks."""
        cards: List[Card] = []
        for _ in range(decks):
            cards.extend(new_deck())
        cards = shuffle_cards(cards, random_func or random.random)
        return cls(cards, reshuffle_threshold=reshuffle_threshold)

    def draw(self) -> Optional[Card]:
        """Remove and return the top card, or None when the shoe is empty."""
        if not self.cards:
            return None
        return self.cards.pop(0)

    @property
    def remaining(self) -> int:
        return len(self.cards)

    @property
    def needs_reshuffle(self) -> bool:
        return not self.cards or len(self.cards) < self.reshuffle_threshold

    def snapshot(self) -> List[Card]:
        return list(self.cards)

    def __len__(self) -> int:
        return len(self.cards)
