"""Card and shoe builders shared by the test suite."""

from typing import Iterable, List, Sequence

from blackjack_table.services.cards import Card, Rank, Suit


def card(rank: str, suit: Suit = Suit.SPADES) -> Card:
    """Shorthand: card("A"), card("10", Suit.HEARTS)."""
    return Card(suit, Rank(rank))


def cards(*ranks: str) -> List[Card]:
    return [card(rank) for rank in ranks]


def deal_order(
    seats: Sequence[Sequence[Card]],
    dealer: Sequence[Card],
    rest: Iterable[Card] = (),
) -> List[Card]:
    """Stack a shoe so the opening deal gives each seat and the dealer these two cards."""
    stacked: List[Card] = []
    for round_index in range(2):
        for seat in seats:
            stacked.append(seat[round_index])
        stacked.append(dealer[round_index])
    stacked.extend(rest)
    return stacked


def filler(count: int) -> List[Card]:
    """Low cards to pad a stacked shoe past the reshuffle threshold."""
    return [card("2", Suit.CLUBS) for _ in range(count)]
