"""
Blackjack scoring rules.

Pure functions over card sequences plus the hand outcome enum with its
payout multiplier.
"""

from enum import Enum
from typing import Sequence

from blackjack_table.services.cards import Card

BLACKJACK_SCORE = 21
DEALER_STAND_VALUE = 17


class Result(str, Enum):
    """Outcome of one hand against the dealer."""
    WIN = "WIN"
    LOSE = "LOSE"
    PUSH = "PUSH"
    BLACKJACK = "BLACKJACK"

    @property
    def is_win(self) -> bool:
        return self in (Result.WIN, Result.BLACKJACK)

    def payout(self, bet: int) -> int:
        """
        Total amount returned to the player for a stake of ``bet``.

        WIN pays 1:1 (stake back plus the same amount), BLACKJACK pays 3:2
        truncated to whole coins, PUSH returns the stake, LOSE pays nothing.
        """
        if self is Result.WIN:
            return bet * 2
        if self is Result.BLACKJACK:
            return bet + bet * 3 // 2
        if self is Result.PUSH:
            return bet
        return 0


def best_score(cards: Sequence[Card]) -> int:
    """
    Calculate the best value of the hand.

    Aces are counted as 11 unless that would bust the hand, in which case
    they count as 1, one at a time. The result is the highest total not
    above 21 whenever one exists.
    """
    total = sum(card.points for card in cards)
    aces = sum(1 for card in cards if card.is_ace)

    # Convert aces from 11 to 1 as needed to avoid busting
    while total > BLACKJACK_SCORE and aces > 0:
        total -= 10
        aces -= 1
    return total


def is_soft(cards: Sequence[Card]) -> bool:
    """Check if the hand has an ace counted as 11."""
    hard = sum(1 if card.is_ace else card.points for card in cards)
    return best_score(cards) != hard


def is_blackjack(cards: Sequence[Card]) -> bool:
    """A natural: exactly two cards worth 21."""
    return len(cards) == 2 and best_score(cards) == BLACKJACK_SCORE


def is_bust(cards: Sequence[Card]) -> bool:
    return best_score(cards) > BLACKJACK_SCORE


def compare_hands(hand1: Sequence[Card], hand2: Sequence[Card]) -> int:
    """
    Compare two hands.

    Returns:
        1 if hand1 wins, -1 if hand2 wins, 0 on a push.
    """
    bj1 = is_blackjack(hand1)
    bj2 = is_blackjack(hand2)
    if bj1 != bj2:
        return 1 if bj1 else -1
    if bj1 and bj2:
        return 0

    bust1 = is_bust(hand1)
    bust2 = is_bust(hand2)
    if bust1 and bust2:
        return 0
    if bust1:
        return -1
    if bust2:
        return 1

    score1 = best_score(hand1)
    score2 = best_score(hand2)
    if score1 > score2:
        return 1
    if score1 < score2:
        return -1
    return 0
