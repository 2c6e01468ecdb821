"""
Special bets: split, double down and insurance.

Offered after the deal when the table enables them. Splits are offered
first (SPLITTING), then double down / insurance (SPECIAL_BETS); each seat
is offered each round once, in turn order, and ineligible seats are skipped.
Every accepted action collects its stake before the game reflects it.
"""

import logging
from typing import TYPE_CHECKING, Optional

from blackjack_table.services.errors import (
    InvalidActionError,
    NotEligibleForDoubleDownError,
    NotEligibleForInsuranceError,
    NotEligibleForSplitError,
)
from blackjack_table.services.cards import Rank
from blackjack_table.services.hand import DoubleDownInfo, Hand, InsuranceInfo, SplitInfo
from blackjack_table.services.phase import GamePhase

if TYPE_CHECKING:
    from blackjack_table.services.wallet_service import WalletService

logger = logging.getLogger(__name__)

SPLIT_SUFFIX = "_split"


class SpecialBetsMixin:
    """Special-bet actions for ``Game``; relies on its seats, bets and shoe."""

    # ------------------------------------------------------------------
    # Eligibility

    def _live_pair_candidate(self, seat_id: str) -> Optional[Hand]:
        hand = self.players.get(seat_id)
        if hand is None or hand.is_terminal or len(hand.cards) != 2:
            return None
        if hand.is_doubled_down or hand.is_split:
            return None
        return hand

    def is_eligible_for_double_down(self, seat_id: str) -> bool:
        return self._live_pair_candidate(seat_id) is not None

    def is_eligible_for_split(self, seat_id: str) -> bool:
        hand = self._live_pair_candidate(seat_id)
        return hand is not None and hand.cards[0].rank is hand.cards[1].rank

    def is_eligible_for_insurance(self, seat_id: str) -> bool:
        if not self.dealer.cards or self.dealer.cards[0].rank is not Rank.ACE:
            return False
        hand = self.players.get(seat_id)
        if hand is None or hand.has_insurance:
            return False
        return self.bets.get(seat_id, 0) // 2 > 0

    def _has_special_bet_option(self, seat_id: str) -> bool:
        return self.is_eligible_for_double_down(seat_id) or self.is_eligible_for_insurance(seat_id)

    def any_player_eligible_for_split(self) -> bool:
        return any(self.is_eligible_for_split(seat) for seat in self.player_order)

    def any_player_eligible_for_special_bets(self) -> bool:
        return any(self._has_special_bet_option(seat) for seat in self.player_order)

    # ------------------------------------------------------------------
    # Turns

    def get_current_special_bets_player_id(self) -> str:
        """Seat currently offered a split or special bet."""
        if self.phase not in (GamePhase.SPLITTING, GamePhase.SPECIAL_BETS):
            raise InvalidActionError()
        return self.player_order[self.current_special_bets_turn]

    def _special_bets_seat(self, player_id: str, phase: GamePhase) -> str:
        if self.phase is not phase:
            raise InvalidActionError()
        return self._acting_seat(player_id, self.get_current_special_bets_player_id())

    def advance_splitting_turn(self) -> None:
        if self.phase is not GamePhase.SPLITTING:
            raise InvalidActionError()

        following = self._first_index(self.is_eligible_for_split, self.current_special_bets_turn + 1)
        if following is not None:
            self.current_special_bets_turn = following
            return

        if self.any_player_eligible_for_special_bets():
            self.phase = GamePhase.SPECIAL_BETS
            self.current_special_bets_turn = self._first_index(self._has_special_bet_option)
            logger.debug(f"Table {self.channel_id}: splits done, offering special bets")
        else:
            self._enter_playing()

    def advance_special_bets_turn(self) -> None:
        if self.phase is not GamePhase.SPECIAL_BETS:
            raise InvalidActionError()

        following = self._first_index(self._has_special_bet_option, self.current_special_bets_turn + 1)
        if following is not None:
            self.current_special_bets_turn = following
            return

        logger.debug(f"Table {self.channel_id}: special bets done")
        self._enter_playing()

    def decline_split(self, player_id: str) -> None:
        self._special_bets_seat(player_id, GamePhase.SPLITTING)
        self.advance_splitting_turn()

    def decline_special_bet(self, player_id: str) -> None:
        self._special_bets_seat(player_id, GamePhase.SPECIAL_BETS)
        self.advance_special_bets_turn()

    def _split_seat_id(self, seat_id: str) -> str:
        """``<seat>_split``, numbered when a seated player already uses that id."""
        candidate = f"{seat_id}{SPLIT_SUFFIX}"
        number = 2
        while candidate in self.players:
            candidate = f"{seat_id}{SPLIT_SUFFIX}{number}"
            number += 1
        return candidate

    # ------------------------------------------------------------------
    # Actions

    async def double_down(self, player_id: str, wallet: "WalletService") -> bool:
        """
        Double the stake, take exactly one card and stand unless it busts.

        Returns:
            True if a loan was granted to cover the stake.
        """
        seat = self._special_bets_seat(player_id, GamePhase.SPECIAL_BETS)
        if not self.is_eligible_for_double_down(seat):
            raise NotEligibleForDoubleDownError()

        stake = self.get_player_bet(seat)
        loan_given = await self._collect_stake(self.owner_of(seat), stake, wallet, "Double down bet")

        hand = self.players[seat]
        hand.double_down = DoubleDownInfo(bet=stake)
        hand.add_card(self._draw_card())
        if not hand.is_bust:
            hand.stand()

        logger.info(f"Player {player_id} doubled down on {seat} for {stake}: {hand}")
        self.advance_special_bets_turn()
        return loan_given

    async def split(self, player_id: str, wallet: "WalletService") -> bool:
        """
        Split a pair into two seats, each carrying the original stake.

        The new seat ``<seat>_split`` (numbered if that id is taken) follows
        its parent in turn order. If the stake cannot be collected the new
        seat and its bet are removed.

        Returns:
            True if a loan was granted to cover the stake.
        """
        seat = self._special_bets_seat(player_id, GamePhase.SPLITTING)
        if not self.is_eligible_for_split(seat):
            raise NotEligibleForSplitError()

        stake = self.get_player_bet(seat)
        split_id = self._split_seat_id(seat)
        position = self.player_order.index(seat) + 1

        sibling = Hand()
        sibling.split = SplitInfo(parent_hand_id=seat)
        self.players[split_id] = sibling
        self.player_order.insert(position, split_id)
        self.bets[split_id] = stake

        try:
            loan_given = await self._collect_stake(self.owner_of(seat), stake, wallet, "Split bet")
        except Exception:
            del self.players[split_id]
            del self.player_order[position]
            del self.bets[split_id]
            raise

        hand = self.players[seat]
        hand.split = SplitInfo(split_hand_id=split_id)
        sibling.add_card(hand.split_off())
        hand.add_card(self._draw_card())
        sibling.add_card(self._draw_card())

        logger.info(f"Player {player_id} split {seat}: {hand} | {sibling}")
        self.advance_splitting_turn()
        return loan_given

    async def place_insurance(self, player_id: str, wallet: "WalletService") -> bool:
        """Insure against a dealer natural for half the original stake."""
        seat = self._special_bets_seat(player_id, GamePhase.SPECIAL_BETS)
        if not self.is_eligible_for_insurance(seat):
            raise NotEligibleForInsuranceError()

        stake = self.get_player_bet(seat) // 2
        loan_given = await self._collect_stake(self.owner_of(seat), stake, wallet, "Insurance bet")

        self.players[seat].insurance = InsuranceInfo(bet=stake)
        logger.info(f"Player {player_id} insured {seat} for {stake}")
        self.advance_special_bets_turn()
        return loan_given
