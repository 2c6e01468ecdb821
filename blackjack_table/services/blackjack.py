"""
Multiplayer Blackjack table engine.

One ``Game`` drives one channel's match through its phases:

    WAITING -> BETTING -> DEALING -> (SPLITTING / SPECIAL_BETS) -> PLAYING
            -> DEALER -> COMPLETE

The game never locks itself; callers serialize access per channel (see
``TableManager``). Deck persistence and funds movement go through the
``GameRepository`` and ``WalletService`` collaborators.
"""

import logging
import random
import uuid
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from blackjack_table.config import Settings, settings
from blackjack_table.services.cards import (
    RESHUFFLE_THRESHOLD,
    STANDARD_DECKS,
    Card,
    Shoe,
)
from blackjack_table.services.errors import (
    DeckStorageError,
    GameInProgressError,
    GameNotStartedError,
    InvalidActionError,
    InvalidBetError,
    MaxPlayersReachedError,
    NoBetFoundError,
    NoPlayersError,
    NotAllBetsPlacedError,
    NotPlayerTurnError,
    PlayerAlreadyBetError,
    PlayerNotFoundError,
    ResultStorageError,
)
from blackjack_table.services.game_repository import GameRepository
from blackjack_table.services.hand import Hand
from blackjack_table.services.phase import GamePhase
from blackjack_table.services.payouts import (
    GameResult,
    HandResult,
    PayoutReport,
    calculate_payouts,
    settle_hand,
)
from blackjack_table.services.scoring import DEALER_STAND_VALUE
from blackjack_table.services.special_bets import SpecialBetsMixin
from blackjack_table.services.wallet_service import InsufficientFundsError, WalletService

logger = logging.getLogger(__name__)

MAX_PLAYERS = 7


@dataclass
class TableRules:
    """House rules for one table."""
    decks: int = STANDARD_DECKS
    reshuffle_threshold: int = RESHUFFLE_THRESHOLD
    max_players: int = MAX_PLAYERS
    special_bets: bool = False

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None) -> "TableRules":
        config = config or settings
        return cls(
            decks=config.shoe_decks,
            reshuffle_threshold=config.reshuffle_threshold,
            max_players=config.max_players,
            special_bets=config.special_bets_enabled,
        )


class Game(SpecialBetsMixin):
    """
    State of one channel's blackjack match.

    Seats are keyed by player id; a split adds a sibling seat
    ``"<player>_split"`` right after its parent in ``player_order``.
    """

    def __init__(
        self,
        channel_id: str,
        repository: GameRepository,
        rules: Optional[TableRules] = None,
        random_func: Optional[Callable[[], float]] = None,
        game_id: Optional[str] = None,
    ):
        self.id = game_id or str(uuid.uuid4())
        self.channel_id = channel_id
        self.repository = repository
        self.rules = rules or TableRules.from_settings()
        self._random = random_func or random.random

        self.phase = GamePhase.WAITING
        self.shoe = Shoe(reshuffle_threshold=self.rules.reshuffle_threshold)
        self.players: Dict[str, Hand] = {}
        self.dealer = Hand()
        self.player_order: List[str] = []
        self.bets: Dict[str, int] = {}

        self.current_betting_player = 0
        self.current_turn = 0
        self.current_special_bets_turn = 0

        self.payouts_processed = False
        self.results_recorded = False
        self._final_deck_saved = False
        self._shuffled = False

    # ------------------------------------------------------------------
    # Seating

    def add_player(self, player_id: str) -> None:
        if self.phase is not GamePhase.WAITING:
            raise GameInProgressError()
        if player_id in self.players:
            raise InvalidActionError(f"player already seated: {player_id}")
        if len(self.players) >= self.rules.max_players:
            raise MaxPlayersReachedError(self.rules.max_players)

        self.players[player_id] = Hand()
        logger.info(f"Player {player_id} joined table {self.channel_id}")

    def start(self) -> None:
        """Close seating and open betting in join order."""
        if self.phase is not GamePhase.WAITING:
            raise GameInProgressError()
        if not self.players:
            raise NoPlayersError()

        self.player_order = list(self.players)
        self.current_betting_player = 0
        self.phase = GamePhase.BETTING
        logger.info(f"Table {self.channel_id}: betting opened for {len(self.player_order)} players")

    # ------------------------------------------------------------------
    # Betting

    def _require_betting(self) -> None:
        if self.phase is GamePhase.WAITING:
            raise GameNotStartedError()
        if self.phase is not GamePhase.BETTING:
            raise InvalidActionError()

    def validate_bet(self, player_id: str, amount: int) -> None:
        self._require_betting()
        if amount <= 0:
            raise InvalidBetError(amount)
        if player_id not in self.players:
            raise PlayerNotFoundError(player_id)
        if self.player_order[self.current_betting_player] != player_id:
            raise NotPlayerTurnError(player_id)
        if player_id in self.bets:
            raise PlayerAlreadyBetError(player_id)

    async def place_bet(
        self,
        player_id: str,
        amount: int,
        wallet: Optional[WalletService] = None,
    ) -> bool:
        """
        Place the current bettor's stake.

        With a wallet the stake is collected (auto-loan first if short); a
        wallet failure undoes the bet and the turn advance and is re-raised.
        Once every player has bet the cards are dealt in the same call. If
        that deal raises ``DeckStorageError`` the bet stays collected and
        recorded; retry with ``deal()``, not ``place_bet``.

        Returns:
            True if a loan was granted to cover the stake.
        """
        self.validate_bet(player_id, amount)

        previous_index = self.current_betting_player
        self.bets[player_id] = amount
        self.current_betting_player += 1
        if self.current_betting_player >= len(self.player_order):
            self.current_betting_player = 0

        loan_given = False
        if wallet is not None:
            try:
                loan_given = await self._collect_stake(player_id, amount, wallet, "Blackjack bet")
            except Exception:
                del self.bets[player_id]
                self.current_betting_player = previous_index
                raise

        logger.info(f"Player {player_id} bet {amount} at table {self.channel_id}")

        if self.check_all_bets_placed():
            await self.deal()
        return loan_given

    async def _collect_stake(
        self,
        owner_id: str,
        amount: int,
        wallet: WalletService,
        description: str,
    ) -> bool:
        """Top up with the standard loan if short, then debit ``amount``."""
        account, loan_given = await wallet.ensure_funds_with_loan(
            owner_id, amount, wallet.get_standard_loan_increment()
        )
        if account.balance < amount:
            raise InsufficientFundsError("insufficient funds even after loan")

        await wallet.remove_funds(owner_id, amount, description)
        if loan_given:
            logger.info(f"Player {owner_id} took a loan to cover {description.lower()} of {amount}")
        return loan_given

    def check_all_bets_placed(self) -> bool:
        return all(player_id in self.bets for player_id in self.player_order)

    def get_player_bet(self, player_id: str) -> int:
        if player_id not in self.bets:
            raise NoBetFoundError(player_id)
        return self.bets[player_id]

    # ------------------------------------------------------------------
    # Dealing

    def _fresh_shoe(self) -> Shoe:
        self._shuffled = True
        return Shoe.fresh(
            decks=self.rules.decks,
            random_func=self._random,
            reshuffle_threshold=self.rules.reshuffle_threshold,
        )

    def _draw_card(self) -> Card:
        """Draw from the shoe, replacing it outright when exhausted."""
        card = self.shoe.draw()
        if card is None:
            logger.info(f"Shoe exhausted at table {self.channel_id}, replacing with a fresh shoe")
            self.shoe = self._fresh_shoe()
            card = self.shoe.draw()
        return card

    async def _load_shoe(self) -> None:
        cards = await self.repository.get_deck(self.channel_id)
        shoe = Shoe(cards or [], reshuffle_threshold=self.rules.reshuffle_threshold)
        if cards is None or shoe.needs_reshuffle:
            shoe = self._fresh_shoe()
            await self.repository.save_deck(self.channel_id, shoe.snapshot())
            logger.info(f"New shoe of {len(shoe)} cards for table {self.channel_id}")
        self.shoe = shoe

    async def deal(self) -> None:
        """
        Deal the opening cards: two rounds of one card per seat, then the dealer.

        A repository failure restores the pre-deal state and raises
        ``DeckStorageError``; the caller may retry.
        """
        self._require_betting()
        if not self.check_all_bets_placed():
            raise NotAllBetsPlacedError()

        saved_hands = self.players
        saved_dealer = self.dealer
        saved_shoe = self.shoe
        saved_shuffled = self._shuffled

        self.phase = GamePhase.DEALING
        self.players = {seat: Hand() for seat in self.player_order}
        self.dealer = Hand()
        try:
            await self._load_shoe()
            for _ in range(2):
                for seat in self.player_order:
                    self.players[seat].add_card(self._draw_card())
                self.dealer.add_card(self._draw_card())
            await self.repository.save_deck(self.channel_id, self.shoe.snapshot())
        except Exception as e:
            self.players = saved_hands
            self.dealer = saved_dealer
            self.shoe = saved_shoe
            self._shuffled = saved_shuffled
            self.phase = GamePhase.BETTING
            logger.error(f"Deal failed at table {self.channel_id}: {e}")
            raise DeckStorageError(f"failed to load or save deck: {e}") from e

        logger.info(
            f"Dealt table {self.channel_id}: dealer shows {self.dealer.cards[0]}, "
            f"{len(self.shoe)} cards left in shoe"
        )
        self._after_deal()

    def _after_deal(self) -> None:
        if self.rules.special_bets:
            if self.any_player_eligible_for_split():
                self.phase = GamePhase.SPLITTING
                self.current_special_bets_turn = self._first_index(self.is_eligible_for_split)
                return
            if self.any_player_eligible_for_special_bets():
                self.phase = GamePhase.SPECIAL_BETS
                self.current_special_bets_turn = self._first_index(self._has_special_bet_option)
                return
        self._enter_playing()

    def _first_index(self, predicate: Callable[[str], bool], start: int = 0) -> Optional[int]:
        for index in range(start, len(self.player_order)):
            if predicate(self.player_order[index]):
                return index
        return None

    def _enter_playing(self) -> None:
        """Hand the table to the first seat still playing, or to the dealer."""
        first = self._first_index(lambda seat: not self.check_player_done(seat))
        if first is None:
            self.phase = GamePhase.DEALER
            self.current_turn = 0
            logger.info(f"Table {self.channel_id}: no hands left to play, dealer's turn")
            return
        self.phase = GamePhase.PLAYING
        self.current_turn = first

    # ------------------------------------------------------------------
    # Turns

    def owner_of(self, seat_id: str) -> str:
        """Player who owns a seat; split seats belong to their parent."""
        hand = self.players.get(seat_id)
        if hand is not None and hand.split is not None and hand.split.is_child:
            return hand.split.parent_hand_id
        return seat_id

    def _acting_seat(self, player_id: str, seat_id: str) -> str:
        if player_id != seat_id and self.owner_of(seat_id) != player_id:
            raise NotPlayerTurnError(player_id)
        return seat_id

    def get_current_turn_player_id(self) -> str:
        if not self.player_order:
            raise GameNotStartedError()
        return self.player_order[self.current_turn]

    def is_player_turn(self, player_id: str) -> bool:
        if self.phase is not GamePhase.PLAYING or not self.player_order:
            return False
        seat = self.player_order[self.current_turn]
        return player_id == seat or self.owner_of(seat) == player_id

    def check_player_done(self, seat_id: str) -> bool:
        hand = self.players.get(seat_id)
        if hand is None:
            raise PlayerNotFoundError(seat_id)
        return hand.is_terminal

    def check_all_players_done(self) -> bool:
        return all(self.check_player_done(seat) for seat in self.player_order)

    def advance_turn(self) -> None:
        """Move to the next seat still playing; no phase change."""
        if not self.player_order or self.check_all_players_done():
            return
        count = len(self.player_order)
        for _ in range(count):
            self.current_turn = (self.current_turn + 1) % count
            if not self.check_player_done(self.player_order[self.current_turn]):
                return

    def _current_playing_seat(self, player_id: str) -> str:
        if self.phase is not GamePhase.PLAYING:
            raise InvalidActionError()
        return self._acting_seat(player_id, self.get_current_turn_player_id())

    def hit(self, player_id: str) -> Card:
        """
        Deal one card to the acting seat.

        Bust is a normal outcome: the turn advances and the card is returned.
        """
        seat = self._current_playing_seat(player_id)
        hand = self.players[seat]
        hand.guard_terminal()
        card = self._draw_card()
        hand.add_card(card)

        if hand.is_bust:
            logger.info(f"Player {player_id} busted on hand {seat} with {hand}")
            self.advance_turn()
        return card

    def stand(self, player_id: str) -> None:
        seat = self._current_playing_seat(player_id)
        self.players[seat].stand()
        logger.debug(f"Player {player_id} stood on hand {seat}")
        self.advance_turn()

    # ------------------------------------------------------------------
    # Dealer and results

    def play_dealer(self) -> None:
        """Dealer draws to 17 (standing on every 17), then the game completes."""
        if self.phase not in (GamePhase.PLAYING, GamePhase.DEALER):
            raise InvalidActionError()
        if self.phase is GamePhase.PLAYING and not self.check_all_players_done():
            raise InvalidActionError("players still have hands to play")

        self.phase = GamePhase.DEALER
        while self.dealer.value < DEALER_STAND_VALUE:
            self.dealer.add_card(self._draw_card())

        self.phase = GamePhase.COMPLETE
        logger.info(f"Table {self.channel_id}: dealer finished with {self.dealer}")

    def evaluate_hands(self) -> List[HandResult]:
        if self.phase is not GamePhase.COMPLETE:
            raise InvalidActionError()
        return [
            settle_hand(
                seat,
                self.players[seat],
                self.get_player_bet(seat),
                self.dealer.cards,
                player_id=self.owner_of(seat),
            )
            for seat in self.player_order
        ]

    async def get_results(self) -> List[HandResult]:
        """Evaluate every seat; the snapshot and final deck are stored once."""
        results = self.evaluate_hands()

        if not self.results_recorded:
            snapshot = GameResult(
                id=self.id,
                channel_id=self.channel_id,
                dealer_cards=list(self.dealer.cards),
                hands=results,
            )
            try:
                await self.repository.save_game_result(snapshot)
            except Exception as e:
                logger.error(f"Failed to save game result for table {self.channel_id}: {e}")
                raise ResultStorageError(f"failed to save game result: {e}") from e
            self.results_recorded = True

        if not self._final_deck_saved:
            try:
                await self.repository.save_deck(self.channel_id, self.shoe.snapshot())
            except Exception as e:
                logger.error(f"Failed to save final deck for table {self.channel_id}: {e}")
                raise DeckStorageError(f"failed to save deck: {e}") from e
            self._final_deck_saved = True

        return results

    def should_process_payouts(self) -> bool:
        return self.phase is GamePhase.COMPLETE and not self.payouts_processed

    async def process_payouts(self, wallet: WalletService) -> PayoutReport:
        """
        Credit winnings once per game.

        Each player is credited independently; a failed credit is logged and
        reported but does not stop the others.
        """
        if self.phase is not GamePhase.COMPLETE:
            raise InvalidActionError()
        if self.payouts_processed:
            logger.info(f"Payouts already processed for table {self.channel_id}")
            return PayoutReport(already_processed=True)

        results = await self.get_results()
        report = PayoutReport(payouts=calculate_payouts(results))

        for player_id, amount in report.payouts.items():
            if amount <= 0:
                continue
            try:
                await wallet.add_funds(player_id, amount, "Blackjack payout")
            except Exception as e:
                logger.error(f"Failed to credit {amount} to player {player_id}: {e}")
                report.failures[player_id] = str(e)
                continue
            report.credited[player_id] = amount

        self.payouts_processed = True
        logger.info(
            f"Payouts for table {self.channel_id}: credited {len(report.credited)}, "
            f"failed {len(report.failures)}"
        )
        return report

    async def finish_game(self, wallet: WalletService) -> PayoutReport:
        if self.phase in (GamePhase.PLAYING, GamePhase.DEALER):
            self.play_dealer()
        return await self.process_payouts(wallet)

    def consume_shuffle_flag(self) -> bool:
        """True once after a fresh shoe was brought in."""
        shuffled = self._shuffled
        self._shuffled = False
        return shuffled
