"""Tests for hand settlement and payout totals."""

from blackjack_table.services.hand import DoubleDownInfo, Hand, InsuranceInfo, SplitInfo
from blackjack_table.services.payouts import (
    GameResult,
    HandResult,
    PayoutReport,
    calculate_payouts,
    settle_hand,
)
from blackjack_table.services.scoring import Result
from tests.helpers import cards


def test_bust_always_loses():
    hand = Hand(cards("10", "6", "9"))
    result = settle_hand("alice", hand, 100, cards("10", "6", "K"))

    assert result.result is Result.LOSE
    assert result.payout == 0
    assert result.is_bust


def test_doubled_stake_is_paid_on():
    hand = Hand(cards("5", "6", "9"))
    hand.double_down = DoubleDownInfo(bet=100)

    result = settle_hand("alice", hand, 100, cards("10", "8"))

    assert result.result is Result.WIN
    assert result.payout == 400
    assert result.total_bet == 200


def test_split_child_reports_owner():
    hand = Hand(cards("8", "10"))
    hand.split = SplitInfo(parent_hand_id="alice")

    result = settle_hand("alice_split", hand, 100, cards("10", "7"))

    assert result.player_id == "alice"
    assert result.parent_hand_id == "alice"
    assert result.is_split


def test_split_21_pushes_with_dealer_21():
    hand = Hand(cards("A", "K"))
    hand.split = SplitInfo(split_hand_id="alice_split")

    result = settle_hand("alice", hand, 100, cards("10", "5", "6"))

    assert result.result is Result.PUSH


def test_split_21_loses_to_dealer_natural():
    hand = Hand(cards("A", "K"))
    hand.split = SplitInfo(split_hand_id="alice_split")

    assert settle_hand("alice", hand, 100, cards("A", "Q")).result is Result.LOSE


def test_insurance_pays_two_to_one():
    hand = Hand(cards("10", "9"))
    hand.insurance = InsuranceInfo(bet=50)

    result = settle_hand("alice", hand, 100, cards("A", "K"))

    assert result.insurance_payout == 150
    assert result.total_payout == 150


def test_calculate_payouts_rolls_up_split_hands():
    results = [
        HandResult("alice", "alice", Result.WIN, 19, 100, 200),
        HandResult("alice", "alice_split", Result.PUSH, 17, 100, 100, parent_hand_id="alice", is_split=True),
        HandResult("bob", "bob", Result.LOSE, 15, 50, 0),
    ]

    assert calculate_payouts(results) == {"alice": 300, "bob": 0}


def test_hand_result_dict_round_trip():
    result = HandResult("alice", "alice", Result.BLACKJACK, 21, 100, 250, cards=cards("A", "K"))
    assert HandResult.from_dict(result.to_dict()) == result


def test_game_result_for_player():
    game = GameResult(
        channel_id="c",
        dealer_cards=cards("10", "7"),
        hands=[
            HandResult("alice", "alice", Result.WIN, 19, 100, 200),
            HandResult("bob", "bob", Result.LOSE, 15, 50, 0),
        ],
    )

    narrowed = game.for_player("bob")

    assert game.player_ids == ["alice", "bob"]
    assert [h.player_id for h in narrowed.hands] == ["bob"]
    assert narrowed.id == game.id
    assert game.dealer_score == 17
    assert not game.dealer_blackjack
    assert not game.dealer_bust


def test_report_all_credited():
    assert PayoutReport().all_credited
    assert not PayoutReport(failures={"alice": "down"}).all_credited
