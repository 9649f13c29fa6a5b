from fractions import Fraction

import pytest

from pitboss.blackjack import rules
from pitboss.blackjack.rules import HandStatus, HandValue, Outcome
from pitboss.common.card import Card


def cards(text):
    return [Card.parse(token) for token in text.split()]


@pytest.mark.parametrize(
    "hand, value, soft",
    [
        ("", 0, False),
        ("10H 7D", 17, False),
        ("AS 6H", 17, True),
        ("AS AH", 12, True),
        ("AS AH AD AC", 14, True),
        ("AS 6H 10D", 17, False),
        ("AS KH", 21, True),
        ("AS AH 9D", 21, True),
        ("10H 9D 5C", 24, False),
        ("AS AH AD AC 10S 10H", 24, False),
    ],
)
def test_hand_value(hand, value, soft):
    assert rules.hand_value(cards(hand)) == HandValue(value, soft)


def test_hand_value_to_dict():
    assert rules.hand_value(cards("AS 6H")).to_dict() == {"value": 17, "isSoft": True}


def test_is_blackjack():
    assert rules.is_blackjack(cards("AS KH"))
    assert rules.is_blackjack(cards("10D AC"))
    assert not rules.is_blackjack(cards("AS 5H 5D"))
    assert not rules.is_blackjack(cards("KS QH"))


def test_split_blackjack_follows_config():
    assert rules.is_blackjack(cards("AS KH"), from_split=True)
    assert not rules.is_blackjack(
        cards("AS KH"), from_split=True, split_aces_count_as_blackjack=False
    )


def test_is_bust():
    assert rules.is_bust(22)
    assert not rules.is_bust(21)


@pytest.mark.parametrize(
    "player, dealer, player_bj, dealer_bj, expected",
    [
        (21, 21, True, True, Outcome.PUSH),
        (21, 20, True, False, Outcome.WIN),
        (21, 21, False, True, Outcome.LOSS),
        (22, 22, False, False, Outcome.LOSS),
        (18, 23, False, False, Outcome.WIN),
        (19, 18, False, False, Outcome.WIN),
        (17, 18, False, False, Outcome.LOSS),
        (18, 18, False, False, Outcome.PUSH),
    ],
)
def test_compare_hands(player, dealer, player_bj, dealer_bj, expected):
    assert rules.compare_hands(player, dealer, player_bj, dealer_bj) is expected


def test_can_split():
    assert rules.can_split(cards("8H 8S"))
    assert rules.can_split(cards("KH 10S"))
    assert not rules.can_split(cards("8H 9S"))
    assert not rules.can_split(cards("8H 8S 8D"))


def test_can_double():
    assert rules.can_double(cards("5H 6S"))
    assert not rules.can_double(cards("5H 6S"), has_acted=True)
    assert not rules.can_double(cards("2H 3S 6D"))


def test_can_hit():
    assert rules.can_hit(20, HandStatus.ACTIVE)
    assert not rules.can_hit(21, HandStatus.ACTIVE)
    assert not rules.can_hit(23, HandStatus.ACTIVE)
    assert not rules.can_hit(15, HandStatus.STAND)


def test_dealer_stands_on_all_17s():
    assert rules.dealer_should_hit(16)
    assert not rules.dealer_should_hit(17)
    # Soft 17 counts as 17
    assert not rules.dealer_should_hit(rules.hand_value(cards("AS 6H")).value)


def test_parse_ratio():
    assert rules.parse_ratio("3:2") == Fraction(3, 2)
    assert rules.parse_ratio("6:5") == Fraction(6, 5)
    for bad in ("3", "a:b", "3:0", "0:1", "-1:2", ""):
        with pytest.raises(ValueError):
            rules.parse_ratio(bad)


def test_payout():
    assert rules.payout(10, Outcome.LOSS) == 0
    assert rules.payout(10, Outcome.PUSH) == 10
    assert rules.payout(10, Outcome.WIN) == 20
    assert rules.payout(10, Outcome.BLACKJACK) == 25
    assert rules.payout(10, Outcome.BLACKJACK, "6:5") == 22
    assert rules.payout(10, Outcome.BLACKJACK) == rules.payout(10, Outcome.BLACKJACK)


def test_validate_bet():
    assert rules.validate_bet(50, 10, 500, 1000) is None
    assert rules.validate_bet(-5, 10, 500, 1000) == "Bet amount must be a positive number"
    assert rules.validate_bet("10", 10, 500, 1000) == "Bet amount must be a positive number"
    assert rules.validate_bet(True, 10, 500, 1000) == "Bet amount must be a positive number"
    assert rules.validate_bet(5, 10, 500, 1000) == "Minimum bet is $10"
    assert rules.validate_bet(600, 10, 500, 1000) == "Maximum bet is $500"
    assert rules.validate_bet(600, 10, None, 1000) is None
    assert rules.validate_bet(200, 10, 500, 100) == "Insufficient funds"


@pytest.mark.parametrize("amount", [float("nan"), float("inf"), float("-inf")])
def test_validate_bet_rejects_non_finite(amount):
    assert rules.validate_bet(amount, 10, None, 1000) == "Bet amount must be a positive number"
