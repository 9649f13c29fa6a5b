"""
Core blackjack rule engine and hand evaluation.

Every function here is pure: it looks only at its arguments, so the room,
the players and the dealer can all share one set of rules without state.
"""

import math
from dataclasses import dataclass
from enum import Enum
from fractions import Fraction
from numbers import Real
from typing import Optional, Sequence

from pitboss.blackjack.constants import BLACKJACK, DEALER_STANDS_ON
from pitboss.common.card import Card


class Outcome(Enum):
    """Result of a resolved hand."""

    WIN = "win"
    LOSS = "loss"
    PUSH = "push"
    BLACKJACK = "blackjack"


class HandStatus(Enum):
    """Lifecycle of a single player hand within a round."""

    ACTIVE = "active"
    STAND = "stand"
    BUST = "bust"
    BLACKJACK = "blackjack"


@dataclass(frozen=True)
class HandValue:
    value: int
    is_soft: bool

    def to_dict(self) -> dict:
        return {"value": self.value, "isSoft": self.is_soft}


def hand_value(cards: Sequence[Card]) -> HandValue:
    """
    Calculate the best total for a hand.

    Non-ace cards are summed first, then each ace is counted as 11 if that
    still leaves room for the remaining aces at 1 apiece without passing 21,
    otherwise as 1. The hand is soft when at least one ace counts as 11.
    """
    total = 0
    aces = 0
    for card in cards:
        if card.is_ace:
            aces += 1
        else:
            total += card.rank.rank_value

    soft_aces = 0
    for remaining in range(aces - 1, -1, -1):
        if total + 11 + remaining <= BLACKJACK:
            total += 11
            soft_aces += 1
        else:
            total += 1

    return HandValue(total, soft_aces > 0)


def is_blackjack(
    cards: Sequence[Card],
    from_split: bool = False,
    split_aces_count_as_blackjack: bool = True,
) -> bool:
    """Check for a natural: exactly an ace and a ten-value card."""
    if len(cards) != 2:
        return False
    if from_split and not split_aces_count_as_blackjack:
        return False
    if hand_value(cards).value != BLACKJACK:
        return False
    has_ace = any(card.is_ace for card in cards)
    has_ten = any(card.rank.is_ten_value for card in cards)
    return has_ace and has_ten


def is_bust(value: int) -> bool:
    return value > BLACKJACK


def compare_hands(
    player_value: int,
    dealer_value: int,
    player_blackjack: bool = False,
    dealer_blackjack: bool = False,
) -> Outcome:
    """
    Compare a player hand with the dealer hand.

    Returns WIN, LOSS or PUSH; the blackjack bonus is decided by the caller.
    """
    if player_blackjack and dealer_blackjack:
        return Outcome.PUSH
    if player_blackjack:
        return Outcome.WIN
    if dealer_blackjack:
        return Outcome.LOSS
    if is_bust(player_value):
        return Outcome.LOSS
    if is_bust(dealer_value):
        return Outcome.WIN
    if player_value > dealer_value:
        return Outcome.WIN
    if player_value < dealer_value:
        return Outcome.LOSS
    return Outcome.PUSH


def can_split(cards: Sequence[Card]) -> bool:
    """A pair of the same rank, or any two ten-value cards."""
    if len(cards) != 2:
        return False
    first, second = cards
    if first.rank is second.rank:
        return True
    return first.rank.is_ten_value and second.rank.is_ten_value


def can_double(cards: Sequence[Card], has_acted: bool = False) -> bool:
    return len(cards) == 2 and not has_acted


def can_hit(value: int, status: HandStatus) -> bool:
    """Only active hands under 21 may take another card."""
    if status is not HandStatus.ACTIVE:
        return False
    if is_bust(value):
        return False
    return value != BLACKJACK


def dealer_should_hit(value: int) -> bool:
    """The dealer stands on all 17s, hard or soft."""
    return value < DEALER_STANDS_ON


def parse_ratio(ratio: str) -> Fraction:
    """
    Parse a payout ratio such as ``"3:2"`` or ``"6:5"``.

    :raises ValueError: If the ratio is malformed or not positive.
    """
    try:
        numerator, denominator = (int(part) for part in str(ratio).split(":"))
        value = Fraction(numerator, denominator)
    except (ValueError, ZeroDivisionError) as exc:
        raise ValueError(f"Invalid payout ratio: {ratio!r}") from exc
    if value <= 0:
        raise ValueError(f"Invalid payout ratio: {ratio!r}")
    return value


def payout(bet: float, result: Outcome, blackjack_ratio: str = "3:2") -> float:
    """
    Total amount returned to the player for a resolved hand, stake included.

    loss -> 0, push -> bet, win -> 2x bet, blackjack -> bet + bet * ratio.
    """
    if result is Outcome.LOSS:
        return 0
    if result is Outcome.PUSH:
        return bet
    if result is Outcome.WIN:
        return bet * 2
    if result is Outcome.BLACKJACK:
        return bet + float(bet * parse_ratio(blackjack_ratio))
    raise ValueError(f"Unknown outcome: {result!r}")


def validate_bet(
    amount, min_bet: float, max_bet: Optional[float], bankroll: float
) -> Optional[str]:
    """
    Validate a bet amount against table limits and the player's bankroll.

    :return: ``None`` if the bet is acceptable, otherwise the reason it is not.
    """
    if (
        isinstance(amount, bool)
        or not isinstance(amount, Real)
        or not math.isfinite(amount)
        or amount < 0
    ):
        return "Bet amount must be a positive number"
    if amount < min_bet:
        return f"Minimum bet is ${min_bet}"
    if max_bet is not None and amount > max_bet:
        return f"Maximum bet is ${max_bet}"
    if amount > bankroll:
        return "Insufficient funds"
    return None
