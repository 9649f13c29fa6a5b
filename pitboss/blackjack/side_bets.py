"""
Side bet evaluation: Perfect Pairs, Bust It and 21+3.

Each evaluator is a pure function that returns a ``SideBetResult``. Winning
payouts include the original stake; a losing evaluation returns
``SideBetResult.LOSS`` (the stake was already taken when bets were committed).
"""

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Dict, List, Optional, Sequence

from pitboss.blackjack import constants
from pitboss.blackjack.rules import hand_value
from pitboss.common.card import Card, Rank


class SideBetType(Enum):
    """Side bet kinds. The value is the key used on the wire."""

    PERFECT_PAIRS = "perfectPairs"
    BUST_IT = "bustIt"
    TWENTY_ONE_PLUS_3 = "twentyOnePlus3"


@dataclass(frozen=True)
class SideBetResult:
    payout: float = 0
    hand_type: Optional[str] = None
    multiplier: int = 0

    LOSS: ClassVar["SideBetResult"]

    @property
    def won(self) -> bool:
        return self.payout > 0

    def to_dict(self) -> Dict:
        return {
            "payout": self.payout,
            "handType": self.hand_type,
            "multiplier": self.multiplier,
        }


SideBetResult.LOSS = SideBetResult()


def _win(bet: float, hand_type: str, multiplier: int) -> SideBetResult:
    return SideBetResult(bet + bet * multiplier, hand_type, multiplier)


def evaluate_perfect_pairs(cards: Sequence[Card], bet: float) -> SideBetResult:
    """Score the player's first two cards as a pair."""
    if len(cards) != 2:
        return SideBetResult.LOSS
    first, second = cards
    if first.rank is not second.rank:
        return SideBetResult.LOSS

    if first.suit is second.suit:
        return _win(bet, "Perfect Pair", constants.PERFECT_PAIR_MULTIPLIER)
    if first.suit.is_red == second.suit.is_red:
        return _win(bet, "Colored Pair", constants.COLORED_PAIR_MULTIPLIER)
    return _win(bet, "Mixed Pair", constants.MIXED_PAIR_MULTIPLIER)


def evaluate_bust_it(dealer_cards: Sequence[Card], bet: float) -> SideBetResult:
    """Pays only when the dealer busts, scaled by the dealer's card count."""
    if not dealer_cards:
        return SideBetResult.LOSS
    if hand_value(dealer_cards).value <= constants.BLACKJACK:
        return SideBetResult.LOSS

    count = len(dealer_cards)
    if count >= constants.BUST_IT_TOP_TIER:
        multiplier = constants.BUST_IT_MULTIPLIERS[constants.BUST_IT_TOP_TIER]
        return _win(bet, f"{constants.BUST_IT_TOP_TIER}+ Cards", multiplier)

    multiplier = constants.BUST_IT_MULTIPLIERS.get(count, 0)
    if not multiplier:
        return SideBetResult.LOSS
    return _win(bet, f"{count} Cards", multiplier)


def _is_flush(cards: Sequence[Card]) -> bool:
    return len({card.suit for card in cards}) == 1


def _is_trips(cards: Sequence[Card]) -> bool:
    return len({card.rank for card in cards}) == 1


def _is_straight(cards: Sequence[Card]) -> bool:
    low = sorted(card.rank.order for card in cards)
    if low[0] + 1 == low[1] and low[1] + 1 == low[2]:
        return True
    # Ace high: Q-K-A
    high = sorted(14 if card.rank is Rank.ACE else card.rank.order for card in cards)
    return high[0] + 1 == high[1] and high[1] + 1 == high[2]


def evaluate_21_plus_3(
    player_cards: Sequence[Card], dealer_up_card: Optional[Card], bet: float
) -> SideBetResult:
    """
    Score the player's first two cards plus the dealer up-card as a
    three-card poker hand. Categories are checked highest first and the
    first match wins.
    """
    if len(player_cards) < 2 or dealer_up_card is None:
        return SideBetResult.LOSS

    three = [player_cards[0], player_cards[1], dealer_up_card]
    flush = _is_flush(three)
    trips = _is_trips(three)
    straight = _is_straight(three)

    if trips and flush:
        return _win(bet, "Suited Three of a Kind", constants.SUITED_TRIPS_MULTIPLIER)
    if straight and flush:
        return _win(bet, "Straight Flush", constants.STRAIGHT_FLUSH_MULTIPLIER)
    if trips:
        return _win(bet, "Three of a Kind", constants.THREE_OF_A_KIND_MULTIPLIER)
    if straight:
        return _win(bet, "Straight", constants.STRAIGHT_MULTIPLIER)
    if flush:
        return _win(bet, "Flush", constants.FLUSH_MULTIPLIER)
    return SideBetResult.LOSS


def payout_tables() -> Dict[str, Dict]:
    """Payout tables for display, keyed by side bet wire name."""

    def rows(*pairs) -> List[Dict]:
        return [{"name": name, "multiplier": multiplier} for name, multiplier in pairs]

    bust_it = [(f"{constants.BUST_IT_TOP_TIER}+ cards",
                constants.BUST_IT_MULTIPLIERS[constants.BUST_IT_TOP_TIER])]
    bust_it += [
        (f"{count} cards", constants.BUST_IT_MULTIPLIERS[count])
        for count in sorted(constants.BUST_IT_MULTIPLIERS, reverse=True)
        if count < constants.BUST_IT_TOP_TIER
    ]

    return {
        SideBetType.PERFECT_PAIRS.value: {
            "name": "Perfect Pairs",
            "description": "First two cards form a pair",
            "payouts": rows(
                ("Perfect Pair (same suit)", constants.PERFECT_PAIR_MULTIPLIER),
                ("Colored Pair (same color)", constants.COLORED_PAIR_MULTIPLIER),
                ("Mixed Pair (different color)", constants.MIXED_PAIR_MULTIPLIER),
            ),
        },
        SideBetType.BUST_IT.value: {
            "name": "Bust It",
            "description": "Dealer busts",
            "payouts": rows(*bust_it),
        },
        SideBetType.TWENTY_ONE_PLUS_3.value: {
            "name": "21+3",
            "description": "First two cards + dealer upcard form poker hand",
            "payouts": rows(
                ("Suited Three of a Kind", constants.SUITED_TRIPS_MULTIPLIER),
                ("Straight Flush", constants.STRAIGHT_FLUSH_MULTIPLIER),
                ("Three of a Kind", constants.THREE_OF_A_KIND_MULTIPLIER),
                ("Straight", constants.STRAIGHT_MULTIPLIER),
                ("Flush", constants.FLUSH_MULTIPLIER),
            ),
        },
    }
