"""A single player hand and its wire form."""

from dataclasses import dataclass, field
from typing import Any, Dict, List

from pitboss.blackjack.rules import HandStatus, HandValue, hand_value
from pitboss.common.card import Card

__all__ = ["Hand", "HandStatus"]


@dataclass
class Hand:
    """
    One hand a player is playing this round.

    A player starts each round with exactly one hand; splitting inserts new
    hands immediately after the source so play stays left to right.
    """

    bet: float = 0
    cards: List[Card] = field(default_factory=list)
    status: HandStatus = HandStatus.ACTIVE
    is_doubled: bool = False
    from_split: bool = False
    has_acted: bool = False

    @property
    def value(self) -> HandValue:
        return hand_value(self.cards)

    @property
    def is_active(self) -> bool:
        return self.status is HandStatus.ACTIVE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cards": [card.to_dict() for card in self.cards],
            "bet": self.bet,
            "status": self.status.value,
            "isDoubled": self.is_doubled,
            "fromSplit": self.from_split,
            "value": self.value.to_dict(),
        }
