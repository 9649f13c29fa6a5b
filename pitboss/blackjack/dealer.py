"""
The house hand.

The first card dealt is the up-card and is always visible; the second is the
hole card, hidden from clients until ``reveal_hole_card`` is called.
"""

from typing import Any, Dict, List, Optional

from pitboss.blackjack import rules
from pitboss.common.card import HIDDEN_CARD, Card


class Dealer:
    def __init__(self):
        self.cards: List[Card] = []
        self.up_card: Optional[Card] = None
        self.hole_card: Optional[Card] = None
        self.hole_revealed = False
        self.has_blackjack = False
        self.is_bust = False
        self.is_complete = False

    def add_card(self, card: Card, face_up: bool = True) -> None:
        """
        Add a card to the dealer's hand and refresh blackjack/bust status.

        :param card: The card dealt
        :param face_up: Whether clients may see the card immediately. Only
            the hole card is dealt face down.
        """
        self.cards.append(card)
        if len(self.cards) == 1:
            self.up_card = card
        elif len(self.cards) == 2:
            self.hole_card = card
            if face_up:
                self.hole_revealed = True
        self._update_status()

    def _update_status(self) -> None:
        value = self.hand_value().value
        if len(self.cards) == 2:
            self.has_blackjack = rules.is_blackjack(self.cards)
        if rules.is_bust(value):
            self.is_bust = True
            self.is_complete = True
        elif not rules.dealer_should_hit(value):
            self.is_complete = True

    def reveal_hole_card(self) -> Optional[Card]:
        self.hole_revealed = True
        return self.hole_card

    def hand_value(self) -> rules.HandValue:
        return rules.hand_value(self.cards)

    def visible_value(self) -> rules.HandValue:
        """Value clients may see: the up-card alone until the hole card is revealed."""
        if not self.cards:
            return rules.HandValue(0, False)
        if len(self.cards) >= 2 and not self.hole_revealed:
            return rules.hand_value([self.up_card])
        return self.hand_value()

    def should_hit(self) -> bool:
        if self.is_bust or self.is_complete:
            return False
        return rules.dealer_should_hit(self.hand_value().value)

    def shows_ace(self) -> bool:
        return self.up_card is not None and self.up_card.is_ace

    def check_blackjack(self) -> bool:
        if len(self.cards) != 2:
            return False
        self.has_blackjack = rules.is_blackjack(self.cards)
        return self.has_blackjack

    @property
    def card_count(self) -> int:
        return len(self.cards)

    def clear(self) -> None:
        self.cards = []
        self.up_card = None
        self.hole_card = None
        self.hole_revealed = False
        self.has_blackjack = False
        self.is_bust = False
        self.is_complete = False

    def to_dict(self, hide_hole: bool = False) -> Dict[str, Any]:
        """
        Serialize for clients. With ``hide_hole`` the hole card is replaced by
        a placeholder and the totals are withheld.
        """
        hidden = hide_hole and len(self.cards) >= 2
        if hidden:
            cards = [self.up_card.to_dict(), dict(HIDDEN_CARD)]
        else:
            cards = [card.to_dict() for card in self.cards]
        value = self.hand_value()
        return {
            "cards": cards,
            "upCard": self.up_card.to_dict() if self.up_card else None,
            "cardCount": len(self.cards),
            "value": None if hidden else value.value,
            "isSoft": None if hidden else value.is_soft,
            "hasBlackjack": False if hidden else self.has_blackjack,
            "isBust": self.is_bust,
            "isComplete": False if hidden else self.is_complete,
        }

    def stats(self) -> Dict[str, Any]:
        return {
            "hasBlackjack": self.has_blackjack,
            "isBust": self.is_bust,
            "finalValue": self.hand_value().value,
            "cardCount": len(self.cards),
        }

    def __str__(self) -> str:
        return "Dealer: " + " ".join(str(card) for card in self.cards)
