"""
The shoe: several standard decks shuffled together, plus the card-source seam
the room draws through.

The room never calls ``Shoe.draw`` directly; it holds a ``CardSource``. In
normal play that source is the shoe itself. Test mode attaches a
``ScriptedCardSource`` that serves pre-arranged cards and falls back to the
live shoe once its script is exhausted.
"""

import logging
import random
from collections import deque
from typing import Iterable, List, Optional, Protocol, runtime_checkable

from pitboss.common.card import Card, Rank, Suit

logger = logging.getLogger("pitboss.shoe")

CARDS_PER_DECK = 52


@runtime_checkable
class CardSource(Protocol):
    """Anything the room can draw a card from."""

    def draw(self) -> Card:
        ...


def standard_deck() -> List[Card]:
    """Return one ordered 52-card deck."""
    return [Card(rank, suit) for suit in Suit for rank in Rank]


class Shoe:
    """
    A shuffled multi-deck shoe.

    Cards are drawn from the tail. When the shoe runs dry it is regenerated
    with ``deck_count`` full decks and reshuffled, so the total card count
    after every reshuffle is always ``52 * deck_count``.
    """

    def __init__(self, deck_count: int = 6, rng: Optional[random.Random] = None):
        """
        Initialize a Shoe instance.

        :param deck_count: Number of decks to use in the shoe (default is 6)
        :param rng: Optional random generator, mainly for reproducible tests
        """
        if deck_count < 1:
            raise ValueError("Number of decks must be at least 1")

        self.deck_count = deck_count
        self._rng = rng or random.Random()
        self.total_cards = CARDS_PER_DECK * deck_count
        self.cards: List[Card] = []
        self.cards_dealt = 0
        self.shuffle_count = 0
        self._fill()

    def _fill(self) -> None:
        self.cards = []
        for _ in range(self.deck_count):
            self.cards.extend(standard_deck())
        self.cards_dealt = 0
        self.shuffle()

    def shuffle(self) -> None:
        """Shuffle the remaining cards in place."""
        self._rng.shuffle(self.cards)
        self.shuffle_count += 1

    def reshuffle(self) -> None:
        """Regenerate every deck and shuffle the full shoe."""
        logger.info("Reshuffling %d-deck shoe", self.deck_count)
        self._fill()

    def draw(self) -> Card:
        """
        Pop a card from the shoe, reshuffling first if it is empty.

        :return: The drawn card
        """
        if not self.cards:
            self.reshuffle()
        card = self.cards.pop()
        self.cards_dealt += 1
        return card

    @property
    def remaining(self) -> int:
        """Return the number of cards remaining in the shoe."""
        return len(self.cards)

    def penetration(self) -> float:
        """Fraction of the shoe consumed since the last shuffle (0.0 - 1.0)."""
        return (self.total_cards - len(self.cards)) / self.total_cards

    def __str__(self) -> str:
        return f"Shoe with {self.remaining} cards remaining"

    def __repr__(self) -> str:
        return f"Shoe(deck_count={self.deck_count})"


class ScriptedCardSource:
    """
    Serves a pre-arranged sequence of cards, then falls back to a live shoe.
    """

    def __init__(self, fallback: CardSource, cards: Iterable[Card] = ()):
        self.fallback = fallback
        self._script: deque = deque(cards)
        self.cards_served = 0

    def load(self, cards: Iterable[Card]) -> None:
        """Replace the script with ``cards``."""
        self._script = deque(cards)
        self.cards_served = 0

    def clear(self) -> None:
        self._script.clear()
        self.cards_served = 0

    @property
    def pending(self) -> List[Card]:
        return list(self._script)

    def draw(self) -> Card:
        if self._script:
            self.cards_served += 1
            card = self._script.popleft()
            logger.debug("Drew scripted card %s", card)
            return card
        return self.fallback.draw()
