"""
This module defines the `Suit`, `Rank`, and `Card` classes, which are used to represent playing cards.

- `Suit`: An enum representing the four suits of a standard deck of playing
cards: Hearts, Diamonds, Clubs, and Spades.

- `Rank`: An enum representing the thirteen ranks of a standard deck of playing
cards: Ace, Two through Ten, Jack, Queen and King.

- `Card`: An immutable playing card. A card has a rank and a suit, and knows
how to parse itself from admin shorthand ("AS", "10H") and how to serialize
itself for clients.

This module is part of the `pitboss` package, a server-authoritative
multiplayer blackjack table.
"""

from dataclasses import dataclass
from enum import Enum, unique
from typing import Dict


@unique
class Suit(Enum):
    """
    Enum for suits in a card deck. The value is the wire name.
    """

    HEARTS = "hearts"
    DIAMONDS = "diamonds"
    CLUBS = "clubs"
    SPADES = "spades"

    @property
    def symbol(self) -> str:
        return _SUIT_SYMBOLS[self]

    @property
    def is_red(self) -> bool:
        return self in (Suit.HEARTS, Suit.DIAMONDS)

    def __str__(self) -> str:
        return self.symbol


_SUIT_SYMBOLS = {
    Suit.HEARTS: "♥",
    Suit.DIAMONDS: "♦",
    Suit.CLUBS: "♣",
    Suit.SPADES: "♠",
}


@unique
class Rank(Enum):
    """
    Enum for ranks in a card deck. The value is the wire symbol.
    """

    ACE = "A"
    TWO = "2"
    THREE = "3"
    FOUR = "4"
    FIVE = "5"
    SIX = "6"
    SEVEN = "7"
    EIGHT = "8"
    NINE = "9"
    TEN = "10"
    JACK = "J"
    QUEEN = "Q"
    KING = "K"

    @property
    def symbol(self) -> str:
        """A string representation of the rank."""
        return self.value

    @property
    def rank_value(self) -> int:
        """
        The blackjack value of the rank. Aces report 11 here; whether an ace
        counts as 1 or 11 is decided per hand by the rules module.
        """
        if self is Rank.ACE:
            return 11
        if self in (Rank.JACK, Rank.QUEEN, Rank.KING):
            return 10
        return int(self.value)

    @property
    def is_ten_value(self) -> bool:
        return self in (Rank.TEN, Rank.JACK, Rank.QUEEN, Rank.KING)

    @property
    def order(self) -> int:
        """Poker order with the ace low (A=1 .. K=13)."""
        return _RANK_ORDER[self]

    def __str__(self) -> str:
        return self.symbol


_RANK_ORDER = {rank: index for index, rank in enumerate(Rank, start=1)}

_SUIT_LETTERS = {
    "H": Suit.HEARTS,
    "D": Suit.DIAMONDS,
    "C": Suit.CLUBS,
    "S": Suit.SPADES,
}


@dataclass(frozen=True)
class Card:
    """
    Class representing a playing card. Cards never change once drawn.

    >>> card = Card(Rank.TEN, Suit.HEARTS)
    >>> print(card)
    10♥
    >>> Card.parse("as")
    Card(Rank.ACE, Suit.SPADES)
    """

    rank: Rank
    suit: Suit

    def __post_init__(self):
        if not isinstance(self.rank, Rank):
            raise TypeError(f"Invalid rank: {self.rank}")
        if not isinstance(self.suit, Suit):
            raise TypeError(f"Invalid suit: {self.suit}")

    @classmethod
    def parse(cls, text: str) -> "Card":
        """
        Parse admin shorthand: a rank symbol followed by a suit letter,
        e.g. ``AS``, ``KH``, ``10D``, ``7c``.

        :raises ValueError: If the text is not a valid card.
        """
        if not isinstance(text, str):
            raise ValueError(f"Invalid card: {text!r}")
        token = text.strip().upper()
        if len(token) < 2:
            raise ValueError(f"Invalid card: {text!r}")
        rank_text, suit_letter = token[:-1], token[-1]
        try:
            rank = Rank(rank_text)
            suit = _SUIT_LETTERS[suit_letter]
        except (ValueError, KeyError) as exc:
            raise ValueError(
                f"Invalid card: {text}. Use format like AS, KH, 10D, 7C"
            ) from exc
        return cls(rank, suit)

    @property
    def is_ace(self) -> bool:
        return self.rank is Rank.ACE

    def to_dict(self) -> Dict[str, str]:
        return {"rank": self.rank.symbol, "suit": self.suit.value}

    def __repr__(self) -> str:
        return f"Card(Rank.{self.rank.name}, Suit.{self.suit.name})"

    def __str__(self) -> str:
        return f"{self.rank.symbol}{self.suit.symbol}"


# Placeholder sent to clients in place of the dealer's hole card.
HIDDEN_CARD = {"rank": "?", "suit": "?"}
