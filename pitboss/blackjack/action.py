"""Defines the Action enum for the possible actions a player can take on a blackjack hand."""
from enum import Enum


class Action(Enum):
    """Enum for the possible actions a player can take on a hand."""

    HIT = "hit"
    STAND = "stand"
    DOUBLE = "double"
    SPLIT = "split"
