"""Exceptions raised by the table when an intent cannot be applied."""


class BlackjackError(Exception):
    """Base class for every error the table reports back to a player."""


class ValidationError(BlackjackError):
    """The request is malformed or not allowed in the current state."""


class InvalidBetError(ValidationError):
    """Raised when a bet amount breaks the table limits."""


class IllegalActionError(ValidationError):
    """Raised when a player attempts an action that is not currently valid for the hand."""


class NotYourTurnError(ValidationError):
    """Raised when a player acts while another player or hand holds the turn."""


class PhaseError(ValidationError):
    """Raised when an intent arrives in a phase that does not accept it."""


class ConfigError(ValidationError):
    """Raised when a configuration violates the table invariants."""


class InsufficientFundsError(BlackjackError):
    """Raised when a player does not have enough money to perform an action."""
