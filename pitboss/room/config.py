"""
Room configuration.

Attributes are snake_case in Python and camelCase on the wire, matching the
``save-config`` payload clients send. A config is validated whenever it is
built from client data; the room only accepts changes while in the lobby.
"""

import math
from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Dict, Mapping, Optional

from pitboss.blackjack.errors import ConfigError
from pitboss.blackjack.rules import parse_ratio

MIN_DECKS = 1
MAX_DECKS = 8


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


@dataclass(frozen=True)
class RoomConfig:
    starting_bankroll: float = 1000
    min_bet: float = 10
    max_bet: Optional[float] = 500
    deck_count: int = 6
    blackjack_payout: str = "3:2"
    insurance_payout: str = "2:1"
    split_aces_blackjack: bool = True
    round_delay: float = 5

    # Phase time limits, in seconds
    betting_time: float = 30
    action_time: float = 30
    insurance_time: float = 10

    # Pacing of the dealer turn and queued actions, in seconds
    dealer_reveal_delay: float = 2.0
    dealer_draw_delay: float = 1.0
    pre_action_delay: float = 0.5

    def validate(self) -> "RoomConfig":
        """
        Check the config for internal consistency.

        :raises ConfigError: On the first violated constraint.
        :return: self, for chaining
        """
        for name in ("starting_bankroll", "min_bet"):
            value = getattr(self, name)
            if not _is_number(value) or value <= 0:
                raise ConfigError(f"{_camel(name)} must be a positive number")
        if self.max_bet is not None:
            if not _is_number(self.max_bet) or self.max_bet <= 0:
                raise ConfigError("maxBet must be a positive number")
            if self.min_bet >= self.max_bet:
                raise ConfigError("minBet must be less than maxBet")
        if (
            isinstance(self.deck_count, bool)
            or not isinstance(self.deck_count, int)
            or not MIN_DECKS <= self.deck_count <= MAX_DECKS
        ):
            raise ConfigError(f"deckCount must be between {MIN_DECKS} and {MAX_DECKS}")
        for name in ("blackjack_payout", "insurance_payout"):
            try:
                parse_ratio(getattr(self, name))
            except ValueError as exc:
                raise ConfigError(f"{_camel(name)}: {exc}") from exc
        if not isinstance(self.split_aces_blackjack, bool):
            raise ConfigError("splitAcesBlackjack must be true or false")
        for name in (
            "round_delay",
            "betting_time",
            "action_time",
            "insurance_time",
            "dealer_reveal_delay",
            "dealer_draw_delay",
            "pre_action_delay",
        ):
            value = getattr(self, name)
            if not _is_number(value) or value < 0:
                raise ConfigError(f"{_camel(name)} must be zero or more")
        return self

    def merged(self, updates: Mapping[str, Any]) -> "RoomConfig":
        """
        Return a new validated config with ``updates`` applied.

        ``updates`` uses wire (camelCase) keys. Unknown keys are rejected;
        ``maxBet: null`` removes the table maximum.
        """
        by_wire = {_camel(f.name): f.name for f in fields(self)}
        changes = {}
        for key, value in updates.items():
            name = by_wire.get(key)
            if name is None:
                raise ConfigError(f"Unknown config option: {key}")
            changes[name] = value
        return replace(self, **changes).validate()

    def to_dict(self) -> Dict[str, Any]:
        return {_camel(key): value for key, value in asdict(self).items()}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RoomConfig":
        return cls().merged(data)


def _is_number(value) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )
