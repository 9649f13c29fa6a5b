"""
Message types exchanged between clients and the room.

Inbound messages are *intents*: frozen dataclasses forming the closed union
``Intent``. Outbound point events are frozen dataclasses forming the closed
union ``RoomEvent``. Each class carries its wire name in ``name``. Wire
payloads use camelCase keys; ``parse_intent`` and ``to_wire`` are the only
places that know about them.

Acknowledgements (``Ack``) answer a single intent and go to its sender only.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, Mapping, Optional, Tuple, Union, assert_never

from pitboss.blackjack.action import Action
from pitboss.blackjack.errors import ValidationError
from pitboss.blackjack.side_bets import SideBetType
from pitboss.common.card import HIDDEN_CARD, Card


# Inbound intents


@dataclass(frozen=True)
class JoinGame:
    name: ClassVar[str] = "join-game"
    failure: ClassVar[str] = "join-failed"

    player_name: str = ""


@dataclass(frozen=True)
class StartGame:
    name: ClassVar[str] = "start-game"
    failure: ClassVar[str] = "start-failed"


@dataclass(frozen=True)
class TransferHost:
    name: ClassVar[str] = "transfer-host"
    failure: ClassVar[str] = "transfer-failed"

    target_player_id: str = ""


@dataclass(frozen=True)
class PlaceBet:
    name: ClassVar[str] = "place-bet"
    failure: ClassVar[str] = "bet-failed"

    main_bet: Any = 0
    side_bets: Mapping[SideBetType, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SetReady:
    name: ClassVar[str] = "ready-bet"
    failure: ClassVar[str] = "ready-failed"

    ready: bool = True


@dataclass(frozen=True)
class CancelBet:
    name: ClassVar[str] = "cancel-bet"
    failure: ClassVar[str] = "cancel-bet-failed"


@dataclass(frozen=True)
class SitOut:
    name: ClassVar[str] = "sit-out"
    failure: ClassVar[str] = "sit-out-failed"


@dataclass(frozen=True)
class CancelSitOut:
    name: ClassVar[str] = "cancel-sit-out"
    failure: ClassVar[str] = "cancel-sit-out-failed"


@dataclass(frozen=True)
class PlaceInsurance:
    name: ClassVar[str] = "place-insurance"
    failure: ClassVar[str] = "insurance-failed"

    takes_insurance: bool = False


@dataclass(frozen=True)
class PlayerAction:
    name: ClassVar[str] = "player-action"
    failure: ClassVar[str] = "action-failed"

    action: Action = Action.STAND
    hand_index: int = 0


@dataclass(frozen=True)
class PreSelectAction:
    name: ClassVar[str] = "pre-select-action"
    failure: ClassVar[str] = "pre-action-failed"

    action: Action = Action.STAND
    hand_index: int = 0


@dataclass(frozen=True)
class UpdateProfile:
    name: ClassVar[str] = "update-profile"
    failure: ClassVar[str] = "profile-failed"

    player_name: Optional[str] = None
    player_color: Optional[str] = None


@dataclass(frozen=True)
class SaveConfig:
    name: ClassVar[str] = "save-config"
    failure: ClassVar[str] = "config-failed"

    config: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class GetConfig:
    name: ClassVar[str] = "get-config"
    failure: ClassVar[str] = "error"


@dataclass(frozen=True)
class RequestPlayerInfo:
    name: ClassVar[str] = "request-player-info"
    failure: ClassVar[str] = "error"

    player_id: str = ""


Intent = Union[
    JoinGame,
    StartGame,
    TransferHost,
    PlaceBet,
    SetReady,
    CancelBet,
    SitOut,
    CancelSitOut,
    PlaceInsurance,
    PlayerAction,
    PreSelectAction,
    UpdateProfile,
    SaveConfig,
    GetConfig,
    RequestPlayerInfo,
]

INTENT_TYPES = {
    cls.name: cls
    for cls in (
        JoinGame,
        StartGame,
        TransferHost,
        PlaceBet,
        SetReady,
        CancelBet,
        SitOut,
        CancelSitOut,
        PlaceInsurance,
        PlayerAction,
        PreSelectAction,
        UpdateProfile,
        SaveConfig,
        GetConfig,
        RequestPlayerInfo,
    )
}


def _action(value) -> Action:
    try:
        return Action(value)
    except ValueError:
        raise ValidationError(f"Invalid action: {value}") from None


def _hand_index(value) -> int:
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(f"Invalid hand index: {value}")
    return value


def _flag(data: Mapping[str, Any], key: str, default: bool) -> bool:
    value = data.get(key, default)
    if not isinstance(value, bool):
        raise ValidationError(f"{key} must be true or false")
    return value


def _side_bets(raw) -> Dict[SideBetType, Any]:
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise ValidationError("sideBets must be an object")
    bets = {}
    for key, amount in raw.items():
        try:
            bet_type = SideBetType(key)
        except ValueError:
            raise ValidationError(f"Invalid side bet type: {key}") from None
        bets[bet_type] = amount
    return bets


def parse_intent(message_type: str, data: Optional[Mapping[str, Any]] = None) -> Intent:
    """
    Build an intent from a wire message.

    Args:
        message_type: The message ``type`` field, e.g. ``"place-bet"``
        data: The message ``data`` object

    Returns:
        The matching intent

    Raises:
        ValidationError: If the type is unknown or the payload is malformed
    """
    if message_type not in INTENT_TYPES:
        raise ValidationError(f"Unknown message type: {message_type}")
    if data is None:
        data = {}
    if not isinstance(data, Mapping):
        raise ValidationError("Message data must be an object")

    match message_type:
        case JoinGame.name:
            return JoinGame(str(data.get("playerName") or ""))
        case StartGame.name:
            return StartGame()
        case TransferHost.name:
            return TransferHost(str(data.get("targetPlayerId") or ""))
        case PlaceBet.name:
            return PlaceBet(data.get("mainBet", 0), _side_bets(data.get("sideBets")))
        case SetReady.name:
            return SetReady(_flag(data, "ready", True))
        case CancelBet.name:
            return CancelBet()
        case SitOut.name:
            return SitOut()
        case CancelSitOut.name:
            return CancelSitOut()
        case PlaceInsurance.name:
            return PlaceInsurance(_flag(data, "takesInsurance", False))
        case PlayerAction.name:
            return PlayerAction(
                _action(data.get("action")), _hand_index(data.get("handIndex"))
            )
        case PreSelectAction.name:
            return PreSelectAction(
                _action(data.get("action")), _hand_index(data.get("handIndex"))
            )
        case UpdateProfile.name:
            return UpdateProfile(data.get("playerName"), data.get("playerColor"))
        case SaveConfig.name:
            return SaveConfig(dict(data))
        case GetConfig.name:
            return GetConfig()
        case RequestPlayerInfo.name:
            return RequestPlayerInfo(str(data.get("playerId") or ""))
    raise ValidationError(f"Unknown message type: {message_type}")


# Outbound events


class FoldReason(Enum):
    """Why a player was folded out of a round when betting closed."""

    INSUFFICIENT_FUNDS = "insufficient_funds"
    DEDUCTION_ERROR = "deduction_error"


@dataclass(frozen=True)
class GameState:
    """Full room snapshot, broadcast after every mutation."""

    name: ClassVar[str] = "game-state"

    state: Dict[str, Any]


@dataclass(frozen=True)
class PlayerJoined:
    name: ClassVar[str] = "player-joined"

    player_id: str
    player_name: str
    seat: int


@dataclass(frozen=True)
class PlayerLeft:
    name: ClassVar[str] = "player-left"

    player_id: str


@dataclass(frozen=True)
class HostTransferred:
    name: ClassVar[str] = "host-transferred"

    new_host_id: Optional[str]
    new_host_name: Optional[str]


@dataclass(frozen=True)
class BettingPhase:
    name: ClassVar[str] = "betting-phase"

    time_limit: float
    min_bet: float
    max_bet: Optional[float]


@dataclass(frozen=True)
class CardDealt:
    name: ClassVar[str] = "card-dealt"

    player_id: str
    card: Card
    hand_index: int


@dataclass(frozen=True)
class DealerCardDealt:
    """A dealer card. ``card`` is None for the face-down hole card."""

    name: ClassVar[str] = "dealer-card"

    card: Optional[Card]
    face_up: bool


@dataclass(frozen=True)
class DealerReveal:
    name: ClassVar[str] = "dealer-reveal"

    hole_card: Optional[Card]


@dataclass(frozen=True)
class DealerCardCount:
    name: ClassVar[str] = "dealer-card-count"

    count: int


@dataclass(frozen=True)
class InsuranceOffered:
    name: ClassVar[str] = "insurance-offered"

    time_limit: float


@dataclass(frozen=True)
class PlayerTurn:
    name: ClassVar[str] = "player-turn"

    player_id: str
    hand_index: int
    time_limit: float
    available_actions: Tuple[Action, ...]


@dataclass(frozen=True)
class PlayerAutoFolded:
    name: ClassVar[str] = "player-auto-folded"

    player_id: str
    player_name: str
    reason: FoldReason


@dataclass(frozen=True)
class RoundResults:
    name: ClassVar[str] = "round-results"

    dealer_hand: Tuple[Card, ...]
    dealer_value: int
    dealer_blackjack: bool
    dealer_bust: bool
    results: Tuple[Dict[str, Any], ...]


@dataclass(frozen=True)
class ConfigUpdate:
    name: ClassVar[str] = "config-update"

    config: Dict[str, Any]


RoomEvent = Union[
    GameState,
    PlayerJoined,
    PlayerLeft,
    HostTransferred,
    BettingPhase,
    CardDealt,
    DealerCardDealt,
    DealerReveal,
    DealerCardCount,
    InsuranceOffered,
    PlayerTurn,
    PlayerAutoFolded,
    RoundResults,
    ConfigUpdate,
]


def _card(card: Optional[Card]) -> Dict[str, str]:
    return card.to_dict() if card is not None else dict(HIDDEN_CARD)


def event_payload(event: RoomEvent) -> Dict[str, Any]:
    """Wire ``data`` object for an outbound event."""
    match event:
        case GameState(state=state):
            return state
        case PlayerJoined():
            return {
                "playerId": event.player_id,
                "playerName": event.player_name,
                "seat": event.seat,
            }
        case PlayerLeft():
            return {"playerId": event.player_id}
        case HostTransferred():
            return {"newHostId": event.new_host_id, "newHostName": event.new_host_name}
        case BettingPhase():
            return {
                "timeLimit": event.time_limit,
                "minBet": event.min_bet,
                "maxBet": event.max_bet,
            }
        case CardDealt():
            return {
                "playerId": event.player_id,
                "card": event.card.to_dict(),
                "handIndex": event.hand_index,
            }
        case DealerCardDealt():
            return {"card": _card(event.card), "faceUp": event.face_up}
        case DealerReveal():
            return {"holeCard": _card(event.hole_card)}
        case DealerCardCount():
            return {"count": event.count}
        case InsuranceOffered():
            return {"timeLimit": event.time_limit}
        case PlayerTurn():
            return {
                "playerId": event.player_id,
                "handIndex": event.hand_index,
                "timeLimit": event.time_limit,
                "availableActions": [action.value for action in event.available_actions],
            }
        case PlayerAutoFolded():
            return {
                "playerId": event.player_id,
                "playerName": event.player_name,
                "reason": event.reason.value,
            }
        case RoundResults():
            return {
                "dealerHand": [card.to_dict() for card in event.dealer_hand],
                "dealerValue": event.dealer_value,
                "dealerBlackjack": event.dealer_blackjack,
                "dealerBust": event.dealer_bust,
                "results": list(event.results),
            }
        case ConfigUpdate():
            return {"config": event.config}
        case _:
            assert_never(event)


def to_wire(event: RoomEvent) -> Dict[str, Any]:
    return {"type": event.name, "data": event_payload(event)}


# Acknowledgements


@dataclass(frozen=True)
class Ack:
    """Reply to a single intent, sent to the requester only."""

    name: str
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return "error" not in self.data

    @classmethod
    def failed(cls, intent_type, error: str) -> "Ack":
        return cls(intent_type.failure, {"error": error})

    def to_wire(self) -> Dict[str, Any]:
        return {"type": self.name, "data": self.data}

