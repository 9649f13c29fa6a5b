"""
Event system for the pitboss table.

Provides the event emitter, the inbound intent and outbound event message
types, and the WebSocket gateway that carries them to clients.
"""

from pitboss.events.emitter import EventEmitter, EventPriority
from pitboss.events.messages import Ack, Intent, RoomEvent, parse_intent, to_wire

__all__ = [
    "EventEmitter",
    "EventPriority",
    "Ack",
    "Intent",
    "RoomEvent",
    "parse_intent",
    "to_wire",
]
