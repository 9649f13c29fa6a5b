"""
The game room: table state, phase progression and intent routing.
"""

from pitboss.room.clock import Phase, PhaseClock
from pitboss.room.config import RoomConfig
from pitboss.room.dispatcher import Dispatcher
from pitboss.room.room import GameRoom

__all__ = ["Phase", "PhaseClock", "RoomConfig", "Dispatcher", "GameRoom"]
