"""
Pytest configuration for tests at the root level.

Rooms built here run in manual mode with every delay at zero, so a test
drives phases explicitly with intents or ``room.advance()`` and waits for
background work (the dealer turn, queued pre-actions) with
``await room.clock.idle()``.
"""

import random

import pytest

from pitboss.common.card import Card
from pitboss.common.shoe import ScriptedCardSource, Shoe
from pitboss.events.emitter import EventEmitter
from pitboss.room.clock import PhaseClock
from pitboss.room.config import RoomConfig
from pitboss.room.room import GameRoom


def cards(text):
    """Parse ``"AS KH 10D"`` into a list of cards."""
    return [Card.parse(token) for token in text.split()]


class RecordingEmitter(EventEmitter):
    """An emitter that also keeps every event it delivers."""

    def __init__(self):
        super().__init__()
        self.events = []

    def emit(self, event):
        self.events.append(event)
        super().emit(event)

    def of(self, event_type):
        return [event for event in self.events if isinstance(event, event_type)]

    def last(self, event_type):
        matching = self.of(event_type)
        return matching[-1] if matching else None


class TableDriver:
    """Shortcuts for seating players and getting a round dealt."""

    def __init__(self, room, script):
        self.room = room
        self.script = script

    async def seat(self, *names):
        players = []
        for index, name in enumerate(names, start=1):
            players.append(await self.room.add_player(f"p{index}", name))
        return players

    def deal(self, text):
        """Queue the next cards; see ``cards`` for the format."""
        self.script.load(cards(text))

    async def play_round(self, bets, side_bets=None):
        """
        Start the game if needed, place ``bets`` ({player_id: amount}) and
        ready every bettor. Betting closes once everyone has decided.
        """
        if self.room.round_number == 0:
            await self.room.start_game()
        for player_id, amount in bets.items():
            extra = (side_bets or {}).get(player_id)
            await self.room.place_bet(player_id, amount, extra)
        for player_id in bets:
            await self.room.set_ready(player_id)
        await self.room.clock.idle()


@pytest.fixture
def quick_config():
    return RoomConfig(
        betting_time=0,
        action_time=0,
        insurance_time=0,
        round_delay=0,
        dealer_reveal_delay=0,
        dealer_draw_delay=0,
        pre_action_delay=0,
    )


@pytest.fixture
def emitter():
    return RecordingEmitter()


@pytest.fixture
def script():
    return ScriptedCardSource(Shoe(6, rng=random.Random(1234)))


@pytest.fixture
def room(quick_config, emitter, script):
    return GameRoom(
        config=quick_config,
        emitter=emitter,
        shoe=script.fallback,
        card_source=script,
        clock=PhaseClock(manual=True),
    )


@pytest.fixture
def table(room, script):
    return TableDriver(room, script)
