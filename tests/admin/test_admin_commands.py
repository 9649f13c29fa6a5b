import json

import pytest

from pitboss.admin.commands import HELP_TEXT, AdminCommands
from pitboss.admin.statistics import Statistics
from pitboss.admin.test_mode import TestMode
from pitboss.room.clock import Phase


@pytest.fixture
def console(room, tmp_path):
    statistics = Statistics(room)
    room.round_observer = statistics
    return AdminCommands(room, statistics, TestMode(room), export_dir=str(tmp_path))


@pytest.mark.asyncio
async def test_requires_slash(console):
    assert await console.execute("start") == (
        "Commands must start with /. Type /help for available commands."
    )


@pytest.mark.asyncio
async def test_unknown_command(console):
    assert await console.execute("/shuffle") == (
        "Unknown command: /shuffle. Type /help for available commands."
    )


@pytest.mark.asyncio
async def test_help(console):
    assert await console.execute("/help") == HELP_TEXT
    assert await console.execute("/HELP") == HELP_TEXT


@pytest.mark.asyncio
async def test_start_and_end(console, room, table):
    assert await console.execute("/end") == "No game in progress"
    assert await console.execute("/start") == "Error: Cannot start game - no players"

    await table.seat("Alice")
    assert await console.execute("/start") == "Game started"
    assert room.phase is Phase.BETTING
    assert await console.execute("/end") == "Game ended"
    assert room.phase is Phase.LOBBY


@pytest.mark.asyncio
async def test_kick_by_name_or_seat(console, room, table):
    await table.seat("Alice", "Big Bob", "Carol")

    assert await console.execute("/kick") == "Usage: /kick <player_name>"
    assert await console.execute("/kick alice") == "Kicked Alice"
    assert await console.execute('/kick "big bob"') == "Kicked Big Bob"
    assert await console.execute("/kick 3") == "Kicked Carol"
    assert await console.execute("/kick Dave") == "Player not found: Dave"
    assert room.players == {}


@pytest.mark.asyncio
async def test_transfer(console, room, table):
    await table.seat("Alice", "Bob")

    assert await console.execute("/transfer Bob") == "Host transferred to Bob"
    assert room.host_id == "p2"


@pytest.mark.asyncio
async def test_test_mode_and_deal(console, room):
    assert (await console.execute("/deal AS KH")).startswith("Error: Test mode not enabled")

    assert await console.execute("/test-mode on") == (
        "Test mode enabled. Use /deal to specify cards."
    )
    assert await console.execute("/deal AS KH") == "Set 2 pre-dealt cards: A♠, K♥"
    status = await console.execute("/test-mode")
    assert "Test mode: ON" in status
    assert "Pending cards: 2" in status

    assert await console.execute("/deal clear") == "Pre-dealt cards cleared"
    assert await console.execute("/test-mode maybe") == "Usage: /test-mode <on|off>"
    assert await console.execute("/test-mode off") == "Test mode disabled"


@pytest.mark.asyncio
async def test_scenarios(console):
    listing = await console.execute("/scenario")
    assert "dealer-bust" in listing
    assert "split-aces" in listing

    await console.execute("/test-mode on")
    loaded = await console.execute("/scenario blackjack")
    assert loaded.startswith("Scenario 'blackjack'")

    assert (await console.execute("/scenario nope")).startswith(
        "Error: Unknown scenario. Available:"
    )


@pytest.mark.asyncio
async def test_next_advances_in_manual_mode(console, room, table):
    await table.seat("Alice")
    await console.execute("/start")

    assert await console.execute("/next") == "Advanced. Current phase: results"


@pytest.mark.asyncio
async def test_next_refused_with_autoplay(console, room):
    assert await console.execute("/autoplay on") == (
        "Autoplay enabled. Game will auto-advance."
    )
    assert not room.manual
    assert await console.execute("/next") == (
        "Autoplay is enabled. Use /autoplay off to enable manual control."
    )
    assert await console.execute("/autoplay") == "Usage: /autoplay <on|off>"
    assert await console.execute("/autoplay off") == (
        "Autoplay disabled. Use /next to advance phases."
    )


@pytest.mark.asyncio
async def test_next_in_lobby(console):
    assert await console.execute("/next") == (
        "Error: Cannot advance from lobby; start the game first"
    )


@pytest.mark.asyncio
async def test_state(console, table):
    await table.seat("Alice")
    output = await console.execute("/state")

    header, body = output.split("\n", 1)
    assert header == "Game State:"
    state = json.loads(body)
    assert state["phase"] == "lobby"
    assert state["players"] == 1
    assert state["deckRemaining"] == 312


@pytest.mark.asyncio
async def test_stats_history_and_export(console, room, table, tmp_path):
    await table.seat("Alice")
    table.deal("10H 9D 8S 8C")

    assert await console.execute("/history") == "No hand history available"
    assert await console.execute("/history lots") == (
        "Usage: /history [count]\nExample: /history 20"
    )

    await table.play_round({"p1": 10})
    await console.execute("/next")
    await room.clock.idle()

    assert "Round 1 - Dealer: 17" in await console.execute("/history 5")
    assert "SESSION STATISTICS" in await console.execute("/stats")
    assert "ALICE - SEAT 1" in await console.execute("/stats alice")
    assert await console.execute("/stats Zed") == "Player not found: Zed"

    exported = await console.execute("/export")
    assert exported.startswith(f"Statistics exported to: {tmp_path}")

    assert await console.execute("/clear-stats") == "All statistics cleared"
    assert await console.execute("/history") == "No hand history available"


@pytest.mark.asyncio
async def test_info_players_and_config(console, room, table):
    assert await console.execute("/players") == "No players connected"

    await table.seat("Alice", "Bob")
    players = await console.execute("/players")
    assert "Seat 1: Alice [HOST]" in players
    assert "Seat 2: Bob" in players

    info = await console.execute("/info")
    assert f"Session ID: {room.session_id}" in info
    assert "Players: 2/5" in info

    config = await console.execute("/config")
    assert "Deck Count: 6" in config
    assert "Blackjack Payout: 3:2" in config


def test_find_player(console, room):
    assert console.find_player("nobody") is None
