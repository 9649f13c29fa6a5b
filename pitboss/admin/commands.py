"""
Admin console commands.

``AdminCommands.execute`` takes one console line such as ``/kick Alice`` and
returns the text to print. Commands call the same room operations that
clients reach through intents, plus read-only introspection.
"""

import json
import logging
import shlex
from typing import Awaitable, Callable, Dict, List, Optional

from pitboss.blackjack.errors import BlackjackError
from pitboss.blackjack.player import Player
from pitboss.room.clock import Phase

logger = logging.getLogger("pitboss.admin.commands")

RULE = "=" * 40

HELP_TEXT = "\n".join(
    [
        RULE,
        "      ADMIN CONSOLE COMMANDS",
        RULE,
        "--- Game Control ---",
        "/start              Force start game",
        "/end                End current game",
        "/kick <player>      Kick a player (name or seat)",
        "/transfer <player>  Transfer host",
        "--- Testing ---",
        "/test-mode [on|off] Toggle test mode or show its status",
        "/deal <cards>       Set pre-dealt cards, e.g. /deal AS KH 10D 7C",
        "/deal clear         Return to random dealing",
        "/scenario [name]    Load a preset scenario or list them",
        "/autoplay <on|off>  Toggle automatic phase advance",
        "/next               Advance to the next phase (autoplay off)",
        "/state              Show game state",
        "--- Statistics ---",
        "/stats [player]     Show session or player stats",
        "/history [n]        Show the last n rounds (default 10)",
        "/export             Export stats to JSON",
        "/clear-stats        Reset session statistics",
        "--- Server ---",
        "/info               Session information",
        "/players            List seated players",
        "/config             Show game configuration",
        "/help               Show this help message",
        RULE,
    ]
)


def _on_off(args: List[str]) -> Optional[bool]:
    if len(args) != 1:
        return None
    return {"on": True, "off": False}.get(args[0].lower())


class AdminCommands:
    """
    Console command surface for a room.

    Args:
        room: The room being administered
        statistics: The room's ``Statistics`` collector
        test_mode: The room's ``TestMode``
        export_dir: Directory used by ``/export``
    """

    def __init__(self, room, statistics, test_mode, export_dir: str = "exports"):
        self.room = room
        self.statistics = statistics
        self.test_mode = test_mode
        self.export_dir = export_dir
        self._commands: Dict[str, Callable[[List[str]], Awaitable[str]]] = {
            "start": self.cmd_start,
            "end": self.cmd_end,
            "kick": self.cmd_kick,
            "transfer": self.cmd_transfer,
            "test-mode": self.cmd_test_mode,
            "deal": self.cmd_deal,
            "scenario": self.cmd_scenario,
            "autoplay": self.cmd_autoplay,
            "next": self.cmd_next,
            "state": self.cmd_state,
            "stats": self.cmd_stats,
            "history": self.cmd_history,
            "export": self.cmd_export,
            "clear-stats": self.cmd_clear_stats,
            "info": self.cmd_info,
            "players": self.cmd_players,
            "config": self.cmd_config,
            "help": self.cmd_help,
        }

    async def execute(self, line: str) -> str:
        line = line.strip()
        if not line.startswith("/"):
            return "Commands must start with /. Type /help for available commands."

        try:
            parts = shlex.split(line[1:])
        except ValueError:
            parts = line[1:].split()
        if not parts:
            return "Type /help for available commands."
        command, args = parts[0].lower(), parts[1:]

        handler = self._commands.get(command)
        if handler is None:
            return f"Unknown command: /{command}. Type /help for available commands."
        try:
            return await handler(args)
        except BlackjackError as e:
            return f"Error: {e}"
        except Exception as e:
            logger.error(f"Admin command /{command} failed: {e}", exc_info=True)
            return f"Error: {e}"

    def find_player(self, identifier: str) -> Optional[Player]:
        """Find a player by case-insensitive name or by seat number."""
        wanted = identifier.lower()
        for player in self.room.players.values():
            if player.name.lower() == wanted or str(player.seat) == identifier:
                return player
        return None

    # Game control

    async def cmd_start(self, args: List[str]) -> str:
        await self.room.start_game()
        return "Game started"

    async def cmd_end(self, args: List[str]) -> str:
        if self.room.phase is Phase.LOBBY:
            return "No game in progress"
        await self.room.end_game()
        return "Game ended"

    async def cmd_kick(self, args: List[str]) -> str:
        if not args:
            return "Usage: /kick <player_name>"
        identifier = " ".join(args)
        player = self.find_player(identifier)
        if player is None:
            return f"Player not found: {identifier}"
        await self.room.remove_player(player.id)
        return f"Kicked {player.name}"

    async def cmd_transfer(self, args: List[str]) -> str:
        if not args:
            return "Usage: /transfer <player_name>"
        identifier = " ".join(args)
        player = self.find_player(identifier)
        if player is None:
            return f"Player not found: {identifier}"
        await self.room.transfer_host(player.id)
        return f"Host transferred to {player.name}"

    # Testing

    async def cmd_test_mode(self, args: List[str]) -> str:
        if not args:
            status = self.test_mode.status()
            return (
                f"Test mode: {'ON' if status['enabled'] else 'OFF'}\n"
                f"Autoplay: {'ON' if status['autoplay'] else 'OFF'}\n"
                f"Pending cards: {len(status['pendingCards'])} | "
                f"Dealt: {status['cardsServed']}"
            )
        enabled = _on_off(args)
        if enabled is None:
            return "Usage: /test-mode <on|off>"
        return self.test_mode.enable() if enabled else self.test_mode.disable()

    async def cmd_deal(self, args: List[str]) -> str:
        if not args:
            return (
                "Usage: /deal <cards|clear>\n"
                "Example: /deal AS KH 10D 7C\n"
                "Format: Rank (A,2-10,J,Q,K) + Suit (H,D,C,S)"
            )
        if args[0].lower() == "clear":
            return self.test_mode.clear_cards()
        return self.test_mode.set_cards(" ".join(args))

    async def cmd_scenario(self, args: List[str]) -> str:
        if not args:
            lines = ["Available scenarios:"]
            for scenario in self.test_mode.scenarios():
                lines.append(f"  {scenario['name']:<18} {scenario['description']}")
            return "\n".join(lines)
        return self.test_mode.load_scenario(args[0].lower())

    async def cmd_autoplay(self, args: List[str]) -> str:
        enabled = _on_off(args)
        if enabled is None:
            return "Usage: /autoplay <on|off>"
        return self.test_mode.set_autoplay(enabled)

    async def cmd_next(self, args: List[str]) -> str:
        if self.test_mode.autoplay:
            return "Autoplay is enabled. Use /autoplay off to enable manual control."
        phase = await self.room.advance()
        return f"Advanced. Current phase: {phase.value}"

    async def cmd_state(self, args: List[str]) -> str:
        current = self.room.current_player()
        state = {
            "phase": self.room.phase.value,
            "roundNumber": self.room.round_number,
            "players": len(self.room.players),
            "currentPlayer": current.name if current else None,
            "dealerValue": self.room.dealer.hand_value().value,
            "deckRemaining": self.room.shoe.remaining,
            "pendingDeadline": self.room.clock.pending,
        }
        return "Game State:\n" + json.dumps(state, indent=2)

    # Statistics

    async def cmd_stats(self, args: List[str]) -> str:
        if not args:
            return self.statistics.format_session()
        identifier = " ".join(args)
        player = self.find_player(identifier)
        if player is None:
            return f"Player not found: {identifier}"
        return self.statistics.format_player(player.id)

    async def cmd_history(self, args: List[str]) -> str:
        count = 10
        if args:
            try:
                count = int(args[0])
            except ValueError:
                return "Usage: /history [count]\nExample: /history 20"
        return self.statistics.format_history(count)

    async def cmd_export(self, args: List[str]) -> str:
        path = await self.statistics.export_json(self.export_dir)
        return f"Statistics exported to: {path}"

    async def cmd_clear_stats(self, args: List[str]) -> str:
        self.statistics.clear()
        return "All statistics cleared"

    # Server info

    async def cmd_info(self, args: List[str]) -> str:
        return "\n".join(
            [
                RULE,
                "       SERVER INFORMATION",
                RULE,
                f"Session ID: {self.room.session_id}",
                f"Phase: {self.room.phase.value}",
                f"Round: {self.room.round_number}",
                f"Players: {len(self.room.players)}/{len(self.room.seats)}",
                f"Test mode: {'ON' if self.test_mode.enabled else 'OFF'}",
                f"Autoplay: {'ON' if self.test_mode.autoplay else 'OFF'}",
                RULE,
            ]
        )

    async def cmd_players(self, args: List[str]) -> str:
        if not self.room.players:
            return "No players connected"
        lines = [RULE, "       CONNECTED PLAYERS", RULE]
        for player in self.room.seated_players():
            marks = ""
            if player.is_host:
                marks += " [HOST]"
            if player.eliminated:
                marks += f" [{player.participation.value.upper()}]"
            lines.append(f"Seat {player.seat}: {player.name}{marks}")
            lines.append(f"  Bankroll: ${player.bankroll}")
            if self.room.phase is not Phase.LOBBY:
                lines.append(f"  Current Bet: ${player.current_bet}")
                lines.append(f"  Hands: {len(player.hands)}")
        lines.append(RULE)
        return "\n".join(lines)

    async def cmd_config(self, args: List[str]) -> str:
        config = self.room.config
        return "\n".join(
            [
                RULE,
                "      GAME CONFIGURATION",
                RULE,
                f"Starting Bankroll: ${config.starting_bankroll}",
                f"Min Bet: ${config.min_bet}",
                f"Max Bet: ${config.max_bet if config.max_bet is not None else 'No limit'}",
                f"Deck Count: {config.deck_count}",
                f"Blackjack Payout: {config.blackjack_payout}",
                f"Insurance Payout: {config.insurance_payout}",
                f"Split Aces = Blackjack: {'Yes' if config.split_aces_blackjack else 'No'}",
                f"Round Delay: {config.round_delay} seconds",
                f"Betting / Action / Insurance Time: {config.betting_time}s / "
                f"{config.action_time}s / {config.insurance_time}s",
                RULE,
            ]
        )

    async def cmd_help(self, args: List[str]) -> str:
        return HELP_TEXT
