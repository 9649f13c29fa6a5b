"""
Session statistics for a table.

``Statistics`` is attached to a room as its round observer: the room calls
``start_round`` when betting opens, ``record_side_bet`` for every settled
side bet and ``record_round`` with the round summary once results are in.
Per-player aggregates are read from the players' own ``PlayerStatistics``.
"""

import json
import logging
import os
from datetime import datetime
from typing import Any, Dict, List, Optional

import aiofiles
import aiofiles.os
import numpy as np

from pitboss.blackjack.side_bets import SideBetType

logger = logging.getLogger("pitboss.admin.statistics")


def _rate(part: float, whole: float) -> float:
    """Percentage of ``part`` in ``whole``, rounded to two places; 0 for an empty whole."""
    if not whole:
        return 0.0
    return round(part / whole * 100, 2)


def _new_side_bet_stats() -> Dict[SideBetType, Dict[str, float]]:
    return {
        bet_type: {"wins": 0, "losses": 0, "totalWagered": 0, "totalWon": 0}
        for bet_type in SideBetType
    }


class Statistics:
    """
    Collects statistics over a session of rounds.

    Args:
        room: The room whose players are reported on
    """

    def __init__(self, room):
        self.room = room
        self.start_time = datetime.now()
        self.end_time: Optional[datetime] = None
        self.total_rounds = 0
        self.total_hands_played = 0
        self.dealer_values: List[int] = []
        self.dealer_blackjacks = 0
        self.dealer_busts = 0
        self.side_bet_stats = _new_side_bet_stats()
        self.hand_history: List[Dict[str, Any]] = []

    @property
    def session_id(self) -> str:
        return self.room.session_id

    # Round observer interface

    def start_round(self) -> None:
        self.total_rounds += 1

    def record_round(self, summary: Dict[str, Any]) -> None:
        """
        Record a completed round.

        Args:
            summary: ``{"roundNumber", "activePlayers", "dealer", "players"}``
                where ``dealer`` is ``Dealer.stats()``
        """
        self.total_hands_played += summary.get("activePlayers", 0)

        dealer = summary.get("dealer")
        if dealer:
            self.dealer_values.append(dealer.get("finalValue", 0))
            if dealer.get("hasBlackjack"):
                self.dealer_blackjacks += 1
            if dealer.get("isBust"):
                self.dealer_busts += 1

        self.hand_history.append(
            {
                "round": self.total_rounds,
                "timestamp": datetime.now().isoformat(),
                **summary,
            }
        )

    def record_side_bet(self, bet_type: SideBetType, wagered: float, payout: float) -> None:
        stats = self.side_bet_stats[SideBetType(bet_type)]
        stats["totalWagered"] += wagered
        if payout > 0:
            stats["wins"] += 1
            stats["totalWon"] += payout
        else:
            stats["losses"] += 1

    # Reports

    def dealer_stats(self) -> Dict[str, Any]:
        total = len(self.dealer_values)
        return {
            "totalHands": total,
            "blackjacks": self.dealer_blackjacks,
            "busts": self.dealer_busts,
            "avgFinalValue": float(np.mean(self.dealer_values)) if total else 0.0,
            "blackjackRate": _rate(self.dealer_blackjacks, total),
            "bustRate": _rate(self.dealer_busts, total),
        }

    def side_bet_summary(self) -> Dict[str, Dict[str, Any]]:
        summary = {}
        for bet_type, stats in self.side_bet_stats.items():
            total_bets = stats["wins"] + stats["losses"]
            net = stats["totalWon"] - stats["totalWagered"]
            summary[bet_type.value] = {
                "totalBets": total_bets,
                "wins": stats["wins"],
                "losses": stats["losses"],
                "winRate": _rate(stats["wins"], total_bets),
                "totalWagered": stats["totalWagered"],
                "totalWon": stats["totalWon"],
                "netProfit": net,
                "roi": _rate(net, stats["totalWagered"]),
            }
        return summary

    def player_stats(self, player_id: str) -> Optional[Dict[str, Any]]:
        player = self.room.players.get(player_id)
        if player is None:
            return None
        stats = player.statistics
        hands = stats.hands_played
        return {
            "name": player.name,
            "seat": player.seat,
            "currentBankroll": player.bankroll,
            **stats.to_dict(),
            "winRate": _rate(stats.hands_won, hands),
            "avgBet": round(stats.total_wagered / hands, 2) if hands else 0.0,
            "roi": _rate(stats.net_profit, stats.total_wagered),
        }

    def all_player_stats(self) -> List[Dict[str, Any]]:
        return [self.player_stats(player_id) for player_id in self.room.players]

    def session_stats(self) -> Dict[str, Any]:
        end = self.end_time or datetime.now()
        duration = int((end - self.start_time).total_seconds())
        return {
            "sessionId": self.session_id,
            "startTime": self.start_time.isoformat(),
            "endTime": self.end_time.isoformat() if self.end_time else None,
            "durationSeconds": duration,
            "totalRounds": self.total_rounds,
            "totalHandsPlayed": self.total_hands_played,
            "avgHandsPerRound": (
                round(self.total_hands_played / self.total_rounds, 2)
                if self.total_rounds
                else 0.0
            ),
            "dealer": self.dealer_stats(),
            "sideBets": self.side_bet_summary(),
            "players": self.all_player_stats(),
        }

    def recent_hands(self, count: int = 10) -> List[Dict[str, Any]]:
        if count <= 0:
            return []
        return self.hand_history[-count:]

    def clear(self) -> None:
        """Reset session statistics. Player aggregates live on the players and are kept."""
        self.start_time = datetime.now()
        self.end_time = None
        self.total_rounds = 0
        self.total_hands_played = 0
        self.dealer_values = []
        self.dealer_blackjacks = 0
        self.dealer_busts = 0
        self.side_bet_stats = _new_side_bet_stats()
        self.hand_history = []
        logger.info("Statistics cleared")

    # Export

    async def export_json(self, directory: str = "exports") -> str:
        """
        Write the session statistics and hand history to a JSON file.

        Args:
            directory: Directory to write into; created if missing

        Returns:
            Path of the written file
        """
        self.end_time = datetime.now()
        await aiofiles.os.makedirs(directory, exist_ok=True)

        filename = f"stats-{self.session_id}-{self.end_time:%Y-%m-%d}.json"
        path = os.path.join(directory, filename)
        data = {
            **self.session_stats(),
            "configuration": self.room.config.to_dict(),
            "handHistory": self.hand_history,
        }

        async with aiofiles.open(path, mode="w", encoding="utf-8") as export_file:
            await export_file.write(json.dumps(data, indent=2))

        logger.info(f"Exported statistics to {path}")
        return path

    # Console formatting

    def format_session(self) -> str:
        stats = self.session_stats()
        dealer = stats["dealer"]
        lines = [
            "=" * 40,
            "       SESSION STATISTICS",
            "=" * 40,
            f"Session ID: {stats['sessionId']}",
            f"Duration: {stats['durationSeconds']}s",
            f"Total Rounds: {stats['totalRounds']}",
            f"Total Hands: {stats['totalHandsPlayed']}",
            f"Avg Hands/Round: {stats['avgHandsPerRound']}",
            "",
            "--- Dealer Statistics ---",
            f"Total Hands: {dealer['totalHands']}",
            f"Blackjacks: {dealer['blackjacks']} ({dealer['blackjackRate']}%)",
            f"Busts: {dealer['busts']} ({dealer['bustRate']}%)",
            f"Avg Final Value: {dealer['avgFinalValue']:.2f}",
            "",
            "--- Side Bet Statistics ---",
        ]
        for name, bet in stats["sideBets"].items():
            lines.append(f"{name}:")
            lines.append(
                f"  Bets: {bet['totalBets']} | Wins: {bet['wins']} ({bet['winRate']}%)"
            )
            lines.append(f"  Wagered: ${bet['totalWagered']} | Won: ${bet['totalWon']}")
            lines.append(f"  ROI: {bet['roi']}%")
        lines.append("")
        lines.append("--- Player Statistics ---")
        for player in stats["players"]:
            lines.append(f"{player['name']} (Seat {player['seat']}):")
            lines.append(f"  Bankroll: ${player['currentBankroll']}")
            lines.append(
                f"  Hands: {player['handsPlayed']} | W:{player['handsWon']} "
                f"L:{player['handsLost']} P:{player['handsPushed']}"
            )
            lines.append(f"  Win Rate: {player['winRate']}% | ROI: {player['roi']}%")
            lines.append(f"  Wagered: ${player['totalWagered']} | Net: ${player['netProfit']}")
        lines.append("=" * 40)
        return "\n".join(lines)

    def format_player(self, player_id: str) -> str:
        player = self.player_stats(player_id)
        if player is None:
            return "Player not found"
        return "\n".join(
            [
                "=" * 40,
                f"  {player['name'].upper()} - SEAT {player['seat']}",
                "=" * 40,
                f"Current Bankroll: ${player['currentBankroll']}",
                f"Net Profit: ${player['netProfit']}",
                f"Hands Played: {player['handsPlayed']}",
                f"Wins: {player['handsWon']} | Losses: {player['handsLost']} "
                f"| Pushes: {player['handsPushed']}",
                f"Win Rate: {player['winRate']}% | ROI: {player['roi']}%",
                f"Average Bet: ${player['avgBet']}",
                f"Blackjacks: {player['blackjacks']} | Splits: {player['splits']} "
                f"| Doubles: {player['doubles']} | Busts: {player['busts']}",
                f"Insurance Wins: {player['insuranceWins']} "
                f"| Losses: {player['insuranceLosses']}",
                "=" * 40,
            ]
        )

    def format_history(self, count: int = 10) -> str:
        hands = self.recent_hands(count)
        if not hands:
            return "No hand history available"
        lines = [f"HAND HISTORY (Last {len(hands)})"]
        for entry in hands:
            dealer = entry.get("dealer") or {}
            flags = ""
            if dealer.get("hasBlackjack"):
                flags += " (BJ)"
            if dealer.get("isBust"):
                flags += " (BUST)"
            lines.append(f"Round {entry['round']} - Dealer: {dealer.get('finalValue', 'N/A')}{flags}")
            for result in entry.get("players", []):
                outcomes = ", ".join(hand["result"] for hand in result["hands"])
                lines.append(
                    f"  {result['name']}: {outcomes} | won ${result['totalWinnings']} "
                    f"| bankroll ${result['newBankroll']}"
                )
        return "\n".join(lines)
