#!/usr/bin/env python3
"""
Run a pitboss table over WebSockets.

Starts one room, its statistics collector, test mode and the WebSocket
gateway, and reads admin commands (``/help``) from standard input.
"""

import argparse
import asyncio
import logging
import signal
import sys

from pitboss.admin import AdminCommands, Statistics, TestMode
from pitboss.events.websocket import WebSocketGateway
from pitboss.room import GameRoom, PhaseClock

logger = logging.getLogger("pitboss.server")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="pitboss multiplayer blackjack server")
    parser.add_argument("--host", default="localhost", help="Host to bind to")
    parser.add_argument("--port", type=int, default=8765, help="Port to bind to")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    parser.add_argument(
        "--manual",
        action="store_true",
        help="Start with autoplay off; phases advance only with /next",
    )
    parser.add_argument(
        "--export-dir", default="exports", help="Directory for /export output"
    )
    return parser.parse_args(argv)


def attach_console(commands: AdminCommands) -> None:
    """Execute admin commands typed on stdin."""
    loop = asyncio.get_running_loop()

    async def execute(line: str) -> None:
        print(await commands.execute(line), flush=True)

    def on_input() -> None:
        line = sys.stdin.readline()
        if not line:
            loop.remove_reader(sys.stdin)
            return
        if line.strip():
            loop.create_task(execute(line))

    loop.add_reader(sys.stdin, on_input)


async def run(args: argparse.Namespace) -> None:
    room = GameRoom(clock=PhaseClock(manual=args.manual))
    statistics = Statistics(room)
    room.round_observer = statistics
    test_mode = TestMode(room)
    commands = AdminCommands(room, statistics, test_mode, export_dir=args.export_dir)
    gateway = WebSocketGateway(room)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    await gateway.serve(args.host, args.port)
    logger.info("Session %s ready; type /help for admin commands", room.session_id)

    if sys.stdin.isatty():
        attach_console(commands)
    await stop.wait()

    logger.info("Shutting down")
    await gateway.close()
    await room.close()


def main(argv=None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    asyncio.run(run(args))


if __name__ == "__main__":
    main()
