"""
WebSocket gateway for the pitboss table.

Each connection is one client. Frames in both directions are JSON objects of
the form ``{"type": ..., "data": {...}}``. Inbound frames are parsed into
intents and handed to the dispatcher; the acknowledgement goes back to the
sender only. Everything the room emits (snapshots and point events) is
broadcast to every open connection.
"""

import json
import logging
import uuid
from typing import Any, Dict, Optional

import websockets
from websockets.exceptions import ConnectionClosed

from pitboss.blackjack.errors import BlackjackError
from pitboss.events.messages import RoomEvent, parse_intent, to_wire
from pitboss.room.dispatcher import Dispatcher
from pitboss.room.room import GameRoom

logger = logging.getLogger("pitboss.events.websocket")


class ServerMessage:
    """Message types the gateway itself sends."""

    CONNECTED = "connected"
    ERROR = "error"


class WebSocketGateway:
    """
    Bridges WebSocket connections and a ``GameRoom``.

    The connection id doubles as the player id, so a disconnect removes
    exactly the player that connection seated.

    Args:
        room: The room to serve
        dispatcher: Intent router; one is built for ``room`` if omitted
    """

    def __init__(self, room: GameRoom, dispatcher: Optional[Dispatcher] = None):
        self.room = room
        self.dispatcher = dispatcher or Dispatcher(room)
        self.clients: Dict[str, Any] = {}
        self._unsubscribe = room.emitter.on_any(self._handle_event)
        self._server = None

    def _handle_event(self, event: RoomEvent) -> None:
        if not self.clients:
            return
        websockets.broadcast(self.clients.values(), json.dumps(to_wire(event)))

    async def _send(self, websocket, message_type: str, data: Dict[str, Any]) -> None:
        try:
            await websocket.send(json.dumps({"type": message_type, "data": data}))
        except ConnectionClosed:
            logger.debug("Dropped %s for a closed connection", message_type)

    async def handle_client(self, websocket) -> None:
        """
        Serve one connection until it closes.

        Args:
            websocket: The server-side connection object
        """
        client_id = str(uuid.uuid4())
        self.clients[client_id] = websocket
        logger.info(f"Client {client_id} connected")
        await self._send(websocket, ServerMessage.CONNECTED, {"playerId": client_id})

        try:
            async for raw in websocket:
                await self.handle_message(client_id, websocket, raw)
        except ConnectionClosed as e:
            logger.info(f"Client {client_id} connection closed: {e}")
        finally:
            await self.disconnect_client(client_id)

    async def handle_message(self, client_id: str, websocket, raw) -> None:
        """Decode one frame, dispatch it and answer the sender."""
        try:
            message = json.loads(raw)
        except (TypeError, ValueError):
            await self._send(websocket, ServerMessage.ERROR, {"message": "Invalid JSON"})
            return
        if not isinstance(message, dict):
            await self._send(
                websocket, ServerMessage.ERROR, {"message": "Message must be an object"}
            )
            return

        try:
            intent = parse_intent(message.get("type", ""), message.get("data"))
        except BlackjackError as e:
            await self._send(websocket, ServerMessage.ERROR, {"message": str(e)})
            return

        ack = await self.dispatcher.dispatch(client_id, intent)
        if ack is not None:
            await self._send(websocket, ack.name, ack.data)

    async def disconnect_client(self, client_id: str) -> None:
        if self.clients.pop(client_id, None) is None:
            return
        logger.info(f"Client {client_id} disconnected")
        try:
            await self.room.remove_player(client_id)
        except Exception as e:
            logger.error(f"Error removing player {client_id}: {e}", exc_info=True)

    async def serve(self, host: str = "localhost", port: int = 8765):
        """
        Start listening. The returned server is also an async context
        manager; ``close()`` stops it.
        """
        self._server = await websockets.serve(self.handle_client, host, port)
        logger.info(f"WebSocket server started on ws://{host}:{port}")
        return self._server

    async def close(self) -> None:
        self._unsubscribe()
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None
