"""
WebSocket Connection Manager.
Tracks every open connection of this process and fans events out to them.
"""

import logging
from typing import Any, Dict, List

from fastapi import WebSocket

from chat_relay.core.connection import ClientConnection

logger = logging.getLogger(__name__)


class WebSocketConnection(ClientConnection):
    """`ClientConnection` backed by a FastAPI WebSocket."""

    def __init__(self, websocket: WebSocket) -> None:
        super().__init__()
        self.websocket = websocket

    async def send(self, event: str, data: Dict[str, Any]) -> None:
        await self.websocket.send_json({"event": event, "data": data})

    async def close(self, code: int = 1000) -> None:
        await self.websocket.close(code=code)


class ConnectionManager:
    def __init__(self) -> None:
        self.active_connections: List[ClientConnection] = []

    async def connect(self, websocket: WebSocket) -> WebSocketConnection:
        """
        Accepts a new WebSocket connection and starts tracking it.
        """
        await websocket.accept()
        connection = WebSocketConnection(websocket)
        self.register(connection)
        return connection

    def register(self, connection: ClientConnection) -> None:
        """Starts tracking an already open connection."""
        if connection not in self.active_connections:
            self.active_connections.append(connection)
        logger.info("WS Connected %s. Total: %d", connection.connection_id, len(self.active_connections))

    def disconnect(self, connection: ClientConnection) -> None:
        """
        Stops tracking a connection
        """
        if connection in self.active_connections:
            self.active_connections.remove(connection)
            logger.info(
                "WS Disconnected %s. Total: %d", connection.connection_id, len(self.active_connections)
            )

    async def send_to(self, connection: ClientConnection, event: str, data: Dict[str, Any]) -> bool:
        """
        Sends an event to one connection.
        A failing connection is logged and reported as False, never raised.
        """
        try:
            await connection.send(event, data)
            return True
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.warning("Error sending %s to %s: %s", event, connection.connection_id, e)
            return False

    async def broadcast(self, event: str, data: Dict[str, Any]) -> None:
        """
        Sends an event to every open connection, joined or not.
        """
        for connection in self.active_connections[:]:
            await self.send_to(connection, event, data)

    async def broadcast_to_room(self, event: str, data: Dict[str, Any]) -> None:
        """
        Sends an event to the connections that joined the public room.
        """
        for connection in self.active_connections[:]:
            if connection.in_room:
                await self.send_to(connection, event, data)

    async def close_all(self, code: int = 1001) -> None:
        """Closes every tracked connection, used on shutdown."""
        for connection in self.active_connections[:]:
            try:
                await connection.close(code=code)
            except Exception as e:  # pylint: disable=broad-exception-caught
                logger.warning("Error closing %s: %s", connection.connection_id, e)
        self.active_connections.clear()
