"""
Routing Engine.
Handles join, public message, private message and disconnect events:
persists first, then delivers to the right connections.
"""

import logging
from typing import Any, Awaitable, Callable, Dict

from pydantic import ValidationError

from chat_relay.core.connection import ClientConnection
from chat_relay.core.errors import PersistenceError
from chat_relay.core.events import EventName
from chat_relay.core.message import JoinPayload, MessagePayload, PrivateMessagePayload
from chat_relay.core.presence import PresenceRegistry
from chat_relay.services.gateway import IMessageStore
from chat_relay.services.websocket import ConnectionManager

logger = logging.getLogger(__name__)

Handler = Callable[[ClientConnection, Dict[str, Any]], Awaitable[None]]


class RoutingEngine:
    """
    Orchestrates presence and delivery for every connection of the process.

    A message is only delivered after the store accepted it. Failures are
    reported to the originating connection and never leave the event.
    """

    def __init__(
        self, registry: PresenceRegistry, store: IMessageStore, connections: ConnectionManager
    ) -> None:
        self.registry = registry
        self.store = store
        self.connections = connections
        self._handlers: Dict[str, Handler] = {
            EventName.JOIN.value: self.handle_join,
            EventName.MESSAGE.value: self.handle_message,
            EventName.PRIVATE_MESSAGE.value: self.handle_private_message,
        }

    async def dispatch(self, connection: ClientConnection, event: str, data: Dict[str, Any]) -> None:
        """Routes an inbound event to its handler."""
        if connection.is_closed:
            logger.warning("Ignoring %s on closed connection %s", event, connection.connection_id)
            return

        handler = self._handlers.get(event)
        if handler is None:
            await self.report_error(connection, event, f"Unknown event: {event}")
            return

        try:
            await handler(connection, data)
        except ValidationError as e:
            logger.info("Invalid %s payload from %s: %s", event, connection.connection_id, e)
            await self.report_error(connection, event, "Invalid payload")

    async def handle_join(self, connection: ClientConnection, data: Dict[str, Any]) -> None:
        """
        Binds a username to the connection and announces it to everyone,
        the joiner included.
        """
        payload = JoinPayload.model_validate(data)
        username = payload.sender_name

        try:
            await self.store.upsert_user(username)
        except PersistenceError as e:
            logger.error("Join aborted for %s: %s", username, e)
            await self.report_error(connection, EventName.JOIN.value, str(e))
            return

        await self.registry.set_online(username, connection)
        connection.identify(username)

        await self.connections.broadcast(EventName.USER_JOINED.value, {"senderName": username})
        logger.info("%s joined the chat", username)

    async def handle_message(self, connection: ClientConnection, data: Dict[str, Any]) -> None:
        """
        Persists a public message, then broadcasts the submitted payload
        to the room, sender included.
        """
        payload = MessagePayload.model_validate(data)

        try:
            await self.store.append_message(payload.to_record())
        except PersistenceError as e:
            logger.error("Message from %s not broadcast: %s", payload.sender_name, e)
            await self.report_error(connection, EventName.MESSAGE.value, str(e))
            return

        await self.connections.broadcast_to_room(EventName.MESSAGE.value, data)
        logger.info("Broadcasted message from %s", payload.sender_name)

    async def handle_private_message(self, connection: ClientConnection, data: Dict[str, Any]) -> None:
        """
        Persists a private message, delivers it to the receiver if online
        and always echoes it back to the sender.
        """
        payload = PrivateMessagePayload.model_validate(data)
        event = EventName.PRIVATE_MESSAGE.value

        try:
            await self.store.append_message(payload.to_record())
        except PersistenceError as e:
            logger.error(
                "Private message %s -> %s not delivered: %s", payload.sender_name, payload.receiver_name, e
            )
            await self.report_error(connection, event, str(e))
            return

        target = await self.registry.get_connection(payload.receiver_name)
        if target is None:
            logger.info("User %s not found or offline", payload.receiver_name)
        elif target != connection:
            await self.connections.send_to(target, event, data)
            logger.info("Sent private message to receiver %s", payload.receiver_name)

        await self.connections.send_to(connection, event, data)

    async def disconnect(self, connection: ClientConnection) -> None:
        """
        Closes the connection and announces the users it was still bound to.
        """
        if connection.is_closed:
            return
        connection.mark_closed()
        self.connections.disconnect(connection)

        for username in await self.registry.remove_if_matches(connection):
            await self.connections.broadcast(EventName.USER_LEFT.value, {"senderName": username})
            logger.info("%s left the chat", username)

    async def report_error(self, connection: ClientConnection, event: str, detail: str) -> None:
        """Sends an error event to a single connection."""
        await self.connections.send_to(connection, EventName.ERROR.value, {"event": event, "detail": detail})
