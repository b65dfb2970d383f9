"""
Presence Registry: the single source of truth for who is online.
Maps a username to the one connection currently bound to it.
"""

import asyncio
import logging
from typing import Dict, List, Optional

from chat_relay.core.connection import ClientConnection

logger = logging.getLogger(__name__)


class PresenceRegistry:
    """
    Keeps the username -> connection mapping.

    Every operation runs under a single lock, so joins and disconnects
    for any username are serialized against each other.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, ClientConnection] = {}
        self._lock = asyncio.Lock()

    async def set_online(self, username: str, connection: ClientConnection) -> None:
        """
        Binds `username` to `connection`, replacing any previous binding.
        The superseded connection is left open.
        """
        async with self._lock:
            previous = self._entries.pop(username, None)
            # Re-inserting keeps the map ordered by bind time.
            self._entries[username] = connection
            if previous is not None and previous != connection:
                logger.info("Presence for %s moved to a new connection", username)
            logger.debug("Online users: %s", list(self._entries.keys()))

    async def get_connection(self, username: str) -> Optional[ClientConnection]:
        """Returns the connection bound to `username`, if any."""
        async with self._lock:
            return self._entries.get(username)

    async def remove_if_matches(self, connection: ClientConnection) -> List[str]:
        """
        Removes every entry currently bound to `connection`.

        Lookup is by value, since a disconnect only carries the connection.
        An entry that was taken over by a later join no longer points at
        `connection` and is left untouched.

        Returns:
            List[str]: The removed usernames in bind order, empty if none matched.
        """
        async with self._lock:
            removed = [name for name, bound in self._entries.items() if bound == connection]
            for name in removed:
                del self._entries[name]
            if removed:
                logger.debug("Remaining online users: %s", list(self._entries.keys()))
            return removed

    async def online_users(self) -> List[str]:
        """Snapshot of the currently online usernames."""
        async with self._lock:
            return list(self._entries.keys())
