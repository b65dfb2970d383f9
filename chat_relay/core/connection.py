"""
Opaque connection handle used by the routing core.
Transport details stay in the adapters implementing `ClientConnection`.
"""

import uuid
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, Optional


class ConnectionState(str, Enum):
    """
    Lifecycle of a single client connection.

    Attributes:
        ANONYMOUS: Connected, no username bound yet.
        IDENTIFIED: A username was bound through a join, the connection is in the room.
        CLOSED: Terminal, the connection was lost or ended.
    """

    ANONYMOUS = "anonymous"
    IDENTIFIED = "identified"
    CLOSED = "closed"


class ClientConnection(ABC):
    """
    Abstract interface for a live client connection.
    Handles compare by identity, so two connections are never equal.
    """

    def __init__(self) -> None:
        self.connection_id = str(uuid.uuid4())
        self.state = ConnectionState.ANONYMOUS
        self.username: Optional[str] = None

    @property
    def is_closed(self) -> bool:
        """True once the connection reached its terminal state."""
        return self.state is ConnectionState.CLOSED

    @property
    def in_room(self) -> bool:
        """True if the connection receives room broadcasts."""
        return self.state is ConnectionState.IDENTIFIED

    def identify(self, username: str) -> None:
        """Binds (or re-binds) a username to this connection."""
        if self.is_closed:
            raise ValueError(f"Connection {self.connection_id} is closed")
        self.username = username
        self.state = ConnectionState.IDENTIFIED

    def mark_closed(self) -> None:
        """Moves the connection to its terminal state."""
        self.state = ConnectionState.CLOSED

    @abstractmethod
    async def send(self, event: str, data: Dict[str, Any]) -> None:
        """Sends an event with its payload to the client."""
        pass

    @abstractmethod
    async def close(self, code: int = 1000) -> None:
        """Ends the connection from the server side."""
        pass

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.connection_id} {self.state.value} {self.username!r}>"
