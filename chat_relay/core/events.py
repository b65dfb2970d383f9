"""Event names and frame shape exchanged over the WebSocket channel."""

from enum import Enum
from typing import Any, Dict

from pydantic import BaseModel, Field


class EventName(str, Enum):
    """
    Names of the events understood or emitted by the relay.

    Attributes:
        JOIN: Client announces its username.
        MESSAGE: Room-wide message (inbound and outbound).
        PRIVATE_MESSAGE: Direct message (inbound and outbound).
        USER_JOINED: Someone joined, sent to every connection.
        USER_LEFT: A joined user disconnected.
        ERROR: Failure report sent to the originating connection only.
    """

    JOIN = "join"
    MESSAGE = "message"
    PRIVATE_MESSAGE = "privateMessage"
    USER_JOINED = "userJoined"
    USER_LEFT = "userLeft"
    ERROR = "error"


class Frame(BaseModel):
    """A single `{"event": ..., "data": {...}}` frame."""

    event: str
    data: Dict[str, Any] = Field(default_factory=dict)
