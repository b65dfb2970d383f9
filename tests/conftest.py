"""Shared fixtures for the relay tests."""

# pylint: disable=redefined-outer-name

from typing import Any, Callable, Dict, List, Tuple

import pytest

from chat_relay.core.connection import ClientConnection


class RecordingConnection(ClientConnection):
    """In-memory connection that records every event sent to it."""

    def __init__(self, name: str = "") -> None:
        super().__init__()
        self.name = name
        self.sent: List[Tuple[str, Dict[str, Any]]] = []
        self.closed_with: int | None = None
        self.fail_sends = False

    async def send(self, event: str, data: Dict[str, Any]) -> None:
        if self.fail_sends:
            raise ConnectionError("socket gone")
        self.sent.append((event, data))

    async def close(self, code: int = 1000) -> None:
        self.closed_with = code

    def events(self, name: str) -> List[Dict[str, Any]]:
        """Payloads of every event with the given name."""
        return [data for event, data in self.sent if event == name]


@pytest.fixture
def make_connection() -> Callable[..., RecordingConnection]:
    """Factory fixture for recording connections."""
    return RecordingConnection
