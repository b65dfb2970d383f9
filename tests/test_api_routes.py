"""
Unit tests for API Routes.
Uses FastAPI TestClient to simulate HTTP requests and WebSockets.
Mocks the message store to test endpoints in isolation, then runs the
whole relay against a temporary database.
"""

# Disable this warning as it is a false positive caused by pytest syntax
# pylint: disable=redefined-outer-name
# pylint: disable=unused-argument

from unittest.mock import AsyncMock, patch

import pytest
from fastapi import WebSocketDisconnect
from fastapi.testclient import TestClient

from chat_relay.api.dependencies import get_store
from chat_relay.config.settings import settings
from chat_relay.core.errors import PersistenceError
from chat_relay.core.message import ChatMessage
from chat_relay.core.user import User
from chat_relay.main import app
from chat_relay.services.gateway import IMessageStore
from chat_relay.services.relay import LocalRelayService

# Create TestClient
client = TestClient(app)

# --- Fixtures ---


@pytest.fixture
def mock_store():
    """Overrides the store dependency with an AsyncMock."""
    store = AsyncMock(spec=IMessageStore)
    app.dependency_overrides[get_store] = lambda: store
    yield store
    app.dependency_overrides = {}


@pytest.fixture
def relay_client(tmp_path, monkeypatch):
    """TestClient running the real lifespan over a temporary database."""
    monkeypatch.setattr(settings, "db_name", str(tmp_path / "relay.db"))
    with TestClient(app) as test_client:
        yield test_client


# --- REST ---


def test_health_check():
    """Test /health endpoint on an idle relay."""
    with patch("chat_relay.api.routes.relay_service", LocalRelayService()):
        response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "online", "initialized": False, "online_users": 0}


def test_store_not_ready():
    """History is unavailable until the relay is initialized."""
    with patch("chat_relay.api.dependencies.relay_service", LocalRelayService()):
        response = client.get("/api/messages")

    assert response.status_code == 503


def test_get_messages(mock_store):
    """Messages are returned with camelCase keys."""
    mock_store.all_messages.return_value = [
        ChatMessage(sender_name="bob", message="hello", status="sent", timestamp=10.0)
    ]

    response = client.get("/api/messages")

    assert response.status_code == 200
    data = response.json()
    assert len(data) == 1
    assert data[0]["senderName"] == "bob"
    assert data[0]["receiverName"] is None
    assert data[0]["message"] == "hello"
    assert data[0]["timestamp"] == 10.0
    mock_store.all_messages.assert_awaited_once_with(limit=None, offset=0)


def test_get_messages_pagination(mock_store):
    """limit and offset are passed to the store."""
    mock_store.all_messages.return_value = []

    response = client.get("/api/messages?limit=10&offset=20")

    assert response.status_code == 200
    mock_store.all_messages.assert_awaited_once_with(limit=10, offset=20)


def test_get_messages_failure(mock_store):
    """A storage failure becomes a 500."""
    mock_store.all_messages.side_effect = PersistenceError("Could not read messages")

    response = client.get("/api/messages")

    assert response.status_code == 500
    assert response.json()["detail"] == "Error fetching messages"


def test_get_user_messages(mock_store):
    """Per-user history is looked up by username."""
    mock_store.messages_for.return_value = [
        ChatMessage(sender_name="bob", receiver_name="carol", message="psst")
    ]

    response = client.get("/api/messages/carol")

    assert response.status_code == 200
    assert response.json()[0]["receiverName"] == "carol"
    mock_store.messages_for.assert_awaited_once_with("carol", limit=None, offset=0)


def test_get_user_messages_failure(mock_store):
    """A storage failure becomes a 500."""
    mock_store.messages_for.side_effect = PersistenceError("Could not read messages of carol")

    response = client.get("/api/messages/carol")

    assert response.status_code == 500
    assert response.json()["detail"] == "Error fetching user messages"


def test_get_users(mock_store):
    """Users are listed with their last seen time."""
    mock_store.list_users.return_value = [User(username="alice", last_seen=5.0)]

    response = client.get("/api/users")

    assert response.status_code == 200
    assert response.json() == [{"username": "alice", "lastSeen": 5.0}]


def test_register_user(mock_store):
    """POST /users upserts the user."""
    response = client.post("/api/users", json={"username": "alice"})

    assert response.status_code == 200
    assert response.json() == {"username": "alice", "success": True}
    mock_store.upsert_user.assert_awaited_once_with("alice")


def test_register_user_validation(mock_store):
    """An empty username is rejected before reaching the store."""
    response = client.post("/api/users", json={"username": ""})

    assert response.status_code == 422
    mock_store.upsert_user.assert_not_awaited()


def test_register_user_failure(mock_store):
    """A storage failure becomes a 500."""
    mock_store.upsert_user.side_effect = PersistenceError("Could not save user alice")

    response = client.post("/api/users", json={"username": "alice"})

    assert response.status_code == 500
    assert response.json()["detail"] == "Error registering user"


def test_websocket_refused_when_not_ready():
    """The chat socket is closed right away if the relay is not running."""
    with patch("chat_relay.api.routes.relay_service", LocalRelayService()):
        with pytest.raises(WebSocketDisconnect):
            with client.websocket_connect("/api/ws"):
                pass


# --- Full relay ---


def join(ws, username):
    """Sends a join frame."""
    ws.send_json({"event": "join", "data": {"senderName": username}})


def test_chat_session(relay_client):
    """
    Two clients join, talk in the room and privately, then one leaves.
    Everything delivered live is also in the history.
    """
    with relay_client.websocket_connect("/api/ws") as alice:
        join(alice, "alice")
        assert alice.receive_json() == {"event": "userJoined", "data": {"senderName": "alice"}}

        with relay_client.websocket_connect("/api/ws") as bob:
            join(bob, "bob")
            assert bob.receive_json() == {"event": "userJoined", "data": {"senderName": "bob"}}
            assert alice.receive_json() == {"event": "userJoined", "data": {"senderName": "bob"}}

            public = {"senderName": "bob", "message": "hi all", "status": "sent"}
            bob.send_json({"event": "message", "data": public})
            assert bob.receive_json() == {"event": "message", "data": public}
            assert alice.receive_json() == {"event": "message", "data": public}

            private = {"senderName": "alice", "receiverName": "bob", "message": "hi bob"}
            alice.send_json({"event": "privateMessage", "data": private})
            assert bob.receive_json() == {"event": "privateMessage", "data": private}
            assert alice.receive_json() == {"event": "privateMessage", "data": private}

            assert relay_client.get("/api/health").json()["online_users"] == 2

        assert alice.receive_json() == {"event": "userLeft", "data": {"senderName": "bob"}}

    history = relay_client.get("/api/messages").json()
    assert [m["message"] for m in history] == ["hi all", "hi bob"]
    assert history[1]["receiverName"] == "bob"

    bob_history = relay_client.get("/api/messages/bob").json()
    assert [m["message"] for m in bob_history] == ["hi all", "hi bob"]

    users = {u["username"] for u in relay_client.get("/api/users").json()}
    assert users == {"alice", "bob"}


def test_offline_private_message_is_kept(relay_client):
    """A message to an offline user is echoed and stored, nothing more."""
    with relay_client.websocket_connect("/api/ws") as bob:
        join(bob, "bob")
        bob.receive_json()

        private = {"senderName": "bob", "receiverName": "dave", "message": "call me"}
        bob.send_json({"event": "privateMessage", "data": private})
        assert bob.receive_json() == {"event": "privateMessage", "data": private}

    dave_history = relay_client.get("/api/messages/dave").json()
    assert [m["message"] for m in dave_history] == ["call me"]


def test_bad_frames_keep_the_connection_open(relay_client):
    """Malformed frames and unknown events are answered with errors."""
    with relay_client.websocket_connect("/api/ws") as ws:
        ws.send_text("not json")
        assert ws.receive_json() == {"event": "error", "data": {"event": "", "detail": "Malformed frame"}}

        ws.send_json({"event": "typing", "data": {}})
        assert ws.receive_json()["data"]["detail"] == "Unknown event: typing"

        ws.send_json({"event": "join", "data": {}})
        assert ws.receive_json() == {"event": "error", "data": {"event": "join", "detail": "Invalid payload"}}

        join(ws, "alice")
        assert ws.receive_json() == {"event": "userJoined", "data": {"senderName": "alice"}}
