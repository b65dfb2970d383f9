"""
API Routes definition.
Handles message history, users, and the real-time chat WebSocket.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect, status
from pydantic import ValidationError

from chat_relay.api.dependencies import get_store
from chat_relay.core.errors import PersistenceError
from chat_relay.core.events import Frame
from chat_relay.core.message import ChatMessage
from chat_relay.core.user import RegisterUserRequest, User
from chat_relay.services.gateway import IMessageStore
from chat_relay.services.relay import relay_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check() -> Dict[str, Any]:
    """Returns the relay status"""
    is_ready = relay_service.is_initialized()
    online = 0
    if is_ready and relay_service.engine:
        online = len(await relay_service.engine.registry.online_users())

    return {"status": "online", "initialized": is_ready, "online_users": online}


# === History routes ===


@router.get("/messages", response_model=List[ChatMessage])
async def get_messages(
    limit: Optional[int] = None, offset: int = 0, store: IMessageStore = Depends(get_store)
) -> List[ChatMessage]:
    """
    Retrieves all messages, oldest first.
    """
    try:
        return await store.all_messages(limit=limit, offset=offset)
    except PersistenceError as e:
        logger.error("Error fetching messages: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Error fetching messages"
        )


@router.get("/messages/{username}", response_model=List[ChatMessage])
async def get_user_messages(
    username: str, limit: Optional[int] = None, offset: int = 0, store: IMessageStore = Depends(get_store)
) -> List[ChatMessage]:
    """
    Retrieves the messages sent or received by a user, oldest first.
    """
    try:
        return await store.messages_for(username, limit=limit, offset=offset)
    except PersistenceError as e:
        logger.error("Error fetching messages of %s: %s", username, e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Error fetching user messages"
        )


# === User routes ===


@router.get("/users", response_model=List[User])
async def get_users(store: IMessageStore = Depends(get_store)) -> List[User]:
    """Returns the known users, most recently seen first."""
    try:
        return await store.list_users()
    except PersistenceError as e:
        logger.error("Error fetching users: %s", e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Error fetching users")


@router.post("/users")
async def register_user(
    payload: RegisterUserRequest, store: IMessageStore = Depends(get_store)
) -> Dict[str, Any]:
    """Creates the user or refreshes its last seen time."""
    try:
        await store.upsert_user(payload.username)
    except PersistenceError as e:
        logger.error("Error registering user: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Error registering user"
        )

    return {"username": payload.username, "success": True}


# === WebSocket Route ===


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """
    Real-time chat endpoint.
    Runs the dispatch loop of one connection: its events are handled one
    at a time, in the order they arrive.
    """
    engine = relay_service.engine
    if engine is None:
        await websocket.close(code=status.WS_1013_TRY_AGAIN_LATER)
        return

    connection = await engine.connections.connect(websocket)
    try:
        while True:
            text = await websocket.receive_text()
            try:
                frame = Frame.model_validate_json(text)
            except ValidationError:
                await engine.report_error(connection, "", "Malformed frame")
                continue

            await engine.dispatch(connection, frame.event, frame.data)
    except WebSocketDisconnect:
        logger.debug("Client %s disconnected", connection.connection_id)
    finally:
        await engine.disconnect(connection)
