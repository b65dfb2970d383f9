"""
Message Store Gateway: the narrow async contract the routing core
needs from durable storage, plus its SQLite adapter.
"""

import asyncio
import logging
import sqlite3
from abc import ABC, abstractmethod
from typing import List, Optional

from chat_relay.core.errors import PersistenceError
from chat_relay.core.message import ChatMessage
from chat_relay.core.user import User
from chat_relay.services.storage import StorageService

logger = logging.getLogger(__name__)


class IMessageStore(ABC):
    """
    Abstract interface for the durable store.
    Every method raises `PersistenceError` when storage fails.
    """

    @abstractmethod
    async def upsert_user(self, username: str) -> User:
        """Creates the user or refreshes its last_seen."""
        pass

    @abstractmethod
    async def append_message(self, message: ChatMessage) -> ChatMessage:
        """Durably appends a message and returns the stored record."""
        pass

    @abstractmethod
    async def all_messages(self, limit: Optional[int] = None, offset: int = 0) -> List[ChatMessage]:
        """Every message, timestamp ascending."""
        pass

    @abstractmethod
    async def messages_for(
        self, username: str, limit: Optional[int] = None, offset: int = 0
    ) -> List[ChatMessage]:
        """Messages where `username` is sender or receiver, timestamp ascending."""
        pass

    @abstractmethod
    async def list_users(self) -> List[User]:
        """Known users, most recently seen first."""
        pass


class SQLiteMessageStore(IMessageStore):
    """
    Gateway backed by `StorageService`.
    Blocking sqlite calls run in a worker thread so a slow write only
    suspends the event that triggered it.
    """

    def __init__(self, storage: StorageService) -> None:
        self.storage = storage

    async def upsert_user(self, username: str) -> User:
        try:
            return await asyncio.to_thread(self.storage.upsert_user, username)
        except sqlite3.Error as e:
            logger.error("Could not upsert user %s: %s", username, e)
            raise PersistenceError(f"Could not save user {username}") from e

    async def append_message(self, message: ChatMessage) -> ChatMessage:
        try:
            return await asyncio.to_thread(self.storage.add_message, message)
        except sqlite3.Error as e:
            logger.error("Could not append message from %s: %s", message.sender_name, e)
            raise PersistenceError("Could not save message") from e

    async def all_messages(self, limit: Optional[int] = None, offset: int = 0) -> List[ChatMessage]:
        try:
            return await asyncio.to_thread(self.storage.get_all_messages, limit, offset)
        except sqlite3.Error as e:
            raise PersistenceError("Could not read messages") from e

    async def messages_for(
        self, username: str, limit: Optional[int] = None, offset: int = 0
    ) -> List[ChatMessage]:
        try:
            return await asyncio.to_thread(self.storage.get_user_messages, username, limit, offset)
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not read messages of {username}") from e

    async def list_users(self) -> List[User]:
        try:
            return await asyncio.to_thread(self.storage.get_users)
        except sqlite3.Error as e:
            raise PersistenceError("Could not read users") from e
