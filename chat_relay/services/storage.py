"""
Defines storage management APIs, using SQLite, for
durable users and messages.
"""

import sqlite3
import time
from contextlib import contextmanager
from typing import Iterator, List, Optional

from chat_relay.core.message import ChatMessage
from chat_relay.core.user import User


class StorageService:
    """Handles the relay's durable storage."""

    def __init__(self, db_name: str):
        self.db_name = db_name
        self._init_db()

    @contextmanager
    def _get_conn(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_name)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self._get_conn() as conn:
            cursor = conn.cursor()

            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS users (
                    username TEXT PRIMARY KEY,
                    last_seen REAL
                    )
                """
            )

            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS messages (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    message_id TEXT UNIQUE,
                    sender_name TEXT NOT NULL,
                    receiver_name TEXT,
                    message TEXT,
                    status TEXT,
                    timestamp REAL
                    )
                """
            )

            cursor.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_messages_timestamp
                    ON messages(timestamp)
                """
            )

            cursor.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_messages_participants
                    ON messages(sender_name, receiver_name)
                """
            )

            conn.commit()

    def upsert_user(self, username: str) -> User:
        """
        Creates the user on first call, refreshes its last_seen afterwards.
        """
        user = User(username=username, last_seen=time.time())
        with self._get_conn() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT OR REPLACE INTO users
                    (username, last_seen)
                    VALUES (?, ?)
                """,
                (user.username, user.last_seen),
            )
            conn.commit()
        return user

    def get_users(self) -> List[User]:
        """Retreives all users, most recently seen first."""
        with self._get_conn() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT username, last_seen FROM users
                    ORDER BY last_seen DESC
                """
            )
            return [User(**dict(row)) for row in cursor.fetchall()]

    def add_message(self, message: ChatMessage) -> ChatMessage:
        """
        Inserts a new message. The store stamps the record with its own time.
        """
        stored = message.model_copy(update={"timestamp": time.time()})
        with self._get_conn() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO messages
                    (message_id, sender_name, receiver_name, message, status, timestamp)
                    VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    stored.message_id,
                    stored.sender_name,
                    stored.receiver_name,
                    stored.message,
                    stored.status,
                    stored.timestamp,
                ),
            )
            conn.commit()
        return stored

    def get_all_messages(self, limit: Optional[int] = None, offset: int = 0) -> List[ChatMessage]:
        """Retreives all messages, oldest first, and converts them to Pydantic objects"""
        with self._get_conn() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT message_id, sender_name, receiver_name, message, status, timestamp
                    FROM messages
                    ORDER BY timestamp ASC, seq ASC
                    LIMIT ? OFFSET ?
                """,
                (-1 if limit is None else limit, offset),
            )
            return [ChatMessage(**dict(row)) for row in cursor.fetchall()]

    def get_user_messages(
        self, username: str, limit: Optional[int] = None, offset: int = 0
    ) -> List[ChatMessage]:
        """
        Retreives the messages sent or received by `username`, oldest first.
        """
        with self._get_conn() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT message_id, sender_name, receiver_name, message, status, timestamp
                    FROM messages
                    WHERE sender_name = ? OR receiver_name = ?
                    ORDER BY timestamp ASC, seq ASC
                    LIMIT ? OFFSET ?
                """,
                (username, username, -1 if limit is None else limit, offset),
            )
            return [ChatMessage(**dict(row)) for row in cursor.fetchall()]
