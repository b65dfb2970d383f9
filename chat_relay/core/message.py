"""
Define Message structure to ensure consinstency between
the store, the routing engine and the REST API.
"""

import time
import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class ChatMessage(BaseModel):
    """A durable chat message. Public messages have no receiver."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    message_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    sender_name: str
    receiver_name: Optional[str] = None
    message: str
    status: Optional[str] = None
    timestamp: float = Field(default_factory=time.time)


class JoinPayload(BaseModel):
    """Payload of a `join` event."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    sender_name: str = Field(min_length=1)


class MessagePayload(BaseModel):
    """
    Payload of a `message` event as submitted by a client.
    Extra keys are tolerated, the engine re-broadcasts the raw payload anyway.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    sender_name: str = Field(min_length=1)
    receiver_name: Optional[str] = None
    message: str
    status: Optional[str] = None

    @field_validator("receiver_name")
    @classmethod
    def _empty_receiver_is_public(cls, value: Optional[str]) -> Optional[str]:
        return value or None

    def to_record(self) -> ChatMessage:
        """Builds the record handed to the store."""
        return ChatMessage(
            sender_name=self.sender_name,
            receiver_name=self.receiver_name,
            message=self.message,
            status=self.status,
        )


class PrivateMessagePayload(MessagePayload):
    """Payload of a `privateMessage` event, the receiver is mandatory."""

    receiver_name: str = Field(min_length=1)  # type: ignore[assignment]
