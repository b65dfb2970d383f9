"""User models"""

import time

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class User(BaseModel):
    """Represents a chat user. The username is the primary key."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    username: str
    last_seen: float = Field(default_factory=time.time)


class RegisterUserRequest(BaseModel):
    """Defines the user registration request schema."""

    username: str = Field(min_length=1)
