"""Data models for conversation messages.

These models define the structure of a chat turn independent of the
storage backend used.
"""

from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field


class Role(str, Enum):
    """UI-side author of a message."""

    USER = "user"
    ASSISTANT = "assistant"


class Feedback(str, Enum):
    """User rating of an assistant message. Absence of feedback is None."""

    LIKE = "like"
    DISLIKE = "dislike"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ChatMessage(BaseModel):
    """One message in a conversation.

    ``id``, ``role`` and ``timestamp`` are fixed at creation. ``content`` grows
    while an assistant reply streams and is not changed once persisted.
    """

    id: str = Field(default_factory=lambda: str(uuid4()), frozen=True)
    role: Role = Field(frozen=True)
    content: str = ""
    timestamp: datetime = Field(default_factory=_now, frozen=True)
    feedback: Feedback | None = None

    @classmethod
    def user(cls, content: str) -> "ChatMessage":
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: str = "") -> "ChatMessage":
        return cls(role=Role.ASSISTANT, content=content)
