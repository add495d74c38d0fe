"""Abstract base class for message store backends.

This module defines the interface for persisting conversation messages.
The abstraction hides:
- Storage format (in-memory, SQLite, etc.)
- Persistence mechanism (file, database, in-memory)
- Connection management
"""

from abc import ABC, abstractmethod

from .models import ChatMessage, Feedback


class MessageStore(ABC):
    """Abstract message store backend.

    An append-only log of ChatMessage entries per conversation key, plus
    feedback updates and bulk clear. Backends may raise; callers that need
    the never-fail semantics wrap a backend in SafeMessageStore.
    """

    @abstractmethod
    async def connect(self) -> None:
        """Initialize the store backend."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the store backend gracefully."""

    @abstractmethod
    async def load_history(self, conversation_key: str) -> list[ChatMessage]:
        """Return the messages of a conversation in creation order (empty if none)."""

    @abstractmethod
    async def append_message(self, conversation_key: str, message: ChatMessage) -> None:
        """Durably append a message to a conversation."""

    @abstractmethod
    async def update_feedback(self, message_id: str, feedback: Feedback | None) -> None:
        """Set (or clear, with None) the feedback of a stored message."""

    @abstractmethod
    async def clear_history(self, conversation_key: str) -> None:
        """Delete every stored message of a conversation."""

    @abstractmethod
    async def list_conversations(self) -> list[tuple[str, int]]:
        """Return (conversation_key, message_count) pairs, most recent first."""

    @property
    @abstractmethod
    def backend_type(self) -> str:
        """Short backend name shown in the status line and health output."""
