"""In-memory message store backend.

Simple dict-based storage for session-only history.
Data is lost when the application exits.
"""

from .base import MessageStore
from .models import ChatMessage, Feedback


class InMemoryMessageStore(MessageStore):
    """In-memory message store (session-only).

    Stores copies so later in-memory edits by the caller do not leak into
    the persisted log. Suitable for single-session use or testing.
    """

    def __init__(self) -> None:
        self._conversations: dict[str, list[ChatMessage]] = {}

    async def connect(self) -> None:
        """Initialize store (no-op for in-memory)."""
        pass

    async def disconnect(self) -> None:
        """Close store (no-op for in-memory)."""
        pass

    async def load_history(self, conversation_key: str) -> list[ChatMessage]:
        return [m.model_copy() for m in self._conversations.get(conversation_key, [])]

    async def append_message(self, conversation_key: str, message: ChatMessage) -> None:
        log = self._conversations.setdefault(conversation_key, [])
        if any(m.id == message.id for m in log):
            raise ValueError(f"Message {message.id} already stored")
        log.append(message.model_copy())

    async def update_feedback(self, message_id: str, feedback: Feedback | None) -> None:
        for log in self._conversations.values():
            for m in log:
                if m.id == message_id:
                    m.feedback = feedback
                    return

    async def clear_history(self, conversation_key: str) -> None:
        if conversation_key in self._conversations:
            self._conversations[conversation_key] = []

    async def list_conversations(self) -> list[tuple[str, int]]:
        # dicts keep insertion order; newest conversation last
        return [(key, len(log)) for key, log in reversed(self._conversations.items()) if log]

    @property
    def backend_type(self) -> str:
        return "memory"
