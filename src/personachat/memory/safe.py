"""Never-fail wrapper around a message store backend.

Store unavailability must never block chatting: reads degrade to an empty
history and writes are reported through the debug callback and dropped.
"""

from typing import Any

from .base import MessageStore
from .models import ChatMessage, Feedback


class SafeMessageStore(MessageStore):
    """Wraps a MessageStore so that no operation raises to the caller."""

    def __init__(self, backend: MessageStore):
        self._backend = backend
        self._debug_callback: Any | None = None
        self._failures = 0

    def set_debug_callback(self, callback: Any) -> None:
        """Set the debug callback.

        Args:
            callback: Callable(level: str, component: str, message: str)
        """
        self._debug_callback = callback

    def _debug(self, level: str, component: str, message: str) -> None:
        if self._debug_callback:
            self._debug_callback(level, component, message)

    def _report(self, operation: str, error: Exception) -> None:
        self._failures += 1
        self._debug("error", "Store", f"{operation} failed ({self._backend.backend_type}): {error}")

    @property
    def backend(self) -> MessageStore:
        return self._backend

    @property
    def failure_count(self) -> int:
        """Number of swallowed persistence failures since creation."""
        return self._failures

    async def connect(self) -> None:
        try:
            await self._backend.connect()
        except Exception as e:
            self._report("connect", e)

    async def disconnect(self) -> None:
        try:
            await self._backend.disconnect()
        except Exception as e:
            self._report("disconnect", e)

    async def load_history(self, conversation_key: str) -> list[ChatMessage]:
        try:
            return await self._backend.load_history(conversation_key)
        except Exception as e:
            self._report("load_history", e)
            return []

    async def append_message(self, conversation_key: str, message: ChatMessage) -> None:
        try:
            await self._backend.append_message(conversation_key, message)
            self._debug("debug", "Store", f"Saved {message.role.value} message {message.id[:8]}")
        except Exception as e:
            self._report("append_message", e)

    async def update_feedback(self, message_id: str, feedback: Feedback | None) -> None:
        try:
            await self._backend.update_feedback(message_id, feedback)
        except Exception as e:
            self._report("update_feedback", e)

    async def clear_history(self, conversation_key: str) -> None:
        try:
            await self._backend.clear_history(conversation_key)
        except Exception as e:
            self._report("clear_history", e)

    async def list_conversations(self) -> list[tuple[str, int]]:
        try:
            return await self._backend.list_conversations()
        except Exception as e:
            self._report("list_conversations", e)
            return []

    @property
    def backend_type(self) -> str:
        return self._backend.backend_type
