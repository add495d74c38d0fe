"""Callback interface for conversation updates.

Hides how a front end learns about conversation changes. The controller
calls these synchronously from the event loop; implementations must not block.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..memory.models import ChatMessage
    from .controller import ConversationState


class ConversationCallback:
    """No-op base; front ends override what they need."""

    def on_messages_replaced(self, messages: "list[ChatMessage]") -> None:
        """The whole message list changed (load, first welcome, reset)."""

    def on_message_added(self, message: "ChatMessage") -> None:
        """A message was appended."""

    def on_message_updated(self, message: "ChatMessage") -> None:
        """A message's content or feedback changed."""

    def on_state_changed(self, state: "ConversationState") -> None:
        """The conversation moved to a new state."""

    def on_notice(self, text: str, severity: str = "information") -> None:
        """Short user-facing notice. Severity: information, warning or error."""
