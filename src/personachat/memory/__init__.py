"""Message store module for personachat.

Provides persistent, append-only conversation storage used to rehydrate
a conversation on reload.
"""

from .base import MessageStore
from .factory import create_message_store, store_from_config
from .in_memory import InMemoryMessageStore
from .models import ChatMessage, Feedback, Role
from .safe import SafeMessageStore

__all__ = [
    "ChatMessage",
    "Feedback",
    "InMemoryMessageStore",
    "MessageStore",
    "Role",
    "SafeMessageStore",
    "create_message_store",
    "store_from_config",
]
