"""Conversational core: normalization, streaming, typewriter reveal, orchestration."""

from .callbacks import ConversationCallback
from .controller import ConversationController, ConversationState
from .normalizer import normalize_history, to_turn_role
from .streaming import StreamingClient
from .typewriter import TypewriterScheduler, reveal_chunk_size

__all__ = [
    "ConversationCallback",
    "ConversationController",
    "ConversationState",
    "StreamingClient",
    "TypewriterScheduler",
    "normalize_history",
    "reveal_chunk_size",
    "to_turn_role",
]
