"""
Personachat: turn a resume into a conversational persona.

The conversational core streams persona replies from a generation API,
reveals them with a typewriter effect and persists the conversation.
Each module hides a specific design decision.
"""

__version__ = "0.1.0"

from .chat import ConversationCallback, ConversationController, ConversationState, StreamingClient
from .config import GenerationConfig, StoreConfig
from .errors import FailureKind, GenerationError
from .memory import ChatMessage, Feedback, Role, create_message_store
from .persona import PersonaContext, ResumeData, load_persona_bundle

__all__ = [
    "ChatMessage",
    "ConversationCallback",
    "ConversationController",
    "ConversationState",
    "FailureKind",
    "Feedback",
    "GenerationConfig",
    "GenerationError",
    "PersonaContext",
    "ResumeData",
    "Role",
    "StoreConfig",
    "StreamingClient",
    "create_message_store",
    "load_persona_bundle",
]
