from .base import LLMProvider
from .factory import create_llm_provider, provider_from_config
from .models import StreamingResponse, Turn, TurnRole
from .providers import GeminiProvider, OpenAIProvider

__all__ = [
    "LLMProvider",
    "create_llm_provider",
    "provider_from_config",
    "StreamingResponse",
    "Turn",
    "TurnRole",
    "GeminiProvider",
    "OpenAIProvider",
]
