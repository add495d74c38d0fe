from typing import Any

from ..config import GenerationConfig
from .base import LLMProvider
from .providers import GeminiProvider, OpenAIProvider

_PROVIDERS: dict[str, type[LLMProvider]] = {
    "gemini": GeminiProvider,
    "openai": OpenAIProvider,
}


def create_llm_provider(provider: str, **config: Any) -> LLMProvider:
    """Build a provider by name.

    Args:
        provider: 'gemini' or 'openai' (case-insensitive)
        **config: Keyword arguments for the provider class. ``api_key`` is
            required; ``model`` is optional; ``base_url`` applies to 'openai'.

    Raises:
        ValueError: Unknown provider name
        TypeError: ``api_key`` missing

    Examples:
        >>> provider = create_llm_provider("gemini", api_key="...")
    """
    provider_cls = _PROVIDERS.get(provider.lower())
    if provider_cls is None:
        raise ValueError(
            f"Unsupported provider: {provider}. "
            f"Supported providers: {', '.join(repr(name) for name in _PROVIDERS)}"
        )
    if "api_key" not in config:
        raise TypeError(f"{provider_cls.__name__} requires 'api_key' in config")
    return provider_cls(**config)


def provider_from_config(config: GenerationConfig) -> LLMProvider:
    """Build the provider a GenerationConfig describes.

    Raises:
        TypeError: If the config carries no credential
    """
    if not config.has_credential:
        raise TypeError(f"{config.provider} provider requires 'api_key' in config")

    kwargs: dict[str, Any] = {"api_key": config.api_key, "model": config.resolved_model}
    if config.provider == "openai" and config.base_url:
        kwargs["base_url"] = config.base_url
    return create_llm_provider(config.provider, **kwargs)
