"""Factory for creating message store backends."""

from typing import Any

from ..config import StoreConfig
from .base import MessageStore


def create_message_store(
    backend: str = "memory",
    **kwargs: Any
) -> MessageStore:
    """Create a message store backend.

    Args:
        backend: Backend type ("memory" or "sqlite")
        **kwargs: Backend-specific configuration

    Returns:
        MessageStore instance

    Raises:
        ValueError: If backend type is not supported
    """
    if backend == "memory":
        from .in_memory import InMemoryMessageStore
        return InMemoryMessageStore(**kwargs)

    elif backend == "sqlite":
        from .sqlite import SQLiteMessageStore
        return SQLiteMessageStore(**kwargs)

    raise ValueError(
        f"Unsupported memory backend: {backend}. "
        f"Supported backends: memory, sqlite"
    )


def store_from_config(config: StoreConfig) -> MessageStore:
    """Create the backend described by a StoreConfig."""
    if config.backend == "sqlite":
        return create_message_store("sqlite", path=config.path)
    return create_message_store(config.backend)
