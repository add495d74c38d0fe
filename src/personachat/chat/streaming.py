"""Streaming client for persona replies.

Hides which provider is used and how the system instruction is assembled.
Produces a lazy, finite, forward-only sequence of non-empty text fragments.
"""

from collections.abc import AsyncIterator
from typing import Any

from ..config import GenerationConfig
from ..errors import CredentialMissingError, EmptyReplyError, GenerationError, StreamInterruptedError
from ..llm import LLMProvider, Turn, provider_from_config
from ..persona import PersonaContext, ResumeData, build_system_instruction


class StreamingClient:
    """One-shot streaming requests to the generation backend.

    The provider is created from the injected GenerationConfig on first use;
    the environment is never consulted here.
    """

    def __init__(
        self,
        config: GenerationConfig,
        provider: LLMProvider | None = None,
    ):
        """Initialize the client.

        Args:
            config: Validated generation settings
            provider: Pre-built provider (overrides the one built from config)
        """
        self._config = config
        self._provider = provider
        self._debug_callback: Any | None = None
        self._last_usage: dict[str, Any] | None = None

    @property
    def config(self) -> GenerationConfig:
        return self._config

    @property
    def last_usage(self) -> dict[str, Any] | None:
        """Token usage of the most recently completed stream, if reported."""
        return self._last_usage

    def set_debug_callback(self, callback: Any) -> None:
        """Set the debug callback.

        Args:
            callback: Callable(level: str, component: str, message: str)
        """
        self._debug_callback = callback

    def _debug(self, level: str, component: str, message: str) -> None:
        if self._debug_callback:
            self._debug_callback(level, component, message)

    def _get_provider(self) -> LLMProvider:
        if self._provider is None:
            if not self._config.has_credential:
                raise CredentialMissingError(
                    f"No API key configured for provider '{self._config.provider}'"
                )
            self._provider = provider_from_config(self._config)
        return self._provider

    async def stream(
        self,
        user_message: str,
        history: list[Turn],
        persona: PersonaContext,
        resume: ResumeData | None = None,
    ) -> AsyncIterator[str]:
        """Stream the persona's reply to a user message.

        Args:
            user_message: The live user message
            history: Normalized prior turns
            persona: Persona the reply is written as
            resume: Structured resume for the condensed professional history

        Yields:
            Non-empty text fragments in generation order

        Raises:
            CredentialMissingError: If no credential is configured
            EmptyReplyError: If the stream completes without any fragment
            GenerationError: Other translated provider failures
        """
        provider = self._get_provider()
        instruction = build_system_instruction(persona, resume)
        self._last_usage = None

        self._debug(
            "debug", "Stream",
            f"Requesting reply from {provider.model} with {len(history)} prior turn(s)"
        )

        try:
            response = await provider.stream_reply(
                instruction,
                history,
                user_message,
                temperature=self._config.temperature,
            )
        except GenerationError:
            raise
        except Exception as e:
            raise StreamInterruptedError(str(e), cause=e) from e

        fragments = 0
        try:
            async for fragment in response:
                if not fragment:
                    continue
                fragments += 1
                yield fragment
        except GenerationError:
            raise
        except Exception as e:
            raise StreamInterruptedError(str(e), cause=e) from e
        finally:
            await response.aclose()

        if fragments == 0:
            raise EmptyReplyError("The stream completed without any text")

        self._last_usage = response.usage
        self._debug("debug", "Stream", f"Stream completed with {fragments} fragment(s)")

    async def close(self) -> None:
        """Close the underlying provider, if one was created."""
        if self._provider is not None:
            await self._provider.close()
            self._provider = None
