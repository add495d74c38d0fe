"""OpenAI (and OpenAI-compatible proxy) LLM provider implementation.

Speaks the Chat Completions streaming protocol, which is also what most
hosted proxies expose.
"""

from collections.abc import AsyncIterator, Callable
from typing import Any

import openai
from openai import AsyncOpenAI

from ...errors import (
    ContentBlockedError,
    CredentialInvalidError,
    GenerationError,
    StreamInterruptedError,
)
from ..base import LLMProvider
from ..models import StreamingResponse, Turn

# Upstream turn role -> Chat Completions role
_ROLE_MAP = {"user": "user", "model": "assistant"}


def translate_openai_error(exc: Exception) -> GenerationError:
    """Map an OpenAI SDK exception onto the failure taxonomy."""
    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return CredentialInvalidError(str(exc), cause=exc)
    if isinstance(exc, openai.BadRequestError) and getattr(exc, "code", None) == "content_filter":
        return ContentBlockedError(str(exc), cause=exc)
    return StreamInterruptedError(str(exc), cause=exc)


def _turns_to_messages(
    system_instruction: str,
    history: list[Turn],
    new_user_text: str
) -> list[dict[str, str]]:
    """System message, then history with "model" renamed "assistant", then the live user turn."""
    messages = [{"role": "system", "content": system_instruction}]
    messages.extend({"role": _ROLE_MAP[turn.role], "content": turn.text} for turn in history)
    messages.append({"role": "user", "content": new_user_text})
    return messages


class OpenAIProvider(LLMProvider):
    """Streams persona replies over the Chat Completions API.

    Works against api.openai.com or any compatible proxy via ``base_url``.

    Hidden design decisions:
    - AsyncOpenAI client construction
    - Chat Completions message layout
    - Error translation
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str | None = None,
        organization: str | None = None,
        **client_kwargs: Any
    ):
        """
        Args:
            api_key: OpenAI (or proxy) API key
            model: Chat model to stream from
            base_url: Proxy endpoint; None means api.openai.com
            organization: OpenAI organization id
            **client_kwargs: Passed through to AsyncOpenAI
        """
        self._model = model
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            organization=organization,
            **client_kwargs
        )

    @property
    def model(self) -> str:
        return self._model

    async def stream_reply(
        self,
        system_instruction: str,
        history: list[Turn],
        new_user_text: str,
        temperature: float = 0.7,
        **kwargs: Any
    ) -> StreamingResponse:
        """Stream a reply using the Chat Completions API.

        Args:
            system_instruction: Persona instruction
            history: Normalized prior turns
            new_user_text: Live user message
            temperature: Sampling temperature
            **kwargs: Extra chat.completions.create parameters (max_tokens, ...)

        Returns:
            StreamingResponse of content deltas; usage is requested via stream_options
        """
        messages = _turns_to_messages(system_instruction, history, new_user_text)
        response: StreamingResponse | None = None

        def _on_usage(usage: dict[str, int]) -> None:
            if response is not None:
                response.set_usage(usage)

        response = StreamingResponse(
            self._stream_generator(messages, temperature, kwargs, _on_usage)
        )
        return response

    async def _stream_generator(
        self,
        messages: list[dict[str, str]],
        temperature: float,
        extra: dict[str, Any],
        on_usage: Callable[[dict[str, int]], None],
    ) -> AsyncIterator[str]:
        """Yield content deltas; the final usage-only chunk is reported via on_usage."""
        try:
            stream = await self._client.chat.completions.create(
                model=self._model,
                messages=messages,
                temperature=temperature,
                stream=True,
                stream_options={"include_usage": True},
                **extra
            )
        except openai.APIError as e:
            raise translate_openai_error(e) from e

        try:
            async for chunk in stream:
                if chunk.usage:
                    on_usage({
                        "prompt_tokens": chunk.usage.prompt_tokens,
                        "completion_tokens": chunk.usage.completion_tokens,
                        "total_tokens": chunk.usage.total_tokens,
                    })

                if not chunk.choices:
                    continue

                choice = chunk.choices[0]
                if choice.finish_reason == "content_filter":
                    raise ContentBlockedError("Response blocked by content filter")

                if choice.delta and choice.delta.content:
                    yield choice.delta.content
        except openai.APIError as e:
            raise translate_openai_error(e) from e
        finally:
            await stream.close()

    async def close(self) -> None:
        """Close the AsyncOpenAI HTTP client."""
        await self._client.close()
