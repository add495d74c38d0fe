"""Gemini provider on the google-genai SDK (client.aio streaming).

Gemini can return empty chunks and safety-blocked candidates.
Empty chunks are skipped; blocked prompts and candidates raise ContentBlockedError.
"""

from collections.abc import AsyncIterator, Callable
from typing import Any

import httpx
from google import genai
from google.genai import errors, types

from ...errors import (
    ContentBlockedError,
    CredentialInvalidError,
    GenerationError,
    StreamInterruptedError,
)
from ..base import LLMProvider
from ..models import StreamingResponse, Turn

# Default safety settings - relaxed so ordinary career talk is not blocked
DEFAULT_SAFETY_SETTINGS = [
    types.SafetySetting(category="HARM_CATEGORY_HARASSMENT", threshold="BLOCK_ONLY_HIGH"),
    types.SafetySetting(category="HARM_CATEGORY_HATE_SPEECH", threshold="BLOCK_ONLY_HIGH"),
    types.SafetySetting(category="HARM_CATEGORY_SEXUALLY_EXPLICIT", threshold="BLOCK_ONLY_HIGH"),
    types.SafetySetting(category="HARM_CATEGORY_DANGEROUS_CONTENT", threshold="BLOCK_ONLY_HIGH"),
]

_BLOCKING_FINISH_REASONS = {"SAFETY", "BLOCKLIST", "PROHIBITED_CONTENT", "SPII"}


def translate_gemini_error(exc: Exception) -> GenerationError:
    """Map a Google GenAI SDK or transport exception onto the failure taxonomy."""
    if isinstance(exc, errors.APIError):
        message = str(exc)
        if exc.code in (401, 403) or "API key not valid" in message or "API_KEY_INVALID" in message:
            return CredentialInvalidError(message, cause=exc)
        return StreamInterruptedError(message, cause=exc)
    return StreamInterruptedError(str(exc), cause=exc)


class GeminiProvider(LLMProvider):
    """Streams persona replies from Gemini.

    Hidden design decisions:
    - genai.Client construction
    - Turn format conversion ('user'/'model' is Gemini's own vocabulary)
    - Error translation and safety-block detection
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash",
        **client_kwargs: Any
    ):
        """
        Args:
            api_key: Gemini API key
            model: Model to stream from (gemini-2.5-flash, gemini-2.5-pro, ...)
            **client_kwargs: Passed through to genai.Client
        """
        self._model = model
        self._client = genai.Client(api_key=api_key, **client_kwargs)

    @property
    def model(self) -> str:
        return self._model

    def _convert_turns(self, history: list[Turn], new_user_text: str) -> list[types.Content]:
        contents = [
            types.Content(role=turn.role, parts=[types.Part(text=turn.text)])
            for turn in history
        ]
        contents.append(types.Content(role="user", parts=[types.Part(text=new_user_text)]))
        return contents

    def _extract_content(self, response) -> str:
        """Extract text content from a Gemini response chunk.

        Raises:
            ContentBlockedError: If the prompt or the candidate was blocked
        """
        feedback = getattr(response, "prompt_feedback", None)
        if feedback is not None and feedback.block_reason:
            raise ContentBlockedError(f"Prompt blocked: {feedback.block_reason}")

        if response.candidates:
            candidate = response.candidates[0]
            finish_reason = getattr(candidate.finish_reason, "value", candidate.finish_reason)
            if finish_reason in _BLOCKING_FINISH_REASONS:
                raise ContentBlockedError(f"Response blocked: {finish_reason}")

            if candidate.content and candidate.content.parts:
                texts = [
                    part.text for part in candidate.content.parts
                    if getattr(part, "text", None) and not getattr(part, "thought", False)
                ]
                return "".join(texts)

        return ""

    async def stream_reply(
        self,
        system_instruction: str,
        history: list[Turn],
        new_user_text: str,
        temperature: float = 0.7,
        **kwargs: Any
    ) -> StreamingResponse:
        """Stream a reply using Google Gemini.

        Args:
            system_instruction: Persona instruction
            history: Normalized prior turns
            new_user_text: Live user message
            temperature: Sampling temperature
            **kwargs: Additional GenerateContentConfig parameters (top_p, top_k, ...)

        Returns:
            StreamingResponse that yields text chunks and captures usage info
        """
        contents = self._convert_turns(history, new_user_text)
        config = types.GenerateContentConfig(
            temperature=temperature,
            system_instruction=system_instruction,
            safety_settings=DEFAULT_SAFETY_SETTINGS,
            **kwargs
        )

        response: StreamingResponse | None = None

        def _on_usage(usage: dict[str, int]) -> None:
            if response is not None:
                response.set_usage(usage)

        response = StreamingResponse(self._stream_generator(self._model, contents, config, _on_usage))
        return response

    async def _stream_generator(
        self,
        model: str,
        contents: list[types.Content],
        config: types.GenerateContentConfig,
        on_usage: Callable[[dict[str, int]], None],
    ) -> AsyncIterator[str]:
        """Yield chunk text; report usage from the last chunk that carries it."""
        usage = None

        try:
            stream = await self._client.aio.models.generate_content_stream(
                model=model, contents=contents, config=config
            )
        except (errors.APIError, httpx.HTTPError) as e:
            raise translate_gemini_error(e) from e

        try:
            async for chunk in stream:
                if chunk.usage_metadata:
                    usage = {
                        "prompt_tokens": chunk.usage_metadata.prompt_token_count or 0,
                        "completion_tokens": chunk.usage_metadata.candidates_token_count or 0,
                        "total_tokens": chunk.usage_metadata.total_token_count or 0,
                    }

                text = self._extract_content(chunk)
                if text:
                    yield text
        except (errors.APIError, httpx.HTTPError) as e:
            raise translate_gemini_error(e) from e
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

        if usage:
            on_usage(usage)

    async def close(self) -> None:
        # genai.Client holds no connection that needs releasing
        return None
