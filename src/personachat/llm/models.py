from collections.abc import AsyncIterator
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

# Upstream turn vocabulary. UI roles are mapped onto these at the chat boundary.
TurnRole = Literal["user", "model"]


class StreamingResponse:
    """Async iterator over reply fragments that also carries token usage.

    Providers only learn usage once the last chunk has arrived, so it is
    attached to the response rather than returned:

        reply = await provider.stream_reply(instruction, history, "Hi")
        async for fragment in reply:
            ...
        reply.usage  # {"prompt_tokens": ..., "completion_tokens": ..., "total_tokens": ...}
    """

    def __init__(self, fragments: AsyncIterator[str]):
        self._fragments = fragments
        self._usage: dict[str, Any] | None = None

    @property
    def usage(self) -> dict[str, Any] | None:
        """Token counts reported by the provider, or None until the stream ends."""
        return self._usage

    def set_usage(self, usage: dict[str, Any]) -> None:
        self._usage = usage

    def __aiter__(self) -> "StreamingResponse":
        return self

    async def __anext__(self) -> str:
        return await self._fragments.__anext__()

    async def aclose(self) -> None:
        """Release the upstream request when iteration stops early."""
        aclose = getattr(self._fragments, "aclose", None)
        if aclose is not None:
            await aclose()


class Turn(BaseModel):
    """One turn of normalized history sent to the generation API."""

    model_config = ConfigDict(frozen=True)

    role: TurnRole = Field(description="Upstream role: 'user' or 'model'")
    text: str = Field(description="Turn content")
