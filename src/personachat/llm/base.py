from abc import ABC, abstractmethod
from typing import Any

from .models import StreamingResponse, Turn


class LLMProvider(ABC):
    """A generation backend that can stream a persona reply.

    Hides which vendor SDK answers a request. Each implementation owns:
    - client construction and credentials
    - converting Turns into the vendor's message format
    - mapping SDK exceptions onto personachat.errors.GenerationError

    Providers are async context managers; leaving the block closes the client.
    """

    @property
    @abstractmethod
    def model(self) -> str:
        """Model identifier requests are sent to."""

    @abstractmethod
    async def stream_reply(
        self,
        system_instruction: str,
        history: list[Turn],
        new_user_text: str,
        temperature: float = 0.7,
        **kwargs: Any
    ) -> StreamingResponse:
        """Open a streaming request for the next model turn.

        Args:
            system_instruction: Who the model speaks as
            history: Normalized prior turns (alternating, user first)
            new_user_text: Live user message, sent as the final user turn
            temperature: Sampling temperature (0.0 to 2.0)

        Returns:
            StreamingResponse of non-empty text fragments

        Raises:
            GenerationError: Raised on open or while iterating the response
        """

    @abstractmethod
    async def close(self) -> None:
        """Release the underlying HTTP client."""

    async def __aenter__(self) -> "LLMProvider":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        # httpx may raise this while tearing down after the loop has stopped
        try:
            await self.close()
        except RuntimeError as e:
            if "Event loop is closed" not in str(e):
                raise
