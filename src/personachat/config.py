"""Explicit configuration objects.

Nothing here reads the environment; the CLI builds these objects from it
and every other module receives a validated config.
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_MODELS = {
    "gemini": "gemini-2.5-flash",
    "openai": "gpt-4o-mini",
}


class GenerationConfig(BaseModel):
    """Settings for the generation service used by the streaming client."""

    model_config = ConfigDict(frozen=True)

    provider: Literal["gemini", "openai"] = Field(default="gemini", description="LLM provider")
    api_key: str | None = Field(default=None, description="Access credential, None if not configured")
    model: str | None = Field(default=None, description="Model name (None uses the provider default)")
    base_url: str | None = Field(default=None, description="Custom base URL for OpenAI-compatible proxies")
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)

    @field_validator("provider", mode="before")
    @classmethod
    def _lower_provider(cls, value: str) -> str:
        return value.lower() if isinstance(value, str) else value

    @field_validator("api_key", mode="before")
    @classmethod
    def _blank_key_is_missing(cls, value: str | None) -> str | None:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def has_credential(self) -> bool:
        return self.api_key is not None

    @property
    def resolved_model(self) -> str:
        return self.model or DEFAULT_MODELS[self.provider]


class StoreConfig(BaseModel):
    """Settings for the message store."""

    model_config = ConfigDict(frozen=True)

    backend: Literal["memory", "sqlite"] = "sqlite"
    path: Path = Path("./personachat.db")
