"""Provider factory functions for CLI.

Centralizes creation of the message store, streaming client and persona from
environment variables and command options. This is the only place the
environment is read.
"""

import os
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console

from ..chat import StreamingClient
from ..config import GenerationConfig, StoreConfig
from ..memory import MessageStore, store_from_config
from ..persona import PersonaContext, ResumeData, load_persona_bundle

# Default console for output
_console = Console()


def store_config_from_env() -> StoreConfig:
    """Read PERSONACHAT_MEMORY and PERSONACHAT_DB_PATH."""
    return StoreConfig(
        backend=os.getenv("PERSONACHAT_MEMORY", "sqlite").lower(),
        path=Path(os.getenv("PERSONACHAT_DB_PATH", "./personachat.db")),
    )


def generation_config_from_env() -> GenerationConfig:
    """Read the provider settings for the configured LLM_PROVIDER.

    Raises:
        pydantic.ValidationError: If the provider or temperature is invalid
        ValueError: If LLM_TEMPERATURE is not a number
    """
    provider = os.getenv("LLM_PROVIDER", "gemini").lower()
    temperature = float(os.getenv("LLM_TEMPERATURE", "0.7"))

    if provider == "openai":
        return GenerationConfig(
            provider=provider,
            api_key=os.getenv("OPENAI_API_KEY"),
            model=os.getenv("OPENAI_CHAT_MODEL"),
            base_url=os.getenv("OPENAI_BASE_URL"),
            temperature=temperature,
        )

    return GenerationConfig(
        provider=provider,
        api_key=os.getenv("GEMINI_API_KEY"),
        model=os.getenv("GEMINI_MODEL"),
        temperature=temperature,
    )


def get_store_config(backend: str | None = None, path: Path | None = None) -> StoreConfig:
    """Build the store config from the environment, with option overrides.

    Environment variables:
        PERSONACHAT_MEMORY: Store backend, memory or sqlite (default: sqlite)
        PERSONACHAT_DB_PATH: SQLite database path (default: ./personachat.db)
    """
    config = store_config_from_env()
    overrides = {}
    if backend is not None:
        overrides["backend"] = backend.lower()
    if path is not None:
        overrides["path"] = path
    if overrides:
        config = StoreConfig.model_validate({**config.model_dump(), **overrides})
    return config


def get_store(
    backend: str | None = None,
    path: Path | None = None,
    console: Console | None = None
) -> MessageStore:
    """Create the message store.

    Raises:
        SystemExit: If the store configuration is invalid
    """
    con = console or _console
    try:
        return store_from_config(get_store_config(backend, path))
    except (ValidationError, ValueError) as e:
        con.print(f"[red]Error: invalid store configuration: {e}[/red]")
        raise typer.Exit(code=1)


def get_generation_config(console: Console | None = None) -> GenerationConfig:
    """Build and validate the generation config once at start-up.

    A missing API key is only a warning: sends will fail with a
    credential-required reply until a key is configured.

    Environment variables:
        LLM_PROVIDER: gemini or openai (default: gemini)
        GEMINI_API_KEY: Gemini API key (for gemini provider)
        GEMINI_MODEL: Gemini model (default: gemini-2.5-flash)
        OPENAI_API_KEY: OpenAI API key (for openai provider)
        OPENAI_CHAT_MODEL: OpenAI model (default: gpt-4o-mini)
        OPENAI_BASE_URL: OpenAI-compatible endpoint
        LLM_TEMPERATURE: Sampling temperature (default: 0.7)

    Raises:
        SystemExit: If the configuration is invalid
    """
    con = console or _console
    try:
        config = generation_config_from_env()
    except (ValidationError, ValueError) as e:
        con.print(f"[red]Error: invalid LLM configuration: {e}[/red]")
        raise typer.Exit(code=1)

    if not config.has_credential:
        key_name = "OPENAI_API_KEY" if config.provider == "openai" else "GEMINI_API_KEY"
        con.print(f"[yellow]Warning: {key_name} not set, replies will ask for a key[/yellow]")
    return config


def get_streaming_client(console: Console | None = None) -> StreamingClient:
    """Create the streaming client from the validated generation config."""
    return StreamingClient(get_generation_config(console))


def get_persona(
    profile: Path,
    console: Console | None = None
) -> tuple[ResumeData, PersonaContext]:
    """Load the resume/persona bundle.

    Raises:
        SystemExit: If the bundle cannot be read or validated
    """
    con = console or _console
    try:
        return load_persona_bundle(profile)
    except FileNotFoundError:
        con.print(f"[red]Error: profile not found: {profile}[/red]")
        raise typer.Exit(code=1)
    except (ValidationError, ValueError) as e:
        con.print(f"[red]Error: invalid profile {profile}: {e}[/red]")
        raise typer.Exit(code=1)


def conversation_key_for(persona: PersonaContext, key: str | None) -> str:
    """Resolve the conversation key: explicit option, else the persona identifier."""
    if key:
        return key
    if persona.identifier:
        return persona.identifier
    return persona.name.lower().replace(" ", "-")
