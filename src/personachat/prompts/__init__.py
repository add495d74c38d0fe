"""Prompt templates.

The persona system instruction and the welcome/reset greetings live in
``*.txt`` files next to this module. A ``prompts/<name>.txt`` in the working
directory takes precedence, so a deployment can reword the persona without
touching the package.
"""

from functools import lru_cache
from pathlib import Path

_PACKAGE_PROMPTS = Path(__file__).parent


def _candidates(name: str) -> list[Path]:
    filename = f"{name}.txt"
    return [Path.cwd() / "prompts" / filename, _PACKAGE_PROMPTS / filename]


@lru_cache(maxsize=16)
def load_prompt(name: str) -> str:
    """Read a template by name (no extension), local override first.

    Raises:
        FileNotFoundError: If neither location has the file
    """
    candidates = _candidates(name)
    for path in candidates:
        if path.exists():
            return path.read_text(encoding="utf-8").strip()

    searched = "\n".join(f"  - {path}" for path in candidates)
    raise FileNotFoundError(f"Prompt '{name}' not found. Searched:\n{searched}")


def get_persona_prompt() -> str:
    """System-instruction template; fields: name, tone, description, history, expertise."""
    return load_prompt("persona_system")


def get_welcome_template() -> str:
    """First message of a new conversation; fields: name, expertise."""
    return load_prompt("welcome")


def get_reset_template() -> str:
    """First message after a reset; field: name."""
    return load_prompt("reset")


def clear_cache() -> None:
    """Forget loaded templates so edited files are read again."""
    load_prompt.cache_clear()


__all__ = [
    "load_prompt",
    "get_persona_prompt",
    "get_welcome_template",
    "get_reset_template",
    "clear_cache",
]
