"""Data models for resume data and the synthesized persona.

Both are produced by the external extraction step as a JSON bundle
``{"resume": {...}, "persona": {...}}`` and are read-only inputs to the chat core.
"""

import json
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _Frozen(BaseModel):
    # Accept the camelCase keys written by the extraction step
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class Experience(_Frozen):
    """One position held."""

    role: str
    company: str
    duration: str = ""
    description: list[str] = Field(default_factory=list)


class Education(_Frozen):
    degree: str
    institution: str
    year: str = ""


class ResumeData(_Frozen):
    """Structured resume content."""

    name: str
    title: str = ""
    summary: str = ""
    skills: list[str] = Field(default_factory=list)
    experience: list[Experience] = Field(default_factory=list)
    education: list[Education] = Field(default_factory=list)
    certifications: list[str] = Field(default_factory=list)


class PersonaContext(_Frozen):
    """The persona a conversation speaks as.

    Used verbatim to build the system instruction for every generation call.
    """

    name: str = Field(description="Display name of the persona")
    tone: str = Field(default="professional", description="Free-text style descriptor")
    description: str = Field(default="", description="First-person narrative")
    expertise: list[str] = Field(default_factory=list)
    strengths: list[str] = Field(default_factory=list)
    identifier: str = Field(default="", description="Slug identifying the persona")
    example_responses: list[str] = Field(
        default_factory=list,
        description="Suggested questions to offer the user"
    )


def load_persona_bundle(path: str | Path) -> tuple[ResumeData, PersonaContext]:
    """Load a resume/persona bundle from a JSON file.

    Args:
        path: Path to a JSON file with "resume" and "persona" objects

    Returns:
        Tuple of (resume, persona)

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is not a valid bundle
    """
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(raw, dict) or "resume" not in raw or "persona" not in raw:
        raise ValueError(f"{path} must contain 'resume' and 'persona' objects")

    return ResumeData.model_validate(raw["resume"]), PersonaContext.model_validate(raw["persona"])
