"""Persona module: resume data and the persona context used for generation."""

from .models import Education, Experience, PersonaContext, ResumeData, load_persona_bundle
from .prompt import build_system_instruction, build_welcome_message, condense_history

__all__ = [
    "Education",
    "Experience",
    "PersonaContext",
    "ResumeData",
    "build_system_instruction",
    "build_welcome_message",
    "condense_history",
    "load_persona_bundle",
]
