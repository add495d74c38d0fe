"""Builders for the persona system instruction and the seeded assistant messages."""

from ..prompts import get_persona_prompt, get_reset_template, get_welcome_template
from .models import PersonaContext, ResumeData


def condense_history(resume: ResumeData | None) -> str:
    """Condense the work history to one line per position."""
    if resume is None or not resume.experience:
        return "- (no positions listed)"

    lines = []
    for exp in resume.experience:
        line = f"- {exp.role} at {exp.company}"
        if exp.duration:
            line += f" ({exp.duration})"
        lines.append(line)
    return "\n".join(lines)


def build_system_instruction(persona: PersonaContext, resume: ResumeData | None = None) -> str:
    """Build the system instruction sent once per generation call.

    Args:
        persona: Persona context (name, tone, description, expertise)
        resume: Structured resume used for the condensed professional history

    Returns:
        System instruction text
    """
    return get_persona_prompt().format(
        name=persona.name,
        tone=persona.tone,
        description=persona.description or (resume.summary if resume else ""),
        history=condense_history(resume),
        expertise=", ".join(persona.expertise) or "general",
    )


def build_welcome_message(persona: PersonaContext, after_reset: bool = False) -> str:
    """Render the deterministic first assistant message of a conversation."""
    if after_reset:
        return get_reset_template().format(name=persona.name)

    expertise = " and ".join(persona.expertise[:2]) or "your field"
    return get_welcome_template().format(name=persona.name, expertise=expertise)
