"""Chat configuration constants.

Centralizes magic numbers and user-facing failure messages for the chat core.
"""

from ..errors import FailureKind

# Typewriter reveal configuration
TICK_INTERVAL = 0.015  # Seconds between reveal ticks
BACKLOG_THRESHOLD = 50  # Queued characters before switching to burst reveal
STEADY_CHUNK = 1  # Characters per tick at or below the threshold
BURST_CHUNK_MIN = 3  # Characters per tick just above the threshold
BURST_CHUNK_MAX = 8  # Upper bound on characters per tick
BURST_STEP = 50  # Extra queued characters that earn one more character per tick

# Separator between partial text and an interruption note
INTERRUPTION_SEPARATOR = "\n\n"

# Text that replaces (or, for interruptions, follows) a failed assistant reply
FAILURE_MESSAGES: dict[FailureKind, str] = {
    FailureKind.CREDENTIAL_MISSING: (
        "I can't answer yet: no API key is configured for the generation service. "
        "Set the key for your LLM provider and try again."
    ),
    FailureKind.CREDENTIAL_INVALID: (
        "I can't answer: the generation service rejected the configured API key. "
        "Check the key and try again."
    ),
    FailureKind.CONTENT_BLOCKED: (
        "I can't answer that one: the generation service declined it for safety reasons. "
        "Try rephrasing the question."
    ),
    FailureKind.EMPTY_REPLY: (
        "I didn't get a reply from the generation service. Please try again."
    ),
    FailureKind.STREAM_INTERRUPTED: (
        "The connection was interrupted. Please try again."
    ),
}

# Short notices shown next to the conversation (toasts in the TUI)
FAILURE_NOTICES: dict[FailureKind, str] = {
    FailureKind.CREDENTIAL_MISSING: "API key required.",
    FailureKind.CREDENTIAL_INVALID: "API key rejected.",
    FailureKind.CONTENT_BLOCKED: "Reply blocked by safety filters.",
    FailureKind.EMPTY_REPLY: "Empty reply received.",
    FailureKind.STREAM_INTERRUPTED: "Connection interrupted.",
}
