"""Constants for the TUI: log levels, labels, timeouts."""


class LogLevel:
    """Numeric log levels; a panel shows messages at or above its level."""

    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40

    _by_value = {DEBUG: "DEBUG", INFO: "INFO", WARNING: "WARNING", ERROR: "ERROR"}

    @classmethod
    def name(cls, level: int) -> str:
        return cls._by_value.get(level, "UNKNOWN")

    @classmethod
    def from_string(cls, level_str: str) -> int:
        """Parse 'debug'/'info'/'warning'/'error'; anything else means DEBUG."""
        for value, label in cls._by_value.items():
            if label == level_str.upper():
                return value
        return cls.DEBUG


LOG_TIMESTAMP_FORMAT = "%H:%M:%S"
LOG_MAX_MESSAGE_LENGTH = 500

# Status line labels per conversation state
STATE_LABELS = {
    "idle": "Ready",
    "sending": "Thinking...",
    "streaming": "Typing...",
    "revealing": "Typing...",
}

# Feedback markers shown in message headers
FEEDBACK_MARKERS = {
    "like": "+1",
    "dislike": "-1",
}

# Notification timeouts (seconds)
NOTICE_TIMEOUT = 3
ERROR_NOTICE_TIMEOUT = 5

RESET_PROMPT = (
    "This permanently deletes the conversation history for this persona "
    "and starts over. Continue?"
)
