"""Failure taxonomy for the conversational core.

This module hides how failures are classified. Providers translate their
SDK-specific exceptions into GenerationError subclasses so that callers only
ever reason about a FailureKind.
"""

from enum import Enum


class FailureKind(str, Enum):
    """Kinds of failure the conversation can encounter."""

    EMPTY_INPUT = "empty_input"
    BUSY = "busy"
    CREDENTIAL_MISSING = "credential_missing"
    CREDENTIAL_INVALID = "credential_invalid"
    CONTENT_BLOCKED = "content_blocked"
    EMPTY_REPLY = "empty_reply"
    STREAM_INTERRUPTED = "stream_interrupted"
    PERSISTENCE_FAILURE = "persistence_failure"


class GenerationError(Exception):
    """Base class for failures on the generation path.

    Anything that is not more specific is treated as an interrupted stream.
    """

    kind: FailureKind = FailureKind.STREAM_INTERRUPTED

    def __init__(self, message: str = "", *, cause: BaseException | None = None):
        super().__init__(message or self.kind.value)
        self.cause = cause


class CredentialMissingError(GenerationError):
    """No access credential is configured for the generation service."""

    kind = FailureKind.CREDENTIAL_MISSING


class CredentialInvalidError(GenerationError):
    """The generation service rejected the configured credential."""

    kind = FailureKind.CREDENTIAL_INVALID


class ContentBlockedError(GenerationError):
    """The generation service refused to answer for content-safety reasons."""

    kind = FailureKind.CONTENT_BLOCKED


class EmptyReplyError(GenerationError):
    """The stream completed without producing a single fragment."""

    kind = FailureKind.EMPTY_REPLY


class StreamInterruptedError(GenerationError):
    """Transport failure before or during streaming."""

    kind = FailureKind.STREAM_INTERRUPTED
