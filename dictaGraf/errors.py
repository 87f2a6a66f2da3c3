# ABOUTME: Error vocabulary reported by recognition capabilities and its classification.
# ABOUTME: Maps capability error codes onto the tiers the session controller acts upon.

from __future__ import annotations

from enum import Enum
from typing import Optional

NOT_ALLOWED = "not-allowed"
SERVICE_NOT_ALLOWED = "service-not-allowed"
NO_SPEECH = "no-speech"
ABORTED = "aborted"
NETWORK = "network"
AUDIO_CAPTURE = "audio-capture"
LANGUAGE_NOT_SUPPORTED = "language-not-supported"
BAD_GRAMMAR = "bad-grammar"
UNSUPPORTED = "unsupported"


class ErrorTier(Enum):
    IGNORABLE = "ignorable"
    FATAL = "fatal"
    PERMISSION = "permission"


_TIERS = {
    NO_SPEECH: ErrorTier.IGNORABLE,
    ABORTED: ErrorTier.IGNORABLE,
    NOT_ALLOWED: ErrorTier.PERMISSION,
    SERVICE_NOT_ALLOWED: ErrorTier.PERMISSION,
    NETWORK: ErrorTier.FATAL,
    AUDIO_CAPTURE: ErrorTier.FATAL,
    LANGUAGE_NOT_SUPPORTED: ErrorTier.FATAL,
    BAD_GRAMMAR: ErrorTier.FATAL,
    UNSUPPORTED: ErrorTier.FATAL,
}

ERROR_MESSAGES = {
    NOT_ALLOWED: "Microphone permission was denied.",
    SERVICE_NOT_ALLOWED: "The speech recognition service is not allowed.",
    NO_SPEECH: "No speech was detected.",
    ABORTED: "Speech recognition was aborted.",
    NETWORK: "Speech recognition failed because of a network error.",
    AUDIO_CAPTURE: "No microphone could be used for audio capture.",
    LANGUAGE_NOT_SUPPORTED: "The dictation language is not supported.",
    BAD_GRAMMAR: "The recognition grammar was rejected.",
    UNSUPPORTED: "Speech recognition is not available.",
}


def classify_error(code: str) -> ErrorTier:
    """Return the tier for a capability error code.

    Codes outside the known vocabulary are treated as fatal for the session:
    an error nobody recognises is not safe to retry silently.
    """
    if not code:
        return ErrorTier.FATAL
    return _TIERS.get(code.strip().lower(), ErrorTier.FATAL)


def describe_error(code: str, message: str = "") -> str:
    """Build the user facing text for an error code."""
    base = ERROR_MESSAGES.get(code, f"Speech recognition error: {code}")
    if message and message not in base:
        return f"{base} ({message})"
    return base


class DictationError(Exception):
    """Base class for failures raised synchronously by a capability."""

    default_code = AUDIO_CAPTURE

    def __init__(self, message: str = "", code: Optional[str] = None) -> None:
        self.code = code or self.default_code
        super().__init__(message or describe_error(self.code))


class UnsupportedError(DictationError):
    """The capability is absent in the host environment."""

    default_code = UNSUPPORTED


class PermissionDeniedError(DictationError):
    default_code = NOT_ALLOWED


class TransientCapabilityError(DictationError):
    default_code = ABORTED


class FatalCapabilityError(DictationError):
    default_code = NETWORK


def error_code_for(exc: BaseException) -> str:
    """Extract the capability error code carried by an exception."""
    code = getattr(exc, "code", None)
    if isinstance(code, str) and code:
        return code
    if isinstance(exc, PermissionError):
        return NOT_ALLOWED
    return AUDIO_CAPTURE
