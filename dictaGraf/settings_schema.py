# ABOUTME: Type-safe dataclass settings consumed by the dictation controller and engines.
# ABOUTME: Values are validated at construction so a bad configuration fails early.

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_RECOGNIZER_COMMAND = "nerd-dictation begin --output STDOUT --continuous"


@dataclass
class DictationSettings:
    """Timing and formatting settings for a dictation session."""

    language: str = "es-ES"
    inactivity_timeout_ms: int = 180_000
    resume_delay_ms: int = 300
    stop_timeout_ms: int = 2000
    min_sentence_length: int = 3
    natural_pauses: bool = False

    def __post_init__(self):
        """Validate durations are positive and the language is set."""
        if not self.language or not self.language.strip():
            raise ValueError("Dictation language must not be empty")
        for name in ("inactivity_timeout_ms", "resume_delay_ms", "stop_timeout_ms"):
            value = getattr(self, name)
            if value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")
        if self.min_sentence_length < 0:
            raise ValueError(
                f"min_sentence_length must not be negative, got {self.min_sentence_length}"
            )


@dataclass
class ProcessEngineSettings:
    """Settings for the local process recognizer."""

    command: str = DEFAULT_RECOGNIZER_COMMAND
    poll_interval_ms: int = 100

    def __post_init__(self):
        """Validate the command is present and polling is possible."""
        if not self.command or not self.command.strip():
            raise ValueError("Recognizer command must not be empty")
        if self.poll_interval_ms <= 0:
            raise ValueError(f"Invalid poll interval: {self.poll_interval_ms}")
