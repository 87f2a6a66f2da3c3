from __future__ import annotations

import logging
from typing import Optional

from PyQt6.QtCore import QSettings

from dictaGraf.settings_schema import (
    DEFAULT_RECOGNIZER_COMMAND,
    DictationSettings,
    ProcessEngineSettings,
)

DEFAULT_LANGUAGE: str = "es-ES"
DEFAULT_INACTIVITY_TIMEOUT_MS: int = 180_000
DEFAULT_RESUME_DELAY_MS: int = 300
DEFAULT_STOP_TIMEOUT_MS: int = 2000
DEFAULT_MIN_SENTENCE_LENGTH: int = 3
DEFAULT_POLL_INTERVAL_MS: int = 100


class Settings:
    """Wrapper around QSettings storing DictaGraf preferences."""

    def __init__(self, backend: Optional[QSettings] = None) -> None:
        self._backend = backend or QSettings("DictaGraf", "DictaGraf")
        self.language: str = DEFAULT_LANGUAGE
        self.inactivityTimeoutMs: int = DEFAULT_INACTIVITY_TIMEOUT_MS
        self.resumeDelayMs: int = DEFAULT_RESUME_DELAY_MS
        self.stopTimeoutMs: int = DEFAULT_STOP_TIMEOUT_MS
        self.minSentenceLength: int = DEFAULT_MIN_SENTENCE_LENGTH
        self.naturalPauses: bool = False
        self.recognizerCommand: str = DEFAULT_RECOGNIZER_COMMAND
        self.pollIntervalMs: int = DEFAULT_POLL_INTERVAL_MS

    def load(self) -> None:
        backend = self._backend
        self.language = backend.value("Language", DEFAULT_LANGUAGE, type=str)
        self.inactivityTimeoutMs = backend.value(
            "InactivityTimeoutMs", DEFAULT_INACTIVITY_TIMEOUT_MS, type=int
        )
        self.resumeDelayMs = backend.value("ResumeDelayMs", DEFAULT_RESUME_DELAY_MS, type=int)
        self.stopTimeoutMs = backend.value("StopTimeoutMs", DEFAULT_STOP_TIMEOUT_MS, type=int)
        self.minSentenceLength = backend.value(
            "MinSentenceLength", DEFAULT_MIN_SENTENCE_LENGTH, type=int
        )
        self.naturalPauses = backend.value("NaturalPauses", False, type=bool)
        self.recognizerCommand = backend.value(
            "RecognizerCommand", DEFAULT_RECOGNIZER_COMMAND, type=str
        )
        self.pollIntervalMs = backend.value("PollIntervalMs", DEFAULT_POLL_INTERVAL_MS, type=int)

        if self.inactivityTimeoutMs <= 0:
            logging.warning(
                "Ignoring invalid inactivity timeout %s, using %s",
                self.inactivityTimeoutMs,
                DEFAULT_INACTIVITY_TIMEOUT_MS,
            )
            self.inactivityTimeoutMs = DEFAULT_INACTIVITY_TIMEOUT_MS

    def save(self) -> None:
        backend = self._backend
        if self.language == DEFAULT_LANGUAGE:
            backend.remove("Language")
        else:
            backend.setValue("Language", self.language)
        self._set_or_remove_default(
            "InactivityTimeoutMs", self.inactivityTimeoutMs, DEFAULT_INACTIVITY_TIMEOUT_MS
        )
        self._set_or_remove_default("ResumeDelayMs", self.resumeDelayMs, DEFAULT_RESUME_DELAY_MS)
        self._set_or_remove_default("StopTimeoutMs", self.stopTimeoutMs, DEFAULT_STOP_TIMEOUT_MS)
        self._set_or_remove_default(
            "MinSentenceLength", self.minSentenceLength, DEFAULT_MIN_SENTENCE_LENGTH
        )
        backend.setValue("NaturalPauses", int(self.naturalPauses))
        if self.recognizerCommand == DEFAULT_RECOGNIZER_COMMAND:
            backend.remove("RecognizerCommand")
        else:
            self._set_or_remove("RecognizerCommand", self.recognizerCommand)
        self._set_or_remove_default("PollIntervalMs", self.pollIntervalMs, DEFAULT_POLL_INTERVAL_MS)

    def get_dictation_settings(self) -> DictationSettings:
        return DictationSettings(
            language=self.language,
            inactivity_timeout_ms=self.inactivityTimeoutMs,
            resume_delay_ms=self.resumeDelayMs,
            stop_timeout_ms=self.stopTimeoutMs,
            min_sentence_length=self.minSentenceLength,
            natural_pauses=self.naturalPauses,
        )

    def get_engine_settings(self) -> ProcessEngineSettings:
        return ProcessEngineSettings(
            command=self.recognizerCommand,
            poll_interval_ms=self.pollIntervalMs,
        )

    def _set_or_remove(self, key: str, value: str) -> None:
        backend = self._backend
        if value:
            backend.setValue(key, value)
        else:
            backend.remove(key)

    def _set_or_remove_default(self, key: str, value, default) -> None:
        backend = self._backend
        if value == default:
            backend.remove(key)
        else:
            backend.setValue(key, value)
