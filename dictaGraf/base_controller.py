"""Common utilities for controllers built around enum state machines."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Generic, List, TypeVar


StateEnum = TypeVar("StateEnum", bound=Enum)

StateListener = Callable[[object], None]
TranscriptListener = Callable[[str, str], None]
ErrorListener = Callable[[str, str], None]


class EnumStateController(Generic[StateEnum]):
    """Shared implementation for controllers that manage enum-based states."""

    def __init__(
        self,
        *,
        initial_state: StateEnum,
        name: str,
    ) -> None:
        self._state = initial_state
        self._name = name

        self._state_listeners: List[Callable[[StateEnum], None]] = []
        self._transcript_listeners: List[TranscriptListener] = []
        self._error_listeners: List[ErrorListener] = []

    # ------------------------------------------------------------------
    # Listener registration
    # ------------------------------------------------------------------

    @property
    def state(self) -> StateEnum:
        return self._state

    def add_state_listener(self, callback: Callable[[StateEnum], None]) -> None:
        self._state_listeners.append(callback)

    def add_transcript_listener(self, callback: TranscriptListener) -> None:
        """Register a callback receiving ``(final_text, interim_text)``."""
        self._transcript_listeners.append(callback)

    def add_error_listener(self, callback: ErrorListener) -> None:
        """Register a callback receiving ``(code, message)``."""
        self._error_listeners.append(callback)

    def remove_listener(self, callback: Callable) -> None:
        for listeners in (self._state_listeners, self._transcript_listeners, self._error_listeners):
            try:
                listeners.remove(callback)
            except ValueError:
                pass

    # ------------------------------------------------------------------
    # Protected helpers for subclasses
    # ------------------------------------------------------------------

    def _set_state(self, state: StateEnum) -> None:
        if self._state == state:
            return
        logging.debug("%s: %s -> %s", self._name, self._state.name, state.name)
        self._state = state
        for listener in list(self._state_listeners):
            listener(state)

    def _emit_transcript(self, final_text: str, interim_text: str) -> None:
        for listener in list(self._transcript_listeners):
            listener(final_text, interim_text)

    def _emit_error(self, code: str, message: str) -> None:
        logging.error("%s error (%s): %s", self._name, code, message)
        for listener in list(self._error_listeners):
            listener(code, message)
