# ABOUTME: Abstract interfaces for streaming recognition capabilities and permission probes.
# ABOUTME: Any engine (local process, cloud streaming ASR, test double) plugs in behind these contracts.

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

from dictaGraf.status import PermissionState


@dataclass(frozen=True)
class SegmentResult:
    """One recognized run of speech at a given result index."""

    index: int
    text: str
    is_final: bool = False


@dataclass(frozen=True)
class SegmentBatch:
    """Results delivered by one segments event.

    ``result_index`` is the lowest index that changed since the previous
    event; results below it are repeated only for context.
    """

    result_index: int
    results: Tuple[SegmentResult, ...] = field(default_factory=tuple)

    @classmethod
    def of(cls, *results: SegmentResult, result_index: Optional[int] = None) -> "SegmentBatch":
        if result_index is None:
            result_index = min((r.index for r in results), default=0)
        return cls(result_index=result_index, results=tuple(results))


BeginListener = Callable[[], None]
EndListener = Callable[[], None]
SegmentListener = Callable[[SegmentBatch], None]
ErrorListener = Callable[[str, str], None]


class RecognitionCapability(ABC):
    """Streaming speech-to-text capability driven by the session controller."""

    @abstractmethod
    def is_supported(self) -> bool:
        """Return True if the capability can run in this environment."""
        pass

    @abstractmethod
    def activate(self) -> None:
        """
        Request start of audio capture and transcription.

        The outcome is delivered asynchronously through the begin / error
        listeners. Implementations may raise a ``DictationError`` when the
        request cannot even be issued.
        """
        pass

    @abstractmethod
    def deactivate(self) -> None:
        """Request stop; the end listener fires once capture has ended."""
        pass

    @abstractmethod
    def add_begin_listener(self, callback: BeginListener) -> None:
        pass

    @abstractmethod
    def add_end_listener(self, callback: EndListener) -> None:
        pass

    @abstractmethod
    def add_segment_listener(self, callback: SegmentListener) -> None:
        pass

    @abstractmethod
    def add_error_listener(self, callback: ErrorListener) -> None:
        pass

    @abstractmethod
    def remove_listener(self, callback: Callable) -> None:
        """Detach a callback from every event it was registered for."""
        pass


class PermissionProbe(ABC):
    """Reports whether the user allowed microphone access."""

    @abstractmethod
    def query(self) -> PermissionState:
        pass


class CapabilityBase(RecognitionCapability):
    """Listener bookkeeping shared by concrete capabilities."""

    def __init__(self) -> None:
        self._begin_listeners: List[BeginListener] = []
        self._end_listeners: List[EndListener] = []
        self._segment_listeners: List[SegmentListener] = []
        self._error_listeners: List[ErrorListener] = []

    def add_begin_listener(self, callback: BeginListener) -> None:
        self._begin_listeners.append(callback)

    def add_end_listener(self, callback: EndListener) -> None:
        self._end_listeners.append(callback)

    def add_segment_listener(self, callback: SegmentListener) -> None:
        self._segment_listeners.append(callback)

    def add_error_listener(self, callback: ErrorListener) -> None:
        self._error_listeners.append(callback)

    def remove_listener(self, callback: Callable) -> None:
        for listeners in (
            self._begin_listeners,
            self._end_listeners,
            self._segment_listeners,
            self._error_listeners,
        ):
            try:
                listeners.remove(callback)
            except ValueError:
                pass

    # ------------------------------------------------------------------
    # Protected helpers for subclasses
    # ------------------------------------------------------------------

    def _emit_begin(self) -> None:
        for listener in list(self._begin_listeners):
            listener()

    def _emit_end(self) -> None:
        for listener in list(self._end_listeners):
            listener()

    def _emit_segments(self, batch: SegmentBatch) -> None:
        for listener in list(self._segment_listeners):
            listener(batch)

    def _emit_segment_results(self, results: Sequence[SegmentResult]) -> None:
        if results:
            self._emit_segments(SegmentBatch.of(*results))

    def _emit_error(self, code: str, message: str = "") -> None:
        for listener in list(self._error_listeners):
            listener(code, message)
