# Centralized test helpers and fake capabilities
from __future__ import annotations

from typing import Callable, List, Optional

from dictaGraf.status import PermissionState
from dictaGraf.stt_engine import CapabilityBase, PermissionProbe, SegmentBatch, SegmentResult


class FakeCapability(CapabilityBase):
    """Scriptable capability; events are fired explicitly by the test."""

    def __init__(self, supported: bool = True) -> None:
        super().__init__()
        self.supported = supported
        self.active = False
        self.activate_calls = 0
        self.deactivate_calls = 0
        self.activate_error: Optional[Exception] = None
        self.reject_when_active = False
        self.deactivate_error: Optional[Exception] = None
        self.begin_on_activate = True
        self.end_on_deactivate = True
        self.on_deactivate: Optional[Callable[[], None]] = None

    def is_supported(self) -> bool:
        return self.supported

    def activate(self) -> None:
        self.activate_calls += 1
        if self.reject_when_active and self.active:
            raise RuntimeError("recognition has already started")
        if self.activate_error is not None:
            raise self.activate_error
        self.active = True
        if self.begin_on_activate:
            self._emit_begin()

    def deactivate(self) -> None:
        self.deactivate_calls += 1
        if self.on_deactivate is not None:
            self.on_deactivate()
        if self.deactivate_error is not None:
            raise self.deactivate_error
        if self.active and self.end_on_deactivate:
            self.end()

    # Test drivers -------------------------------------------------------

    def begin(self) -> None:
        self.active = True
        self._emit_begin()

    def end(self) -> None:
        self.active = False
        self._emit_end()

    def final(self, index: int, text: str) -> None:
        self._emit_segments(SegmentBatch.of(SegmentResult(index, text, is_final=True)))

    def interim(self, index: int, text: str) -> None:
        self._emit_segments(SegmentBatch.of(SegmentResult(index, text, is_final=False)))

    def batch(self, batch: SegmentBatch) -> None:
        self._emit_segments(batch)

    def error(self, code: str, message: str = "") -> None:
        self._emit_error(code, message)

    def listener_count(self) -> int:
        return (
            len(self._begin_listeners)
            + len(self._end_listeners)
            + len(self._segment_listeners)
            + len(self._error_listeners)
        )


class FakePermissionProbe(PermissionProbe):
    def __init__(self, *states: PermissionState) -> None:
        self._states: List[PermissionState] = list(states) or [PermissionState.GRANTED]
        self.calls = 0

    def query(self) -> PermissionState:
        self.calls += 1
        if len(self._states) > 1:
            return self._states.pop(0)
        return self._states[0]


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds
