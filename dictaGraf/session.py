# ABOUTME: State of one logical dictation session, including the timers it owns.
# ABOUTME: Timers live here so a reset can never leak one into the next session.

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from PyQt6.QtCore import QTimer

from dictaGraf.status import PermissionState, SessionStatus, StopReason


def _cancel(timer: Optional[QTimer]) -> None:
    if timer is not None and timer.isActive():
        timer.stop()


@dataclass
class Session:
    status: SessionStatus = SessionStatus.IDLE
    committed_segments: List[str] = field(default_factory=list)
    provisional_text: str = ""
    last_activity_at: Optional[float] = None
    stop_reason: StopReason = StopReason.NONE
    permission_state: PermissionState = PermissionState.UNKNOWN
    # Highest result index already committed in the current capability cycle.
    last_result_index: int = -1
    inactivity_expired: bool = False

    inactivity_timer: Optional[QTimer] = None
    resume_timer: Optional[QTimer] = None
    stop_guard_timer: Optional[QTimer] = None

    @property
    def committed_text(self) -> str:
        return " ".join(self.committed_segments)

    def commit(self, segment: str) -> None:
        if segment:
            self.committed_segments.append(segment)

    def clear_transcript(self) -> None:
        self.committed_segments = []
        self.provisional_text = ""

    def cancel_timers(self) -> None:
        _cancel(self.inactivity_timer)
        _cancel(self.resume_timer)
        _cancel(self.stop_guard_timer)

    def reset(self) -> None:
        """Return every field to its initial value, keeping the permission verdict."""
        self.cancel_timers()
        self.status = SessionStatus.IDLE
        self.clear_transcript()
        self.last_activity_at = None
        self.stop_reason = StopReason.NONE
        self.last_result_index = -1
        self.inactivity_expired = False
