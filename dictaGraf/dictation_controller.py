# ABOUTME: Continuous dictation session controller driving a streaming recognition capability.
# ABOUTME: Resumes after spontaneous terminations, classifies errors and enforces an inactivity ceiling.

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from PyQt6.QtCore import QTimer

from dictaGraf.base_controller import EnumStateController
from dictaGraf.errors import (
    NOT_ALLOWED,
    UNSUPPORTED,
    ErrorTier,
    classify_error,
    describe_error,
    error_code_for,
)
from dictaGraf.session import Session
from dictaGraf.settings_schema import DictationSettings
from dictaGraf.status import (
    TERMINAL_STOP_REASONS,
    PermissionState,
    SessionStatus,
    StopReason,
)
from dictaGraf.stt_engine import PermissionProbe, RecognitionCapability, SegmentBatch
from dictaGraf.text_processor import FormattingOptions, format_final, format_interim


class DictationSessionController(EnumStateController[SessionStatus]):
    """Owns one logical dictation session on top of an injected capability.

    All handlers run on the thread that owns the controller (the Qt event
    loop). Timer callbacks and capability callbacks always re-read the
    current session instead of relying on what was true when they were
    scheduled.
    """

    def __init__(
        self,
        capability: RecognitionCapability,
        *,
        permission_probe: Optional[PermissionProbe] = None,
        settings: Optional[DictationSettings] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._session = Session()
        super().__init__(
            initial_state=SessionStatus.IDLE,
            name="Dictation",
        )
        self._capability = capability
        self._permission_probe = permission_probe
        self._settings = settings or DictationSettings()
        self._options = FormattingOptions(
            min_sentence_length=self._settings.min_sentence_length,
            natural_pauses=self._settings.natural_pauses,
        )
        self._clock = clock
        self._permission_error: Optional[str] = None
        self._last_error_code: Optional[str] = None
        # True from an activation request until the capability reports its end.
        self._capability_engaged = False
        # A start that arrived while the previous cycle was still ending.
        self._activate_on_end = False
        self._supported = self._check_supported()
        self._attached = False
        self._attach()

    # ------------------------------------------------------------------
    # Surface contract
    # ------------------------------------------------------------------

    @property
    def capability(self) -> RecognitionCapability:
        return self._capability

    @property
    def session(self) -> Session:
        return self._session

    @property
    def status(self) -> SessionStatus:
        return self._session.status

    @property
    def stop_reason(self) -> StopReason:
        return self._session.stop_reason

    @property
    def permission_state(self) -> PermissionState:
        return self._session.permission_state

    @property
    def is_supported(self) -> bool:
        return self._supported

    @property
    def is_listening(self) -> bool:
        return self._session.status == SessionStatus.LISTENING

    @property
    def final_transcript(self) -> str:
        return self._session.committed_text

    @property
    def interim_transcript(self) -> str:
        return self._session.provisional_text

    @property
    def transcript(self) -> str:
        return " ".join(part for part in (self.final_transcript, self.interim_transcript) if part)

    @property
    def permission_error(self) -> Optional[str]:
        return self._permission_error

    @property
    def last_error_code(self) -> Optional[str]:
        return self._last_error_code

    @property
    def seconds_since_activity(self) -> Optional[float]:
        if self._session.last_activity_at is None:
            return None
        return self._clock() - self._session.last_activity_at

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def start(self) -> bool:
        """Begin a new session. Returns False when it could not be started."""
        session = self._session
        if not self._supported:
            self._last_error_code = UNSUPPORTED
            self._permission_error = describe_error(UNSUPPORTED)
            self._emit_error(UNSUPPORTED, self._permission_error)
            return False

        if session.status == SessionStatus.LISTENING:
            logging.debug("Dictation already listening")
            return True
        if session.status == SessionStatus.STOPPING:
            logging.warning("Previous dictation is still stopping; start ignored")
            return False

        if session.permission_state == PermissionState.DENIED:
            if self.request_permission() == PermissionState.DENIED:
                self._terminate(StopReason.PERMISSION_DENIED, NOT_ALLOWED, "")
                return False

        session.reset()
        self._permission_error = None
        self._last_error_code = None
        session.last_activity_at = self._clock()
        self._set_state(SessionStatus.LISTENING)
        self._arm_inactivity_timer()
        self._emit_transcript("", "")

        logging.info("Starting dictation (%s)", self._settings.language)
        if self._capability_engaged:
            logging.info("Waiting for the previous recognition to end before activating")
            self._activate_on_end = True
        else:
            self._activate()
        return self.is_listening

    def stop(self) -> None:
        """User requested stop. Safe to call repeatedly."""
        session = self._session
        if session.status != SessionStatus.LISTENING:
            logging.debug("Stop ignored while %s", session.status.value)
            return

        # Must be set before deactivating: the end handler decides on it.
        session.stop_reason = StopReason.USER_REQUESTED
        session.cancel_timers()

        if not self._capability_engaged:
            self._set_state(SessionStatus.STOPPED)
            self._emit_transcript(self.final_transcript, "")
            logging.info("Dictation stopped")
            return

        self._set_state(SessionStatus.STOPPING)
        self._emit_transcript(self.final_transcript, "")
        self._arm_stop_guard()
        if not self._safe_deactivate():
            self._capability_engaged = False
            self._finish_stopping()

    def toggle(self) -> None:
        if self.is_listening:
            self.stop()
        else:
            self.start()

    def reset_transcript(self) -> None:
        self._session.clear_transcript()
        self._emit_transcript("", "")

    def request_permission(self) -> PermissionState:
        """Ask the permission probe again and record its verdict."""
        session = self._session
        if self._permission_probe is None:
            # Without a probe the capability itself is the only check.
            session.permission_state = PermissionState.UNKNOWN
            return session.permission_state

        try:
            state = self._permission_probe.query()
        except Exception as exc:
            logging.warning("Permission probe failed: %s", exc)
            state = PermissionState.UNKNOWN

        session.permission_state = state
        if state == PermissionState.DENIED:
            self._last_error_code = NOT_ALLOWED
            self._permission_error = describe_error(NOT_ALLOWED)
        elif self._last_error_code and classify_error(self._last_error_code) == ErrorTier.PERMISSION:
            self._last_error_code = None
            self._permission_error = None
        return state

    def shutdown(self) -> None:
        """Tear the session down when the owning surface goes away."""
        session = self._session
        session.cancel_timers()
        if session.status in (SessionStatus.LISTENING, SessionStatus.STOPPING):
            session.stop_reason = StopReason.USER_REQUESTED
            self._set_state(SessionStatus.STOPPED)
            if self._capability_engaged:
                self._safe_deactivate()
        self._capability_engaged = False
        self._detach()

    # ------------------------------------------------------------------
    # Capability callbacks
    # ------------------------------------------------------------------

    def _on_session_begin(self) -> None:
        session = self._session
        self._capability_engaged = True
        session.last_result_index = -1
        session.permission_state = PermissionState.GRANTED
        self._permission_error = None

        if session.status != SessionStatus.LISTENING:
            logging.debug("Recognition began while %s; deactivating", session.status.value)
            self._safe_deactivate()

    def _on_session_end(self) -> None:
        self._capability_engaged = False
        session = self._session

        if self._activate_on_end:
            self._activate_on_end = False
            if session.status == SessionStatus.LISTENING:
                self._activate()
            return

        if session.status == SessionStatus.STOPPING:
            self._finish_stopping()
            return
        if session.status != SessionStatus.LISTENING:
            return

        if session.stop_reason != StopReason.NONE or session.inactivity_expired:
            self._set_state(SessionStatus.STOPPED)
            return

        delay = self._settings.resume_delay_ms
        logging.info("Recognition ended on its own; resuming in %d ms", delay)
        self._schedule_resume(delay)

    def _on_segments(self, batch: SegmentBatch) -> None:
        session = self._session
        if session.status not in (SessionStatus.LISTENING, SessionStatus.STOPPING):
            logging.debug("Dropping recognition results while %s", session.status.value)
            return
        if self._activate_on_end:
            logging.debug("Dropping results from the previous recognition")
            return

        finals = []
        interims = []
        for result in batch.results:
            if result.index < batch.result_index or result.index <= session.last_result_index:
                continue
            if result.is_final:
                finals.append(result.text)
                session.last_result_index = result.index
            else:
                interims.append(result.text)

        for text in finals:
            session.commit(format_final(text, self._options))

        if session.status == SessionStatus.LISTENING:
            session.last_activity_at = self._clock()
            if interims:
                session.provisional_text = format_interim(" ".join(interims))
            elif finals:
                session.provisional_text = ""
            if session.stop_reason not in TERMINAL_STOP_REASONS:
                session.stop_reason = StopReason.NONE
            self._arm_inactivity_timer()

        if finals or interims:
            self._emit_transcript(self.final_transcript, self.interim_transcript)

    def _on_error(self, code: str, message: str = "") -> None:
        tier = classify_error(code)
        session = self._session

        if tier == ErrorTier.IGNORABLE:
            logging.debug("Ignoring transient recognition error '%s'", code)
            return
        if self._activate_on_end:
            logging.debug("Ignoring error '%s' from the previous recognition", code)
            return

        if tier == ErrorTier.PERMISSION:
            session.permission_state = PermissionState.DENIED

        if session.status not in (SessionStatus.LISTENING, SessionStatus.STOPPING):
            logging.warning("Recognition error '%s' after the session ended", code)
            self._last_error_code = code
            if tier == ErrorTier.PERMISSION:
                self._permission_error = describe_error(code, message)
            return

        reason = (
            StopReason.PERMISSION_DENIED
            if tier == ErrorTier.PERMISSION
            else StopReason.FATAL_ERROR
        )
        self._terminate(reason, code, message)

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    def _on_inactivity_timeout(self) -> None:
        session = self._session
        if session.status != SessionStatus.LISTENING:
            return

        logging.info(
            "No speech for %.0f seconds; ending dictation",
            self._settings.inactivity_timeout_ms / 1000,
        )
        session.inactivity_expired = True
        session.stop_reason = StopReason.INACTIVITY_TIMEOUT
        session.cancel_timers()
        self._set_state(SessionStatus.STOPPED)
        self._emit_transcript(self.final_transcript, "")
        if self._capability_engaged:
            self._safe_deactivate()

    def _on_resume_timeout(self) -> None:
        session = self._session
        if (
            session.status != SessionStatus.LISTENING
            or session.stop_reason != StopReason.NONE
            or session.inactivity_expired
        ):
            logging.debug("Resume skipped: session is %s (%s)", session.status.value, session.stop_reason.value)
            return
        if self._capability_engaged:
            return
        logging.info("Resuming recognition")
        self._activate()

    def _on_stop_guard_timeout(self) -> None:
        if self._session.status != SessionStatus.STOPPING:
            return
        logging.warning("Recognition did not confirm the stop; forcing stopped state")
        self._capability_engaged = False
        self._finish_stopping()

    def _timer(self, attribute: str, slot: Callable[[], None]) -> QTimer:
        timer = getattr(self._session, attribute)
        if timer is None:
            timer = QTimer()
            timer.setSingleShot(True)
            timer.timeout.connect(slot)
            setattr(self._session, attribute, timer)
        return timer

    def _arm_inactivity_timer(self) -> None:
        timer = self._timer("inactivity_timer", self._on_inactivity_timeout)
        timer.start(self._settings.inactivity_timeout_ms)

    def _schedule_resume(self, delay_ms: int) -> None:
        timer = self._timer("resume_timer", self._on_resume_timeout)
        if timer.isActive():
            return
        timer.start(delay_ms)

    def _arm_stop_guard(self) -> None:
        timer = self._timer("stop_guard_timer", self._on_stop_guard_timeout)
        timer.start(self._settings.stop_timeout_ms)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _set_state(self, state: SessionStatus) -> None:
        self._session.status = state
        if state != SessionStatus.LISTENING:
            self._session.provisional_text = ""
            self._activate_on_end = False
        super()._set_state(state)

    def _activate(self) -> bool:
        self._capability_engaged = True
        try:
            self._capability.activate()
        except Exception as exc:
            self._capability_engaged = False
            logging.warning("Recognition could not be activated: %s", exc)
            code = error_code_for(exc)
            self._on_error(code, str(exc))
            if classify_error(code) == ErrorTier.IGNORABLE and self.is_listening:
                self._schedule_resume(self._settings.resume_delay_ms)
            return False
        return True

    def _safe_deactivate(self) -> bool:
        try:
            self._capability.deactivate()
        except Exception as exc:
            logging.error("Failed to deactivate recognition: %s", exc)
            return False
        return True

    def _terminate(self, reason: StopReason, code: str, message: str) -> None:
        session = self._session
        # Recorded before deactivating so a late end event cannot resume.
        session.stop_reason = reason
        session.cancel_timers()
        self._last_error_code = code
        self._permission_error = describe_error(code, message)
        self._set_state(SessionStatus.STOPPED)
        self._emit_transcript(self.final_transcript, "")
        self._emit_error(code, self._permission_error)
        if self._capability_engaged:
            self._safe_deactivate()

    def _finish_stopping(self) -> None:
        session = self._session
        if session.stop_guard_timer is not None and session.stop_guard_timer.isActive():
            session.stop_guard_timer.stop()
        self._set_state(SessionStatus.STOPPED)
        logging.info("Dictation stopped (%s)", session.stop_reason.value)

    def _check_supported(self) -> bool:
        try:
            return bool(self._capability.is_supported())
        except Exception as exc:
            logging.warning("Could not determine recognition support: %s", exc)
            return False

    def _attach(self) -> None:
        if self._attached:
            return
        capability = self._capability
        capability.add_begin_listener(self._on_session_begin)
        capability.add_end_listener(self._on_session_end)
        capability.add_segment_listener(self._on_segments)
        capability.add_error_listener(self._on_error)
        self._attached = True

    def _detach(self) -> None:
        if not self._attached:
            return
        capability = self._capability
        for callback in (
            self._on_session_begin,
            self._on_session_end,
            self._on_segments,
            self._on_error,
        ):
            capability.remove_listener(callback)
        self._attached = False
