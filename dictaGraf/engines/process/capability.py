# ABOUTME: Recognition capability backed by a local recognizer process writing text to stdout.
# ABOUTME: Plain lines become final segments; vosk style JSON lines carry partial and final text.

from __future__ import annotations

import json
import logging
import select
import shlex
import shutil
from subprocess import DEVNULL, PIPE, Popen
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from PyQt6.QtCore import QTimer

from dictaGraf.errors import (
    AUDIO_CAPTURE,
    FatalCapabilityError,
    PermissionDeniedError,
    UnsupportedError,
)
from dictaGraf.settings_schema import ProcessEngineSettings
from dictaGraf.stt_engine import CapabilityBase, SegmentResult


class ProcessRecognitionCapability(CapabilityBase):
    """Launch a recognizer command and turn its output into segment events.

    The process ending on its own is reported as a session end, which the
    session controller treats as a spontaneous termination.
    """

    def __init__(
        self,
        settings: Optional[ProcessEngineSettings] = None,
        *,
        process_factory: Optional[Callable[[Sequence[str], Optional[Dict[str, str]]], Popen]] = None,
        select_fn: Optional[
            Callable[[Sequence, Sequence, Sequence, float], Tuple[Sequence, Sequence, Sequence]]
        ] = None,
        which_fn: Callable[[str], Optional[str]] = shutil.which,
        env: Optional[Dict[str, str]] = None,
    ) -> None:
        super().__init__()
        self._settings = settings or ProcessEngineSettings()
        self._command: List[str] = shlex.split(self._settings.command)
        self._process_factory = process_factory or self._default_factory
        self._select = select_fn or select.select
        self._which = which_fn
        self._env = env
        self._process: Optional[Popen] = None
        self._poll_timer: Optional[QTimer] = None
        self._stop_requested = False
        self._result_index = 0

    @property
    def command(self) -> List[str]:
        return list(self._command)

    def is_supported(self) -> bool:
        return bool(self._command) and self._which(self._command[0]) is not None

    def is_running(self) -> bool:
        return self._process is not None and self._process.poll() is None

    def activate(self) -> None:
        if self.is_running():
            logging.warning("Recognizer process is already running")
            return

        logging.info("[Recognizer] Starting with command: %s", " ".join(self._command))
        try:
            process = self._process_factory(list(self._command), self._env)
        except FileNotFoundError as exc:
            raise UnsupportedError(f"Recognizer not found: {exc}") from exc
        except PermissionError as exc:
            raise PermissionDeniedError(f"Recognizer not executable: {exc}") from exc
        except OSError as exc:
            raise FatalCapabilityError(f"Recognizer failed to start: {exc}", code=AUDIO_CAPTURE) from exc

        self._process = process
        self._stop_requested = False
        self._result_index = 0
        self._start_polling()
        self._emit_begin()

    def deactivate(self) -> None:
        if not self.is_running():
            return

        self._stop_requested = True
        try:
            self._process.terminate()
        except Exception as exc:
            logging.error("Failed to terminate recognizer process: %s", exc)
            raise

    def poll(self) -> None:
        if not self._process:
            return

        stdout = getattr(self._process, "stdout", None)
        if stdout:
            try:
                while True:
                    ready = self._select([stdout], [], [], 0)[0]
                    if not ready:
                        break
                    line = stdout.readline()
                    if not line:
                        break
                    line = line.strip()
                    if not line:
                        continue
                    self.handle_line(line)
            except (OSError, ValueError, TypeError) as exc:
                logging.debug("Error while reading recognizer output: %s", exc)

        if self._process and self._process.poll() is not None:
            return_code = self._process.returncode or 0
            if stdout:
                try:
                    stdout.close()
                except Exception:
                    pass
            self._process = None
            self._stop_polling()
            if return_code != 0 and not self._stop_requested:
                self._emit_error(AUDIO_CAPTURE, f"recognizer exited with code {return_code}")
            self._stop_requested = False
            self._emit_end()

    def handle_line(self, line: str) -> None:
        """Translate one line of recognizer output into a segment event."""
        if line.startswith("{"):
            try:
                data = json.loads(line)
            except json.JSONDecodeError:
                data = None
            if isinstance(data, dict):
                self._handle_json(data)
                return
        self._emit_final(line)

    def _handle_json(self, data: dict) -> None:
        text = data.get("text")
        if isinstance(text, str):
            if text.strip():
                self._emit_final(text)
            return
        partial = data.get("partial")
        if isinstance(partial, str) and partial.strip():
            self._emit_segment_results(
                [SegmentResult(index=self._result_index, text=partial, is_final=False)]
            )

    def _emit_final(self, text: str) -> None:
        index = self._result_index
        self._result_index += 1
        self._emit_segment_results([SegmentResult(index=index, text=text, is_final=True)])

    def _start_polling(self) -> None:
        if self._poll_timer is None:
            self._poll_timer = QTimer()
            self._poll_timer.timeout.connect(self.poll)
        self._poll_timer.start(self._settings.poll_interval_ms)

    def _stop_polling(self) -> None:
        if self._poll_timer is not None and self._poll_timer.isActive():
            self._poll_timer.stop()

    @staticmethod
    def _default_factory(command: Sequence[str], env: Optional[Dict[str, str]]) -> Popen:
        return Popen(
            list(command),
            env=env,
            stdout=PIPE,
            stderr=DEVNULL,
            text=True,
            bufsize=1,
        )
