# ABOUTME: Microphone permission probe backed by PulseAudio / PipeWire source listing.
# ABOUTME: No capture source means dictation cannot be granted; a missing tool means unknown.

from __future__ import annotations

import logging
import shutil
from subprocess import SubprocessError, run
from typing import Callable, List, Optional

from dictaGraf.status import PermissionState
from dictaGraf.stt_engine import PermissionProbe


def parse_short_sources(output: str) -> List[str]:
    """Return capture source names from ``pactl list sources short``, skipping monitors."""
    sources: List[str] = []
    for line in output.splitlines():
        parts = line.split()
        if len(parts) >= 2 and not parts[1].endswith(".monitor"):
            sources.append(parts[1])
    return sources


class PulseAudioPermissionProbe(PermissionProbe):
    def __init__(
        self,
        *,
        run_fn: Optional[Callable] = None,
        which_fn: Callable[[str], Optional[str]] = shutil.which,
    ) -> None:
        self._run = run_fn or run
        self._which = which_fn

    def query(self) -> PermissionState:
        if self._which("pactl") is None:
            logging.debug("pactl not found; microphone permission unknown")
            return PermissionState.UNKNOWN

        try:
            result = self._run(
                ["pactl", "list", "sources", "short"],
                capture_output=True,
                text=True,
                timeout=5,
            )
        except (OSError, SubprocessError) as exc:
            logging.debug("pactl short listing failed: %s", exc)
            return PermissionState.UNKNOWN

        if result.returncode != 0:
            logging.debug("pactl exited with code %s", result.returncode)
            return PermissionState.UNKNOWN

        sources = parse_short_sources(result.stdout or "")
        if not sources:
            logging.warning("No audio capture source available")
            return PermissionState.DENIED
        return PermissionState.GRANTED
