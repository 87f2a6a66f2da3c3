"""Built-in recognition capabilities."""

from __future__ import annotations

from .process import ProcessRecognitionCapability, PulseAudioPermissionProbe

__all__ = [
    "ProcessRecognitionCapability",
    "PulseAudioPermissionProbe",
]
