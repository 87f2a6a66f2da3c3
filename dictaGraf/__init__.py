"""Continuous dictation session manager with Spanish transcript formatting."""

__version__ = "0.1.0"
