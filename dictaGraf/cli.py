from __future__ import annotations

import argparse
from dataclasses import dataclass
from typing import Optional

from dictaGraf.settings import Settings


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Continuous dictation: print a punctuated transcript while you speak."
    )
    parser.add_argument("-l", "--log", help="specify the log level", dest="loglevel")
    parser.add_argument("--version", help="show version and exit", action="store_true")
    parser.add_argument(
        "--command",
        help="recognizer command for this session only",
        metavar="COMMAND",
    )
    parser.add_argument(
        "--inactivity-timeout",
        help="end dictation after this many seconds without speech",
        type=float,
        metavar="SECONDS",
    )
    parser.add_argument(
        "--natural-pauses",
        help="add commas before y/o/pero/entonces pauses",
        action="store_true",
    )
    parser.add_argument("--show-settings", help="print the stored settings and exit", action="store_true")
    return parser


@dataclass
class CliExit:
    code: int
    stdout: str = ""
    stderr: str = ""


def handle_settings_commands(args, settings: Settings) -> Optional[CliExit]:
    """Handle CLI options that only inspect the configuration."""
    if not getattr(args, "show_settings", False):
        return None

    settings.load()
    lines = [
        "DictaGraf settings:",
        "-" * 80,
        f"  Language: {settings.language}",
        f"  Recognizer command: {settings.recognizerCommand}",
        f"  Inactivity timeout: {settings.inactivityTimeoutMs / 1000:g} s",
        f"  Resume delay: {settings.resumeDelayMs} ms",
        f"  Stop timeout: {settings.stopTimeoutMs} ms",
        f"  Minimum sentence length: {settings.minSentenceLength}",
        f"  Natural pause commas: {'yes' if settings.naturalPauses else 'no'}",
        "",
    ]
    return CliExit(code=0, stdout="\n".join(lines) + "\n")


def apply_overrides(args, settings: Settings) -> Optional[CliExit]:
    """Apply per-run overrides on top of the loaded settings (never saved)."""
    command = getattr(args, "command", None)
    if command is not None:
        if not command.strip():
            return CliExit(code=2, stderr="✗ Recognizer command must not be empty\n")
        settings.recognizerCommand = command

    timeout = getattr(args, "inactivity_timeout", None)
    if timeout is not None:
        if timeout <= 0:
            return CliExit(code=2, stderr=f"✗ Invalid inactivity timeout: {timeout}\n")
        settings.inactivityTimeoutMs = int(timeout * 1000)

    if getattr(args, "natural_pauses", False):
        settings.naturalPauses = True

    return None
