#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Command line entry point running one continuous dictation session."""

import argparse
import logging
import signal
import sys

from PyQt6.QtCore import QCoreApplication, QTimer

from dictaGraf import __version__
from dictaGraf.cli import apply_overrides, build_parser, handle_settings_commands
from dictaGraf.dictation_controller import DictationSessionController
from dictaGraf.engines.process import ProcessRecognitionCapability, PulseAudioPermissionProbe
from dictaGraf.settings import Settings
from dictaGraf.status import SessionStatus, StopReason


class TranscriptPrinter:
    """Prints committed text as it grows; provisional text is not printed."""

    def __init__(self, stream=None) -> None:
        self._stream = stream or sys.stdout
        self._printed = 0

    def __call__(self, final_text: str, interim_text: str) -> None:
        if len(final_text) < self._printed:
            # Transcript was reset.
            self._printed = 0
        new_text = final_text[self._printed:].strip()
        if new_text:
            print(new_text, file=self._stream, flush=True)
        self._printed = len(final_text)


def exit_code_for(controller: DictationSessionController) -> int:
    if controller.stop_reason in (StopReason.PERMISSION_DENIED, StopReason.FATAL_ERROR):
        return 1
    return 0


def setup_signal_handlers(controller: DictationSessionController, app: QCoreApplication) -> QTimer:
    """
    Setup signal handlers for graceful shutdown.

    Handles SIGTERM, SIGINT (Ctrl+C), and SIGHUP by setting a flag that a
    QTimer checks, so the stop runs inside the event loop.
    """
    app._should_stop = False

    def signal_handler(signum, frame):
        sig_name = signal.Signals(signum).name
        logging.info("Received signal %s, stopping dictation...", sig_name)
        app._should_stop = True

    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)
    if hasattr(signal, "SIGHUP"):
        signal.signal(signal.SIGHUP, signal_handler)

    def check_stop_flag():
        if not app._should_stop:
            return
        app._should_stop = False
        if controller.is_listening:
            controller.stop()
        elif controller.status != SessionStatus.STOPPING:
            app.exit(exit_code_for(controller))

    timer = QTimer()
    timer.timeout.connect(check_stop_flag)
    timer.start(200)
    return timer


def setup_logging(args: argparse.Namespace) -> None:
    """Configure logging based on command-line arguments."""
    if args.loglevel is not None:
        numeric_level = getattr(logging, args.loglevel.upper(), None)
    else:
        numeric_level = logging.WARNING
    if not isinstance(numeric_level, int):
        raise ValueError("Invalid log level: %s" % args.loglevel)
    logging.basicConfig(level=numeric_level, format="%(message)s")


def create_controller(settings: Settings) -> DictationSessionController:
    capability = ProcessRecognitionCapability(settings.get_engine_settings())
    return DictationSessionController(
        capability,
        permission_probe=PulseAudioPermissionProbe(),
        settings=settings.get_dictation_settings(),
    )


def run_dictation(app: QCoreApplication, controller: DictationSessionController) -> int:
    """Run one session inside the event loop and return the process exit code."""
    controller.add_transcript_listener(TranscriptPrinter())
    controller.add_error_listener(lambda code, message: print(f"✗ {message}", file=sys.stderr))

    def on_state(state: SessionStatus) -> None:
        if state == SessionStatus.STOPPED:
            logging.info("Dictation ended: %s", controller.stop_reason.value)
            QTimer.singleShot(0, lambda: app.exit(exit_code_for(controller)))

    controller.add_state_listener(on_state)

    if not controller.is_supported:
        print(
            f"✗ Recognizer command not available: {controller_command(controller)}",
            file=sys.stderr,
        )
        return 1

    signal_timer = setup_signal_handlers(controller, app)
    if not controller.start():
        signal_timer.stop()
        return 1

    print("Listening... press Ctrl+C to stop", file=sys.stderr)
    exit_code = app.exec()
    controller.shutdown()
    signal_timer.stop()
    return exit_code


def controller_command(controller: DictationSessionController) -> str:
    command = getattr(controller.capability, "command", None)
    return " ".join(command) if command else "unknown"


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()

    if args.version:
        print(f"DictaGraf {__version__}")
        sys.exit(0)

    setup_logging(args)

    app = QCoreApplication(sys.argv)
    app.setApplicationName("DictaGraf")

    settings = Settings()
    result = handle_settings_commands(args, settings)
    if result is None:
        settings.load()
        result = apply_overrides(args, settings)
    if result is not None:
        if result.stdout:
            print(result.stdout, end="")
        if result.stderr:
            print(result.stderr, end="", file=sys.stderr)
        sys.exit(result.code)

    try:
        controller = create_controller(settings)
    except ValueError as exc:
        print(f"✗ Invalid settings: {exc}", file=sys.stderr)
        sys.exit(2)

    sys.exit(run_dictation(app, controller))


if __name__ == "__main__":
    main()
