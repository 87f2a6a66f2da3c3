import io
import os
import subprocess

import pytest
from PyQt6.QtCore import QCoreApplication

from dictaGraf.dictation_controller import DictationSessionController
from dictaGraf.engines.process import ProcessRecognitionCapability, PulseAudioPermissionProbe
from dictaGraf.engines.process.permission import parse_short_sources
from dictaGraf.errors import (
    AUDIO_CAPTURE,
    FatalCapabilityError,
    PermissionDeniedError,
    UnsupportedError,
)
from dictaGraf.settings_schema import ProcessEngineSettings
from dictaGraf.status import PermissionState, SessionStatus, StopReason


@pytest.fixture(scope="module", autouse=True)
def qt_app():
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication([])
    yield app


class FakeProcess:
    def __init__(self, output_lines, return_code=0):
        content = "\n".join(output_lines)
        if content and not content.endswith("\n"):
            content += "\n"
        self.stdout = io.StringIO(content)
        self._return_code = return_code
        self.returncode = None
        self.terminated = False

    def poll(self):
        return self.returncode

    def finish(self):
        self.returncode = self._return_code

    def terminate(self):
        self.terminated = True
        self.returncode = -15


class SelectStub:
    def __call__(self, rlist, wlist, xlist, timeout):
        stdout = rlist[0]
        current_pos = stdout.tell()
        stdout.seek(0, io.SEEK_END)
        end_pos = stdout.tell()
        stdout.seek(current_pos)
        if current_pos < end_pos:
            return (rlist, [], [])
        return ([], [], [])


class Recorder:
    def __init__(self, capability):
        self.events = []
        capability.add_begin_listener(lambda: self.events.append(("begin",)))
        capability.add_end_listener(lambda: self.events.append(("end",)))
        capability.add_segment_listener(
            lambda batch: self.events.extend(
                ("final" if r.is_final else "interim", r.index, r.text) for r in batch.results
            )
        )
        capability.add_error_listener(lambda code, message: self.events.append(("error", code)))


def make_capability(process, command="recognizer --stdout"):
    commands = []

    def factory(cmd, env):
        commands.append(cmd)
        return process

    capability = ProcessRecognitionCapability(
        ProcessEngineSettings(command=command),
        process_factory=factory,
        select_fn=SelectStub(),
        which_fn=lambda name: f"/usr/bin/{name}",
    )
    return capability, commands


def test_command_is_split_and_supported():
    capability, _ = make_capability(FakeProcess([]), command="nerd-dictation begin --output 'STDOUT'")
    assert capability.command == ["nerd-dictation", "begin", "--output", "STDOUT"]
    assert capability.is_supported()


def test_missing_binary_is_unsupported():
    capability = ProcessRecognitionCapability(which_fn=lambda name: None)
    assert capability.is_supported() is False


def test_plain_lines_become_final_segments():
    process = FakeProcess(["hola", "", "que tal"])
    capability, commands = make_capability(process)
    recorder = Recorder(capability)

    capability.activate()
    capability.poll()

    assert commands == [["recognizer", "--stdout"]]
    assert recorder.events == [
        ("begin",),
        ("final", 0, "hola"),
        ("final", 1, "que tal"),
    ]
    assert capability.is_running()


def test_json_partial_and_text_lines():
    process = FakeProcess(
        [
            '{"partial": "hola"}',
            '{"partial": "hola mun"}',
            '{"text": "hola mundo"}',
            '{"partial": ""}',
            '{"text": ""}',
            '{"partial": "adiós"}',
        ]
    )
    capability, _ = make_capability(process)
    recorder = Recorder(capability)

    capability.activate()
    capability.poll()

    assert recorder.events[1:] == [
        ("interim", 0, "hola"),
        ("interim", 0, "hola mun"),
        ("final", 0, "hola mundo"),
        ("interim", 1, "adiós"),
    ]


def test_broken_json_is_treated_as_text():
    capability, _ = make_capability(FakeProcess(["{no es json"]))
    recorder = Recorder(capability)

    capability.activate()
    capability.poll()

    assert recorder.events[-1] == ("final", 0, "{no es json")


def test_clean_exit_reports_end_only():
    process = FakeProcess(["adiós"], return_code=0)
    capability, _ = make_capability(process)
    recorder = Recorder(capability)

    capability.activate()
    process.finish()
    capability.poll()

    assert recorder.events == [("begin",), ("final", 0, "adiós"), ("end",)]
    assert not capability.is_running()


def test_crash_reports_error_before_end():
    process = FakeProcess([], return_code=3)
    capability, _ = make_capability(process)
    recorder = Recorder(capability)

    capability.activate()
    process.finish()
    capability.poll()

    assert recorder.events == [("begin",), ("error", AUDIO_CAPTURE), ("end",)]


def test_deactivate_terminates_without_error():
    process = FakeProcess([])
    capability, _ = make_capability(process)
    recorder = Recorder(capability)

    capability.activate()
    capability.deactivate()
    capability.poll()

    assert process.terminated
    assert recorder.events == [("begin",), ("end",)]


def test_deactivate_when_idle_is_noop():
    capability, _ = make_capability(FakeProcess([]))
    capability.deactivate()


@pytest.mark.parametrize(
    "exc,expected",
    [
        (FileNotFoundError("missing"), UnsupportedError),
        (PermissionError("denied"), PermissionDeniedError),
        (OSError("broken"), FatalCapabilityError),
    ],
)
def test_spawn_failures_raise_dictation_errors(exc, expected):
    def factory(cmd, env):
        raise exc

    capability = ProcessRecognitionCapability(
        process_factory=factory,
        select_fn=SelectStub(),
        which_fn=lambda name: name,
    )

    with pytest.raises(expected):
        capability.activate()
    assert not capability.is_running()


def test_controller_resumes_after_process_exit():
    processes = [FakeProcess(["hola"]), FakeProcess(["mundo"])]
    spawned = []

    def factory(cmd, env):
        process = processes[len(spawned)]
        spawned.append(process)
        return process

    capability = ProcessRecognitionCapability(
        process_factory=factory,
        select_fn=SelectStub(),
        which_fn=lambda name: name,
    )
    controller = DictationSessionController(capability)

    assert controller.start()
    capability.poll()
    spawned[0].finish()
    capability.poll()
    assert controller.status == SessionStatus.LISTENING
    assert controller.session.resume_timer.isActive()

    controller._on_resume_timeout()
    capability.poll()
    assert controller.final_transcript == "Hola. Mundo."

    controller.stop()
    capability.poll()
    assert controller.status == SessionStatus.STOPPED
    assert controller.stop_reason == StopReason.USER_REQUESTED
    assert len(spawned) == 2


def test_parse_short_sources_skips_monitors():
    output = (
        "0\talsa_output.pci.analog-stereo.monitor\tmodule-alsa-card.c\ts16le 2ch 44100Hz\tSUSPENDED\n"
        "1\talsa_input.pci.analog-stereo\tmodule-alsa-card.c\ts16le 2ch 44100Hz\tRUNNING\n"
    )
    assert parse_short_sources(output) == ["alsa_input.pci.analog-stereo"]


def _probe(stdout="", returncode=0, which=True, error=None):
    def run_fn(args, **kwargs):
        if error is not None:
            raise error
        return subprocess.CompletedProcess(args, returncode, stdout=stdout, stderr="")

    return PulseAudioPermissionProbe(
        run_fn=run_fn,
        which_fn=lambda name: f"/usr/bin/{name}" if which else None,
    )


def test_probe_granted_with_capture_source():
    assert _probe("1\talsa_input.usb\tmodule\ts16le\tIDLE\n").query() == PermissionState.GRANTED


def test_probe_denied_without_capture_source():
    assert _probe("0\tsink.monitor\tmodule\ts16le\tIDLE\n").query() == PermissionState.DENIED


@pytest.mark.parametrize(
    "kwargs",
    [
        {"which": False},
        {"returncode": 1},
        {"error": OSError("boom")},
        {"error": subprocess.TimeoutExpired("pactl", 5)},
    ],
)
def test_probe_unknown_when_pactl_unusable(kwargs):
    assert _probe(**kwargs).query() == PermissionState.UNKNOWN
