import pytest

from dictaGraf.settings_schema import (
    DEFAULT_RECOGNIZER_COMMAND,
    DictationSettings,
    ProcessEngineSettings,
)


def test_dictation_settings_defaults():
    settings = DictationSettings()
    assert settings.language == "es-ES"
    assert settings.inactivity_timeout_ms == 180_000
    assert settings.resume_delay_ms == 300
    assert settings.stop_timeout_ms == 2000
    assert settings.min_sentence_length == 3
    assert settings.natural_pauses is False


@pytest.mark.parametrize(
    "kwargs",
    [
        {"language": ""},
        {"language": "   "},
        {"inactivity_timeout_ms": 0},
        {"resume_delay_ms": -1},
        {"stop_timeout_ms": 0},
        {"min_sentence_length": -1},
    ],
)
def test_dictation_settings_validation(kwargs):
    with pytest.raises(ValueError):
        DictationSettings(**kwargs)


def test_min_sentence_length_zero_is_allowed():
    assert DictationSettings(min_sentence_length=0).min_sentence_length == 0


def test_process_engine_settings_defaults():
    settings = ProcessEngineSettings()
    assert settings.command == DEFAULT_RECOGNIZER_COMMAND
    assert settings.poll_interval_ms == 100


def test_process_engine_settings_validation():
    with pytest.raises(ValueError, match="command"):
        ProcessEngineSettings(command=" ")
    with pytest.raises(ValueError, match="poll interval"):
        ProcessEngineSettings(poll_interval_ms=0)
