import pytest

from dictaGraf.errors import (
    ABORTED,
    AUDIO_CAPTURE,
    BAD_GRAMMAR,
    LANGUAGE_NOT_SUPPORTED,
    NETWORK,
    NO_SPEECH,
    NOT_ALLOWED,
    SERVICE_NOT_ALLOWED,
    UNSUPPORTED,
    DictationError,
    ErrorTier,
    FatalCapabilityError,
    PermissionDeniedError,
    TransientCapabilityError,
    UnsupportedError,
    classify_error,
    describe_error,
    error_code_for,
)


@pytest.mark.parametrize(
    "code,tier",
    [
        (NO_SPEECH, ErrorTier.IGNORABLE),
        (ABORTED, ErrorTier.IGNORABLE),
        (NOT_ALLOWED, ErrorTier.PERMISSION),
        (SERVICE_NOT_ALLOWED, ErrorTier.PERMISSION),
        (NETWORK, ErrorTier.FATAL),
        (AUDIO_CAPTURE, ErrorTier.FATAL),
        (LANGUAGE_NOT_SUPPORTED, ErrorTier.FATAL),
        (BAD_GRAMMAR, ErrorTier.FATAL),
        (UNSUPPORTED, ErrorTier.FATAL),
    ],
)
def test_classify_known_codes(code, tier):
    assert classify_error(code) == tier


def test_classify_normalizes_case_and_spaces():
    assert classify_error(" No-Speech ") == ErrorTier.IGNORABLE


@pytest.mark.parametrize("code", ["", None, "brand-new-error"])
def test_unknown_codes_are_fatal(code):
    assert classify_error(code) == ErrorTier.FATAL


def test_describe_error_appends_details_once():
    assert describe_error(NETWORK) == "Speech recognition failed because of a network error."
    assert describe_error(NETWORK, "timeout") == (
        "Speech recognition failed because of a network error. (timeout)"
    )
    assert describe_error("weird") == "Speech recognition error: weird"


def test_exception_codes_and_default_messages():
    assert UnsupportedError().code == UNSUPPORTED
    assert PermissionDeniedError().code == NOT_ALLOWED
    assert TransientCapabilityError().code == ABORTED
    assert FatalCapabilityError().code == NETWORK
    assert FatalCapabilityError("x", code=AUDIO_CAPTURE).code == AUDIO_CAPTURE
    assert str(PermissionDeniedError()) == describe_error(NOT_ALLOWED)
    assert isinstance(UnsupportedError(), DictationError)


def test_error_code_for_plain_exceptions():
    assert error_code_for(PermissionDeniedError("no")) == NOT_ALLOWED
    assert error_code_for(PermissionError("denied")) == NOT_ALLOWED
    assert error_code_for(RuntimeError("boom")) == AUDIO_CAPTURE
