# ABOUTME: Rule based formatting of dictated Spanish text (capitalization, punctuation, commas).
# ABOUTME: Stateless; final segments get the full pipeline, interim segments a cheap cleanup.

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Pattern, Set

TERMINAL_PUNCTUATION = ".!?…"
PAUSE_PUNCTUATION = ".,;:!?¿¡…"
OPENING_MARKS = "¿¡"

# Accented interrogatives are questions wherever they appear.
QUESTION_WORDS = (
    "qué", "cuál", "cuáles", "cuándo", "dónde", "adónde", "quién", "quiénes",
    "cómo", "cuánto", "cuánta", "cuántos", "cuántas", "por qué",
)

# Recognizers often drop the accent; only trust the bare form at the start.
QUESTION_STARTERS = QUESTION_WORDS + (
    "que", "cual", "cuales", "donde", "adonde", "quien", "quienes",
    "cuanto", "cuanta", "cuantos", "cuantas", "por que", "acaso",
)

EXCLAMATION_WORDS = (
    "wow", "genial", "excelente", "perfecto", "increíble", "increible",
    "fantástico", "fantastico", "estupendo", "bravo",
)

VERB_TOKENS = (
    "es", "está", "son", "están", "tiene", "tienen", "hace", "hacen", "dice",
    "dicen", "va", "van", "viene", "vienen", "fue", "fueron", "será", "serán",
)

CLOSING_PHRASES = (
    "fin", "final", "terminado", "listo", "hecho", "completado",
    "eso es todo", "eso es", "terminé", "acabé",
)

COMMA_CONNECTORS = (
    "pero", "sin embargo", "aunque", "además", "también", "porque", "cuando",
    "donde", "como", "mientras", "mientras que", "después", "antes",
    "por lo tanto", "en cambio",
)

PAUSE_WORDS = ("y", "e", "o", "u", "pero", "entonces")


@dataclass(frozen=True)
class FormattingOptions:
    min_sentence_length: int = 3
    natural_pauses: bool = False


DEFAULT_OPTIONS = FormattingOptions()


def _phrase_pattern(phrases: Iterable[str], *, anchor: str = "") -> Pattern[str]:
    alternatives = sorted(
        {r"\s+".join(re.escape(word) for word in phrase.split()) for phrase in phrases},
        key=len,
        reverse=True,
    )
    body = r"\b(?:" + "|".join(alternatives) + r")\b"
    if anchor == "start":
        body = r"^[" + OPENING_MARKS + r"\s]*" + body
    elif anchor == "end":
        body = body + r"$"
    return re.compile(body, re.IGNORECASE)


_QUESTION_ANYWHERE = _phrase_pattern(QUESTION_WORDS)
_QUESTION_START = _phrase_pattern(QUESTION_STARTERS, anchor="start")
_EXCLAMATION = _phrase_pattern(EXCLAMATION_WORDS)
_VERB = _phrase_pattern(VERB_TOKENS)
_CLOSING = _phrase_pattern(CLOSING_PHRASES, anchor="end")
_CONNECTORS = [_phrase_pattern([connector]) for connector in dict.fromkeys(COMMA_CONNECTORS)]
_PAUSES = [_phrase_pattern([word]) for word in PAUSE_WORDS]

_FIRST_LETTER = re.compile(r"^([" + OPENING_MARKS + r"\"'«(\s]*)([^\W\d_])")
_AFTER_TERMINAL = re.compile(r"([" + TERMINAL_PUNCTUATION + r"])\s*([^\W\d_])")
_AFTER_COLON = re.compile(r":\s+([^\W\d_])")
_WHITESPACE = re.compile(r"\s+")
_SPACE_BEFORE_MARK = re.compile(r"\s+([,;:" + TERMINAL_PUNCTUATION + r"])")
_COMMA_WITHOUT_SPACE = re.compile(r",(?=[^\s\d])")
_TERMINAL_WITHOUT_SPACE = re.compile(
    r"([" + TERMINAL_PUNCTUATION + r"])(?=[^\W\d_]|[" + OPENING_MARKS + r"])"
)


def capitalize_first(text: str) -> str:
    """Uppercase the first letter, skipping opening marks and quotes."""
    return _FIRST_LETTER.sub(lambda m: m.group(1) + m.group(2).upper(), text, count=1)


def ends_with_terminal(text: str) -> bool:
    return bool(text) and text[-1] in TERMINAL_PUNCTUATION


def is_question(text: str) -> bool:
    stripped = text.lstrip()
    if stripped.startswith("¿"):
        return True
    if stripped.startswith("¡"):
        return False
    return bool(_QUESTION_START.search(text) or _QUESTION_ANYWHERE.search(text))


def is_exclamation(text: str) -> bool:
    if text.lstrip().startswith("¡"):
        return True
    return bool(_EXCLAMATION.search(text))


def looks_like_sentence(text: str, min_length: int) -> bool:
    return len(text) > min_length or bool(_VERB.search(text)) or bool(_CLOSING.search(text))


def _comma_positions(text: str, patterns: Iterable[Pattern[str]], min_context: int = 0) -> Set[int]:
    """Offsets (in ``text``) where a comma belongs before a matched word.

    Every match is judged against the unmodified text, so overlapping
    connectors ("mientras" / "mientras que") resolve to the same offset.
    """
    positions: Set[int] = set()
    for pattern in patterns:
        for match in pattern.finditer(text):
            before = text[: match.start()].rstrip()
            if not before or before[-1] in PAUSE_PUNCTUATION:
                continue
            if min_context:
                after = text[match.end():].strip()
                if len(before) <= min_context or len(after) <= min_context:
                    continue
            positions.add(len(before))
    return positions


def _insert_commas(text: str, positions: Set[int]) -> str:
    if not positions:
        return text
    pieces: List[str] = []
    last = 0
    for position in sorted(positions):
        pieces.append(text[last:position])
        pieces.append(",")
        last = position
    pieces.append(text[last:])
    return "".join(pieces)


def insert_connector_commas(text: str) -> str:
    return _insert_commas(text, _comma_positions(text, _CONNECTORS))


def detect_natural_pauses(text: str) -> str:
    """Add commas before coordinating words that usually mark a spoken pause."""
    if not text or len(text) < 5:
        return text
    return _insert_commas(text, _comma_positions(text, _PAUSES, min_context=3))


def recapitalize(text: str) -> str:
    text = _AFTER_TERMINAL.sub(lambda m: f"{m.group(1)} {m.group(2).upper()}", text)
    return _AFTER_COLON.sub(lambda m: f": {m.group(1).upper()}", text)


def normalize_whitespace(text: str) -> str:
    text = _WHITESPACE.sub(" ", text)
    text = _SPACE_BEFORE_MARK.sub(r"\1", text)
    text = _COMMA_WITHOUT_SPACE.sub(", ", text)
    text = _TERMINAL_WITHOUT_SPACE.sub(r"\1 ", text)
    return text.strip()


def format_final(text: str, options: FormattingOptions = DEFAULT_OPTIONS) -> str:
    """Format a finalized segment into a punctuated sentence.

    Applied once per final run; committed text is never passed back in.
    Returns the trimmed input if any rule fails.
    """
    if not isinstance(text, str):
        return ""
    processed = text.strip()
    if not processed:
        return processed

    try:
        processed = capitalize_first(processed)

        if not ends_with_terminal(processed):
            if is_question(processed):
                processed += "?"
            elif is_exclamation(processed):
                processed += "!"
            elif looks_like_sentence(processed, options.min_sentence_length):
                processed += "."

        positions = _comma_positions(processed, _CONNECTORS)
        if options.natural_pauses:
            positions |= _comma_positions(processed, _PAUSES, min_context=3)
        processed = _insert_commas(processed, positions)

        processed = recapitalize(processed)
        processed = normalize_whitespace(processed)
    except Exception as exc:  # pragma: no cover
        logging.warning("Formatting failed, keeping original segment: %s", exc)
        return text.strip()

    return processed


def format_interim(text: str) -> str:
    """Cheap cleanup for provisional text: trim, capitalize, collapse spaces."""
    if not isinstance(text, str):
        return ""
    processed = text.strip()
    if not processed:
        return processed

    try:
        processed = capitalize_first(processed)
        return _WHITESPACE.sub(" ", processed)
    except Exception:  # pragma: no cover
        return text.strip()
