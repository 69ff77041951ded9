"""Cloze markup construction for generated sentences.

Only the single-deletion Anki dialect is handled::

    {{c1::answer}}
    {{c1::answer::hint}}

``compose`` turns a model sentence into a sentence carrying exactly one
``c1`` deletion around the target word. Markup the model already emitted
is normalized first, the target is then located through an ordered list of
match strategies, and finally the hint is merged into the span.
"""

from typing import Callable, Optional, Tuple

import structlog

CLOZE_OPEN = "{{c1::"
CLOZE_CLOSE = "}}"
HINT_SEPARATOR = "::"

log = structlog.get_logger()

Span = Tuple[int, int]


def _tag_start(text: str, index: int) -> bool:
    """Whether a ``{``-run at ``index`` opens a cloze tag (``{c``, digits, ``::``)."""
    cursor = index
    while cursor < len(text) and text[cursor] == "{":
        cursor += 1

    if cursor >= len(text) or text[cursor] not in "cC":
        return False

    cursor += 1
    while cursor < len(text) and text[cursor] in "0123456789":
        cursor += 1

    return text[cursor:cursor + 2] == HINT_SEPARATOR


def _span_end(text: str, start: int) -> Optional[int]:
    """Index just past the brace that brings depth back to zero, or None."""
    depth = 0
    for cursor in range(start, len(text)):
        char = text[cursor]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return cursor + 1
    return None


def _fold(text: str, fold: Callable[[str], str]) -> str:
    return "".join(fold(char) for char in text)


def _wraps_word(span: str, word: str) -> bool:
    """Whether ``span`` is a well-formed ``{{c1::...}}`` whose answer is ``word``."""
    if not (span.startswith(CLOZE_OPEN) and span.endswith(CLOZE_CLOSE)):
        return False
    interior = span[len(CLOZE_OPEN):-len(CLOZE_CLOSE)]
    if "{" in interior or "}" in interior:
        return False

    answer = interior.split(HINT_SEPARATOR, 1)[0]
    return (answer == word
            or _fold(answer, str.lower) == _fold(word, str.lower)
            or _fold(answer, str.casefold) == _fold(word, str.casefold))


def normalize_existing_markup(sentence: str, word: str) -> str:
    """Replace cloze spans the model emitted with the plain target word.

    The first span already written as ``{{c1::word}}`` (or ``{{c1::word::hint}}``,
    compared case-insensitively) is kept as it is; every other span becomes
    ``word``. If a span opens and never closes the sentence is returned
    untouched.
    """
    pieces = []
    index = 0
    kept_target = False

    while index < len(sentence):
        if sentence[index] == "{" and _tag_start(sentence, index):
            end = _span_end(sentence, index)
            if end is None:
                log.warning(
                    "Unclosed cloze markup in model sentence, normalization skipped",
                    word=word,
                    sentence=sentence,
                )
                return sentence

            span = sentence[index:end]
            if not kept_target and _wraps_word(span, word):
                pieces.append(span)
                kept_target = True
            else:
                pieces.append(word)
            index = end
            continue

        pieces.append(sentence[index])
        index += 1

    return "".join(pieces)


def find_exact(text: str, word: str) -> Optional[Span]:
    start = text.find(word)
    if start < 0:
        return None
    return start, start + len(word)


def _find_folded(text: str, word: str, fold: Callable[[str], str]) -> Optional[Span]:
    # Fold one character at a time and remember where each folded character
    # came from, so the match maps back onto whole characters of ``text``
    # even when folding changes length (e.g. "ß" -> "ss").
    folded = []
    origin = []
    for position, char in enumerate(text):
        for folded_char in fold(char):
            folded.append(folded_char)
            origin.append(position)

    needle = _fold(word, fold)
    if not needle:
        return None

    start = "".join(folded).find(needle)
    if start < 0:
        return None
    return origin[start], origin[start + len(needle) - 1] + 1


def find_lowercase(text: str, word: str) -> Optional[Span]:
    return _find_folded(text, word, str.lower)


def find_casefold(text: str, word: str) -> Optional[Span]:
    return _find_folded(text, word, str.casefold)


# Tried in order; the first strategy that finds the word wins.
MATCH_STRATEGIES = (
    ("exact", find_exact),
    ("lowercase", find_lowercase),
    ("casefold", find_casefold),
)


def wrap_target(sentence: str, word: str) -> Optional[str]:
    """Wrap the first occurrence of ``word`` in ``{{c1::...}}``.

    Sentences that already carry a ``{{c1::`` span are returned as they are.
    The wrapped text is taken from ``sentence`` so its original casing is
    preserved. Returns None when the word cannot be located.
    """
    if CLOZE_OPEN in sentence:
        return sentence

    if not word:
        return None

    for name, strategy in MATCH_STRATEGIES:
        span = strategy(sentence, word)
        if span is None:
            continue
        start, end = span
        log.debug("Cloze target located", word=word, strategy=name)
        return f"{sentence[:start]}{CLOZE_OPEN}{sentence[start:end]}{CLOZE_CLOSE}{sentence[end:]}"

    return None


def inject_hint(sentence: str, hint: Optional[str]) -> str:
    """Add ``::hint`` to the ``c1`` span unless it already has a hint."""
    hint = (hint or "").strip()
    if not hint:
        return sentence

    start = sentence.find(CLOZE_OPEN)
    if start < 0:
        return sentence

    interior_start = start + len(CLOZE_OPEN)
    end = sentence.find(CLOZE_CLOSE, interior_start)
    if end < 0:
        return sentence

    if HINT_SEPARATOR in sentence[interior_start:end]:
        return sentence

    return f"{sentence[:end]}{HINT_SEPARATOR}{hint}{sentence[end:]}"


def compose(sentence: str, word: str, hint: Optional[str] = None) -> str:
    """Build the final cloze sentence for ``word``.

    Never raises on bad markup: if the word cannot be found the sentence is
    returned without a deletion and a warning is logged.
    """
    sentence = sentence.strip()
    word = word.strip()

    base = normalize_existing_markup(sentence, word) if word else sentence

    wrapped = wrap_target(base, word)
    if wrapped is None:
        log.warning(
            "Failed to insert cloze markup, keeping model sentence",
            word=word,
            sentence=base,
        )
        return base

    return inject_hint(wrapped, hint)
