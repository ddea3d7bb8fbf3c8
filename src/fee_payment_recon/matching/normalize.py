"""
Text normalization for matching payment references against names.

Bank references are typed by people: casing, spacing, umlaut spellings
and glued-on member numbers vary. Every step below is a small pure
function; :func:`normalize_match_text` runs them in order.
"""

import re

_WHITESPACE = re.compile(r"\s+")
_LETTER_DIGIT = re.compile(r"([^\W\d_])([0-9])")
_DIGIT_LETTER = re.compile(r"([0-9])([^\W\d_])")
_NON_ALNUM = re.compile(r"[\W_]+")

# Earlier entries win at a given position. The first four are UTF-8
# umlauts that were decoded as Latin-1 somewhere upstream.
GERMAN_FOLDS: tuple[tuple[str, str], ...] = (
    ("ã¤", "a"),
    ("ã¶", "o"),
    ("ã¼", "u"),
    ("ãÿ", "s"),
    ("ä", "a"),
    ("ö", "o"),
    ("ü", "u"),
    ("ß", "s"),
    ("ae", "a"),
    ("oe", "o"),
    ("ue", "u"),
    ("ss", "s"),
)

_FOLD_PATTERN = re.compile("|".join(re.escape(old) for old, _ in GERMAN_FOLDS))
_FOLD_MAP = dict(GERMAN_FOLDS)


def trim(text: str) -> str:
    return text.strip()


def lowercase(text: str) -> str:
    return text.lower()


def replace_non_breaking_spaces(text: str) -> str:
    return text.replace("\u00a0", " ")


def collapse_whitespace(text: str) -> str:
    """Replace every run of whitespace (including line breaks) with one space."""
    return _WHITESPACE.sub(" ", text)


def split_letter_digit_boundaries(text: str) -> str:
    """Insert a space between letters and digits: ``bachle11089`` -> ``bachle 11089``."""
    text = _LETTER_DIGIT.sub(r"\1 \2", text)
    return _DIGIT_LETTER.sub(r"\1 \2", text)


def _fold_once(text: str) -> str:
    return _FOLD_PATTERN.sub(lambda m: _FOLD_MAP[m.group(0)], text)


def fold_german_letters(text: str) -> str:
    """
    Fold umlauts, eszett and their ASCII spellings to single base letters.

    ``müller``, ``mueller`` and ``muller`` all become ``muller``. The
    table is applied until nothing changes, so ``quaisser`` and
    ``quaißer`` both end up as ``quaiser``.
    """
    while True:
        folded = _fold_once(text)
        if folded == text:
            return folded
        text = folded


def compact_text(text: str) -> str:
    """Drop everything that is not a letter or digit."""
    return _NON_ALNUM.sub("", text)


def normalize_match_text(text: str) -> str:
    """
    Canonical form of free text for substring matching.

    Idempotent: normalizing an already normalized string returns it
    unchanged.
    """
    if not text:
        return ""

    normalized = trim(text)
    if not normalized:
        return ""

    normalized = lowercase(normalized)
    normalized = replace_non_breaking_spaces(normalized)
    normalized = collapse_whitespace(normalized)
    normalized = split_letter_digit_boundaries(normalized)
    normalized = fold_german_letters(normalized)
    # folding mojibake like "ã¤" can put a letter next to a digit
    normalized = split_letter_digit_boundaries(normalized)

    return normalized
