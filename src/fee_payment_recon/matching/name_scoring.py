"""
Confidence scoring of a person's name against a payment reference.

Scores come from substring containment only, so adding text to a
reference can raise a score but never lower it. Checks run from the
strongest to the weakest and the first hit wins.
"""

from .normalize import compact_text, normalize_match_text

FULL_NAME_SCORE = 0.85
BOTH_NAMES_SCORE = 0.80
LAST_NAME_WITH_INITIAL_SCORE = 0.75
LAST_NAME_SCORE = 0.60
FIRST_NAME_SCORE = 0.40

MIN_LAST_NAME_LENGTH = 3
# Short first names ("Ali", "Mia") show up inside unrelated words
MIN_FIRST_NAME_LENGTH = 4


def score_person_name(normalized_text: str, first_name: str, last_name: str) -> float:
    """
    Score how well a person's name matches an already normalized reference.

    Args:
        normalized_text: Output of ``normalize_match_text``
        first_name: Raw first name from the roster
        last_name: Raw last name from the roster

    Returns:
        Confidence between 0.0 and 1.0
    """
    if not normalized_text:
        return 0.0

    raw_first = (first_name or "").strip()
    raw_last = (last_name or "").strip()
    first = normalize_match_text(raw_first)
    last = normalize_match_text(raw_last)

    if first and last:
        full_name_patterns = (
            f"{first} {last}",
            f"{last} {first}",
            f"{last}, {first}",
            f"{last} , {first}",
        )
        if any(pattern in normalized_text for pattern in full_name_patterns):
            return FULL_NAME_SCORE

        compact_desc = compact_text(normalized_text)
        compact_first = compact_text(first)
        compact_last = compact_text(last)
        if compact_first and compact_last:
            if (
                compact_first + compact_last in compact_desc
                or compact_last + compact_first in compact_desc
            ):
                return FULL_NAME_SCORE

        if first in normalized_text and last in normalized_text:
            return BOTH_NAMES_SCORE

    if last and last in normalized_text and len(raw_last) >= MIN_LAST_NAME_LENGTH:
        if first and f"{first[0]}." in normalized_text:
            return LAST_NAME_WITH_INITIAL_SCORE
        return LAST_NAME_SCORE

    if first and first in normalized_text and len(raw_first) >= MIN_FIRST_NAME_LENGTH:
        return FIRST_NAME_SCORE

    return 0.0
