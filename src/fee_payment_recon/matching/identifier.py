"""Extraction of explicit member numbers from payment references."""

from typing import Iterable, Optional
import re

from ..models.roster import Child
from .normalize import normalize_match_text

MEMBER_NUMBER_LENGTH = 5

_patterns: dict[int, re.Pattern] = {}


def _member_number_pattern(length: int) -> re.Pattern:
    if length not in _patterns:
        _patterns[length] = re.compile(rf"\b([0-9]{{{length}}})\b", re.ASCII)
    return _patterns[length]


def extract_member_number(
    text: Optional[str], length: int = MEMBER_NUMBER_LENGTH
) -> Optional[str]:
    """
    Return the single standalone member number in ``text``.

    Returns None when the text holds no number of the given length or
    several different ones. Never raises.
    """
    if not text:
        return None

    normalized = normalize_match_text(text)
    numbers = set(_member_number_pattern(length).findall(normalized))
    if len(numbers) != 1:
        return None
    return numbers.pop()


def resolve_member_number(
    text: Optional[str],
    children: Iterable[Child],
    length: int = MEMBER_NUMBER_LENGTH,
) -> Optional[Child]:
    """Return the one roster child whose member number appears in ``text``."""
    member_number = extract_member_number(text, length)
    if member_number is None:
        return None

    hits = [c for c in children if c.member_number.strip() == member_number]
    if len(hits) != 1:
        return None
    return hits[0]
