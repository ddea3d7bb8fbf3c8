"""Child identification and payment reconciliation."""

from .engine import ReconciliationEngine, apply_matches
from .identifier import extract_member_number, resolve_member_number
from .name_scoring import score_person_name
from .normalize import normalize_match_text
from .strategies import (
    MatchingStrategy,
    MemberNumberStrategy,
    ChildNameStrategy,
    ParentNameStrategy,
    KnownAccountStrategy,
)

__all__ = [
    "ReconciliationEngine",
    "apply_matches",
    "extract_member_number",
    "resolve_member_number",
    "score_person_name",
    "normalize_match_text",
    "MatchingStrategy",
    "MemberNumberStrategy",
    "ChildNameStrategy",
    "ParentNameStrategy",
    "KnownAccountStrategy",
]
