"""
Strategies for identifying the child a payment belongs to.
Each strategy implements one way of reading a transaction.
"""

from abc import ABC, abstractmethod
from typing import Iterable, Optional

from ..models.roster import Child, KnownAccount, KnownAccountStatus, normalize_account
from ..models.transaction import BankTransaction, MatchBasis, MatchCandidate
from .identifier import MEMBER_NUMBER_LENGTH, resolve_member_number
from .name_scoring import score_person_name
from .normalize import normalize_match_text

ACCEPTANCE_THRESHOLD = 0.5


def roster_sort_key(person) -> tuple:
    """Stable ordering key so that score ties resolve the same way every run."""
    return (
        normalize_match_text(person.last_name),
        normalize_match_text(person.first_name),
        getattr(person, "member_number", "") or "",
        person.id or "",
    )


def sort_roster(children: Iterable[Child]) -> list[Child]:
    return sorted(children, key=roster_sort_key)


class MatchingStrategy(ABC):
    """Abstract base class for child identification strategies."""

    basis: MatchBasis

    @abstractmethod
    def find_candidate(
        self, txn: BankTransaction, children: list[Child]
    ) -> Optional[MatchCandidate]:
        """
        Identify the child a transaction pays for.

        Args:
            txn: Bank transaction to identify
            children: Roster in stable order

        Returns:
            Candidate at or above the acceptance threshold, or None
        """
        pass


class MemberNumberStrategy(MatchingStrategy):
    """
    Member number written in the payment reference.
    Authoritative when it resolves to exactly one child.
    """

    basis = MatchBasis.IDENTIFIER

    def __init__(self, confidence: float = 0.95, length: int = MEMBER_NUMBER_LENGTH):
        self.confidence = confidence
        self.length = length

    def find_candidate(
        self, txn: BankTransaction, children: list[Child]
    ) -> Optional[MatchCandidate]:
        child = resolve_member_number(txn.description, children, self.length)
        if child is None:
            return None
        return MatchCandidate(child=child, confidence=self.confidence, basis=self.basis)


class ChildNameStrategy(MatchingStrategy):
    """Child's own name in the payer name or reference."""

    basis = MatchBasis.DIRECT_NAME

    def __init__(self, threshold: float = ACCEPTANCE_THRESHOLD):
        self.threshold = threshold

    def find_candidate(
        self, txn: BankTransaction, children: list[Child]
    ) -> Optional[MatchCandidate]:
        text = normalize_match_text(txn.match_text)
        if not text:
            return None

        best_match: Optional[Child] = None
        best_score = 0.0

        for child in children:
            score = score_person_name(text, child.first_name, child.last_name)
            if score > best_score and score >= self.threshold:
                best_match = child
                best_score = score

        if best_match is None:
            return None
        return MatchCandidate(child=best_match, confidence=best_score, basis=self.basis)


class ParentNameStrategy(MatchingStrategy):
    """A linked parent's name, attributed to the parent's child."""

    basis = MatchBasis.PARENT_NAME

    def __init__(self, threshold: float = ACCEPTANCE_THRESHOLD):
        self.threshold = threshold

    def find_candidate(
        self, txn: BankTransaction, children: list[Child]
    ) -> Optional[MatchCandidate]:
        text = normalize_match_text(txn.match_text)
        if not text:
            return None

        best_match: Optional[Child] = None
        best_score = 0.0

        for child in children:
            for parent in sorted(child.parents, key=roster_sort_key):
                score = score_person_name(text, parent.first_name, parent.last_name)
                if score > best_score and score >= self.threshold:
                    best_match = child
                    best_score = score

        if best_match is None:
            return None
        return MatchCandidate(child=best_match, confidence=best_score, basis=self.basis)


class KnownAccountStrategy(MatchingStrategy):
    """Payer account the organization trusts and has linked to a child."""

    basis = MatchBasis.KNOWN_ACCOUNT

    def __init__(self, known_accounts: Iterable[KnownAccount], confidence: float = 0.99):
        self.confidence = confidence
        self.trusted: dict[str, str] = {}
        for account in known_accounts:
            key = account.normalized_account
            if key and account.status == KnownAccountStatus.TRUSTED and account.child_id:
                self.trusted[key] = account.child_id

    def find_candidate(
        self, txn: BankTransaction, children: list[Child]
    ) -> Optional[MatchCandidate]:
        key = normalize_account(txn.payer_account)
        child_id = self.trusted.get(key) if key else None
        if child_id is None:
            return None

        child = next((c for c in children if c.id == child_id), None)
        if child is None:
            return None
        return MatchCandidate(child=child, confidence=self.confidence, basis=self.basis)
