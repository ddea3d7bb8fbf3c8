"""Data models for fee reconciliation."""

from .roster import (
    Parent,
    Child,
    FeeType,
    FeeObligation,
    KnownAccount,
    KnownAccountStatus,
    normalize_account,
)
from .transaction import (
    BankTransaction,
    BankFileParseResult,
    SkipReason,
    MatchBasis,
    MatchCandidate,
    PaymentMatch,
    UnresolvedReason,
    UnresolvedTransaction,
    UnappliedCredit,
    IgnoreReason,
    IgnoredTransaction,
    ImportReport,
    ReconciliationOutcome,
)

__all__ = [
    "Parent",
    "Child",
    "FeeType",
    "FeeObligation",
    "KnownAccount",
    "KnownAccountStatus",
    "normalize_account",
    "BankTransaction",
    "BankFileParseResult",
    "SkipReason",
    "MatchBasis",
    "MatchCandidate",
    "PaymentMatch",
    "UnresolvedReason",
    "UnresolvedTransaction",
    "UnappliedCredit",
    "IgnoreReason",
    "IgnoredTransaction",
    "ImportReport",
    "ReconciliationOutcome",
]
