"""Data models for imported bank transactions and reconciliation results."""

from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from .roster import Child, FeeObligation, normalize_account


@dataclass(frozen=True)
class BankTransaction:
    """
    One row of a bank export.

    Immutable once created. Amounts are signed: credits (incoming
    payments) are positive, debits negative.
    """

    # Unique identifier (generated on import)
    id: str

    # Date the bank recorded the booking
    booking_date: date

    # Settlement date, falls back to the booking date
    value_date: date

    amount: Decimal
    currency: str = "EUR"

    # Free text as printed by the bank, None when blank
    payer_name: Optional[str] = None
    payer_account: Optional[str] = None
    description: Optional[str] = None

    imported_at: datetime = field(default_factory=datetime.now, compare=False)

    # 1-based line number in the source file (0 when built in memory)
    row_number: int = field(default=0, compare=False)

    @property
    def is_incoming(self) -> bool:
        return self.amount > 0

    @property
    def match_text(self) -> str:
        """Payer name and description joined for name matching."""
        parts = [p for p in (self.payer_name, self.description) if p and p.strip()]
        return " ".join(parts)

    @property
    def fingerprint(self) -> tuple:
        """Identity used to recognise a transaction imported twice."""
        return (
            self.booking_date,
            normalize_account(self.payer_account),
            self.amount,
            self.description,
        )


class MatchBasis(Enum):
    """How the child behind a transaction was identified."""

    IDENTIFIER = "identifier"
    DIRECT_NAME = "direct_name"
    PARENT_NAME = "parent_name"
    KNOWN_ACCOUNT = "known_account"


@dataclass
class MatchCandidate:
    """A child identified for a transaction, with the confidence of the hit."""

    child: Child
    confidence: float
    basis: MatchBasis


@dataclass
class PaymentMatch:
    """Assignment of (part of) a transaction to one fee obligation."""

    id: str
    transaction: BankTransaction
    obligation: FeeObligation

    # Portion of the transaction applied to the obligation
    amount: Decimal

    confidence: float
    basis: MatchBasis
    settles_obligation: bool

    # Booked after the late-payment day of a monthly fee's month
    late: bool = False
    matched_at: datetime = field(default_factory=datetime.now)


class UnresolvedReason(Enum):
    """Why an incoming transaction could not be assigned."""

    NO_PERSON_IDENTIFIED = "no_person_identified"
    NO_OPEN_OBLIGATION = "no_open_obligation"


@dataclass
class UnresolvedTransaction:
    """A transaction left for manual review."""

    transaction: BankTransaction
    reason: UnresolvedReason
    candidate: Optional[MatchCandidate] = None


@dataclass
class UnappliedCredit:
    """Money left over after every open obligation of a child was settled."""

    transaction: BankTransaction
    child: Child
    amount: Decimal


class IgnoreReason(Enum):
    """Why a transaction was not considered for reconciliation at all."""

    OUTGOING_PAYMENT = "outgoing_payment"
    BLOCKED_ACCOUNT = "blocked_account"
    DUPLICATE = "duplicate"


@dataclass
class IgnoredTransaction:
    transaction: BankTransaction
    reason: IgnoreReason


class SkipReason(Enum):
    """Why a row of the bank export was dropped by the decoder."""

    TOO_FEW_COLUMNS = "too_few_columns"
    INVALID_BOOKING_DATE = "invalid_booking_date"
    INVALID_AMOUNT = "invalid_amount"
    MALFORMED_ROW = "malformed_row"


@dataclass
class BankFileParseResult:
    """Transactions decoded from one bank export plus row-level skip counts."""

    source_name: str
    transactions: list[BankTransaction] = field(default_factory=list)

    # Data rows seen after the header (blank lines excluded)
    rows_read: int = 0

    skipped: Counter = field(default_factory=Counter)

    @property
    def skipped_count(self) -> int:
        return sum(self.skipped.values())


@dataclass
class ImportReport:
    """Summary of one import and reconciliation run."""

    source_name: str
    processed_at: datetime

    transactions: list[BankTransaction] = field(default_factory=list)
    matches: list[PaymentMatch] = field(default_factory=list)
    unresolved: list[UnresolvedTransaction] = field(default_factory=list)
    unapplied_credits: list[UnappliedCredit] = field(default_factory=list)
    ignored: list[IgnoredTransaction] = field(default_factory=list)

    # Transactions not reached before the caller's deadline
    not_processed: list[BankTransaction] = field(default_factory=list)

    skipped_rows: Counter = field(default_factory=Counter)

    processing_time_seconds: float = 0.0
    config_file_used: Optional[str] = None

    @property
    def matched_count(self) -> int:
        """Number of distinct transactions assigned to at least one obligation."""
        return len({m.transaction.id for m in self.matches})

    @property
    def unmatched_count(self) -> int:
        return len(self.unresolved)

    @property
    def total_applied(self) -> Decimal:
        return sum((m.amount for m in self.matches), Decimal("0"))

    @property
    def total_unapplied(self) -> Decimal:
        return sum((c.amount for c in self.unapplied_credits), Decimal("0"))

    @property
    def settled_obligation_count(self) -> int:
        return len({m.obligation.id for m in self.matches if m.settles_obligation})

    @property
    def late_matches(self) -> list[PaymentMatch]:
        return [m for m in self.matches if m.late]

    @property
    def skipped_row_count(self) -> int:
        return sum(self.skipped_rows.values())

    @property
    def unresolved_by_reason(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for item in self.unresolved:
            counts[item.reason.value] = counts.get(item.reason.value, 0) + 1
        return counts

    @property
    def match_rate(self) -> float:
        """Percentage of considered transactions that were matched."""
        considered = self.matched_count + self.unmatched_count
        if considered == 0:
            return 0.0
        return (self.matched_count / considered) * 100

    @property
    def period_start(self) -> Optional[date]:
        dates = [t.booking_date for t in self.transactions]
        return min(dates) if dates else None

    @property
    def period_end(self) -> Optional[date]:
        dates = [t.booking_date for t in self.transactions]
        return max(dates) if dates else None


@dataclass
class ReconciliationOutcome:
    """Raw output of one reconciliation pass, before it is summarised."""

    matches: list[PaymentMatch] = field(default_factory=list)
    unresolved: list[UnresolvedTransaction] = field(default_factory=list)
    unapplied_credits: list[UnappliedCredit] = field(default_factory=list)
    ignored: list[IgnoredTransaction] = field(default_factory=list)
    not_processed: list[BankTransaction] = field(default_factory=list)

    # Obligation id -> amount still owed after this run
    balances: dict[str, Decimal] = field(default_factory=dict)
