"""Roster and fee obligation models supplied by the calling service."""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional
import re

_ACCOUNT_WHITESPACE = re.compile(r"\s+")

# Monthly fees are due by this day of their month
LATE_PAYMENT_DAY = 15


def normalize_account(account: Optional[str]) -> Optional[str]:
    """Canonical form of a payer account (IBAN) for comparisons."""
    if account is None:
        return None
    cleaned = _ACCOUNT_WHITESPACE.sub("", account).upper()
    return cleaned or None


@dataclass
class Parent:
    """A parent linked to one or more children."""

    first_name: str
    last_name: str
    id: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


@dataclass
class Child:
    """A child enrolled in care, identified by a 5-digit member number."""

    id: str
    member_number: str
    first_name: str
    last_name: str
    parents: list[Parent] = field(default_factory=list)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class FeeType(Enum):
    """Kind of fee an obligation represents."""

    MEMBERSHIP = "MEMBERSHIP"  # yearly
    FOOD = "FOOD"  # monthly
    CHILDCARE = "CHILDCARE"  # monthly, income based
    REMINDER = "REMINDER"  # dunning fee, added manually


@dataclass
class FeeObligation:
    """
    An amount owed for a child for one billing period.

    ``paid_amount`` holds the portion settled before this run. The
    reconciliation engine never changes it while reconciling; use
    :func:`fee_payment_recon.matching.engine.apply_matches` to apply a
    run's payment matches.
    """

    id: str
    child_id: str
    year: int
    amount: Decimal
    month: Optional[int] = None  # None for yearly fees
    due_date: Optional[date] = None
    fee_type: FeeType = FeeType.CHILDCARE
    paid_amount: Decimal = Decimal("0")

    @property
    def remaining(self) -> Decimal:
        """Amount still owed."""
        return max(self.amount - self.paid_amount, Decimal("0"))

    @property
    def is_open(self) -> bool:
        return self.remaining > 0

    @property
    def is_settled(self) -> bool:
        return not self.is_open

    @property
    def period_label(self) -> str:
        if self.month is None:
            return str(self.year)
        return f"{self.year}-{self.month:02d}"

    def is_late_payment(self, booked_on: date, late_day: int = LATE_PAYMENT_DAY) -> bool:
        """
        Whether a payment booked on ``booked_on`` is late for this fee.

        Only monthly childcare and food fees can be late: the payment is
        late when booked after ``late_day`` of the fee's month.
        """
        if self.fee_type not in (FeeType.CHILDCARE, FeeType.FOOD):
            return False
        if self.month is None:
            return False
        return booked_on > date(self.year, self.month, late_day)

    @property
    def sort_key(self) -> tuple:
        """Ordering key for oldest-first settlement."""
        return (
            self.year,
            self.month or 0,
            self.due_date or date.max,
            self.id,
        )


class KnownAccountStatus(Enum):
    """How the organization treats payments from an account."""

    TRUSTED = "TRUSTED"
    BLOCKED = "BLOCKED"


@dataclass
class KnownAccount:
    """A payer account the organization has classified."""

    account: str
    status: KnownAccountStatus
    child_id: Optional[str] = None

    @property
    def normalized_account(self) -> Optional[str]:
        return normalize_account(self.account)
