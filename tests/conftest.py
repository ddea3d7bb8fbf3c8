"""Shared fixtures for the fee reconciliation test suite."""

from datetime import date
from decimal import Decimal
import uuid

import pytest

from fee_payment_recon.config import FeeReconConfig
from fee_payment_recon.models.roster import Child, FeeObligation, FeeType, Parent
from fee_payment_recon.models.transaction import BankTransaction

HEADER_FIELDS = [
    "Bezeichnung Auftragskonto",
    "IBAN Auftragskonto",
    "BIC Auftragskonto",
    "Bankname Auftragskonto",
    "Buchungstag",
    "Valutadatum",
    "Name Zahlungsbeteiligter",
    "IBAN Zahlungsbeteiligter",
    "BIC (SWIFT-Code) Zahlungsbeteiligter",
    "Buchungstext",
    "Verwendungszweck",
    "Betrag",
    "Waehrung",
]


def make_bank_row(
    booking: str = "05.12.2024",
    value: str = "05.12.2024",
    payer: str = "Anna Müller",
    account: str = "DE02120300000000202051",
    description: str = "Essensgeld Dezember",
    amount: str = "45,40",
    currency: str = "EUR",
) -> str:
    fields = [
        "Vereinskonto",
        "DE89370400440532013000",
        "GENODEF1S12",
        "SozialBank",
        booking,
        value,
        payer,
        account,
        "BYLADEM1001",
        "Gutschrift",
        description,
        amount,
        currency,
    ]
    return ";".join(fields)


def make_bank_csv(*rows: str) -> bytes:
    lines = [";".join(HEADER_FIELDS), *rows]
    return ("\r\n".join(lines) + "\r\n").encode("iso-8859-1")


@pytest.fixture
def config() -> FeeReconConfig:
    return FeeReconConfig()


@pytest.fixture
def bank_row():
    return make_bank_row


@pytest.fixture
def bank_csv():
    return make_bank_csv


@pytest.fixture
def make_txn():
    """Factory for in-memory bank transactions."""

    def _make(
        description=None,
        amount="100.00",
        booking_date=date(2024, 12, 5),
        payer_name=None,
        payer_account=None,
    ) -> BankTransaction:
        return BankTransaction(
            id=str(uuid.uuid4()),
            booking_date=booking_date,
            value_date=booking_date,
            amount=Decimal(amount),
            payer_name=payer_name,
            payer_account=payer_account,
            description=description,
        )

    return _make


@pytest.fixture
def make_obligation():
    """Factory for fee obligations."""

    def _make(
        obligation_id,
        child_id,
        year=2024,
        month=None,
        amount="100.00",
        paid_amount="0",
        fee_type=FeeType.CHILDCARE,
    ) -> FeeObligation:
        return FeeObligation(
            id=obligation_id,
            child_id=child_id,
            year=year,
            month=month,
            amount=Decimal(amount),
            paid_amount=Decimal(paid_amount),
            fee_type=fee_type,
        )

    return _make


@pytest.fixture
def lisa() -> Child:
    return Child(
        id="child-lisa",
        member_number="11072",
        first_name="Lisa",
        last_name="Müller",
        parents=[Parent(first_name="Thomas", last_name="Müller")],
    )


@pytest.fixture
def romy() -> Child:
    return Child(
        id="child-romy",
        member_number="11089",
        first_name="Romy",
        last_name="Bächle",
        parents=[Parent(first_name="Sarah", last_name="Bächle")],
    )


@pytest.fixture
def arthur() -> Child:
    return Child(
        id="child-arthur",
        member_number="11101",
        first_name="Arthur",
        last_name="Thränhardt",
        parents=[
            Parent(first_name="Sarah", last_name="Thränhardt"),
            Parent(first_name="Jonas", last_name="Weber"),
        ],
    )


@pytest.fixture
def roster(lisa, romy, arthur) -> list[Child]:
    return [lisa, romy, arthur]
