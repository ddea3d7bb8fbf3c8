"""Tests for the reconciliation engine."""

from collections import Counter
from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest

from fee_payment_recon.config import FeeReconConfig
from fee_payment_recon.matching.engine import ReconciliationEngine, apply_matches
from fee_payment_recon.models.roster import FeeType, KnownAccount, KnownAccountStatus
from fee_payment_recon.models.transaction import (
    BankFileParseResult,
    IgnoreReason,
    MatchBasis,
    SkipReason,
    UnresolvedReason,
)

IBAN = "DE02120300000000202051"


@pytest.fixture
def engine(config):
    return ReconciliationEngine(config)


@pytest.fixture
def lisa_obligations(make_obligation):
    # Deliberately out of order
    return [
        make_obligation("ob-jun", "child-lisa", month=6),
        make_obligation("ob-may", "child-lisa", month=5),
    ]


class TestOldestFirst:
    def test_two_payments_settle_in_order(self, engine, make_txn, roster, lisa_obligations):
        txns = [
            make_txn("Lisa Müller Juni", booking_date=date(2024, 6, 3)),
            make_txn("Lisa Müller Mai", booking_date=date(2024, 5, 3)),
        ]

        outcome = engine.reconcile(txns, roster, lisa_obligations)

        assert [m.obligation.id for m in outcome.matches] == ["ob-may", "ob-jun"]
        assert [m.transaction.description for m in outcome.matches] == [
            "Lisa Müller Mai",
            "Lisa Müller Juni",
        ]
        assert all(m.settles_obligation for m in outcome.matches)
        assert outcome.balances == {"ob-may": Decimal("0"), "ob-jun": Decimal("0")}

    def test_yearly_fee_before_monthly_fees_of_same_year(
        self, engine, make_txn, make_obligation, roster
    ):
        obligations = [
            make_obligation("ob-jan", "child-lisa", month=1, amount="50.00"),
            make_obligation(
                "ob-membership", "child-lisa", month=None, amount="30.00",
                fee_type=FeeType.MEMBERSHIP,
            ),
            make_obligation("ob-dec-2023", "child-lisa", year=2023, month=12, amount="50.00"),
        ]

        outcome = engine.reconcile([make_txn("Lisa Müller", "50.00")], roster, obligations)

        assert [m.obligation.id for m in outcome.matches] == ["ob-dec-2023"]

    def test_partially_paid_obligation_uses_remaining(
        self, engine, make_txn, make_obligation, roster
    ):
        obligations = [make_obligation("ob-may", "child-lisa", month=5, paid_amount="30.00")]

        outcome = engine.reconcile([make_txn("Lisa Müller", "70.00")], roster, obligations)

        assert len(outcome.matches) == 1
        assert outcome.matches[0].amount == Decimal("70.00")
        assert outcome.matches[0].settles_obligation
        assert outcome.unapplied_credits == []

    def test_settled_obligations_skipped(self, engine, make_txn, make_obligation, roster):
        obligations = [
            make_obligation("ob-apr", "child-lisa", month=4, paid_amount="100.00"),
            make_obligation("ob-may", "child-lisa", month=5),
        ]

        outcome = engine.reconcile([make_txn("Lisa Müller")], roster, obligations)

        assert [m.obligation.id for m in outcome.matches] == ["ob-may"]


class TestAmounts:
    def test_partial_payment(self, engine, make_txn, roster, lisa_obligations):
        outcome = engine.reconcile([make_txn("Lisa Müller", "60.00")], roster, lisa_obligations)

        assert len(outcome.matches) == 1
        match = outcome.matches[0]
        assert match.obligation.id == "ob-may"
        assert match.amount == Decimal("60.00")
        assert not match.settles_obligation
        assert outcome.balances["ob-may"] == Decimal("40.00")

    def test_overpayment_cascades_then_leaves_credit(
        self, engine, make_txn, roster, lisa, lisa_obligations
    ):
        txn = make_txn("Lisa Müller", "250.00")
        outcome = engine.reconcile([txn], roster, lisa_obligations)

        assert [(m.obligation.id, m.amount) for m in outcome.matches] == [
            ("ob-may", Decimal("100.00")),
            ("ob-jun", Decimal("100.00")),
        ]
        assert len(outcome.unapplied_credits) == 1
        credit = outcome.unapplied_credits[0]
        assert credit.amount == Decimal("50.00")
        assert credit.child is lisa
        assert credit.transaction is txn

    def test_amount_conserved(self, engine, make_txn, roster, lisa_obligations):
        txn = make_txn("Lisa Müller", "130.55")
        outcome = engine.reconcile([txn], roster, lisa_obligations)

        applied = sum(m.amount for m in outcome.matches)
        unapplied = sum(c.amount for c in outcome.unapplied_credits)
        assert applied + unapplied == txn.amount

    def test_cascade_disabled(self, make_txn, roster, lisa_obligations):
        config = FeeReconConfig()
        config.reconciliation.cascade_remainder = False
        engine = ReconciliationEngine(config)

        outcome = engine.reconcile([make_txn("Lisa Müller", "250.00")], roster, lisa_obligations)

        assert len(outcome.matches) == 1
        assert outcome.matches[0].obligation.id == "ob-may"
        assert outcome.unapplied_credits[0].amount == Decimal("150.00")
        assert outcome.balances["ob-jun"] == Decimal("100.00")

    def test_caller_obligations_untouched(self, engine, make_txn, roster, lisa_obligations):
        engine.reconcile([make_txn("Lisa Müller", "250.00")], roster, lisa_obligations)
        assert all(o.paid_amount == 0 for o in lisa_obligations)


class TestIdentification:
    def test_identifier_beats_name(self, engine, make_txn, make_obligation, roster, romy):
        obligations = [
            make_obligation("ob-lisa", "child-lisa", month=5),
            make_obligation("ob-romy", "child-romy", month=5),
        ]
        txn = make_txn("Lisa Müller Beitrag 11089")

        outcome = engine.reconcile([txn], roster, obligations)

        assert outcome.matches[0].obligation.id == "ob-romy"
        assert outcome.matches[0].basis == MatchBasis.IDENTIFIER
        assert outcome.matches[0].confidence == 0.95

    def test_child_name_beats_parent_name(
        self, engine, make_txn, make_obligation, roster
    ):
        obligations = [
            make_obligation("ob-lisa", "child-lisa", month=5),
            make_obligation("ob-arthur", "child-arthur", month=5),
        ]
        txn = make_txn("Essensgeld Lisa Müller", payer_name="Jonas Weber")

        outcome = engine.reconcile([txn], roster, obligations)

        assert outcome.matches[0].obligation.id == "ob-lisa"
        assert outcome.matches[0].basis == MatchBasis.DIRECT_NAME

    def test_parent_name_fallback(self, engine, make_txn, make_obligation, roster):
        obligations = [make_obligation("ob-arthur", "child-arthur", month=5)]
        txn = make_txn("Essensgeld Mai", payer_name="Jonas Weber")

        outcome = engine.reconcile([txn], roster, obligations)

        assert outcome.matches[0].obligation.id == "ob-arthur"
        assert outcome.matches[0].basis == MatchBasis.PARENT_NAME

    def test_parent_matching_disabled(self, make_txn, make_obligation, roster):
        config = FeeReconConfig()
        config.matching.match_parents = False
        engine = ReconciliationEngine(config)
        obligations = [make_obligation("ob-arthur", "child-arthur", month=5)]

        outcome = engine.reconcile(
            [make_txn("Essensgeld Mai", payer_name="Jonas Weber")], roster, obligations
        )

        assert outcome.matches == []
        assert outcome.unresolved[0].reason == UnresolvedReason.NO_PERSON_IDENTIFIED

    def test_trusted_account_used_last(self, engine, make_txn, make_obligation, roster):
        obligations = [make_obligation("ob-romy", "child-romy", month=5)]
        accounts = [KnownAccount(IBAN, KnownAccountStatus.TRUSTED, "child-romy")]
        txn = make_txn("Dauerauftrag", payer_account=IBAN)

        outcome = engine.reconcile([txn], roster, obligations, known_accounts=accounts)

        assert outcome.matches[0].obligation.id == "ob-romy"
        assert outcome.matches[0].basis == MatchBasis.KNOWN_ACCOUNT
        assert outcome.matches[0].confidence == 0.99

    def test_weak_name_is_unresolved(self, engine, make_txn, make_obligation, roster):
        obligations = [make_obligation("ob-lisa", "child-lisa", month=5)]
        txn = make_txn("Mueller Lisa Beitrag Mai")

        outcome = engine.reconcile([txn], [_rename(roster[0], "Schmidt")], obligations)

        assert outcome.matches == []
        assert outcome.unresolved[0].reason == UnresolvedReason.NO_PERSON_IDENTIFIED


class TestUnresolved:
    def test_no_person_identified(self, engine, make_txn, roster, lisa_obligations):
        outcome = engine.reconcile([make_txn("Miete Oktober")], roster, lisa_obligations)

        assert outcome.matches == []
        assert len(outcome.unresolved) == 1
        assert outcome.unresolved[0].reason == UnresolvedReason.NO_PERSON_IDENTIFIED
        assert outcome.unresolved[0].candidate is None

    def test_no_open_obligation(self, engine, make_txn, make_obligation, roster, lisa):
        obligations = [make_obligation("ob-may", "child-lisa", month=5, paid_amount="100.00")]

        outcome = engine.reconcile([make_txn("Lisa Müller")], roster, obligations)

        assert outcome.matches == []
        item = outcome.unresolved[0]
        assert item.reason == UnresolvedReason.NO_OPEN_OBLIGATION
        assert item.candidate.child is lisa

    def test_second_payment_finds_nothing_open(
        self, engine, make_txn, make_obligation, roster
    ):
        obligations = [make_obligation("ob-may", "child-lisa", month=5)]
        txns = [
            make_txn("Lisa Müller Mai", booking_date=date(2024, 5, 1)),
            make_txn("Lisa Müller Mai nochmal", booking_date=date(2024, 5, 2)),
        ]

        outcome = engine.reconcile(txns, roster, obligations)

        assert len(outcome.matches) == 1
        assert outcome.unresolved[0].reason == UnresolvedReason.NO_OPEN_OBLIGATION
        assert outcome.unresolved[0].transaction.description == "Lisa Müller Mai nochmal"


class TestIgnored:
    def test_outgoing_payment(self, engine, make_txn, roster, lisa_obligations):
        outcome = engine.reconcile(
            [make_txn("Lisa Müller Erstattung", "-100.00"), make_txn("Lisa Müller", "0")],
            roster,
            lisa_obligations,
        )

        assert outcome.matches == []
        assert outcome.unresolved == []
        assert [i.reason for i in outcome.ignored] == [IgnoreReason.OUTGOING_PAYMENT] * 2

    def test_blocked_account(self, engine, make_txn, roster, lisa_obligations):
        accounts = [KnownAccount("de02 1203 0000 0000 2020 51", KnownAccountStatus.BLOCKED)]
        txn = make_txn("Lisa Müller", payer_account=IBAN)

        outcome = engine.reconcile([txn], roster, lisa_obligations, known_accounts=accounts)

        assert outcome.matches == []
        assert outcome.ignored[0].reason == IgnoreReason.BLOCKED_ACCOUNT

    def test_duplicate_within_run(self, engine, make_txn, roster, lisa_obligations):
        txns = [make_txn("Lisa Müller", payer_account=IBAN) for _ in range(2)]

        outcome = engine.reconcile(txns, roster, lisa_obligations)

        assert len(outcome.matches) == 1
        assert outcome.ignored[0].reason == IgnoreReason.DUPLICATE
        assert outcome.ignored[0].transaction is txns[1]

    def test_duplicate_of_earlier_import(self, engine, make_txn, roster, lisa_obligations):
        txn = make_txn("Lisa Müller", payer_account=IBAN)

        outcome = engine.reconcile(
            [txn], roster, lisa_obligations, seen_fingerprints=[txn.fingerprint]
        )

        assert outcome.matches == []
        assert outcome.ignored[0].reason == IgnoreReason.DUPLICATE

    def test_duplicate_detection_disabled(self, make_txn, roster, lisa_obligations):
        config = FeeReconConfig()
        config.reconciliation.detect_duplicates = False
        engine = ReconciliationEngine(config)
        txns = [make_txn("Lisa Müller") for _ in range(2)]

        outcome = engine.reconcile(txns, roster, lisa_obligations)

        assert len(outcome.matches) == 2
        assert outcome.ignored == []


class TestDeadline:
    def test_past_deadline_processes_nothing(self, engine, make_txn, roster, lisa_obligations):
        txns = [make_txn("Lisa Müller"), make_txn("Lisa Müller Juni")]

        outcome = engine.reconcile(
            txns, roster, lisa_obligations, deadline=datetime.now() - timedelta(seconds=1)
        )

        assert outcome.matches == []
        assert outcome.not_processed == txns
        assert outcome.balances["ob-may"] == Decimal("100.00")

    def test_future_deadline(self, engine, make_txn, roster, lisa_obligations):
        outcome = engine.reconcile(
            [make_txn("Lisa Müller")],
            roster,
            lisa_obligations,
            deadline=datetime.now() + timedelta(hours=1),
        )

        assert len(outcome.matches) == 1
        assert outcome.not_processed == []


class TestLatePayments:
    def test_booked_on_the_fifteenth_is_on_time(self, engine, make_txn, make_obligation, roster):
        obligations = [make_obligation("ob-may", "child-lisa", month=5, fee_type=FeeType.FOOD)]
        txn = make_txn("Lisa Müller", booking_date=date(2024, 5, 15))

        outcome = engine.reconcile([txn], roster, obligations)

        assert outcome.matches[0].late is False

    def test_booked_on_the_sixteenth_is_late(self, engine, make_txn, make_obligation, roster):
        obligations = [make_obligation("ob-may", "child-lisa", month=5, fee_type=FeeType.FOOD)]
        txn = make_txn("Lisa Müller", booking_date=date(2024, 5, 16))

        outcome = engine.reconcile([txn], roster, obligations)

        assert outcome.matches[0].late is True

    def test_membership_fee_never_late(self, engine, make_txn, make_obligation, roster):
        obligations = [
            make_obligation("ob-member", "child-lisa", month=5, fee_type=FeeType.MEMBERSHIP)
        ]
        txn = make_txn("Lisa Müller", booking_date=date(2024, 11, 30))

        outcome = engine.reconcile([txn], roster, obligations)

        assert outcome.matches[0].late is False

    def test_flag_set_per_obligation_in_cascade(
        self, engine, make_txn, make_obligation, roster
    ):
        obligations = [
            make_obligation("ob-apr", "child-lisa", month=4),
            make_obligation("ob-may", "child-lisa", month=5),
        ]
        txn = make_txn("Lisa Müller", "200.00", booking_date=date(2024, 5, 3))

        outcome = engine.reconcile([txn], roster, obligations)

        assert [(m.obligation.id, m.late) for m in outcome.matches] == [
            ("ob-apr", True),
            ("ob-may", False),
        ]

    def test_configured_late_day(self, make_txn, make_obligation, roster):
        config = FeeReconConfig()
        config.reconciliation.late_payment_day = 20
        engine = ReconciliationEngine(config)
        obligations = [make_obligation("ob-may", "child-lisa", month=5)]
        txn = make_txn("Lisa Müller", booking_date=date(2024, 5, 18))

        outcome = engine.reconcile([txn], roster, obligations)

        assert outcome.matches[0].late is False

    def test_report_lists_late_matches(self, engine, make_txn, make_obligation, roster):
        obligations = [
            make_obligation("ob-lisa", "child-lisa", month=5),
            make_obligation("ob-romy", "child-romy", month=5),
        ]
        txns = [
            make_txn("Lisa Müller", booking_date=date(2024, 5, 2)),
            make_txn("Romy Bächle", booking_date=date(2024, 5, 20)),
        ]

        outcome = engine.reconcile(txns, roster, obligations)
        report = engine.generate_report(
            outcome, BankFileParseResult(source_name="x.csv", transactions=txns), 0.0
        )

        assert [m.obligation.id for m in report.late_matches] == ["ob-romy"]


class TestApplyMatches:
    def test_updates_paid_amount(self, engine, make_txn, roster, lisa_obligations):
        outcome = engine.reconcile([make_txn("Lisa Müller", "150.00")], roster, lisa_obligations)

        changed = apply_matches(outcome.matches)

        assert [o.id for o in changed] == ["ob-may", "ob-jun"]
        june, may = lisa_obligations
        assert may.paid_amount == Decimal("100.00")
        assert may.is_settled
        assert june.paid_amount == Decimal("50.00")
        assert june.remaining == outcome.balances["ob-jun"]

    def test_no_matches(self):
        assert apply_matches([]) == []


class TestGenerateReport:
    def test_report_counts(self, engine, make_txn, make_obligation, roster):
        obligations = [
            make_obligation("ob-lisa", "child-lisa", month=5),
            make_obligation("ob-romy", "child-romy", month=5, amount="40.00"),
        ]
        txns = [
            make_txn("Lisa Müller", "100.00", booking_date=date(2024, 5, 2)),
            make_txn("Romy Bächle", "50.00", booking_date=date(2024, 5, 3)),
            make_txn("Miete", "700.00", booking_date=date(2024, 5, 4)),
            make_txn("Gebühren", "-5.00", booking_date=date(2024, 5, 5)),
        ]
        parse_result = BankFileParseResult(
            source_name="umsaetze.csv",
            transactions=txns,
            rows_read=5,
            skipped=Counter({SkipReason.INVALID_AMOUNT: 1}),
        )

        outcome = engine.reconcile(txns, roster, obligations)
        report = engine.generate_report(outcome, parse_result, 0.5)

        assert report.source_name == "umsaetze.csv"
        assert report.matched_count == 2
        assert report.unmatched_count == 1
        assert report.settled_obligation_count == 2
        assert report.total_applied == Decimal("140.00")
        assert report.total_unapplied == Decimal("10.00")
        assert report.skipped_row_count == 1
        assert report.unresolved_by_reason == {"no_person_identified": 1}
        assert report.match_rate == pytest.approx(200 / 3)
        assert report.period_start == date(2024, 5, 2)
        assert report.period_end == date(2024, 5, 5)
        assert len(report.ignored) == 1
        assert report.processing_time_seconds == 0.5


def _rename(child, last_name):
    child.last_name = last_name
    child.parents = []
    return child
