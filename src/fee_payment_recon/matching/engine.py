"""
Reconciliation engine for incoming fee payments.

Identifies the child behind each transaction and settles that child's
open fee obligations oldest first. Transactions are folded strictly in
booking-date order because each assignment changes the balances the
next transaction sees.
"""

from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional
import logging
import uuid

from ..models.roster import (
    Child,
    FeeObligation,
    KnownAccount,
    KnownAccountStatus,
    normalize_account,
)
from ..models.transaction import (
    BankFileParseResult,
    BankTransaction,
    IgnoredTransaction,
    IgnoreReason,
    ImportReport,
    MatchCandidate,
    PaymentMatch,
    ReconciliationOutcome,
    UnappliedCredit,
    UnresolvedReason,
    UnresolvedTransaction,
)
from ..config import FeeReconConfig
from .strategies import (
    ChildNameStrategy,
    KnownAccountStrategy,
    MatchingStrategy,
    MemberNumberStrategy,
    ParentNameStrategy,
    sort_roster,
)

logger = logging.getLogger(__name__)


class ReconciliationEngine:
    """
    Main reconciliation engine that assigns payments to fee obligations.

    Child identification runs the strategies in priority order: member
    number, child name, parent name, trusted payer account. The first
    strategy that yields a candidate decides.
    """

    def __init__(self, config: FeeReconConfig):
        """
        Initialize the reconciliation engine.

        Args:
            config: Application configuration
        """
        self.config = config

    def _build_strategies(
        self, known_accounts: list[KnownAccount]
    ) -> list[MatchingStrategy]:
        """Build identification strategies in priority order."""
        matching = self.config.matching

        strategies: list[MatchingStrategy] = [
            MemberNumberStrategy(
                confidence=matching.identifier_confidence,
                length=matching.member_number_length,
            ),
            ChildNameStrategy(threshold=matching.acceptance_threshold),
        ]
        if matching.match_parents:
            strategies.append(ParentNameStrategy(threshold=matching.acceptance_threshold))
        if matching.use_known_accounts and known_accounts:
            strategies.append(
                KnownAccountStrategy(
                    known_accounts, confidence=matching.known_account_confidence
                )
            )

        return strategies

    def identify_child(
        self,
        txn: BankTransaction,
        children: list[Child],
        strategies: list[MatchingStrategy],
    ) -> Optional[MatchCandidate]:
        """
        Find the child a transaction pays for.

        Args:
            txn: Transaction to identify
            children: Roster in stable order
            strategies: Strategies in priority order

        Returns:
            First candidate found, or None
        """
        for strategy in strategies:
            candidate = strategy.find_candidate(txn, children)
            if candidate is not None:
                return candidate
        return None

    def reconcile(
        self,
        transactions: Iterable[BankTransaction],
        children: Iterable[Child],
        obligations: Iterable[FeeObligation],
        known_accounts: Iterable[KnownAccount] = (),
        seen_fingerprints: Iterable[tuple] = (),
        deadline: Optional[datetime] = None,
    ) -> ReconciliationOutcome:
        """
        Assign transactions to open fee obligations.

        Args:
            transactions: Imported bank transactions
            children: Roster of children with their parents
            obligations: Fee obligations, open or settled
            known_accounts: Trusted and blocked payer accounts
            seen_fingerprints: Fingerprints of transactions imported earlier
            deadline: Stop before the next transaction once this time passes

        Returns:
            Matches, unresolved transactions, credits and final balances
        """
        start_time = datetime.now()

        # Stable sort: equal booking dates keep file order
        ordered = sorted(transactions, key=lambda t: t.booking_date)
        roster = sort_roster(children)
        known = list(known_accounts)
        strategies = self._build_strategies(known)

        blocked = {
            k.normalized_account
            for k in known
            if k.status == KnownAccountStatus.BLOCKED and k.normalized_account
        }
        seen = set(seen_fingerprints)

        balances: dict[str, Decimal] = {}
        open_by_child: dict[str, list[FeeObligation]] = {}
        for obligation in sorted(obligations, key=lambda o: o.sort_key):
            balances[obligation.id] = obligation.remaining
            open_by_child.setdefault(obligation.child_id, []).append(obligation)

        logger.info(
            f"Starting reconciliation: {len(ordered)} transactions, "
            f"{len(roster)} children, {len(balances)} obligations"
        )

        outcome = ReconciliationOutcome(balances=balances)
        settings = self.config.reconciliation

        for index, txn in enumerate(ordered):
            if deadline is not None and datetime.now() >= deadline:
                outcome.not_processed = ordered[index:]
                logger.warning(
                    f"Deadline reached, {len(outcome.not_processed)} transactions "
                    f"left unprocessed"
                )
                break

            if settings.incoming_only and not txn.is_incoming:
                outcome.ignored.append(
                    IgnoredTransaction(txn, IgnoreReason.OUTGOING_PAYMENT)
                )
                continue

            if normalize_account(txn.payer_account) in blocked:
                outcome.ignored.append(IgnoredTransaction(txn, IgnoreReason.BLOCKED_ACCOUNT))
                continue

            if settings.detect_duplicates:
                if txn.fingerprint in seen:
                    outcome.ignored.append(IgnoredTransaction(txn, IgnoreReason.DUPLICATE))
                    continue
                seen.add(txn.fingerprint)

            candidate = self.identify_child(txn, roster, strategies)
            if candidate is None:
                logger.debug(f"Transaction {txn.id}: no person identified")
                outcome.unresolved.append(
                    UnresolvedTransaction(txn, UnresolvedReason.NO_PERSON_IDENTIFIED)
                )
                continue

            self._settle(txn, candidate, open_by_child, balances, outcome)

        elapsed = (datetime.now() - start_time).total_seconds()
        matched = len({m.transaction.id for m in outcome.matches})
        logger.info(
            f"Reconciliation complete in {elapsed:.2f}s: {matched} transactions matched, "
            f"{len(outcome.matches)} payment matches, {len(outcome.unresolved)} unresolved, "
            f"{len(outcome.ignored)} ignored"
        )

        return outcome

    def _settle(
        self,
        txn: BankTransaction,
        candidate: MatchCandidate,
        open_by_child: dict[str, list[FeeObligation]],
        balances: dict[str, Decimal],
        outcome: ReconciliationOutcome,
    ) -> None:
        """Apply a transaction to the child's open obligations, oldest first."""
        child = candidate.child
        open_obligations = [
            o for o in open_by_child.get(child.id, []) if balances[o.id] > 0
        ]

        if not open_obligations:
            logger.debug(
                f"Transaction {txn.id}: {child.full_name} has no open obligation"
            )
            outcome.unresolved.append(
                UnresolvedTransaction(txn, UnresolvedReason.NO_OPEN_OBLIGATION, candidate)
            )
            return

        remaining = txn.amount
        for obligation in open_obligations:
            if remaining <= 0:
                break

            applied = min(remaining, balances[obligation.id])
            balances[obligation.id] -= applied
            remaining -= applied

            match = PaymentMatch(
                id=str(uuid.uuid4()),
                transaction=txn,
                obligation=obligation,
                amount=applied,
                confidence=candidate.confidence,
                basis=candidate.basis,
                settles_obligation=balances[obligation.id] == 0,
                late=obligation.is_late_payment(
                    txn.booking_date, self.config.reconciliation.late_payment_day
                ),
            )
            outcome.matches.append(match)
            logger.debug(
                f"Transaction {txn.id}: {applied} applied to {obligation.id} "
                f"({obligation.period_label}) via {candidate.basis.value}"
            )
            if match.late:
                logger.info(
                    f"Transaction {txn.id}: late payment for {obligation.id} "
                    f"({obligation.period_label}), booked {txn.booking_date}"
                )

            if not self.config.reconciliation.cascade_remainder:
                break

        if remaining > 0:
            logger.warning(
                f"Transaction {txn.id}: {remaining} {txn.currency} left unapplied "
                f"for {child.full_name}"
            )
            outcome.unapplied_credits.append(UnappliedCredit(txn, child, remaining))

    def generate_report(
        self,
        outcome: ReconciliationOutcome,
        parse_result: BankFileParseResult,
        processing_time: float,
    ) -> ImportReport:
        """
        Generate the report of an import run.

        Args:
            outcome: Result of :meth:`reconcile`
            parse_result: Result of decoding the bank file
            processing_time: Time taken in seconds

        Returns:
            Import report
        """
        return ImportReport(
            source_name=parse_result.source_name,
            processed_at=datetime.now(),
            transactions=list(parse_result.transactions),
            matches=outcome.matches,
            unresolved=outcome.unresolved,
            unapplied_credits=outcome.unapplied_credits,
            ignored=outcome.ignored,
            not_processed=outcome.not_processed,
            skipped_rows=parse_result.skipped.copy(),
            processing_time_seconds=processing_time,
            config_file_used=self.config.config_file_path,
        )


def apply_matches(matches: Iterable[PaymentMatch]) -> list[FeeObligation]:
    """
    Record payment matches on the caller's obligations.

    Returns:
        Obligations that were changed, in first-touched order
    """
    touched: dict[str, FeeObligation] = {}
    for match in matches:
        match.obligation.paid_amount += match.amount
        touched.setdefault(match.obligation.id, match.obligation)
    return list(touched.values())
