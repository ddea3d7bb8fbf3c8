"""
Roster and obligation CSV parser.
Reads the children/parents roster, open fee obligations and known payer
accounts exported by the membership service.
"""

from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional
import logging

import pandas as pd

from ..models.roster import (
    Child,
    FeeObligation,
    FeeType,
    KnownAccount,
    KnownAccountStatus,
    Parent,
)
from ..config import FeeReconConfig
from ..utils.exceptions import RosterParseError

logger = logging.getLogger(__name__)


class RosterParser:
    """
    Parser for roster, obligation and known-account CSV files.

    The roster file has one row per child and parent; a child without
    parents has blank parent columns.
    """

    def __init__(self, config: FeeReconConfig):
        """
        Initialize the parser with configuration.

        Args:
            config: Application configuration object
        """
        self.config = config
        self.roster_config = config.input.roster

    def _read_csv(self, file_path: Path) -> pd.DataFrame:
        try:
            return pd.read_csv(
                file_path,
                encoding=self.roster_config.encoding,
                delimiter=self.roster_config.delimiter,
                dtype=str,
                keep_default_na=False,
            )
        except Exception as e:
            logger.error(f"Failed to read CSV file {file_path}: {e}")
            raise RosterParseError(f"Failed to read CSV file {file_path}: {e}") from e

    def parse_children(self, file_path: Path) -> list[Child]:
        """
        Parse the roster file into children with their linked parents.

        Raises:
            RosterParseError: If the file cannot be read or lacks columns
        """
        logger.info(f"Parsing roster file: {file_path}")
        df = self._read_csv(file_path)
        cols = self.roster_config.roster_columns
        _require_columns(df, cols, ["child_id", "first_name", "last_name"], file_path)

        children: dict[str, Child] = {}
        for idx, row in df.iterrows():
            child_id = _cell(row, cols["child_id"])
            if not child_id:
                logger.warning(f"Roster row {idx}: missing child id, skipping")
                continue

            child = children.get(child_id)
            if child is None:
                child = Child(
                    id=child_id,
                    member_number=_cell(row, cols.get("member_number", "")),
                    first_name=_cell(row, cols["first_name"]),
                    last_name=_cell(row, cols["last_name"]),
                )
                children[child_id] = child

            parent_first = _cell(row, cols.get("parent_first_name", ""))
            parent_last = _cell(row, cols.get("parent_last_name", ""))
            if parent_first or parent_last:
                child.parents.append(Parent(first_name=parent_first, last_name=parent_last))

        logger.info(f"Loaded {len(children)} children from roster")
        return list(children.values())

    def parse_obligations(self, file_path: Path) -> list[FeeObligation]:
        """
        Parse the fee obligation file.

        Rows with an unreadable amount or year are skipped with a warning.

        Raises:
            RosterParseError: If the file cannot be read or lacks columns
        """
        logger.info(f"Parsing obligations file: {file_path}")
        df = self._read_csv(file_path)
        cols = self.roster_config.obligation_columns
        _require_columns(
            df, cols, ["obligation_id", "child_id", "year", "amount"], file_path
        )

        obligations: list[FeeObligation] = []
        for idx, row in df.iterrows():
            try:
                obligation = self._normalize_obligation(row, cols)
            except (ValueError, InvalidOperation) as e:
                logger.warning(f"Obligation row {idx}: {e}, skipping")
                continue
            obligations.append(obligation)

        logger.info(f"Loaded {len(obligations)} fee obligations")
        return obligations

    def _normalize_obligation(self, row: pd.Series, cols: dict[str, str]) -> FeeObligation:
        """Convert a DataFrame row into a FeeObligation."""
        amount = _parse_decimal(_cell(row, cols["amount"]))
        if amount is None:
            raise ValueError("missing amount")

        month_value = _cell(row, cols.get("month", ""))
        due_value = _cell(row, cols.get("due_date", ""))
        fee_type_value = _cell(row, cols.get("fee_type", "")).upper()

        return FeeObligation(
            id=_cell(row, cols["obligation_id"]),
            child_id=_cell(row, cols["child_id"]),
            year=int(_cell(row, cols["year"])),
            month=int(month_value) if month_value else None,
            amount=amount,
            due_date=date.fromisoformat(due_value) if due_value else None,
            fee_type=FeeType(fee_type_value) if fee_type_value else FeeType.CHILDCARE,
            paid_amount=_parse_decimal(_cell(row, cols.get("paid_amount", "")))
            or Decimal("0"),
        )

    def parse_known_accounts(self, file_path: Path) -> list[KnownAccount]:
        """
        Parse the known payer account file.

        Raises:
            RosterParseError: If the file cannot be read or lacks columns
        """
        logger.info(f"Parsing known accounts file: {file_path}")
        df = self._read_csv(file_path)
        cols = self.roster_config.known_account_columns
        _require_columns(df, cols, ["account", "status"], file_path)

        accounts: list[KnownAccount] = []
        for idx, row in df.iterrows():
            account = _cell(row, cols["account"])
            status_value = _cell(row, cols["status"]).upper()
            try:
                status = KnownAccountStatus(status_value)
            except ValueError:
                logger.warning(f"Known account row {idx}: unknown status {status_value!r}")
                continue
            if not account:
                continue

            accounts.append(
                KnownAccount(
                    account=account,
                    status=status,
                    child_id=_cell(row, cols.get("child_id", "")) or None,
                )
            )

        logger.info(f"Loaded {len(accounts)} known accounts")
        return accounts


def _require_columns(
    df: pd.DataFrame, cols: dict[str, str], required: list[str], file_path: Path
) -> None:
    missing = [cols[key] for key in required if cols.get(key) not in df.columns]
    if missing:
        raise RosterParseError(f"{file_path}: missing columns {', '.join(missing)}")


def _cell(row: pd.Series, column: str) -> str:
    if not column or column not in row.index:
        return ""
    value = row[column]
    if pd.isna(value):
        return ""
    return str(value).strip()


def _parse_decimal(value: str) -> Optional[Decimal]:
    if not value:
        return None
    return Decimal(value)
