"""
Bank CSV export parser.

Decodes the semicolon separated, ISO-8859-1 encoded account statement
export into BankTransaction records. Import is best effort: rows that
cannot be parsed are counted and dropped, only a file that cannot be
read at all is an error.
"""

from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import BinaryIO, Optional
import csv
import io
import logging
import uuid

from ..models.transaction import BankFileParseResult, BankTransaction, SkipReason
from ..config import FeeReconConfig
from ..utils.exceptions import BankFileError, ValueParseError
from ..utils.logging_config import format_skip_summary
from .locale_values import parse_bank_amount, parse_bank_date

logger = logging.getLogger(__name__)


class _RowRejected(Exception):
    """Raised internally when a data row has to be skipped."""

    def __init__(self, reason: SkipReason, message: str):
        super().__init__(message)
        self.reason = reason


class BankCsvParser:
    """
    Parser for the bank's CSV account statement export.

    The first line is a header and is discarded. Every data row needs at
    least ``min_columns`` fields; the fields used are addressed by the
    column offsets in the configuration.
    """

    def __init__(self, config: FeeReconConfig):
        """
        Initialize the parser with configuration.

        Args:
            config: Application configuration object
        """
        self.config = config
        self.csv_config = config.input.bank_csv
        self.columns = self.csv_config.columns
        self.required_columns = max(
            self.csv_config.min_columns,
            max(self.columns.model_dump().values()) + 1,
        )

    def parse_file(self, file_path: Path) -> BankFileParseResult:
        """
        Parse a bank export file.

        Raises:
            BankFileError: If the file cannot be read or decoded
        """
        logger.info(f"Parsing bank CSV file: {file_path}")

        try:
            with open(file_path, "rb") as f:
                data = f.read()
        except OSError as e:
            logger.error(f"Failed to read bank file: {e}")
            raise BankFileError(f"Failed to read bank file: {e}") from e

        return self.parse_bytes(data, source_name=Path(file_path).name)

    def parse_stream(
        self, stream: BinaryIO, source_name: Optional[str] = None
    ) -> BankFileParseResult:
        """Parse a bank export from a binary stream."""
        try:
            data = stream.read()
        except OSError as e:
            logger.error(f"Failed to read bank stream: {e}")
            raise BankFileError(f"Failed to read bank stream: {e}") from e

        return self.parse_bytes(data, source_name=source_name or "<stream>")

    def parse_bytes(
        self, data: bytes, source_name: str = "<bytes>"
    ) -> BankFileParseResult:
        """
        Decode raw export bytes into transactions sorted by booking date.

        Args:
            data: Raw file content in the bank's encoding
            source_name: Name used in logs and reports

        Returns:
            Parse result with sorted transactions and skip counts

        Raises:
            BankFileError: If the content cannot be decoded or has no header
        """
        try:
            text = data.decode(self.csv_config.encoding)
        except (UnicodeDecodeError, LookupError) as e:
            logger.error(f"Failed to decode bank file {source_name}: {e}")
            raise BankFileError(f"Failed to decode bank file: {e}") from e

        reader = csv.reader(
            io.StringIO(text, newline=""),
            delimiter=self.csv_config.delimiter,
            strict=False,
        )

        try:
            next(reader)
        except StopIteration:
            raise BankFileError("Failed to read header: file is empty")
        except csv.Error as e:
            raise BankFileError(f"Failed to read header: {e}") from e

        result = BankFileParseResult(source_name=source_name)
        imported_at = datetime.now()
        skipped: Counter = Counter()

        while True:
            try:
                record = next(reader)
            except StopIteration:
                break
            except csv.Error as e:
                result.rows_read += 1
                skipped[SkipReason.MALFORMED_ROW] += 1
                logger.debug(f"Line {reader.line_num}: malformed row skipped: {e}")
                continue

            if not record:
                continue

            result.rows_read += 1
            try:
                txn = self._parse_row(record, reader.line_num, imported_at)
            except _RowRejected as e:
                skipped[e.reason] += 1
                logger.debug(f"Line {reader.line_num}: {e}, skipping")
                continue

            result.transactions.append(txn)

        # Stable sort, equal booking dates keep file order
        result.transactions.sort(key=lambda t: t.booking_date)
        result.skipped = skipped

        logger.info(
            f"Extracted {len(result.transactions)} transactions from {source_name}, "
            f"skipped {result.skipped_count} of {result.rows_read} rows "
            f"({format_skip_summary(result.skipped)})"
        )

        return result

    def _parse_row(
        self, record: list[str], line_num: int, imported_at: datetime
    ) -> BankTransaction:
        """Convert one CSV record into a BankTransaction."""
        if len(record) < self.required_columns:
            raise _RowRejected(
                SkipReason.TOO_FEW_COLUMNS,
                f"insufficient columns: got {len(record)}, "
                f"need at least {self.required_columns}",
            )

        cols = self.columns
        date_format = self.csv_config.date_format

        try:
            booking_date = parse_bank_date(record[cols.booking_date], date_format)
        except ValueParseError as e:
            raise _RowRejected(
                SkipReason.INVALID_BOOKING_DATE, f"invalid booking date: {e}"
            ) from e

        try:
            value_date = parse_bank_date(record[cols.value_date], date_format)
        except ValueParseError:
            value_date = booking_date

        try:
            amount = parse_bank_amount(record[cols.amount])
        except ValueParseError as e:
            raise _RowRejected(SkipReason.INVALID_AMOUNT, f"invalid amount: {e}") from e

        currency = record[cols.currency].strip() or self.csv_config.home_currency

        return BankTransaction(
            id=str(uuid.uuid4()),
            booking_date=booking_date,
            value_date=value_date,
            amount=amount,
            currency=currency,
            payer_name=_optional_text(record[cols.payer_name]),
            payer_account=_optional_text(record[cols.payer_account]),
            description=_optional_text(record[cols.description]),
            imported_at=imported_at,
            row_number=line_num,
        )


def _optional_text(value: str) -> Optional[str]:
    value = value.strip()
    return value or None
