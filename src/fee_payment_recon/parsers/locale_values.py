"""
Parsers for the bank's German date and amount conventions.

Dates are written ``DD.MM.YYYY``. Amounts use ``.`` as the thousands
separator and ``,`` as the decimal separator (``-1.234,56``).
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from ..utils.exceptions import ValueParseError

BANK_DATE_FORMAT = "%d.%m.%Y"


def parse_bank_date(value: str, date_format: str = BANK_DATE_FORMAT) -> date:
    """
    Parse a bank date such as ``05.12.2024``.

    Raises:
        ValueParseError: If the value is empty or not in the expected format
    """
    value = (value or "").strip()
    if not value:
        raise ValueParseError("empty date")

    try:
        return datetime.strptime(value, date_format).date()
    except ValueError as e:
        raise ValueParseError(f"invalid date {value!r}: {e}") from e


def parse_bank_amount(value: str) -> Decimal:
    """
    Parse a German formatted amount such as ``1.234,56`` into a Decimal.

    Raises:
        ValueParseError: If the value is empty, not numeric or not finite
    """
    value = (value or "").strip()
    if not value:
        raise ValueParseError("empty amount")

    normalized = value.replace(".", "").replace(",", ".")

    try:
        amount = Decimal(normalized)
    except InvalidOperation as e:
        raise ValueParseError(f"invalid amount {value!r}") from e

    if not amount.is_finite():
        raise ValueParseError(f"invalid amount {value!r}")

    return amount
