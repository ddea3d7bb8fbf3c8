"""Parsers for bank exports and roster files."""

from .bank_csv_parser import BankCsvParser
from .locale_values import parse_bank_amount, parse_bank_date
from .roster_parser import RosterParser

__all__ = ["BankCsvParser", "RosterParser", "parse_bank_amount", "parse_bank_date"]
