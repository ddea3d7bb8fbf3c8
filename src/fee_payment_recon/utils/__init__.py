"""Utility modules."""

from .exceptions import (
    FeeReconError,
    BankFileError,
    ValueParseError,
    RosterParseError,
    ConfigurationError,
    ReportGenerationError,
)
from .logging_config import format_skip_summary, resolve_level, setup_logging

__all__ = [
    "FeeReconError",
    "BankFileError",
    "ValueParseError",
    "RosterParseError",
    "ConfigurationError",
    "ReportGenerationError",
    "setup_logging",
    "resolve_level",
    "format_skip_summary",
]
