"""Custom exceptions for the fee reconciliation application."""


class FeeReconError(Exception):
    """Base exception for fee reconciliation errors."""

    pass


class BankFileError(FeeReconError):
    """The bank export could not be read as a whole."""

    pass


class ValueParseError(FeeReconError, ValueError):
    """A single bank date or amount value could not be parsed."""

    pass


class RosterParseError(FeeReconError):
    """Error reading roster, obligation or known-account CSV files."""

    pass


class ConfigurationError(FeeReconError):
    """Error in configuration."""

    pass


class ReportGenerationError(FeeReconError):
    """Error generating Excel report."""

    pass
