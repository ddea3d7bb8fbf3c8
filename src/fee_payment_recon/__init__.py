"""Bank statement import and fee payment reconciliation."""

__version__ = "0.1.0"
