"""Configuration loader and validation for fee reconciliation settings."""

from pathlib import Path
from typing import Any, Optional
import logging

import yaml
from pydantic import BaseModel, Field, ValidationError

from .utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class BankColumns(BaseModel):
    """Zero-based column offsets of the bank export."""

    booking_date: int = 4
    value_date: int = 5
    payer_name: int = 6
    payer_account: int = 7
    description: int = 10
    amount: int = 11
    currency: int = 12


class BankCsvConfig(BaseModel):
    """Configuration for parsing the bank export."""

    encoding: str = "iso-8859-1"
    delimiter: str = ";"
    date_format: str = "%d.%m.%Y"
    min_columns: int = 13
    home_currency: str = "EUR"
    columns: BankColumns = Field(default_factory=BankColumns)


class RosterConfig(BaseModel):
    """Configuration for roster, obligation and known-account CSV files."""

    encoding: str = "utf-8"
    delimiter: str = ","
    roster_columns: dict[str, str] = Field(
        default_factory=lambda: {
            "child_id": "child_id",
            "member_number": "member_number",
            "first_name": "first_name",
            "last_name": "last_name",
            "parent_first_name": "parent_first_name",
            "parent_last_name": "parent_last_name",
        }
    )
    obligation_columns: dict[str, str] = Field(
        default_factory=lambda: {
            "obligation_id": "obligation_id",
            "child_id": "child_id",
            "fee_type": "fee_type",
            "year": "year",
            "month": "month",
            "amount": "amount",
            "due_date": "due_date",
            "paid_amount": "paid_amount",
        }
    )
    known_account_columns: dict[str, str] = Field(
        default_factory=lambda: {
            "account": "account",
            "status": "status",
            "child_id": "child_id",
        }
    )


class InputConfig(BaseModel):
    """Configuration for input file parsing."""

    bank_csv: BankCsvConfig = Field(default_factory=BankCsvConfig)
    roster: RosterConfig = Field(default_factory=RosterConfig)


class MatchingConfig(BaseModel):
    """Configuration for identifying the child behind a transaction."""

    acceptance_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    identifier_confidence: float = Field(default=0.95, ge=0.0, le=1.0)
    known_account_confidence: float = Field(default=0.99, ge=0.0, le=1.0)
    member_number_length: int = Field(default=5, ge=1)
    match_parents: bool = True
    use_known_accounts: bool = True


class ReconciliationConfig(BaseModel):
    """Configuration for assigning payments to obligations."""

    incoming_only: bool = True
    cascade_remainder: bool = True
    detect_duplicates: bool = True
    late_payment_day: int = Field(default=15, ge=1, le=28)


class ExcelOutputConfig(BaseModel):
    """Configuration for Excel output."""

    filename_template: str = "fee_reconciliation_{date}_{time}.xlsx"


class SheetConfig(BaseModel):
    """Configuration for a report sheet."""

    enabled: bool = True
    name: str


class SheetsConfig(BaseModel):
    """Configuration for all report sheets."""

    summary: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Summary"))
    matches: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Payment Matches"))
    unresolved: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Unresolved"))
    unapplied: SheetConfig = Field(
        default_factory=lambda: SheetConfig(name="Unapplied Credits")
    )
    ignored: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Ignored"))
    audit_trail: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Audit Trail"))


class OutputConfig(BaseModel):
    """Configuration for output."""

    excel: ExcelOutputConfig = Field(default_factory=ExcelOutputConfig)
    sheets: SheetsConfig = Field(default_factory=SheetsConfig)


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class FeeReconConfig(BaseModel):
    """Main configuration model for fee reconciliation."""

    input: InputConfig = Field(default_factory=InputConfig)
    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    reconciliation: ReconciliationConfig = Field(default_factory=ReconciliationConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    config_file_path: Optional[str] = None


def get_default_config() -> dict[str, Any]:
    """Return the default configuration as a dictionary."""
    return {
        "input": {
            "bank_csv": {
                "encoding": "iso-8859-1",
                "delimiter": ";",
                "date_format": "%d.%m.%Y",
                "min_columns": 13,
                "home_currency": "EUR",
                "columns": {
                    "booking_date": 4,
                    "value_date": 5,
                    "payer_name": 6,
                    "payer_account": 7,
                    "description": 10,
                    "amount": 11,
                    "currency": 12,
                },
            },
            "roster": {
                "encoding": "utf-8",
                "delimiter": ",",
                "roster_columns": {
                    "child_id": "child_id",
                    "member_number": "member_number",
                    "first_name": "first_name",
                    "last_name": "last_name",
                    "parent_first_name": "parent_first_name",
                    "parent_last_name": "parent_last_name",
                },
                "obligation_columns": {
                    "obligation_id": "obligation_id",
                    "child_id": "child_id",
                    "fee_type": "fee_type",
                    "year": "year",
                    "month": "month",
                    "amount": "amount",
                    "due_date": "due_date",
                    "paid_amount": "paid_amount",
                },
                "known_account_columns": {
                    "account": "account",
                    "status": "status",
                    "child_id": "child_id",
                },
            },
        },
        "matching": {
            "acceptance_threshold": 0.5,
            "identifier_confidence": 0.95,
            "known_account_confidence": 0.99,
            "member_number_length": 5,
            "match_parents": True,
            "use_known_accounts": True,
        },
        "reconciliation": {
            "incoming_only": True,
            "cascade_remainder": True,
            "detect_duplicates": True,
            "late_payment_day": 15,
        },
        "output": {
            "excel": {
                "filename_template": "fee_reconciliation_{date}_{time}.xlsx",
            },
            "sheets": {
                "summary": {"enabled": True, "name": "Summary"},
                "matches": {"enabled": True, "name": "Payment Matches"},
                "unresolved": {"enabled": True, "name": "Unresolved"},
                "unapplied": {"enabled": True, "name": "Unapplied Credits"},
                "ignored": {"enabled": True, "name": "Ignored"},
                "audit_trail": {"enabled": True, "name": "Audit Trail"},
            },
        },
        "logging": {
            "level": "INFO",
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        },
    }


def load_config(config_path: Optional[Path] = None) -> FeeReconConfig:
    """
    Load configuration from a YAML file or use defaults.

    Args:
        config_path: Path to YAML configuration file (optional)

    Returns:
        FeeReconConfig object with loaded or default settings

    Raises:
        ConfigurationError: If the file is not valid YAML or holds invalid values
    """
    config_dict = get_default_config()

    if config_path and config_path.exists():
        logger.info(f"Loading configuration from: {config_path}")
        try:
            with open(config_path, "r") as f:
                user_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

        if not isinstance(user_config, dict):
            raise ConfigurationError(
                f"Configuration file {config_path} must contain a mapping"
            )

        config_dict = _deep_merge(config_dict, user_config)
        config_dict["config_file_path"] = str(config_path)
    else:
        logger.info("Using default configuration")

    try:
        return FeeReconConfig(**config_dict)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def _deep_merge(base: dict, override: dict) -> dict:
    """
    Deep merge two dictionaries.

    Args:
        base: Base dictionary
        override: Dictionary to merge on top

    Returns:
        Merged dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def generate_default_config(output_path: Path) -> None:
    """
    Generate a default configuration file.

    Args:
        output_path: Path to write the configuration file
    """
    config_dict = get_default_config()

    yaml_content = """# Fee Payment Reconciliation Configuration
# Generated configuration file - customize as needed

"""
    yaml_content += yaml.dump(config_dict, default_flow_style=False, sort_keys=False)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        f.write(yaml_content)

    logger.info(f"Generated configuration file: {output_path}")
