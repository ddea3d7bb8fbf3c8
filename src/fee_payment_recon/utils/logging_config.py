"""Logging configuration for the fee reconciliation application."""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Mapping, Optional, Union

PACKAGE_LOGGER = "fee_payment_recon"

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s"


def resolve_level(level: Union[int, str]) -> int:
    """
    Turn a level name from the config file (``"debug"``, ``"INFO"``) into
    a logging level. Unknown names fall back to INFO.
    """
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[Path] = None,
    log_format: Optional[str] = None,
) -> logging.Logger:
    """
    Configure logging for the ``fee_payment_recon`` package logger.

    Args:
        level: Logging level or level name from the configuration
        log_file: Optional path to a rotating log file
        log_format: Console format, defaults to ``DEFAULT_FORMAT``

    Returns:
        Configured package logger
    """
    level = resolve_level(level)

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)

    # Replace handlers from an earlier call in the same process
    for handler in logger.handlers:
        handler.close()
    logger.handlers = []

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(log_format or DEFAULT_FORMAT))
    logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        # Per-row skip reasons are DEBUG; the file keeps them for audits
        file_handler = RotatingFileHandler(log_file, maxBytes=10 * 1024 * 1024, backupCount=5)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        logger.addHandler(file_handler)
        logger.setLevel(min(level, logging.DEBUG))

    return logger


def format_skip_summary(skipped: Mapping) -> str:
    """
    Render bank rows skipped per reason as ``reason: n`` pairs.

    Reasons are sorted by name so log lines compare across runs.
    ``"none"`` when nothing was skipped.
    """
    counts = [(getattr(reason, "value", str(reason)), n) for reason, n in skipped.items() if n]
    if not counts:
        return "none"
    return ", ".join(f"{reason}: {n}" for reason, n in sorted(counts))
