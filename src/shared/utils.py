"""Shared utility functions for the FX quote dashboard."""

import logging
from datetime import datetime
from pathlib import Path
from urllib.parse import urlparse

import pytz


def setup_logger(
    name: str, log_file: Path | None = None, level: int | str = logging.INFO
) -> logging.Logger:
    """Set up logger with console and file handlers.

    Handlers are attached only once per logger name, so repeated calls
    (e.g. one collector instance per poll) do not duplicate output.

    Args:
        name: Logger name
        log_file: Optional path to log file
        level: Logging level (int constant or string name like 'DEBUG', 'INFO')

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Convert string level to int if needed
    if isinstance(level, str):
        numeric_level = getattr(logging, level.upper(), logging.INFO)
        logger.setLevel(numeric_level)
    else:
        logger.setLevel(level)

    if logger.handlers:
        return logger

    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # File handler
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def to_display_tz(dt: datetime, tz: str = "America/Sao_Paulo") -> datetime:
    """Convert datetime to the dashboard display timezone.

    Naive datetimes are assumed to be UTC.
    """
    if dt.tzinfo is None:
        dt = pytz.UTC.localize(dt)
    return dt.astimezone(pytz.timezone(tz))


def format_percentage(value: float | None) -> str:
    """Format a fractional slippage (0.0123) as a percentage string ("1.23%")."""
    if value is None:
        return "-"
    return f"{value * 100:.2f}%"


def currency_symbol(country: str) -> str:
    """Return the quote currency for a country (ARS for Argentina, BRL otherwise)."""
    return "ARS" if country.lower() == "argentina" else "BRL"


def source_label(source: str) -> str:
    """Short display name for a quote source.

    "https://wise.com/br" -> "wise"; values that are not URLs fall back to
    their first 10 characters.
    """
    hostname = urlparse(source).hostname if "://" in source else None
    if not hostname:
        return source[:10]
    if hostname.startswith("www."):
        hostname = hostname[4:]
    return hostname.split(".")[0]
