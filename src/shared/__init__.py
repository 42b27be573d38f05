"""Shared utilities and configuration."""

from src.shared.config import Config
from src.shared.utils import (
    currency_symbol,
    format_percentage,
    setup_logger,
    source_label,
    to_display_tz,
)

__all__ = [
    "Config",
    "currency_symbol",
    "format_percentage",
    "setup_logger",
    "source_label",
    "to_display_tz",
]
