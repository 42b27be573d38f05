"""Configuration management for the FX quote dashboard."""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


class Config:
    """Application configuration."""

    # Project paths
    ROOT_DIR = Path(__file__).parent.parent.parent
    LOGS_DIR = ROOT_DIR / "logs"

    # Quote service
    QUOTE_SERVICE_URL: str = os.getenv("QUOTE_SERVICE_URL", "https://pluggy.onrender.com")
    REQUEST_TIMEOUT: int = int(os.getenv("REQUEST_TIMEOUT", "30"))

    # Dashboard
    POLL_INTERVAL: float = float(os.getenv("POLL_INTERVAL", "15.0"))
    DEFAULT_COUNTRY: str = os.getenv("DEFAULT_COUNTRY", "brazil")
    DEFAULT_PERIOD: str = os.getenv("DEFAULT_PERIOD", "24h")
    DISPLAY_TIMEZONE: str = os.getenv("DISPLAY_TIMEZONE", "America/Sao_Paulo")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Series with this many timestamps or fewer are replaced by a synthetic grid
    SYNTHETIC_THRESHOLD: int = int(os.getenv("SYNTHETIC_THRESHOLD", "2"))

    COUNTRIES = ("brazil", "argentina")
    CURRENCY_SYMBOLS = {"brazil": "BRL", "argentina": "ARS"}
    PERIODS = ("1h", "6h", "12h", "24h")

    @classmethod
    def validate(cls) -> None:
        """Validate dashboard configuration."""
        if cls.DEFAULT_COUNTRY not in cls.COUNTRIES:
            raise ValueError(f"DEFAULT_COUNTRY must be one of {cls.COUNTRIES}")
        if cls.DEFAULT_PERIOD not in cls.PERIODS:
            raise ValueError(f"DEFAULT_PERIOD must be one of {cls.PERIODS}")
        if cls.POLL_INTERVAL <= 0:
            raise ValueError("POLL_INTERVAL must be positive")
        if cls.SYNTHETIC_THRESHOLD < 0:
            raise ValueError("SYNTHETIC_THRESHOLD must not be negative")


config = Config()
