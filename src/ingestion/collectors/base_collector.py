"""Abstract base class for quote service collectors.

Collectors talk to a remote service and hand back its payloads with as little
transformation as possible:
- Preserve all source fields
- Tabular endpoints become DataFrames, one row per record
- Series endpoints are returned as decoded JSON for the preprocessors

Reconstruction and cleaning are handled by preprocessors.
"""

from abc import ABC, abstractmethod
from pathlib import Path

import pandas as pd

from src.shared.config import Config
from src.shared.utils import setup_logger


class BaseCollector(ABC):
    """Base class for all data collectors.

    Subclasses must define:
        SOURCE_NAME (str): identifier used in log output (e.g. "quote_service").

    Subclasses must implement:
        collect(): fetch all tabular datasets for a country.
        health_check(): verify the source is reachable.
    """

    SOURCE_NAME: str

    def __init__(self, log_file: Path | None = None) -> None:
        """Initialize the collector.

        Args:
            log_file: Optional path for file-based logging.
        """
        self.logger = setup_logger(self.__class__.__name__, log_file, level=Config.LOG_LEVEL)

    @abstractmethod
    def collect(self, country: str) -> dict[str, pd.DataFrame]:
        """Collect all datasets from the source.

        Args:
            country: Country whose quotes are requested (e.g. "brazil").

        Returns:
            Mapping of dataset name to DataFrame.
        """
        ...

    @abstractmethod
    def health_check(self) -> bool:
        """Verify the data source is reachable and responding.

        Returns:
            True if the source is available, False otherwise.
        """
        ...

    def validate_country(self, country: str) -> str:
        """Normalize a country name, rejecting ones the service does not know.

        Raises:
            ValueError: If the country is not supported.
        """
        normalized = country.strip().lower()
        if normalized not in Config.COUNTRIES:
            raise ValueError(
                f"Unsupported country '{country}'. Must be one of {', '.join(Config.COUNTRIES)}."
            )
        return normalized
