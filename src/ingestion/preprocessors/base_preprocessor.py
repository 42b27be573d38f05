"""Abstract base class for all data preprocessors.

Preprocessors turn collector payloads into render-ready data:
- Reject malformed payloads before any transformation
- Standardized field names across sources
- Validated numeric types, no undefined entries
- UTC timestamps internally, display timezone only on output

Preprocessors are stateless between calls: every fetch cycle hands them a new
payload and they return a new result.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

import pandas as pd

from src.shared.config import Config
from src.shared.utils import setup_logger


class BasePreprocessor(ABC):
    """Base class for all data preprocessors.

    Subclasses must define:
        CATEGORY (str): kind of data produced (e.g., "historical", "news").

    Subclasses must implement:
        preprocess(): transform a raw payload to its output form.
        validate(): ensure a raw payload can be transformed.
    """

    CATEGORY: str

    def __init__(self, log_file: Path | None = None) -> None:
        """Initialize the preprocessor.

        Args:
            log_file: Optional path for file-based logging.
        """
        self.logger = setup_logger(self.__class__.__name__, log_file, level=Config.LOG_LEVEL)

    @abstractmethod
    def preprocess(self, payload: Any, **kwargs: Any) -> Any:
        """Transform a raw collector payload.

        Args:
            payload: Decoded JSON as returned by a collector.

        Returns:
            Preprocessed result (type defined by the subclass).
        """
        ...

    @abstractmethod
    def validate(self, payload: Any) -> Any:
        """Validate that a payload can be preprocessed.

        Args:
            payload: Payload to validate.

        Returns:
            The payload, unchanged, if valid.

        Raises:
            ValueError: If validation fails with details.
        """
        ...

    @staticmethod
    def to_frame(records: list[dict[str, Any]], sort_by: str | None = None) -> pd.DataFrame:
        """Build a DataFrame from records, optionally sorted by one column."""
        df = pd.DataFrame(records)
        if sort_by and not df.empty and sort_by in df.columns:
            df = df.sort_values(sort_by).reset_index(drop=True)
        return df
