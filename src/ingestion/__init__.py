"""Data ingestion module - collectors and preprocessors."""

from src.ingestion.collectors import BaseCollector, QuoteServiceCollector
from src.ingestion.preprocessors import (
    HistoricalSeriesReconstructor,
    InvalidResponse,
    NewsPreprocessor,
)

__all__ = [
    "BaseCollector",
    "HistoricalSeriesReconstructor",
    "InvalidResponse",
    "NewsPreprocessor",
    "QuoteServiceCollector",
]
