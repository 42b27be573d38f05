"""Data preprocessors turning quote service payloads into render-ready data."""

from src.ingestion.preprocessors.base_preprocessor import BasePreprocessor
from src.ingestion.preprocessors.historical_reconstructor import (
    HistoricalSeriesReconstructor,
    InvalidResponse,
    ReconstructedSeries,
)
from src.ingestion.preprocessors.news_preprocessor import NewsPreprocessor

__all__ = [
    "BasePreprocessor",
    "HistoricalSeriesReconstructor",
    "InvalidResponse",
    "NewsPreprocessor",
    "ReconstructedSeries",
]
