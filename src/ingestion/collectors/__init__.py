"""Collectors package."""

from src.ingestion.collectors.base_collector import BaseCollector
from src.ingestion.collectors.quote_service_collector import QuoteServiceCollector

__all__ = ["BaseCollector", "QuoteServiceCollector"]
