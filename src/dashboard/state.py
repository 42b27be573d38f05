"""Immutable per-cycle dashboard state."""

from dataclasses import dataclass, field
from datetime import datetime

import pandas as pd

from src.ingestion.preprocessors.historical_reconstructor import ReconstructedSeries
from src.shared.utils import currency_symbol

PANELS = ("chart", "quotes", "average", "slippage", "news")


@dataclass(frozen=True)
class DashboardState:
    """Everything the views render for one fetch cycle.

    A new instance replaces the previous one wholesale on every committed
    cycle; nothing is patched in place.
    """

    country: str
    period: str
    request_id: int = 0
    chart: ReconstructedSeries | None = None
    quotes: pd.DataFrame = field(default_factory=pd.DataFrame)
    average: pd.DataFrame = field(default_factory=pd.DataFrame)
    slippage: pd.DataFrame = field(default_factory=pd.DataFrame)
    news: pd.DataFrame = field(default_factory=pd.DataFrame)
    errors: dict[str, str] = field(default_factory=dict)
    updated_at: datetime | None = None

    @property
    def currency(self) -> str:
        return currency_symbol(self.country)

    @property
    def is_loaded(self) -> bool:
        """False until the first cycle has been committed."""
        return self.updated_at is not None

    @property
    def is_approximated(self) -> bool:
        return self.chart is not None and self.chart.is_approximated

    def error_for(self, panel: str) -> str | None:
        if panel not in PANELS:
            raise ValueError(f"Unknown panel '{panel}'")
        return self.errors.get(panel)
