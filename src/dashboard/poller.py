"""Polling scheduler for the quote dashboard.

Each trigger (timer tick, country change, period change, manual refresh)
produces a RefreshTicket. Issuing a ticket cancels the previous one, and a
cycle's result is committed only if its ticket is still the latest, so a
slow response for an old country or period never overwrites fresher state.

Cycles run on a single background thread and never overlap. Between
cycles the thread waits on a wake event with the polling interval as
timeout; parameter changes set the event to refresh immediately.
"""

import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pandas as pd
import requests

from src.dashboard.state import DashboardState
from src.ingestion.collectors.quote_service_collector import QuoteServiceCollector
from src.ingestion.preprocessors.historical_reconstructor import (
    HistoricalSeriesReconstructor,
    InvalidResponse,
    ReconstructedSeries,
)
from src.ingestion.preprocessors.news_preprocessor import NewsPreprocessor
from src.shared.config import Config
from src.shared.utils import setup_logger

StateListener = Callable[[DashboardState], None]


@dataclass
class RefreshTicket:
    """One unit of refresh work, tied to the parameters it was issued for."""

    request_id: int
    country: str
    period: str
    _cancelled: threading.Event = field(default_factory=threading.Event, repr=False)

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()


class DashboardPoller:
    """Keeps a DashboardState fresh by polling the quote service."""

    def __init__(
        self,
        collector: QuoteServiceCollector | None = None,
        reconstructor: HistoricalSeriesReconstructor | None = None,
        news_preprocessor: NewsPreprocessor | None = None,
        country: str | None = None,
        period: str | None = None,
        interval: float | None = None,
        log_file: Path | None = None,
    ) -> None:
        """Initialize the poller.

        Args:
            collector: Quote service collector (default: a new QuoteServiceCollector).
            reconstructor: Historical series reconstructor.
            news_preprocessor: News cleaner.
            country: Initial country (default: Config.DEFAULT_COUNTRY).
            period: Initial lookback period (default: Config.DEFAULT_PERIOD).
            interval: Seconds between timer-driven cycles (default: Config.POLL_INTERVAL).
            log_file: Optional path for file-based logging.
        """
        self.logger = setup_logger(
            self.__class__.__name__,
            log_file or Config.LOGS_DIR / "dashboard" / "poller.log",
            level=Config.LOG_LEVEL,
        )
        self.collector = collector or QuoteServiceCollector()
        self.reconstructor = reconstructor or HistoricalSeriesReconstructor()
        self.news_preprocessor = news_preprocessor or NewsPreprocessor()
        self.interval = interval or Config.POLL_INTERVAL

        self._country = self.collector.validate_country(country or Config.DEFAULT_COUNTRY)
        self._period = self._validate_period(period or Config.DEFAULT_PERIOD)
        self._state = DashboardState(country=self._country, period=self._period)

        self._lock = threading.Lock()
        self._request_counter = 0
        self._current_ticket: RefreshTicket | None = None
        self._listeners: list[StateListener] = []

        self._wake = threading.Event()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def state(self) -> DashboardState:
        with self._lock:
            return self._state

    @property
    def country(self) -> str:
        return self._country

    @property
    def period(self) -> str:
        return self._period

    def subscribe(self, listener: StateListener) -> None:
        """Register a callback invoked with every committed state."""
        with self._lock:
            self._listeners.append(listener)

    def set_country(self, country: str) -> None:
        """Switch country; any in-flight cycle is cancelled and a new one triggered."""
        country = self.collector.validate_country(country)
        with self._lock:
            if country == self._country:
                return
            self._country = country
            self._cancel_current()
        self.logger.info("Country changed to %s", country)
        self.trigger()

    def set_period(self, period: str) -> None:
        """Switch lookback period; any in-flight cycle is cancelled and a new one triggered."""
        period = self._validate_period(period)
        with self._lock:
            if period == self._period:
                return
            self._period = period
            self._cancel_current()
        self.logger.info("Period changed to %s", period)
        self.trigger()

    def trigger(self) -> None:
        """Wake the background loop for an immediate cycle."""
        self._wake.set()

    def refresh(self) -> bool:
        """Run one full fetch/transform cycle synchronously.

        Returns:
            True if the result was committed, False if it was superseded.
        """
        ticket = self._issue_ticket()
        self.logger.debug(
            "Refresh %d started (%s, %s)", ticket.request_id, ticket.country, ticket.period
        )
        state = self._run_cycle(ticket)
        return self._commit(ticket, state)

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="DashboardPoller", daemon=True)
        self._thread.start()
        self.logger.info("Polling every %.1fs", self.interval)

    def stop(self) -> None:
        self._stop_event.set()
        self._wake.set()
        with self._lock:
            self._cancel_current()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=Config.REQUEST_TIMEOUT + 5)
        self._thread = None

    # ------------------------------------------------------------------
    # Private: scheduling
    # ------------------------------------------------------------------

    def _run(self) -> None:
        while not self._stop_event.is_set():
            self._wake.clear()
            try:
                self.refresh()
            except Exception:
                self.logger.exception("Unhandled exception during refresh")
            self._wake.wait(self.interval)

    def _issue_ticket(self) -> RefreshTicket:
        with self._lock:
            self._cancel_current()
            self._request_counter += 1
            ticket = RefreshTicket(
                request_id=self._request_counter,
                country=self._country,
                period=self._period,
            )
            self._current_ticket = ticket
            return ticket

    def _cancel_current(self) -> None:
        # Caller holds the lock
        if self._current_ticket is not None:
            self._current_ticket.cancel()
            self._current_ticket = None

    def _commit(self, ticket: RefreshTicket, state: DashboardState | None) -> bool:
        with self._lock:
            if state is None or ticket.cancelled or ticket is not self._current_ticket:
                self.logger.info("Discarding stale result of refresh %d", ticket.request_id)
                return False
            self._state = state
            self._current_ticket = None
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(state)
            except Exception:
                self.logger.exception("Dashboard listener failed")
        return True

    # ------------------------------------------------------------------
    # Private: one cycle
    # ------------------------------------------------------------------

    def _run_cycle(self, ticket: RefreshTicket) -> DashboardState | None:
        errors: dict[str, str] = {}

        chart = self._load_chart(ticket, errors)
        panels: dict[str, pd.DataFrame] = {}
        loaders: dict[str, Callable[[str], Any]] = {
            "quotes": self.collector.collect_quotes,
            "average": self.collector.collect_average,
            "slippage": self.collector.collect_slippage,
            "news": lambda country: self.news_preprocessor.preprocess(
                self.collector.collect_news(country)
            ),
        }
        for panel, loader in loaders.items():
            if ticket.cancelled:
                return None
            panels[panel] = self._load_panel(panel, loader, ticket.country, errors)

        if ticket.cancelled:
            return None
        return DashboardState(
            country=ticket.country,
            period=ticket.period,
            request_id=ticket.request_id,
            chart=chart,
            errors=errors,
            updated_at=datetime.now(timezone.utc),
            **panels,
        )

    def _load_chart(self, ticket: RefreshTicket, errors: dict[str, str]) -> ReconstructedSeries | None:
        try:
            raw = self.collector.fetch_historical(ticket.country, ticket.period)
            return self.reconstructor.preprocess(raw, period=ticket.period)
        except InvalidResponse as exc:
            self.logger.warning("No chart data for %s/%s: %s", ticket.country, ticket.period, exc)
            errors["chart"] = f"No data available: {exc}"
        except (requests.exceptions.RequestException, ValueError) as exc:
            self.logger.error("Failed to load chart: %s", exc)
            errors["chart"] = str(exc)
        return None

    def _load_panel(
        self,
        panel: str,
        loader: Callable[[str], Any],
        country: str,
        errors: dict[str, str],
    ) -> pd.DataFrame:
        try:
            return loader(country)
        except (requests.exceptions.RequestException, ValueError) as exc:
            self.logger.error("Failed to load %s: %s", panel, exc)
            errors[panel] = str(exc)
            return pd.DataFrame()

    @staticmethod
    def _validate_period(period: str) -> str:
        if period not in Config.PERIODS:
            raise ValueError(
                f"Unsupported period '{period}'. Must be one of {', '.join(Config.PERIODS)}."
            )
        return period
