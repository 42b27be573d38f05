"""Quote service collector for the USD/BRL and USD/ARS dashboard.

Collects from the dashboard backend:
    - Current buy/sell quotes per source (/quotes)
    - Cross-source average buy/sell price (/average)
    - Per-source slippage against the average (/slippage)
    - Economic news headlines (/news)
    - Historical buy/sell series per source (/historical)

Every request carries the country both as a query parameter and as a
``country`` header, which is how the backend selects the market.

Reconstruction of the historical series (gap filling, synthetic expansion)
is handled by historical_reconstructor.py.
"""

from pathlib import Path
from typing import Any

import pandas as pd
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from src.ingestion.collectors.base_collector import BaseCollector
from src.ingestion.preprocessors.historical_reconstructor import InvalidResponse
from src.shared.config import Config
from src.shared.utils import currency_symbol, source_label


class QuoteServiceCollector(BaseCollector):
    """Collector for the dashboard quote service.

    Uses a requests session with automatic retry logic. Tabular endpoints are
    returned as DataFrames with all source fields preserved; the historical
    endpoint is returned as decoded JSON for HistoricalSeriesReconstructor.
    """

    SOURCE_NAME = "quote_service"

    MAX_RETRIES = 3
    RETRY_BACKOFF = 2.0

    QUOTE_COLUMNS = ["source", "buy_price", "sell_price"]
    AVERAGE_COLUMNS = ["average_buy_price", "average_sell_price"]
    SLIPPAGE_COLUMNS = ["source", "buy_price_slippage", "sell_price_slippage"]

    def __init__(
        self,
        base_url: str | None = None,
        timeout: int | None = None,
        log_file: Path | None = None,
        session: requests.Session | None = None,
    ) -> None:
        """Initialize the collector.

        Args:
            base_url: Quote service root URL (default: Config.QUOTE_SERVICE_URL).
            timeout: Per-request timeout in seconds (default: Config.REQUEST_TIMEOUT).
            log_file: Optional path for file-based logging.
            session: Pre-built session, mainly for tests.
        """
        super().__init__(
            log_file=log_file or Config.LOGS_DIR / "collectors" / "quote_service_collector.log",
        )
        self.base_url = (base_url or Config.QUOTE_SERVICE_URL).rstrip("/")
        self.timeout = timeout or Config.REQUEST_TIMEOUT
        self._session = session or self._create_session()
        self.logger.info("QuoteServiceCollector initialized, base_url=%s", self.base_url)

    # ------------------------------------------------------------------
    # BaseCollector interface
    # ------------------------------------------------------------------

    def collect(self, country: str) -> dict[str, pd.DataFrame]:
        """Collect quotes, average, slippage and news for one country.

        Returns:
            {"quotes": DataFrame, "average": DataFrame, "slippage": DataFrame,
             "news": DataFrame}
        """
        country = self.validate_country(country)
        self.logger.info("Collecting quote service data for %s", country)

        datasets = {
            "quotes": self.collect_quotes(country),
            "average": self.collect_average(country),
            "slippage": self.collect_slippage(country),
            "news": pd.DataFrame(self.collect_news(country)),
        }
        self.logger.info(
            "Done - %s",
            ", ".join(f"{name}={len(df)} rows" for name, df in datasets.items()),
        )
        return datasets

    def health_check(self) -> bool:
        """Check quote service availability by requesting Brazilian quotes."""
        try:
            country = Config.COUNTRIES[0]
            response = self._session.get(
                self._build_url("quotes"),
                params={"country": country},
                headers={"country": country},
                timeout=10,
            )
            return response.ok
        except requests.exceptions.RequestException:
            return False

    # ------------------------------------------------------------------
    # Endpoint-specific collection methods
    # ------------------------------------------------------------------

    def collect_quotes(self, country: str) -> pd.DataFrame:
        """Collect the current buy/sell quote of every source.

        Returns:
            DataFrame with the source fields plus ``source_name`` (short
            label for charts) and ``currency`` columns.
        """
        country = self.validate_country(country)
        records = self._as_records(self._fetch("quotes", country))
        df = pd.DataFrame(records)
        if df.empty:
            return pd.DataFrame(columns=self.QUOTE_COLUMNS + ["source_name", "currency"])

        if "source" not in df.columns:
            raise InvalidResponse("Quote records from /quotes have no 'source' field")

        df["source_name"] = df["source"].astype(str).map(source_label)
        df["currency"] = currency_symbol(country)
        return df

    def collect_average(self, country: str) -> pd.DataFrame:
        """Collect the cross-source average buy/sell price as a one-row DataFrame."""
        country = self.validate_country(country)
        df = pd.DataFrame(self._as_records(self._fetch("average", country)))
        if df.empty:
            return pd.DataFrame(columns=self.AVERAGE_COLUMNS)
        return df

    def collect_slippage(self, country: str) -> pd.DataFrame:
        """Collect each source's deviation from the average, as fractions."""
        country = self.validate_country(country)
        df = pd.DataFrame(self._as_records(self._fetch("slippage", country)))
        if df.empty:
            return pd.DataFrame(columns=self.SLIPPAGE_COLUMNS)
        return df

    def collect_news(self, country: str) -> list[dict[str, Any]]:
        """Collect raw economic news records (cleaned by NewsPreprocessor)."""
        country = self.validate_country(country)
        return self._as_records(self._fetch("news", country))

    def fetch_historical(self, country: str, period: str) -> dict[str, Any]:
        """Fetch the raw historical buy/sell series for a lookback period.

        Args:
            country: "brazil" or "argentina".
            period: One of Config.PERIODS ("1h", "6h", "12h", "24h").

        Returns:
            Decoded JSON object, unvalidated.

        Raises:
            ValueError: Unknown country or period.
            InvalidResponse: Body is not a JSON object.
            requests.exceptions.RequestException: Network / HTTP failure.
        """
        country = self.validate_country(country)
        if period not in Config.PERIODS:
            raise ValueError(
                f"Unsupported period '{period}'. Must be one of {', '.join(Config.PERIODS)}."
            )

        payload = self._fetch("historical", country, period=period)
        if not isinstance(payload, dict):
            raise InvalidResponse(
                f"Historical response must be a JSON object, got {type(payload).__name__}"
            )
        return payload

    # ------------------------------------------------------------------
    # Private: HTTP layer
    # ------------------------------------------------------------------

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        retry = Retry(
            total=self.MAX_RETRIES,
            backoff_factor=self.RETRY_BACKOFF,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET"],
        )
        adapter = HTTPAdapter(max_retries=retry)
        session.mount("https://", adapter)
        session.mount("http://", adapter)
        return session

    def _build_url(self, endpoint: str) -> str:
        return f"{self.base_url}/{endpoint}"

    def _fetch(self, endpoint: str, country: str, **params: str) -> Any:
        """GET an endpoint and decode its JSON body.

        Raises:
            ValueError: Endpoint does not exist (HTTP 404).
            InvalidResponse: Body is not valid JSON.
            requests.exceptions.RequestException: Network / HTTP failure.
        """
        url = self._build_url(endpoint)
        query = {"country": country, **params}
        self.logger.debug("GET %s params=%s", url, query)

        try:
            response = self._session.get(
                url,
                params=query,
                headers={"country": country},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.exceptions.HTTPError as exc:
            if exc.response is not None and exc.response.status_code == 404:
                raise ValueError(f"Quote service endpoint not found: /{endpoint}") from exc
            raise

        try:
            payload = response.json()
        except ValueError as exc:
            raise InvalidResponse(f"Invalid JSON body from /{endpoint}") from exc

        self.logger.debug("Received /%s payload for %s", endpoint, country)
        return payload

    @staticmethod
    def _as_records(payload: Any) -> list[dict[str, Any]]:
        """Coerce a list-or-object payload into a list of record dicts."""
        if payload is None:
            return []
        if isinstance(payload, dict):
            return [payload]
        if isinstance(payload, list):
            return [item for item in payload if isinstance(item, dict)]
        raise InvalidResponse(f"Expected a JSON list or object, got {type(payload).__name__}")
