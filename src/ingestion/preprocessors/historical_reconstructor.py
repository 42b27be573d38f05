"""Historical series reconstructor for the quote chart.

Turns the raw /historical response of the quote service into dense,
chart-ready rows. The backend series are often sparse: sources drop out,
arrays come back shorter than the timestamp list, entries are null or
non-numeric, and short lookbacks may return only one or two points.

Pipeline:
    1. validate()          - reject malformed top-level responses
    2. densify()           - every source/price kind gets a value per timestamp
    3. expand_synthetic()  - replaces steps 2 when the response has too few
                             timestamps to draw a readable line
    4. project_rows()      - one row per timestamp keyed "{source}_buy" /
                             "{source}_sell"

Raw response schema:
    - timestamps: list of timestamp strings
    - sources: {name: {"buy_prices": [...], "sell_prices": [...]}}
    - isApproximated: bool flag set by the backend

Chart row schema:
    - time: "HH:MM" in the display timezone (x-axis category)
    - timestamp: epoch milliseconds (the ordering key)
    - date: "DD/MM/YYYY" in the display timezone
    - {source}_buy, {source}_sell: float prices
"""

import math
import random
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pandas as pd

from src.ingestion.preprocessors.base_preprocessor import BasePreprocessor
from src.shared.config import Config
from src.shared.utils import to_display_tz

PRICE_KINDS = ("buy_prices", "sell_prices")
KIND_SUFFIX = {"buy_prices": "buy", "sell_prices": "sell"}

DenseSeries = dict[str, dict[str, list[float]]]


class InvalidResponse(ValueError):
    """Raised when a historical response violates the top-level shape."""


def _is_valid_sample(value: Any) -> bool:
    """A sample counts only if it is a finite real number."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(float(value))
    except OverflowError:
        return False


def _finite_or(value: float, fallback: float) -> float:
    """Return value, or fallback (0.0 if that is not finite either) on overflow."""
    if math.isfinite(value):
        return value
    return fallback if math.isfinite(fallback) else 0.0


def _mean(values: list[float]) -> float:
    # Divide before summing so large prices cannot overflow the total
    return sum(value / len(values) for value in values)


@dataclass(frozen=True)
class ReconstructedSeries:
    """Chart rows for one fetch cycle."""

    rows: list[dict[str, Any]]
    is_approximated: bool
    sources: tuple[str, ...] = ()

    def series_keys(self, kind: str = "buy") -> list[str]:
        """Row keys plotted for the buy or sell view, in source order."""
        if kind not in ("buy", "sell"):
            raise ValueError(f"kind must be 'buy' or 'sell', got '{kind}'")
        keys = [f"{source}_{kind}" for source in self.sources]
        return [key for key in keys if any(key in row for row in self.rows)]

    def to_frame(self) -> pd.DataFrame:
        """Rows as a DataFrame ordered by timestamp (never by display time)."""
        df = pd.DataFrame(self.rows)
        if df.empty:
            return df
        return df.sort_values("timestamp", kind="stable").reset_index(drop=True)


class HistoricalSeriesReconstructor(BasePreprocessor):
    """Preprocessor for the quote service /historical endpoint.

    Randomness (peer synthesis, carry noise, synthetic expansion) comes from
    an injected ``random.Random`` so results are reproducible with a seed.
    The clock is injectable for the same reason.
    """

    CATEGORY = "historical"

    # Data-poor sources: periodic wave + uniform noise around the peer average
    WAVE_AMPLITUDE = 0.01
    NOISE_BOUND = 0.004

    # Multiplicative noise when a value is carried forward or backward
    CARRY_NOISE = 0.003

    # Synthetic expansion: wave + noise around the first real sample
    SYNTHETIC_WAVE_AMPLITUDE = 0.02
    SYNTHETIC_NOISE_BOUND = 0.003

    PERIOD_POINTS = {"1h": 4, "6h": 12, "12h": 24, "24h": 48}
    PERIOD_SPACING = {"1h": timedelta(minutes=15)}
    DEFAULT_SPACING = timedelta(minutes=30)
    DEFAULT_PERIOD = "24h"
    # pandas resolves these against the wall clock
    RELATIVE_DATE_WORDS = frozenset({"now", "today"})

    def __init__(
        self,
        log_file: Path | None = None,
        synthetic_threshold: int | None = None,
        display_timezone: str | None = None,
        seed: int | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the reconstructor.

        Args:
            log_file: Optional path for file-based logging.
            synthetic_threshold: Responses with this many timestamps or fewer
                are replaced by a synthetic grid (default: Config.SYNTHETIC_THRESHOLD).
            display_timezone: Timezone for the "time"/"date" fields
                (default: Config.DISPLAY_TIMEZONE).
            seed: Seed for a private random generator (ignored if rng is given).
            rng: Random generator to draw noise from.
            clock: Callable returning "now" (default: current UTC time).
        """
        super().__init__(
            log_file=log_file or Config.LOGS_DIR / "preprocessors" / "historical_reconstructor.log",
        )
        self.synthetic_threshold = (
            Config.SYNTHETIC_THRESHOLD if synthetic_threshold is None else synthetic_threshold
        )
        self.display_timezone = display_timezone or Config.DISPLAY_TIMEZONE
        self._rng = rng or random.Random(seed)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    # ------------------------------------------------------------------
    # BasePreprocessor interface
    # ------------------------------------------------------------------

    def preprocess(self, payload: Any, period: str | None = None) -> ReconstructedSeries:
        """Reconstruct chart rows from a raw historical response.

        Args:
            payload: Decoded /historical response.
            period: Requested lookback ("1h", "6h", "12h", "24h").

        Returns:
            ReconstructedSeries with one row per (possibly synthetic) timestamp.

        Raises:
            InvalidResponse: If the response fails validation.
        """
        period = period or Config.DEFAULT_PERIOD
        raw = self.validate(payload)
        now = self._now()
        timestamps = raw["timestamps"]

        if len(timestamps) <= self.synthetic_threshold:
            self.logger.warning(
                "Only %d timestamp(s) for period %s, generating synthetic series",
                len(timestamps),
                period,
            )
            expanded = self.expand_synthetic(raw, period, now=now)
            timestamps = expanded["timestamps"]
            dense = expanded["sources"]
            approximated = True
        else:
            dense, filled = self._densify(raw)
            approximated = bool(raw.get("isApproximated")) or filled > 0

        rows = self.project_rows(timestamps, dense, now=now)
        self.logger.info(
            "Reconstructed %d rows for %d source(s), approximated=%s",
            len(rows),
            len(dense),
            approximated,
        )
        return ReconstructedSeries(rows=rows, is_approximated=approximated, sources=tuple(dense))

    def validate(self, payload: Any) -> dict[str, Any]:
        """Check the top-level shape of a historical response.

        Returns:
            The payload, unchanged.

        Raises:
            InvalidResponse: Error flag set, or timestamps/sources missing or empty.
        """
        if not isinstance(payload, dict):
            raise InvalidResponse("Historical response is not a JSON object")

        if payload.get("error"):
            raise InvalidResponse(payload.get("message") or "Quote service reported an error")

        timestamps = payload.get("timestamps")
        if not isinstance(timestamps, list) or not timestamps:
            raise InvalidResponse("Historical response has no timestamps")

        sources = payload.get("sources")
        if not isinstance(sources, dict) or not sources:
            raise InvalidResponse("Historical response has no sources")

        return payload

    # ------------------------------------------------------------------
    # Densification
    # ------------------------------------------------------------------

    def densify(self, raw: dict[str, Any]) -> DenseSeries:
        """Give every source a defined price per timestamp.

        Buy and sell are handled independently. A source with no valid
        sample of a kind is synthesized from the other sources; otherwise
        gaps are interpolated or carried from the nearest defined value.
        """
        dense, _ = self._densify(raw)
        return dense

    def _densify(self, raw: dict[str, Any]) -> tuple[DenseSeries, int]:
        n = len(raw["timestamps"])
        aligned = {
            name: {kind: self._align(series, kind, n) for kind in PRICE_KINDS}
            for name, series in raw["sources"].items()
        }

        dense: DenseSeries = {}
        filled = 0
        for name, series in aligned.items():
            dense[name] = {}
            for kind in PRICE_KINDS:
                values = series[kind]
                missing = sum(value is None for value in values)
                if missing == n:
                    peers = [other[kind] for other_name, other in aligned.items() if other_name != name]
                    self.logger.warning(
                        "Source %s has no valid %s, synthesizing from %d peer(s)",
                        name,
                        kind,
                        len(peers),
                    )
                    dense[name][kind] = self._synthesize_from_peers(peers, n)
                else:
                    dense[name][kind] = self._fill_gaps(values)
                filled += missing

        if filled:
            self.logger.debug("Filled %d missing sample(s)", filled)
        return dense, filled

    @staticmethod
    def _align(series: Any, kind: str, n: int) -> list[float | None]:
        """Price list of length n with invalid or missing entries as None."""
        values = series.get(kind) if isinstance(series, dict) else None
        if not isinstance(values, list):
            values = []
        aligned: list[float | None] = [
            float(value) if _is_valid_sample(value) else None for value in values[:n]
        ]
        return aligned + [None] * (n - len(aligned))

    def _synthesize_from_peers(self, peers: list[list[float | None]], n: int) -> list[float]:
        peer_samples = [value for values in peers for value in values if value is not None]
        overall = _mean(peer_samples) if peer_samples else 0.0

        seen: list[float] = []
        synthesized = []
        for i in range(n):
            at_index = [values[i] for values in peers if values[i] is not None]
            seen.extend(at_index)

            if at_index:
                avg = _mean(at_index)
            elif seen:
                avg = _mean(seen)
            else:
                avg = overall

            wave = self.WAVE_AMPLITUDE * math.sin(2 * math.pi * i / n)
            noise = self._rng.uniform(-self.NOISE_BOUND, self.NOISE_BOUND)
            synthesized.append(_finite_or(avg * (1 + wave + noise), avg))
        return synthesized

    def _fill_gaps(self, values: list[float | None]) -> list[float]:
        # Earlier-first, in place: a filled index is a valid neighbour for the next one
        filled = list(values)
        for i, value in enumerate(filled):
            if value is not None:
                continue

            prev_idx = next((j for j in range(i - 1, -1, -1) if filled[j] is not None), None)
            next_idx = next((j for j in range(i + 1, len(filled)) if filled[j] is not None), None)

            if prev_idx is not None and next_idx is not None:
                weight = (i - prev_idx) / (next_idx - prev_idx)
                filled[i] = _finite_or(
                    filled[prev_idx] * (1 - weight) + filled[next_idx] * weight,
                    filled[prev_idx],
                )
            else:
                anchor = filled[prev_idx if prev_idx is not None else next_idx]
                filled[i] = _finite_or(anchor * self._carry_factor(), anchor)
        return filled

    def _carry_factor(self) -> float:
        return 1 + self._rng.uniform(-self.CARRY_NOISE, self.CARRY_NOISE)

    # ------------------------------------------------------------------
    # Synthetic expansion
    # ------------------------------------------------------------------

    def expand_synthetic(
        self,
        raw: dict[str, Any],
        period: str,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """Replace a too-short response with a denser synthetic grid.

        The grid ends at "now" and is spaced 15 minutes apart for the 1h
        period, 30 minutes otherwise. Each source/kind oscillates around its
        first real sample (0 when it has none).

        Returns:
            A response-shaped dict with ISO timestamps, oldest first, and
            ``isApproximated`` set.
        """
        if period not in self.PERIOD_POINTS:
            self.logger.warning("Unknown period %s, using %s", period, self.DEFAULT_PERIOD)
        count = self.PERIOD_POINTS.get(period, self.PERIOD_POINTS[self.DEFAULT_PERIOD])
        spacing = self.PERIOD_SPACING.get(period, self.DEFAULT_SPACING)
        now = now or self._now()

        grid = [now - spacing * step for step in range(count)]
        grid.reverse()

        sources: DenseSeries = {}
        for name, series in raw["sources"].items():
            sources[name] = {}
            for kind in PRICE_KINDS:
                base = self._first_sample(series, kind)
                sources[name][kind] = [
                    round(
                        _finite_or(
                            base
                            * (
                                1
                                + self.SYNTHETIC_WAVE_AMPLITUDE
                                * math.sin(2 * math.pi * i / count)
                                + self._rng.uniform(
                                    -self.SYNTHETIC_NOISE_BOUND, self.SYNTHETIC_NOISE_BOUND
                                )
                            ),
                            base,
                        ),
                        4,
                    )
                    for i in range(count)
                ]

        return {
            "timestamps": [ts.isoformat() for ts in grid],
            "sources": sources,
            "isApproximated": True,
        }

    @staticmethod
    def _first_sample(series: Any, kind: str) -> float:
        values = series.get(kind) if isinstance(series, dict) else None
        if not isinstance(values, list):
            return 0.0
        return next((float(value) for value in values if _is_valid_sample(value)), 0.0)

    # ------------------------------------------------------------------
    # Chart rows
    # ------------------------------------------------------------------

    def project_rows(
        self,
        timestamps: list[Any],
        dense: DenseSeries,
        now: datetime | None = None,
    ) -> list[dict[str, Any]]:
        """Build one chart row per timestamp.

        Unparseable timestamps are replaced by ``now - (N - i) * 30min`` so
        rows keep their order and spacing. Price keys are omitted where a
        source has no value for the index.
        """
        now = now or self._now()
        n = len(timestamps)
        substituted = 0

        rows = []
        for i, raw_ts in enumerate(timestamps):
            parsed = self._parse_timestamp(raw_ts)
            if parsed is None:
                parsed = now - self.DEFAULT_SPACING * (n - i)
                substituted += 1

            local = to_display_tz(parsed, self.display_timezone)
            row: dict[str, Any] = {
                "time": local.strftime("%H:%M"),
                "timestamp": round(parsed.timestamp() * 1000),
                "date": local.strftime("%d/%m/%Y"),
            }
            for name, series in dense.items():
                for kind in PRICE_KINDS:
                    values = series.get(kind) or []
                    if i < len(values) and values[i] is not None:
                        row[f"{name}_{KIND_SUFFIX[kind]}"] = values[i]
            rows.append(row)

        if substituted:
            self.logger.warning("Substituted %d unparseable timestamp(s)", substituted)
        return rows

    @classmethod
    def _parse_timestamp(cls, value: Any) -> datetime | None:
        if not isinstance(value, str) or not value.strip():
            return None
        if value.strip().lower() in cls.RELATIVE_DATE_WORDS:
            return None
        try:
            parsed = pd.to_datetime(value, errors="coerce", utc=True)
        except (TypeError, ValueError, OverflowError):
            return None
        if pd.isna(parsed):
            return None
        return parsed.to_pydatetime()

    def _now(self) -> datetime:
        now = self._clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now
