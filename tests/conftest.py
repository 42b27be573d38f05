"""
Root pytest configuration.

Shared fixtures: a fixed clock, seeded reconstructors and sample quote
service payloads. No test touches the network.
"""

from datetime import datetime, timezone

import pytest

from src.ingestion.preprocessors.historical_reconstructor import HistoricalSeriesReconstructor

FIXED_NOW = datetime(2026, 3, 10, 15, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def reconstructor(tmp_path) -> HistoricalSeriesReconstructor:
    """Seeded reconstructor with a frozen clock and UTC display."""
    return HistoricalSeriesReconstructor(
        log_file=tmp_path / "historical_reconstructor.log",
        synthetic_threshold=2,
        display_timezone="UTC",
        seed=42,
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def historical_payload() -> dict:
    """Five-point response with gaps, junk entries and a short array."""
    return {
        "timestamps": [
            "2026-03-10T12:00:00Z",
            "2026-03-10T12:30:00Z",
            "2026-03-10T13:00:00Z",
            "2026-03-10T13:30:00Z",
            "2026-03-10T14:00:00Z",
        ],
        "sources": {
            "wise": {
                "buy_prices": [5.00, None, 5.20, 5.30, None],
                "sell_prices": [5.10, 5.15, "n/a", 5.35, 5.40],
            },
            "nomad": {
                "buy_prices": [5.05, 5.10, 5.15],
                "sell_prices": [5.20, 5.25, 5.30, 5.35, 5.45],
            },
        },
        "isApproximated": False,
    }


@pytest.fixture
def quotes_payload() -> list[dict]:
    return [
        {"source": "https://wise.com/br/currency-converter", "buy_price": 5.01, "sell_price": 5.12},
        {"source": "https://www.nomadglobal.com", "buy_price": 5.03, "sell_price": 5.15},
        {"source": "comparadolar", "buy_price": 5.05, "sell_price": 5.18},
    ]


@pytest.fixture
def news_payload() -> list[dict]:
    return [
        {
            "title": "Dólar fecha em alta",
            "source": "G1 Economia",
            "url": "https://g1.globo.com/economia/1",
            "publishedAt": "2026-03-10T10:00:00Z",
            "description": "<p>O <b>dólar</b> subiu&nbsp;1%.</p>",
            "imageUrl": "https://g1.globo.com/img/1.jpg",
        },
        {
            "title": "  Copom mantém   juros ",
            "source": "G1 Economia",
            "url": "https://g1.globo.com/economia/2",
            "publishedAt": "2026-03-10T12:00:00Z",
            "description": "Sem mudanças.",
        },
        {
            "title": "Dólar fecha em alta",
            "source": "G1 Economia",
            "url": "https://g1.globo.com/economia/1",
            "publishedAt": "2026-03-10T10:00:00Z",
        },
    ]
