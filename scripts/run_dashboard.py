"""Quote dashboard runner.

Polls the quote service and logs what the dashboard panels would show:
quotes, average, slippage, news headlines and the reconstructed chart.

Usage:
    # One cycle for Brazil, last 24h
    python scripts/run_dashboard.py --once

    # Argentina, last 6h, keep polling every 15 seconds
    python scripts/run_dashboard.py --country argentina --period 6h

    # Custom polling interval
    python scripts/run_dashboard.py --interval 30

    # Health check only
    python scripts/run_dashboard.py --health-check

Example:
    $ python scripts/run_dashboard.py --once --period 1h
    [INFO] Health check: PASSED
    [INFO] brazil / 1h - refresh 1 committed
    [INFO] Quotes: 3 sources (BRL)
    [INFO] Chart: 4 rows, approximated=True
"""

import argparse
import sys
import time

from src.dashboard.poller import DashboardPoller
from src.dashboard.state import DashboardState
from src.ingestion.collectors.quote_service_collector import QuoteServiceCollector
from src.ingestion.preprocessors.historical_reconstructor import HistoricalSeriesReconstructor
from src.shared.config import Config
from src.shared.utils import format_percentage, setup_logger


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Poll the FX quote service and render dashboard data to the log",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    parser.add_argument(
        "--country",
        type=str,
        choices=list(Config.COUNTRIES),
        default=Config.DEFAULT_COUNTRY,
        help=f"Market to display (default: {Config.DEFAULT_COUNTRY})",
    )

    parser.add_argument(
        "--period",
        type=str,
        choices=list(Config.PERIODS),
        default=Config.DEFAULT_PERIOD,
        help=f"Chart lookback period (default: {Config.DEFAULT_PERIOD})",
    )

    parser.add_argument(
        "--interval",
        type=float,
        default=Config.POLL_INTERVAL,
        help=f"Seconds between refreshes (default: {Config.POLL_INTERVAL})",
    )

    parser.add_argument(
        "--seed",
        type=int,
        help="Seed for synthetic chart data (reproducible output)",
    )

    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single refresh cycle and exit",
    )

    parser.add_argument(
        "--health-check",
        action="store_true",
        help="Run health check only and exit",
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    return parser.parse_args()


def log_state(logger, state: DashboardState) -> None:
    """Write one committed dashboard state to the log."""
    logger.info("=" * 60)
    logger.info("%s / %s - refresh %d", state.country, state.period, state.request_id)
    logger.info("=" * 60)

    for panel, message in state.errors.items():
        logger.warning("%s unavailable: %s", panel, message)

    if not state.quotes.empty:
        logger.info("Quotes: %d sources (%s)", len(state.quotes), state.currency)
        for quote in state.quotes.to_dict("records"):
            logger.info(
                "  %s: buy %s | sell %s",
                quote.get("source_name", quote.get("source")),
                quote.get("buy_price"),
                quote.get("sell_price"),
            )

    if not state.average.empty:
        average = state.average.iloc[0]
        logger.info(
            "Average: buy %s | sell %s",
            average.get("average_buy_price"),
            average.get("average_sell_price"),
        )

    for row in state.slippage.to_dict("records"):
        logger.info(
            "Slippage %s: buy %s | sell %s",
            row.get("source"),
            format_percentage(row.get("buy_price_slippage")),
            format_percentage(row.get("sell_price_slippage")),
        )

    for title in state.news.head(5).get("title", []):
        logger.info("News: %s", title)

    if state.chart is not None:
        logger.info(
            "Chart: %d rows, approximated=%s, series=%s",
            len(state.chart.rows),
            state.chart.is_approximated,
            ", ".join(state.chart.series_keys("buy")),
        )
        if state.chart.rows:
            last = state.chart.rows[-1]
            logger.info("  Latest point %s %s: %s", last["date"], last["time"], last)


def main() -> int:
    """Main dashboard script."""
    args = parse_args()

    logger = setup_logger(
        "run_dashboard",
        level="DEBUG" if args.verbose else "INFO",
    )

    try:
        collector = QuoteServiceCollector()

        if not collector.health_check():
            logger.error("Quote service health check failed (%s)", collector.base_url)
            logger.error("Please check your internet connection")
            return 1

        logger.info("Health check: PASSED")

        if args.health_check:
            logger.info("Health check complete, exiting")
            return 0

        if args.interval <= 0:
            logger.error("Interval must be positive")
            return 1

        poller = DashboardPoller(
            collector=collector,
            reconstructor=HistoricalSeriesReconstructor(seed=args.seed),
            country=args.country,
            period=args.period,
            interval=args.interval,
        )
        poller.subscribe(lambda state: log_state(logger, state))

        if args.once:
            return 0 if poller.refresh() else 1

        poller.start()
        try:
            while True:
                time.sleep(1)
        finally:
            poller.stop()

    except KeyboardInterrupt:
        logger.warning("Dashboard stopped by user")
        return 130

    except Exception as e:
        logger.exception("Unexpected error: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
