# backend/networth/services/price_sync/backfill.py
"""
Historical price backfill.

For every auto-update asset with a resolvable ticker and a purchase date,
make sure the persisted history covers purchase date through today:

1. Group holdings by ticker; the earliest purchase date is the start
2. Skip tickers whose stored history already looks complete
3. Otherwise fetch daily closes for the full range, drop anything before
   the start date and merge into the history store, tagged with the
   ticker's native currency

Completeness heuristic (no exchange calendar needed):

    days     = (today - start).days
    expected = floor(days x 0.7)              # ~5 trading days per 7
    complete = count > 0 and count >= expected x 0.9

Example: start 100 days ago -> expected 70; 63 stored prices is complete,
62 is not.

Re-running a backfill is idempotent: merges are upserts and an unchanged
merge does not rewrite the store.

Usage:
    engine = BackfillEngine(router, history)
    result = await engine.backfill(holdings, on_progress=print)
"""

import logging
import math
from collections.abc import Callable, Iterable
from datetime import date, datetime
from decimal import Decimal

from networth.services.constants import (
    BACKFILL_COMPLETENESS_THRESHOLD,
    BACKFILL_TRADING_DAY_RATIO,
)
from networth.services.history_store import PriceHistoryStore
from networth.services.holdings import Holding, resolve_ticker
from networth.services.market_data.router import SourceRouter
from networth.services.price_sync.runner import run_per_ticker
from networth.services.price_sync.types import BackfillResult, TickerError
from networth.services.protocols import ProgressCallback
from networth.utils.date_utils import calendar_days_between, utc_now

logger = logging.getLogger(__name__)


def expected_trading_days(start_date: date, today: date) -> int:
    days = calendar_days_between(start_date, today)
    return math.floor(Decimal(days) * BACKFILL_TRADING_DAY_RATIO)


def is_history_complete(count: int, start_date: date, today: date) -> bool:
    """True when ``count`` stored prices cover start_date..today well enough to skip a fetch."""
    if count <= 0:
        return False
    return Decimal(count) >= expected_trading_days(start_date, today) * BACKFILL_COMPLETENESS_THRESHOLD


class BackfillEngine:
    """
    Populates the price history from each ticker's earliest purchase date.

    Attributes:
        _router: Classifies tickers and fetches history from the right provider
        _history: Persisted price history
    """

    def __init__(
            self,
            router: SourceRouter,
            history: PriceHistoryStore,
            clock: Callable[[], datetime] = utc_now,
            ticker_timeout: float | None = None,
    ) -> None:
        self._router = router
        self._history = history
        self._clock = clock
        self._ticker_timeout = ticker_timeout

    async def backfill(
            self,
            holdings: Iterable[Holding],
            on_progress: ProgressCallback | None = None,
    ) -> BackfillResult:
        """
        Backfill history for every eligible holding.

        Raises:
            ConfigurationError: A provider needed by a ticker that must be
                                fetched has no API key (whole batch fails)
        """
        today = self._clock().date()
        starts = self._start_dates(holdings)
        if not starts:
            logger.info("No holdings need a price backfill")
            return BackfillResult()

        pending = [
            ticker for ticker, start in starts.items()
            if start <= today
            and not is_history_complete(self._history.coverage(ticker).count, start, today)
        ]
        self._router.ensure_configured({self._router.classify(t) for t in pending})

        logger.info(
            f"Backfilling {len(starts)} tickers ({len(pending)} need fetching)"
        )

        async def _backfill_ticker(ticker: str) -> bool:
            return await self._backfill_ticker(ticker, starts[ticker], today)

        outcomes = await run_per_ticker(
            list(starts),
            _backfill_ticker,
            on_progress=on_progress,
            timeout=self._ticker_timeout,
        )

        result = BackfillResult()
        for ticker, outcome in zip(starts, outcomes):
            if isinstance(outcome, TickerError):
                result.errors.append(outcome)
                continue
            result.backfilled_tickers.append(ticker)
            if outcome is False:
                result.skipped_tickers.append(ticker)

        logger.info(
            f"Backfill complete: {len(result.backfilled_tickers)} tickers, "
            f"{len(result.errors)} errors"
        )
        return result

    async def _backfill_ticker(self, ticker: str, start_date: date, today: date) -> bool:
        """Returns False when nothing had to be fetched."""
        if start_date > today:
            logger.info(f"{ticker} purchase date {start_date} is in the future, nothing to backfill")
            return False
        coverage = self._history.coverage(ticker)
        if is_history_complete(coverage.count, start_date, today):
            logger.info(
                f"{ticker} history complete ({coverage.count} prices since {coverage.earliest}), skipping"
            )
            return False

        closes = await self._router.fetch_history(ticker, start_date, today)
        in_range = {day: price for day, price in closes.items() if start_date <= day <= today}
        changed = self._history.merge(ticker, in_range, currency=self._router.currency_for(ticker))
        logger.info(f"{ticker}: fetched {len(in_range)} prices, {changed} new or changed")
        return True

    @staticmethod
    def _start_dates(holdings: Iterable[Holding]) -> dict[str, date]:
        """Earliest purchase date per ticker, tickers in first-seen order."""
        starts: dict[str, date] = {}
        for holding in holdings:
            if not holding.is_asset or holding.purchase_date is None:
                continue
            ticker = resolve_ticker(holding)
            if ticker is None:
                continue
            current = starts.get(ticker)
            if current is None or holding.purchase_date < current:
                starts[ticker] = holding.purchase_date
        return starts
