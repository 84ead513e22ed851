# backend/networth/services/price_sync/refresh.py
"""
Current price refresh.

For every auto-update asset with a resolvable ticker:

1. Deduplicate by ticker (first-seen order): one quote per ticker
2. Merge the native quote into the history store as today's price
3. Convert the quote to the display currency
4. Set current_value = price x quantity and last_updated = now on a copy of
   every holding sharing the ticker

A conversion that cannot get a rate degrades to the native price and is
reported in conversion_warnings instead of failing the ticker.

Usage:
    engine = RefreshEngine(router, converter, history)
    result = await engine.refresh(holdings, display_currency="CAD")
"""

import logging
from collections.abc import Callable, Iterable
from datetime import datetime

from networth.services.fx_rate_service import ConversionResult, CurrencyConverter
from networth.services.history_store import PriceHistoryStore
from networth.services.holdings import Holding, group_by_ticker
from networth.services.market_data.router import SourceRouter
from networth.services.price_sync.runner import run_per_ticker
from networth.services.price_sync.types import RefreshResult, TickerError
from networth.services.protocols import ProgressCallback
from networth.utils.date_utils import utc_now

logger = logging.getLogger(__name__)


class RefreshEngine:
    """Fetches one current quote per ticker and revalues the holdings that use it."""

    def __init__(
            self,
            router: SourceRouter,
            converter: CurrencyConverter,
            history: PriceHistoryStore,
            clock: Callable[[], datetime] = utc_now,
            ticker_timeout: float | None = None,
    ) -> None:
        self._router = router
        self._converter = converter
        self._history = history
        self._clock = clock
        self._ticker_timeout = ticker_timeout

    async def refresh(
            self,
            holdings: Iterable[Holding],
            on_progress: ProgressCallback | None = None,
            display_currency: str = "USD",
    ) -> RefreshResult:
        """
        Refresh current values for every eligible holding.

        Raises:
            ConfigurationError: A provider needed by one of the tickers has
                                no API key (whole batch fails)
        """
        groups = group_by_ticker(h for h in holdings if h.is_asset)
        if not groups:
            logger.info("No holdings need a price refresh")
            return RefreshResult()

        self._router.ensure_configured({self._router.classify(t) for t in groups})
        display_currency = display_currency.upper()
        logger.info(f"Refreshing {len(groups)} tickers into {display_currency}")

        async def _refresh_ticker(ticker: str) -> ConversionResult:
            return await self._refresh_ticker(ticker, display_currency)

        outcomes = await run_per_ticker(
            list(groups),
            _refresh_ticker,
            on_progress=on_progress,
            timeout=self._ticker_timeout,
        )

        now = self._clock()
        result = RefreshResult()
        for ticker, outcome in zip(groups, outcomes):
            if isinstance(outcome, TickerError):
                result.errors.append(outcome)
                continue
            if outcome.degraded:
                result.conversion_warnings.append(
                    f"{ticker}: valued in {outcome.currency} ({outcome.reason})"
                )
            for holding in groups[ticker]:
                result.updated_items.append(
                    holding.with_current_value(outcome.value * holding.quantity, now)
                )

        logger.info(
            f"Refresh complete: {len(result.updated_items)} holdings updated, "
            f"{len(result.errors)} errors"
        )
        return result

    async def _refresh_ticker(self, ticker: str, display_currency: str) -> ConversionResult:
        quote = await self._router.fetch_quote(ticker)
        self._history.merge(
            ticker,
            {quote.fetched_at.date(): quote.native_price},
            currency=quote.currency,
        )
        return await self._converter.convert_price(quote.native_price, quote.currency, display_currency)
