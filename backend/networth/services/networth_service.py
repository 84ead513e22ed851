# backend/networth/services/networth_service.py
"""
NetWorthService - the single entry point collaborators use.

Composes the engine from explicit instances (no module-level singletons):

    KeyValueStore
    ├── PriceHistoryStore ─────────────┐
    ├── PreferencesService             │
    └── holdings blob                  │
                                       │
    PriceCache ──> SourceRouter ──> BackfillEngine / RefreshEngine
                   ├── FinnhubProvider       │
                   └── AlphaVantageProvider  │
    RateCache ───> CurrencyConverter ────────┘
                                       │
                       ValuationGenerator (reads history, rates resolved here)

Operations:
- refresh_all_prices / backfill_all_prices: price synchronization
- generate_series and the per-kind shortcuts: chart series
- recalculate_current_values / summary: current totals
- history management, cache introspection, preferences and holdings

Usage:
    service = NetWorthService(SqlKeyValueStore(SessionLocal), settings)

    result = await service.backfill_all_prices(holdings)
    series = await service.generate_series("fiat-total", holdings, start, end)
    await service.aclose()
"""

import logging
from collections.abc import Callable, Iterable, Sequence
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from networth.config import Settings
from networth.services.cache import CacheInfo, PriceCache, RateCache
from networth.services.circuit_breaker import CircuitBreaker
from networth.services.constants import BTC_TICKER, HOLDINGS_KEY
from networth.services.exceptions import ProviderUnavailableError, ValidationError
from networth.services.fx_rate_service import CurrencyConverter
from networth.services.history_store import PriceHistoryStore, TickerSummary
from networth.services.holdings import (
    Holding,
    dump_holdings,
    get_default_date_range,
    parse_holdings,
    resolve_ticker,
)
from networth.services.market_data.alpha_vantage import AlphaVantageProvider
from networth.services.market_data.base import QuoteProvider
from networth.services.market_data.finnhub import FinnhubProvider
from networth.services.market_data.router import SourceRouter
from networth.services.preferences_service import Preferences, PreferencesService
from networth.services.price_sync.backfill import BackfillEngine
from networth.services.price_sync.refresh import RefreshEngine
from networth.services.price_sync.types import BackfillResult, RefreshResult
from networth.services.protocols import KeyValueStore, ProgressCallback
from networth.services.valuation.calculators import (
    CategorySummaryCalculator,
    CurrentValueCalculator,
    PriceLookup,
)
from networth.services.valuation.service import ValuationGenerator, parse_series_kind
from networth.services.valuation.types import (
    NetWorthSummary,
    SeriesKind,
    ValuationPoint,
    ValuationSeries,
)
from networth.utils.date_utils import utc_now

logger = logging.getLogger(__name__)


class NetWorthService:
    """
    Facade over the price engine.

    Attributes:
        _store: Persistence substrate for preferences, holdings and history
        _history: Per-ticker native price history
        _router: Ticker classification, provider routing, quote cache
        _converter: Exchange rates and conversion
    """

    def __init__(
            self,
            store: KeyValueStore,
            settings: Settings,
            primary: QuoteProvider | None = None,
            secondary: QuoteProvider | None = None,
            converter: CurrencyConverter | None = None,
            price_cache: PriceCache | None = None,
            clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """
        Args:
            store: Key-value persistence backend
            settings: Application settings (defaults for preferences)
            primary / secondary: Quote providers (built from settings when omitted)
            converter: Currency converter (built from settings when omitted)
            price_cache: Quote cache (built from settings when omitted)
            clock: Source of "now" for every component
        """
        self._store = store
        self._settings = settings
        self._clock = clock
        self._preferences = PreferencesService(store, settings)
        self._history = PriceHistoryStore(store, clock=clock)

        self._primary = primary or FinnhubProvider(
            api_key=settings.finnhub_api_key,
            base_url=settings.finnhub_base_url,
            **self._provider_options("finnhub"),
        )
        self._secondary = secondary or AlphaVantageProvider(
            api_key=settings.alpha_vantage_api_key,
            base_url=settings.alpha_vantage_base_url,
            **self._provider_options("alpha_vantage"),
        )
        self._converter = converter or CurrencyConverter(
            RateCache(ttl_seconds=settings.rate_cache_ttl_seconds, clock=clock),
            base_url=settings.frankfurter_base_url,
            timeout=settings.provider_timeout_seconds,
            max_retry_attempts=settings.provider_max_retry_attempts,
        )
        self._router = SourceRouter(
            primary=self._primary,
            secondary=self._secondary,
            price_cache=price_cache or PriceCache(
                ttl_seconds=settings.quote_cache_ttl_seconds, clock=clock
            ),
            currency_detector=self._converter.detect_native_currency,
            primary_concurrency=settings.finnhub_max_concurrency,
            secondary_concurrency=settings.alpha_vantage_max_concurrency,
            clock=clock,
        )
        ticker_timeout = settings.price_sync_ticker_timeout_seconds
        self._backfill = BackfillEngine(
            self._router, self._history, clock=clock, ticker_timeout=ticker_timeout
        )
        self._refresh = RefreshEngine(
            self._router, self._converter, self._history, clock=clock, ticker_timeout=ticker_timeout
        )
        self._generator = ValuationGenerator(self._history)
        self._apply_api_keys(self._preferences.get_preferences())

        logger.info("NetWorthService initialized")

    def _provider_options(self, name: str) -> dict[str, Any]:
        return {
            "timeout": self._settings.provider_timeout_seconds,
            "max_retry_attempts": self._settings.provider_max_retry_attempts,
            "breaker": CircuitBreaker(
                name=name,
                failure_threshold=self._settings.circuit_breaker_failure_threshold,
                recovery_timeout=self._settings.circuit_breaker_recovery_seconds,
                tracked_exceptions=(ProviderUnavailableError,),
            ),
        }

    # =========================================================================
    # COMPONENTS
    # =========================================================================

    @property
    def history(self) -> PriceHistoryStore:
        return self._history

    @property
    def router(self) -> SourceRouter:
        return self._router

    @property
    def converter(self) -> CurrencyConverter:
        return self._converter

    async def aclose(self) -> None:
        await self._router.aclose()
        await self._converter.aclose()

    # =========================================================================
    # PREFERENCES
    # =========================================================================

    def get_preferences(self) -> Preferences:
        return self._preferences.get_preferences()

    def update_preferences(self, updates: dict[str, Any]) -> Preferences:
        preferences = self._preferences.update_preferences(updates)
        self._apply_api_keys(preferences)
        return preferences

    @property
    def display_currency(self) -> str:
        return self._preferences.get_preferences().display_currency

    def _apply_api_keys(self, preferences: Preferences) -> None:
        self._primary.api_key = preferences.finnhub_api_key
        self._secondary.api_key = preferences.alpha_vantage_api_key

    # =========================================================================
    # HOLDINGS
    # =========================================================================

    def get_holdings(self) -> list[Holding]:
        return parse_holdings(self._store.get(HOLDINGS_KEY))

    def save_holdings(self, holdings: Iterable[Holding]) -> list[Holding]:
        holdings = list(holdings)
        self._store.set(HOLDINGS_KEY, dump_holdings(holdings))
        logger.info(f"Saved {len(holdings)} holdings")
        return holdings

    @staticmethod
    def apply_updates(holdings: Sequence[Holding], updated: Iterable[Holding]) -> list[Holding]:
        """Replace holdings by id with their updated copies, keeping order."""
        by_id = {h.id: h for h in updated}
        return [by_id.get(h.id, h) for h in holdings]

    def get_default_date_range(self, holdings: Iterable[Holding]) -> tuple[date, date]:
        return get_default_date_range(holdings, self._clock().date())

    # =========================================================================
    # PRICE SYNCHRONIZATION
    # =========================================================================

    async def refresh_all_prices(
            self,
            holdings: Iterable[Holding],
            on_progress: ProgressCallback | None = None,
    ) -> RefreshResult:
        """
        Fetch current quotes and revalue holdings in the display currency.

        Raises:
            ConfigurationError: A needed provider has no API key
        """
        return await self._refresh.refresh(
            holdings,
            on_progress=on_progress,
            display_currency=self.display_currency,
        )

    async def backfill_all_prices(
            self,
            holdings: Iterable[Holding],
            on_progress: ProgressCallback | None = None,
    ) -> BackfillResult:
        """
        Fetch missing daily history from each ticker's earliest purchase date.

        Raises:
            ConfigurationError: A needed provider has no API key
        """
        return await self._backfill.backfill(holdings, on_progress=on_progress)

    async def refresh_stored_holdings(self) -> RefreshResult:
        """Refresh the persisted holdings and write the updated values back."""
        holdings = self.get_holdings()
        result = await self.refresh_all_prices(holdings)
        if result.updated_items:
            self.save_holdings(self.apply_updates(holdings, result.updated_items))
        return result

    async def backfill_stored_holdings(self) -> BackfillResult:
        return await self.backfill_all_prices(self.get_holdings())

    # =========================================================================
    # VALUATION
    # =========================================================================

    async def generate_series(
            self,
            kind: SeriesKind | str,
            holdings: Sequence[Holding],
            start_date: date,
            end_date: date,
    ) -> ValuationSeries:
        """
        Build one valuation series in the display currency.

        Raises:
            ValidationError: Unknown kind or start_date after end_date
        """
        kind = parse_series_kind(kind)
        if start_date > end_date:
            raise ValidationError(
                f"start_date {start_date} is after end_date {end_date}",
                field="start_date",
            )

        display_currency = self.display_currency
        rates: dict[str, Decimal] = {}
        warnings: list[str] = []
        if kind is not SeriesKind.BTC_HOLDINGS:
            rates, warnings = await self._resolve_rates(holdings, display_currency, kind)

        points = self._generator.series(kind, holdings, start_date, end_date, rates=rates)
        return ValuationSeries(
            kind=kind,
            start_date=start_date,
            end_date=end_date,
            display_currency=display_currency,
            points=points,
            conversion_warnings=warnings,
        )

    async def generate_fiat_total_series(self, holdings, start_date, end_date) -> list[ValuationPoint]:
        return (await self.generate_series(SeriesKind.FIAT_TOTAL, holdings, start_date, end_date)).points

    async def generate_btc_equivalent_series(self, holdings, start_date, end_date) -> list[ValuationPoint]:
        return (await self.generate_series(SeriesKind.BTC_EQUIVALENT, holdings, start_date, end_date)).points

    async def generate_btc_holdings_series(self, holdings, start_date, end_date) -> list[ValuationPoint]:
        return (await self.generate_series(SeriesKind.BTC_HOLDINGS, holdings, start_date, end_date)).points

    async def recalculate_current_values(self, holdings: Sequence[Holding]) -> list[Holding]:
        """
        Current values from the latest stored price of each auto-update asset,
        converted to the display currency.
        """
        rates, _ = await self._resolve_rates(holdings, self.display_currency, SeriesKind.FIAT_TOTAL)
        return CurrentValueCalculator(PriceLookup(self._history, rates)).recalculate(holdings)

    def summary(self, holdings: Iterable[Holding]) -> NetWorthSummary:
        """Totals and per-category profit/loss from current values."""
        return CategorySummaryCalculator().summarize(holdings, self.display_currency)

    async def _resolve_rates(
            self,
            holdings: Iterable[Holding],
            display_currency: str,
            kind: SeriesKind,
    ) -> tuple[dict[str, Decimal], list[str]]:
        """Rates from every stored series currency used by ``holdings`` into the display currency."""
        tickers = {resolve_ticker(h) for h in holdings if h.is_asset}
        if kind is SeriesKind.BTC_EQUIVALENT:
            tickers.add(BTC_TICKER)

        currencies = {
            currency for currency in (self._history.currency_of(t) for t in tickers if t)
            if currency is not None and currency != display_currency
        }
        if not currencies:
            return {}, []
        return await self._converter.resolve_rates(sorted(currencies), display_currency)

    # =========================================================================
    # HISTORY MANAGEMENT
    # =========================================================================

    def get_price_summary(self) -> dict[str, TickerSummary]:
        return self._history.summary()

    def get_price_history(
            self,
            ticker: str,
            start_date: date | None = None,
            end_date: date | None = None,
    ) -> dict[date, Decimal]:
        return self._history.get_price_history(ticker, start_date, end_date)

    def get_latest_price(self, ticker: str) -> Decimal | None:
        return self._history.get_latest_price(ticker)

    def has_price_data(self, ticker: str) -> bool:
        return self._history.has_price_data(ticker)

    def clear_ticker_history(self, ticker: str) -> bool:
        return self._history.clear_ticker(ticker)

    def clear_all_history(self) -> None:
        self._history.clear_all()

    # =========================================================================
    # CACHES
    # =========================================================================

    def cache_info(self) -> dict[str, CacheInfo]:
        return {
            "quotes": self._router.price_cache.info(),
            "rates": self._converter.rate_cache.info(),
        }

    def clear_caches(self) -> None:
        self._router.price_cache.clear()
        self._converter.rate_cache.clear()
        logger.info("Cleared quote and rate caches")
