# backend/networth/services/market_data/router.py
"""
Ticker classification and provider routing.

Every ticker is classified into exactly one SourceKind by a single ordered
rule table; the kind decides which provider serves it:

    Kind                  Provider     Native currency
    --------------------  -----------  ---------------------------
    CRYPTO                primary      USD
    US_STOCK              primary      USD
    INTERNATIONAL_STOCK   secondary    from exchange suffix (else USD)

Concurrency:
- One asyncio.Semaphore per provider bounds in-flight requests (the two
  providers have very different rate limits, so budgets are separate)
- One asyncio.Lock per ticker keeps at most one request per ticker in
  flight; a task waiting on the lock re-checks the cache before fetching

Usage:
    router = SourceRouter(primary=finnhub, secondary=alpha_vantage, price_cache=PriceCache())

    router.classify("SHOP.TO")                    # SourceKind.INTERNATIONAL_STOCK
    quote = await router.fetch_quote("AAPL")      # read-through PriceCache
    closes = await router.fetch_history("BTC", start, end)
"""

import asyncio
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from networth.services.cache import PriceCache
from networth.services.constants import (
    CRYPTO_EXCHANGE_PREFIXES,
    CRYPTO_SYMBOLS,
    DEFAULT_CURRENCY,
    INTERNATIONAL_SUFFIXES,
)
from networth.services.exceptions import ConfigurationError
from networth.services.fx_rate_service import CurrencyConverter
from networth.services.market_data.base import QuoteProvider
from networth.utils.context import ticker_context
from networth.utils.date_utils import utc_now

logger = logging.getLogger(__name__)


# =============================================================================
# CLASSIFICATION
# =============================================================================

class SourceKind(str, Enum):
    """Where a ticker's prices come from."""

    CRYPTO = "crypto"
    US_STOCK = "us-stock"
    INTERNATIONAL_STOCK = "international-stock"


def _is_crypto(ticker: str) -> bool:
    return ticker.startswith(CRYPTO_EXCHANGE_PREFIXES) or ticker in CRYPTO_SYMBOLS


def _has_international_suffix(ticker: str) -> bool:
    return ticker.endswith(INTERNATIONAL_SUFFIXES)


# Evaluated in order; the first matching rule wins
CLASSIFICATION_RULES: tuple[tuple[Callable[[str], bool], SourceKind], ...] = (
    (_is_crypto, SourceKind.CRYPTO),
    (_has_international_suffix, SourceKind.INTERNATIONAL_STOCK),
)


def classify_ticker(ticker: str) -> SourceKind:
    """
    Classify a ticker into its SourceKind.

    Examples:
        "BTC", "BINANCE:ETHUSDT"  -> CRYPTO
        "SHOP.TO", "VOD.L"        -> INTERNATIONAL_STOCK
        "AAPL", "BRK.B"           -> US_STOCK
    """
    normalized = ticker.strip().upper()
    for matches, kind in CLASSIFICATION_RULES:
        if matches(normalized):
            return kind
    return SourceKind.US_STOCK


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass(frozen=True)
class Quote:
    """A current price in the ticker's native currency."""

    ticker: str
    native_price: Decimal
    currency: str
    kind: SourceKind
    provider: str
    fetched_at: datetime


# =============================================================================
# ROUTER
# =============================================================================

class SourceRouter:
    """
    Routes quote and history requests to the provider serving each ticker.

    The router owns the PriceCache read-through and the concurrency limits;
    providers stay stateless apart from their HTTP client.
    """

    def __init__(
            self,
            primary: QuoteProvider,
            secondary: QuoteProvider,
            price_cache: PriceCache,
            currency_detector: Callable[[str], str] = CurrencyConverter.detect_native_currency,
            primary_concurrency: int = 4,
            secondary_concurrency: int = 1,
            clock: Callable[[], datetime] = utc_now,
    ) -> None:
        if primary_concurrency < 1 or secondary_concurrency < 1:
            raise ValueError("provider concurrency must be at least 1")

        self._primary = primary
        self._secondary = secondary
        self._price_cache = price_cache
        self._detect_currency = currency_detector
        self._budgets = {
            primary.name: primary_concurrency,
            secondary.name: secondary_concurrency,
        }
        self._clock = clock

        # Synchronization primitives belong to the loop that created them
        self._loop: asyncio.AbstractEventLoop | None = None
        self._semaphores: dict[str, asyncio.Semaphore] = {}
        self._ticker_locks: dict[str, asyncio.Lock] = {}

    @property
    def primary(self) -> QuoteProvider:
        return self._primary

    @property
    def secondary(self) -> QuoteProvider:
        return self._secondary

    @property
    def price_cache(self) -> PriceCache:
        return self._price_cache

    # =========================================================================
    # ROUTING
    # =========================================================================

    @staticmethod
    def classify(ticker: str) -> SourceKind:
        return classify_ticker(ticker)

    def provider_for(self, kind: SourceKind) -> QuoteProvider:
        if kind is SourceKind.INTERNATIONAL_STOCK:
            return self._secondary
        return self._primary

    def currency_for(self, ticker: str) -> str:
        """Native currency of the prices the router returns for a ticker."""
        if self.classify(ticker) is SourceKind.INTERNATIONAL_STOCK:
            return self._detect_currency(ticker)
        return DEFAULT_CURRENCY

    def ensure_configured(self, kinds: Iterable[SourceKind]) -> None:
        """
        Fail fast when a provider needed for ``kinds`` has no API key.

        Raises:
            ConfigurationError: For the first unconfigured provider found
        """
        checked: set[str] = set()
        for kind in kinds:
            provider = self.provider_for(kind)
            if provider.name in checked:
                continue
            checked.add(provider.name)
            if not provider.is_configured:
                raise ConfigurationError(provider.name, provider.API_KEY_SETTING)

    # =========================================================================
    # FETCHING
    # =========================================================================

    async def fetch_quote(self, ticker: str) -> Quote:
        """
        Current native-currency quote, served from PriceCache when fresh.

        Raises:
            Whatever the serving provider raises (see QuoteProvider.fetch_price)
        """
        ticker = ticker.strip().upper()
        kind = self.classify(ticker)

        cached = self._price_cache.get(ticker, kind)
        if cached is not None:
            return cached

        provider = self.provider_for(kind)
        async with self._lock_for(ticker):
            # Another task may have filled the cache while we waited
            cached = self._price_cache.get(ticker, kind)
            if cached is not None:
                return cached

            with ticker_context(ticker):
                async with self._semaphore_for(provider):
                    price = await provider.fetch_price(ticker)

                quote = Quote(
                    ticker=ticker,
                    native_price=price,
                    currency=self.currency_for(ticker),
                    kind=kind,
                    provider=provider.name,
                    fetched_at=self._clock(),
                )
                self._price_cache.set(ticker, kind, quote, fetched_at=quote.fetched_at)
                logger.info(f"Quote {ticker} = {price} {quote.currency} via {provider.name}")
                return quote

    async def fetch_history(
            self,
            ticker: str,
            start_date: date,
            end_date: date,
    ) -> dict[date, Decimal]:
        """
        Daily native-currency closes between two dates (inclusive).

        Not cached: the result is merged into the persisted history instead.
        """
        ticker = ticker.strip().upper()
        provider = self.provider_for(self.classify(ticker))

        async with self._lock_for(ticker):
            with ticker_context(ticker):
                async with self._semaphore_for(provider):
                    return await provider.fetch_daily_closes(ticker, start_date, end_date)

    async def aclose(self) -> None:
        await self._primary.aclose()
        await self._secondary.aclose()

    # =========================================================================
    # CONCURRENCY PRIMITIVES
    # =========================================================================

    def _bind_loop(self) -> None:
        loop = asyncio.get_running_loop()
        if self._loop is not loop:
            self._loop = loop
            self._semaphores = {
                name: asyncio.Semaphore(budget) for name, budget in self._budgets.items()
            }
            self._ticker_locks = {}

    def _semaphore_for(self, provider: QuoteProvider) -> asyncio.Semaphore:
        self._bind_loop()
        semaphore = self._semaphores.get(provider.name)
        if semaphore is None:
            semaphore = self._semaphores[provider.name] = asyncio.Semaphore(1)
        return semaphore

    def _lock_for(self, ticker: str) -> asyncio.Lock:
        self._bind_loop()
        lock = self._ticker_locks.get(ticker)
        if lock is None:
            lock = self._ticker_locks[ticker] = asyncio.Lock()
        return lock
