# backend/networth/services/fx_rate_service.py
"""
Currency detection and conversion.

This service handles:
- Detecting a ticker's native trading currency from its exchange suffix
- Fetching current exchange rates from a Frankfurter-compatible API
- Caching rates in a RateCache (1 hour TTL by default)
- Converting prices, degrading to the native price when no rate is available

=============================================================================
RATE CONVENTION
=============================================================================

    rate(from, to) = "1 from_currency = X to_currency"

Example:
    rate("USD", "CAD") = 1.36   ->  1 USD = 1.36 CAD
    100 USD -> CAD  =  100 x 1.36  =  136 CAD

Same-currency rates are the identity (1) and never touch the network or
the cache.

=============================================================================
DEGRADED CONVERSION
=============================================================================

Price conversion never raises. When a rate cannot be obtained the result
carries the NATIVE value and currency with ``degraded=True`` and the error
text in ``reason``, and a warning is logged. Callers surface degraded
results to the user instead of silently mixing currencies.

Usage:
    converter = CurrencyConverter(RateCache(), base_url=settings.frankfurter_base_url)

    converter.detect_native_currency("SHOP.TO")     # "CAD"
    rate = await converter.fetch_rate("USD", "CAD")
    result = await converter.convert_stock_price(Decimal("41.20"), "SHOP.TO", "USD")
    if result.degraded:
        warnings.append(result.reason)
"""

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from networth.services.cache import RateCache
from networth.services.constants import DEFAULT_CURRENCY, EXCHANGE_CURRENCIES
from networth.services.exceptions import ConversionError, FXProviderError, FXRateError
from networth.utils.decimal_utils import to_decimal

logger = logging.getLogger(__name__)


# =============================================================================
# RESULT DATA CLASSES
# =============================================================================

@dataclass(frozen=True)
class ConversionResult:
    """
    Outcome of a price conversion.

    Attributes:
        value: Converted amount (the native amount when degraded)
        currency: Currency of ``value``
        degraded: True when no rate was available and ``value`` is native
        reason: Error text explaining a degraded conversion
        rate: Rate applied (None when degraded)
    """

    value: Decimal
    currency: str
    degraded: bool = False
    reason: str | None = None
    rate: Decimal | None = None


# =============================================================================
# CURRENCY CONVERTER
# =============================================================================

class CurrencyConverter:
    """
    Fetches, caches and applies exchange rates.

    Transient failures (timeouts, transport errors, HTTP 429/5xx) are retried
    with exponential backoff. Anything else fails immediately with
    FXProviderError.
    """

    PROVIDER_NAME = "frankfurter"

    MAX_RETRY_ATTEMPTS: int = 3
    RETRY_MIN_WAIT: float = 1
    RETRY_MAX_WAIT: float = 10

    def __init__(
            self,
            rate_cache: RateCache,
            base_url: str = "https://api.frankfurter.app",
            timeout: float = 10.0,
            client: httpx.AsyncClient | None = None,
            max_retry_attempts: int | None = None,
            retry_min_wait: float | None = None,
            retry_max_wait: float | None = None,
    ) -> None:
        self._rate_cache = rate_cache
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None
        self._max_retry_attempts = max_retry_attempts or self.MAX_RETRY_ATTEMPTS
        self._retry_min_wait = self.RETRY_MIN_WAIT if retry_min_wait is None else retry_min_wait
        self._retry_max_wait = self.RETRY_MAX_WAIT if retry_max_wait is None else retry_max_wait

    @property
    def rate_cache(self) -> RateCache:
        return self._rate_cache

    # =========================================================================
    # CURRENCY DETECTION
    # =========================================================================

    @staticmethod
    def detect_native_currency(ticker: str) -> str:
        """
        Native trading currency of a ticker, from its exchange suffix.

        Examples:
            "SHOP.TO" -> "CAD", "VOD.L" -> "GBP", "AAPL" -> "USD", "BTC" -> "USD"
        """
        base, dot, suffix = ticker.strip().upper().rpartition(".")
        if dot and base:
            return EXCHANGE_CURRENCIES.get(suffix, DEFAULT_CURRENCY)
        return DEFAULT_CURRENCY

    # =========================================================================
    # RATES
    # =========================================================================

    async def fetch_rate(self, from_currency: str, to_currency: str) -> Decimal:
        """
        Rate such that ``amount_to = amount_from * rate``.

        Raises:
            FXProviderError: Rate API failed or did not return the pair
        """
        from_currency = from_currency.upper()
        to_currency = to_currency.upper()

        cached = self._rate_cache.get(from_currency, to_currency)
        if cached is not None:
            return cached

        rate = await self._request_rate(from_currency, to_currency)
        self._rate_cache.set(from_currency, to_currency, rate)
        logger.info(f"Fetched FX rate 1 {from_currency} = {rate} {to_currency}")
        return rate

    async def resolve_rates(
            self,
            currencies: Iterable[str],
            to_currency: str,
    ) -> tuple[dict[str, Decimal], list[str]]:
        """
        Fetch rates for several source currencies into one target.

        Returns:
            (rates, warnings): rates maps each resolvable source currency to
            its rate; warnings describes every currency that failed. Failed
            currencies are absent from ``rates``.
        """
        to_currency = to_currency.upper()
        rates: dict[str, Decimal] = {}
        warnings: list[str] = []
        for currency in dict.fromkeys(c.upper() for c in currencies):
            try:
                rates[currency] = await self.fetch_rate(currency, to_currency)
            except FXRateError as e:
                logger.warning(f"No rate for {currency}->{to_currency}: {e}")
                warnings.append(f"{currency}->{to_currency}: {e}")
        return rates, warnings

    # =========================================================================
    # CONVERSION
    # =========================================================================

    async def convert(self, amount: Decimal, from_currency: str, to_currency: str) -> Decimal:
        """
        Convert an amount, raising on failure.

        Raises:
            ConversionError: No rate available for the pair
        """
        if from_currency.upper() == to_currency.upper():
            return amount
        try:
            rate = await self.fetch_rate(from_currency, to_currency)
        except FXProviderError as e:
            raise ConversionError(e.reason, from_currency.upper(), to_currency.upper()) from e
        return amount * rate

    async def convert_price(
            self,
            amount: Decimal,
            from_currency: str,
            to_currency: str,
    ) -> ConversionResult:
        """Convert an amount, degrading to the native amount when no rate is available."""
        from_currency = from_currency.upper()
        to_currency = to_currency.upper()
        if from_currency == to_currency:
            return ConversionResult(value=amount, currency=to_currency, rate=RateCache.IDENTITY_RATE)

        try:
            rate = await self.fetch_rate(from_currency, to_currency)
        except FXRateError as e:
            logger.warning(
                f"Conversion {from_currency}->{to_currency} failed, keeping native value: {e}"
            )
            return ConversionResult(
                value=amount,
                currency=from_currency,
                degraded=True,
                reason=str(e),
            )
        return ConversionResult(value=amount * rate, currency=to_currency, rate=rate)

    async def convert_stock_price(
            self,
            native_price: Decimal,
            ticker: str,
            target_currency: str,
    ) -> ConversionResult:
        """Convert a price quoted in the ticker's native currency."""
        native = self.detect_native_currency(ticker)
        return await self.convert_price(native_price, native, target_currency)

    # =========================================================================
    # HTTP
    # =========================================================================

    @property
    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout))
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _request_rate(self, from_currency: str, to_currency: str) -> Decimal:
        url = f"{self._base_url}/latest"
        params = {"from": from_currency, "to": to_currency}

        async def _attempt() -> httpx.Response:
            response = await asyncio.wait_for(
                self._http.get(url, params=params),
                timeout=self._timeout,
            )
            response.raise_for_status()
            return response

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._max_retry_attempts),
            wait=wait_exponential(min=self._retry_min_wait, max=self._retry_max_wait),
            retry=retry_if_exception(_is_transient),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        try:
            response = await retrying(_attempt)
        except httpx.HTTPStatusError as e:
            raise FXProviderError(
                self.PROVIDER_NAME,
                f"HTTP {e.response.status_code}",
                from_currency,
                to_currency,
            ) from e
        except (asyncio.TimeoutError, httpx.HTTPError) as e:
            raise FXProviderError(
                self.PROVIDER_NAME,
                str(e) or type(e).__name__,
                from_currency,
                to_currency,
            ) from e

        try:
            payload = response.json()
        except ValueError as e:
            raise FXProviderError(
                self.PROVIDER_NAME, "response was not valid JSON", from_currency, to_currency
            ) from e

        rates = payload.get("rates") if isinstance(payload, dict) else None
        rate = to_decimal(rates.get(to_currency)) if isinstance(rates, dict) else None
        if rate is None or rate <= 0:
            raise FXProviderError(
                self.PROVIDER_NAME,
                f"no rate returned for {to_currency}",
                from_currency,
                to_currency,
            )
        return rate


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status == 429 or status >= 500
    return isinstance(exc, (asyncio.TimeoutError, httpx.TransportError))
