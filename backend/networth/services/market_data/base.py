# backend/networth/services/market_data/base.py
"""
Abstract interface for quote providers.

Every upstream price source (Finnhub, Alpha Vantage, test fakes) implements
this contract. Providers only speak their own wire format and return bare
numbers; the SourceRouter decides which provider serves a ticker and
attaches currency and source kind to the result.

Shared behavior implemented once here:
- API key check before any request (ConfigurationError, never retried)
- Per-request timeout (httpx timeout plus asyncio.wait_for)
- HTTP status mapping to the service exception taxonomy
- Exponential-backoff retry of transient failures via tenacity
- A per-provider circuit breaker around transport failures

Design Principles:
- Dependency Inversion: engines depend on the router, the router on this ABC
- Open/Closed: new providers subclass without touching the engines
- DRY: retry and error mapping live in one place
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from datetime import date
from decimal import Decimal
from typing import Any, TypeVar

import httpx
from tenacity import (
    AsyncRetrying,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)

from networth.services.circuit_breaker import CircuitBreaker
from networth.services.exceptions import (
    ConfigurationError,
    InvalidSymbolError,
    ProviderUnavailableError,
    RateLimitError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class QuoteProvider(ABC):
    """
    Abstract base class for quote providers.

    Retry Behavior:
        `_execute_with_retry` retries RETRYABLE_EXCEPTIONS with exponential
        backoff. Subclasses tune it with class attributes:

        - MAX_RETRY_ATTEMPTS: Total attempts (default: 3)
        - RETRY_MIN_WAIT: Minimum wait in seconds (default: 1)
        - RETRY_MAX_WAIT: Maximum wait in seconds (default: 10)
        - RETRY_MULTIPLIER: Exponential multiplier (default: 1)

    Never retried:
        - ConfigurationError: missing or rejected API key
        - InvalidSymbolError / NoDataError: permanent until the ticker changes
        - CircuitBreakerOpen: provider is being given time to recover
    """

    # =========================================================================
    # RETRY CONFIGURATION (can be overridden by subclasses)
    # =========================================================================

    MAX_RETRY_ATTEMPTS: int = 3
    RETRY_MIN_WAIT: float = 1
    RETRY_MAX_WAIT: float = 10
    RETRY_MULTIPLIER: float = 1
    RETRYABLE_EXCEPTIONS: tuple[type[Exception], ...] = (ProviderUnavailableError,)

    # Name of the setting that holds this provider's key (for error messages)
    API_KEY_SETTING: str = "api_key"

    def __init__(
            self,
            api_key: str | None,
            base_url: str,
            timeout: float = 10.0,
            client: httpx.AsyncClient | None = None,
            max_retry_attempts: int | None = None,
            retry_min_wait: float | None = None,
            retry_max_wait: float | None = None,
            breaker: CircuitBreaker | None = None,
    ) -> None:
        """
        Args:
            api_key: Provider credential; may be set later via `api_key`
            base_url: REST base URL
            timeout: Seconds allowed per request
            client: Shared httpx.AsyncClient (created lazily when omitted)
            max_retry_attempts: Overrides MAX_RETRY_ATTEMPTS
            retry_min_wait / retry_max_wait: Override backoff bounds
            breaker: Circuit breaker (one is created per provider when omitted)
        """
        self.api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None
        self._max_retry_attempts = max_retry_attempts or self.MAX_RETRY_ATTEMPTS
        self._retry_min_wait = self.RETRY_MIN_WAIT if retry_min_wait is None else retry_min_wait
        self._retry_max_wait = self.RETRY_MAX_WAIT if retry_max_wait is None else retry_max_wait
        self._breaker = breaker or CircuitBreaker(
            name=self.name,
            tracked_exceptions=(ProviderUnavailableError,),
        )

    # =========================================================================
    # ABSTRACT PROPERTIES AND METHODS
    # =========================================================================

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique provider identifier used in logs and errors."""

    @abstractmethod
    async def fetch_price(self, ticker: str) -> Decimal:
        """
        Fetch the current price of a ticker in the provider's native currency.

        Raises:
            ConfigurationError: API key missing or rejected
            InvalidSymbolError / NoDataError: Ticker unknown or no quote
            RateLimitError: Provider rate limit hit
            ProviderUnavailableError: Network or server failure
        """

    @abstractmethod
    async def fetch_daily_closes(
            self,
            ticker: str,
            start_date: date,
            end_date: date,
    ) -> dict[date, Decimal]:
        """
        Fetch daily closing prices between two dates (inclusive).

        Raises the same exceptions as fetch_price.
        """

    # =========================================================================
    # CONFIGURATION
    # =========================================================================

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    @property
    def breaker(self) -> CircuitBreaker:
        return self._breaker

    def _require_api_key(self) -> str:
        if not self.api_key:
            raise ConfigurationError(self.name, self.API_KEY_SETTING)
        return self.api_key

    # =========================================================================
    # HTTP HELPERS
    # =========================================================================

    @property
    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout))
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client if this provider created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _get_json(self, url: str, params: dict[str, Any], ticker: str) -> Any:
        """GET a JSON document with timeout, status mapping, breaker and retry."""

        async def _attempt() -> Any:
            async with self._breaker:
                try:
                    response = await asyncio.wait_for(
                        self._http.get(url, params=params),
                        timeout=self._timeout,
                    )
                except (asyncio.TimeoutError, httpx.TimeoutException) as e:
                    raise ProviderUnavailableError(
                        self.name, f"request timed out after {self._timeout}s"
                    ) from e
                except httpx.TransportError as e:
                    raise ProviderUnavailableError(self.name, str(e) or type(e).__name__) from e

                self._raise_for_status(response, ticker)

                try:
                    return response.json()
                except ValueError as e:
                    raise ProviderUnavailableError(self.name, "response was not valid JSON") from e

        logger.debug(f"{self.name} GET {url} for {ticker}")
        return await self._execute_with_retry(_attempt)

    def _raise_for_status(self, response: httpx.Response, ticker: str) -> None:
        status = response.status_code
        if status < 400:
            return
        if status in (401, 403):
            raise ConfigurationError(
                self.name,
                self.API_KEY_SETTING,
                reason=f"{self.name} rejected the API key (HTTP {status})",
            )
        if status == 429:
            raise RateLimitError(self.name, retry_after=_parse_retry_after(response))
        if status >= 500:
            raise ProviderUnavailableError(self.name, f"HTTP {status}")
        raise InvalidSymbolError(
            ticker,
            self.name,
            message=f"{self.name} rejected symbol '{ticker}' (HTTP {status})",
        )

    # =========================================================================
    # RETRY HELPER METHOD
    # =========================================================================

    async def _execute_with_retry(
            self,
            func: Callable[..., Awaitable[T]],
            *args: Any,
            **kwargs: Any,
    ) -> T:
        """
        Await ``func`` with retry logic for transient failures.

        Raises:
            The last exception if all retries fail
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._max_retry_attempts),
            wait=wait_exponential(
                multiplier=self.RETRY_MULTIPLIER,
                min=self._retry_min_wait,
                max=self._retry_max_wait,
            ),
            retry=retry_if_exception_type(self.RETRYABLE_EXCEPTIONS),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        return await retrying(func, *args, **kwargs)


# =============================================================================
# PARSING HELPERS
# =============================================================================

def _parse_retry_after(response: httpx.Response) -> int | None:
    raw = response.headers.get("Retry-After")
    if raw is None:
        return None
    try:
        return int(float(raw))
    except ValueError:
        return None
