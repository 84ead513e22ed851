# backend/networth/services/exceptions.py
"""
Service layer exceptions.

These exceptions represent domain-specific errors and contain NO HTTP knowledge.
The router layer is responsible for mapping these to appropriate HTTP responses.

Exception Hierarchy:
    ServiceError (base)
    ├── ConfigurationError
    ├── ValidationError
    ├── MarketDataError
    │   ├── ProviderUnavailableError
    │   ├── RateLimitError
    │   └── InvalidSymbolError
    │       └── NoDataError
    └── FXRateError
        ├── FXProviderError
        └── ConversionError

    CircuitBreakerOpen (from circuit_breaker module)
        - Raised when a provider's circuit breaker is open

Batch semantics:
    ConfigurationError is the only error that aborts a whole refresh or
    backfill. Every other error is scoped to the ticker that raised it and
    collected into the batch result.
"""


class ServiceError(Exception):
    """
    Base exception for all service layer errors.

    Attributes:
        message: Human-readable error description
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigurationError(ServiceError):
    """
    Raised when a provider cannot be used because it is not configured.

    Typically a missing or rejected API key. No retry can succeed until the
    user fixes their settings, so batches fail fast on this error.

    Attributes:
        provider: Name of the provider that is misconfigured
        setting: Name of the missing setting (e.g. "finnhub_api_key")
    """

    def __init__(self, provider: str, setting: str, reason: str | None = None) -> None:
        self.provider = provider
        self.setting = setting
        message = reason or f"{provider} is not configured: '{setting}' is missing"
        super().__init__(message)


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(ServiceError):
    """
    Raised when input validation fails.

    For programmatic validation (invalid date ranges, unknown series kinds),
    NOT for request body validation which is handled by Pydantic.

    Attributes:
        field: The field that failed validation (optional)
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


# =============================================================================
# MARKET DATA PROVIDER ERRORS
# =============================================================================


class MarketDataError(ServiceError):
    """
    Base exception for market data provider failures.

    Attributes:
        provider: Name of the provider that failed
    """

    def __init__(self, message: str, provider: str | None = None) -> None:
        self.provider = provider
        super().__init__(message)


class ProviderUnavailableError(MarketDataError):
    """
    Raised when a market data provider is temporarily unavailable.

    Examples:
    - Network timeout
    - Server errors (500, 502, 503)
    - Malformed response body

    This is a retryable error.
    """

    def __init__(self, provider: str, reason: str) -> None:
        message = f"Provider '{provider}' is unavailable: {reason}"
        super().__init__(message, provider=provider)
        self.reason = reason


class RateLimitError(MarketDataError):
    """
    Raised when the provider's rate limit has been exceeded.

    Transient and scoped to the ticker being processed.

    Attributes:
        retry_after: Seconds to wait before retrying (if provided by API)
    """

    def __init__(self, provider: str, retry_after: int | None = None) -> None:
        message = f"Rate limit exceeded for provider '{provider}'"
        if retry_after:
            message += f" (retry after {retry_after}s)"
        super().__init__(message, provider=provider)
        self.retry_after = retry_after


class InvalidSymbolError(MarketDataError):
    """
    Raised when a provider does not recognize a ticker.

    Permanent until the user corrects the ticker. This is NOT a retryable
    error.
    """

    def __init__(self, ticker: str, provider: str, message: str | None = None) -> None:
        self.ticker = ticker
        super().__init__(
            message or f"Invalid symbol '{ticker}' for provider '{provider}'",
            provider=provider,
        )


class NoDataError(InvalidSymbolError):
    """
    Raised when a provider returns an empty quote or price series.

    Handled exactly like InvalidSymbolError.
    """

    def __init__(self, ticker: str, provider: str, detail: str = "price") -> None:
        super().__init__(
            ticker,
            provider,
            message=f"No {detail} data available for '{ticker}' from '{provider}'",
        )


# =============================================================================
# FX RATE ERRORS
# =============================================================================


class FXRateError(ServiceError):
    """
    Base exception for FX rate errors.

    Attributes:
        base_currency: The base currency code
        quote_currency: The quote currency code
    """

    def __init__(
            self,
            message: str,
            base_currency: str | None = None,
            quote_currency: str | None = None,
    ) -> None:
        self.base_currency = base_currency
        self.quote_currency = quote_currency
        super().__init__(message)


class FXProviderError(FXRateError):
    """
    Raised when the exchange rate provider fails or returns no rate.

    Attributes:
        provider: Name of the FX data provider
        reason: Specific reason for failure
    """

    def __init__(
            self,
            provider: str,
            reason: str,
            base_currency: str | None = None,
            quote_currency: str | None = None,
    ) -> None:
        self.provider = provider
        self.reason = reason
        super().__init__(
            f"FX provider '{provider}' error: {reason}",
            base_currency=base_currency,
            quote_currency=quote_currency,
        )


class ConversionError(FXRateError):
    """
    Raised when an amount cannot be converted between two currencies.

    Callers converting prices catch this and degrade to the native price.

    Attributes:
        reason: Specific reason for conversion failure
    """

    def __init__(
            self,
            reason: str,
            base_currency: str | None = None,
            quote_currency: str | None = None,
    ) -> None:
        self.reason = reason
        super().__init__(
            f"Cannot convert {base_currency} to {quote_currency}: {reason}",
            base_currency=base_currency,
            quote_currency=quote_currency,
        )


# =============================================================================
# CIRCUIT BREAKER (re-exported for convenience)
# =============================================================================

from networth.services.circuit_breaker import CircuitBreakerOpen

__all__ = [
    # Base
    "ServiceError",
    # Configuration / validation
    "ConfigurationError",
    "ValidationError",
    # Market Data
    "MarketDataError",
    "ProviderUnavailableError",
    "RateLimitError",
    "InvalidSymbolError",
    "NoDataError",
    # FX
    "FXRateError",
    "FXProviderError",
    "ConversionError",
    # Circuit Breaker
    "CircuitBreakerOpen",
]
