# backend/networth/services/__init__.py
"""
Service layer for the price engine.

Services:
- Have NO knowledge of HTTP (no HTTPException, no status codes)
- Raise domain-specific exceptions
- Receive their collaborators through the constructor
- Are easily testable via dependency injection

Usage:
    from networth.services import NetWorthService
    from networth.services import InMemoryKeyValueStore, SqlKeyValueStore
    from networth.services import (
        ConfigurationError,
        MarketDataError,
        RateLimitError,
    )

Architecture:
    services/
    ├── __init__.py               # This file - main exports
    ├── exceptions.py             # Domain exceptions
    ├── constants.py              # Classification and currency tables
    ├── protocols.py              # Service interfaces (Protocol classes)
    ├── circuit_breaker.py        # Circuit breaker for provider APIs
    ├── cache.py                  # PriceCache / RateCache (TTL)
    ├── storage.py                # Key-value store backends
    ├── history_store.py          # Persisted per-ticker price history
    ├── holdings.py               # Holding model and ticker resolution
    ├── fx_rate_service.py        # Currency detection and conversion
    ├── preferences_service.py    # Display currency and API keys
    ├── networth_service.py       # Facade used by collaborators
    ├── market_data/              # Quote providers and routing
    │   ├── base.py               # Abstract provider interface
    │   ├── finnhub.py            # Primary provider
    │   ├── alpha_vantage.py      # Secondary provider
    │   └── router.py             # SourceKind rules and SourceRouter
    ├── price_sync/               # Sync engines
    │   ├── runner.py             # Per-ticker task fan-out
    │   ├── backfill.py           # Historical backfill
    │   └── refresh.py            # Current price refresh
    └── valuation/                # Chart series
        ├── service.py            # ValuationGenerator
        ├── calculators.py        # Per-day calculations
        └── types.py              # Series and summary types
"""

from networth.services.cache import CacheInfo, PriceCache, RateCache
from networth.services.circuit_breaker import CircuitBreaker, CircuitState
from networth.services.exceptions import (
    # Base exceptions
    ServiceError,
    ConfigurationError,
    ValidationError,
    # Market data exceptions
    MarketDataError,
    ProviderUnavailableError,
    RateLimitError,
    InvalidSymbolError,
    NoDataError,
    # FX exceptions
    FXRateError,
    FXProviderError,
    ConversionError,
    CircuitBreakerOpen,
)
from networth.services.fx_rate_service import ConversionResult, CurrencyConverter
from networth.services.history_store import Coverage, PriceHistoryStore, TickerSummary
from networth.services.holdings import (
    Holding,
    HoldingKind,
    get_default_date_range,
    get_earliest_purchase_date,
    resolve_ticker,
)
from networth.services.networth_service import NetWorthService
from networth.services.preferences_service import Preferences, PreferencesService
from networth.services.price_sync import (
    BackfillEngine,
    BackfillResult,
    RefreshEngine,
    RefreshResult,
    TickerError,
)
from networth.services.storage import InMemoryKeyValueStore, SqlKeyValueStore
from networth.services.valuation import (
    SeriesKind,
    ValuationGenerator,
    ValuationSeries,
)

__all__ = [
    # Facade
    "NetWorthService",
    # Storage and history
    "InMemoryKeyValueStore",
    "SqlKeyValueStore",
    "PriceHistoryStore",
    "Coverage",
    "TickerSummary",
    # Caches
    "PriceCache",
    "RateCache",
    "CacheInfo",
    # Circuit breaker
    "CircuitBreaker",
    "CircuitState",
    # Holdings
    "Holding",
    "HoldingKind",
    "resolve_ticker",
    "get_earliest_purchase_date",
    "get_default_date_range",
    # Currency
    "CurrencyConverter",
    "ConversionResult",
    # Preferences
    "Preferences",
    "PreferencesService",
    # Engines
    "BackfillEngine",
    "RefreshEngine",
    "BackfillResult",
    "RefreshResult",
    "TickerError",
    # Valuation
    "ValuationGenerator",
    "ValuationSeries",
    "SeriesKind",
    # Exceptions
    "ServiceError",
    "ConfigurationError",
    "ValidationError",
    "MarketDataError",
    "ProviderUnavailableError",
    "RateLimitError",
    "InvalidSymbolError",
    "NoDataError",
    "FXRateError",
    "FXProviderError",
    "ConversionError",
    "CircuitBreakerOpen",
]
