# backend/networth/services/market_data/__init__.py
"""
Market data package.

This package contains:
- Abstract interface for quote providers (base.py)
- Finnhub implementation, primary source (finnhub.py)
- Alpha Vantage implementation, secondary source (alpha_vantage.py)
- Ticker classification and provider routing (router.py)

Architecture:
    QuoteProvider (ABC)
    ├── FinnhubProvider       crypto, US stocks
    └── AlphaVantageProvider  international stocks

    SourceRouter
    └── classify -> provider_for -> fetch_quote / fetch_history
"""

from networth.services.market_data.alpha_vantage import AlphaVantageProvider
from networth.services.market_data.base import QuoteProvider
from networth.services.market_data.finnhub import FinnhubProvider
from networth.services.market_data.router import (
    CLASSIFICATION_RULES,
    Quote,
    SourceKind,
    SourceRouter,
    classify_ticker,
)

__all__ = [
    # Abstract interface
    "QuoteProvider",
    # Concrete implementations
    "FinnhubProvider",
    "AlphaVantageProvider",
    # Routing
    "SourceRouter",
    "SourceKind",
    "Quote",
    "classify_ticker",
    "CLASSIFICATION_RULES",
]
