# backend/networth/services/constants.py
"""
Centralized constants for the Net Worth Price Engine services.

Single source of truth for ticker classification tables, currency tables
and engine tuning values. Provider URLs, API keys and TTLs are runtime
configuration and live in networth.config instead.

Usage:
    from networth.services.constants import (
        CRYPTO_SYMBOLS,
        EXCHANGE_CURRENCIES,
        BACKFILL_TRADING_DAY_RATIO,
    )
"""

from decimal import Decimal


# =============================================================================
# TICKER CLASSIFICATION
# =============================================================================

# Bare symbols treated as cryptocurrencies
CRYPTO_SYMBOLS: frozenset[str] = frozenset({
    "BTC", "BITCOIN", "ETH", "ETHEREUM", "USDT", "BNB", "SOL", "ADA", "XRP",
    "DOT", "DOGE", "AVAX", "MATIC", "LINK", "UNI", "LTC", "BCH", "XLM",
    "ALGO", "ATOM",
})

# Exchange prefixes of already-qualified crypto pairs (e.g. "BINANCE:ETHUSDT")
CRYPTO_EXCHANGE_PREFIXES: tuple[str, ...] = ("BINANCE:", "COINBASE:", "KRAKEN:")

# Long names normalized to their symbol before building a provider pair
CRYPTO_ALIASES: dict[str, str] = {
    "BITCOIN": "BTC",
    "ETHEREUM": "ETH",
}

# Quote asset used when building primary-provider crypto pairs
CRYPTO_QUOTE_ASSET: str = "USDT"
CRYPTO_PAIR_EXCHANGE: str = "BINANCE"

# Non-US exchange suffixes (the primary provider's free tier has no coverage)
INTERNATIONAL_SUFFIXES: tuple[str, ...] = (
    ".TO",   # Toronto
    ".V",    # TSX Venture
    ".L",    # London
    ".LON",  # London
    ".DE",   # XETRA
    ".F",    # Frankfurt
    ".PA",   # Euronext Paris
    ".AS",   # Euronext Amsterdam
    ".HK",   # Hong Kong
    ".T",    # Tokyo
    ".AX",   # Australia
    ".NZ",   # New Zealand
    ".SW",   # SIX Swiss
    ".ST",   # Stockholm
    ".CO",   # Copenhagen
    ".OL",   # Oslo
    ".HE",   # Helsinki
    ".IC",   # Iceland
    ".MI",   # Borsa Italiana
    ".MC",   # Madrid
    ".LS",   # Euronext Lisbon
)

# Secondary provider spells some exchange suffixes differently
ALPHA_VANTAGE_SUFFIXES: dict[str, str] = {
    "TO": "TRT",
    "V": "TRV",
    "L": "LON",
    "DE": "DEX",
}

# Ticker used for BTC-denominated valuation series
BTC_TICKER: str = "BTC"

# Holding category whose positions count toward BTC holdings
BITCOIN_CATEGORY: str = "Bitcoin"


# =============================================================================
# CURRENCIES
# =============================================================================

DEFAULT_CURRENCY: str = "USD"

# Exchange suffix (without the dot) -> native trading currency
EXCHANGE_CURRENCIES: dict[str, str] = {
    "TO": "CAD",
    "TSX": "CAD",
    "TSE": "CAD",
    "V": "CAD",
    "L": "GBP",
    "LON": "GBP",
    "PA": "EUR",
    "DE": "EUR",
    "F": "EUR",
    "AS": "EUR",
    "MI": "EUR",
    "MC": "EUR",
    "LS": "EUR",
    "HE": "EUR",
    "HK": "HKD",
    "T": "JPY",
    "AX": "AUD",
    "NZ": "NZD",
    "SW": "CHF",
    "ST": "SEK",
    "CO": "DKK",
    "OL": "NOK",
    "IC": "ISK",
}


# =============================================================================
# BACKFILL COMPLETENESS HEURISTIC
# =============================================================================

# Roughly 5 trading days per 7 calendar days
BACKFILL_TRADING_DAY_RATIO: Decimal = Decimal("0.7")

# Share of expected trading days that must be present to skip a backfill
BACKFILL_COMPLETENESS_THRESHOLD: Decimal = Decimal("0.9")


# =============================================================================
# PERSISTENCE KEYS
# =============================================================================

PRICE_HISTORY_KEY: str = "price_history"
HOLDINGS_KEY: str = "holdings"
PREFERENCES_KEY: str = "preferences"


# =============================================================================
# API RATE LIMITS (slowapi limit strings)
# =============================================================================

# Reads: holdings, preferences, history, valuation series
RATE_LIMIT_DEFAULT: str = "100/minute"

# Writes: holdings, preferences, history clearing
RATE_LIMIT_WRITE: str = "30/minute"

# Refresh/backfill fan out to quota-limited upstream providers
RATE_LIMIT_SYNC: str = "10/minute"

# Health probes
RATE_LIMIT_HEALTH: str = "300/minute"
