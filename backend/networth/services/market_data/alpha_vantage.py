# backend/networth/services/market_data/alpha_vantage.py
"""
Alpha Vantage quote provider (secondary source).

Serves international stocks, which the primary provider's free tier does
not cover. The free tier allows about 25 calls per day, so rate-limit
responses are NOT retried: waiting seconds cannot refill a daily quota.

Endpoints consumed (single query URL, selected by `function`):
    function=GLOBAL_QUOTE        -> {"Global Quote": {"05. price": "..."}}
    function=TIME_SERIES_DAILY   -> {"Time Series (Daily)": {"YYYY-MM-DD": {"4. close": "..."}}}
        (outputsize=full)

Error signalling is in the body, with HTTP 200:
    {"Error Message": ...}  -> InvalidSymbolError
    {"Note": ...}           -> RateLimitError
    {"Information": ...}    -> RateLimitError (ConfigurationError only when
                               it says the key is invalid or missing; the
                               daily quota notice also mentions the key)
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Any

from networth.services.constants import ALPHA_VANTAGE_SUFFIXES
from networth.services.exceptions import (
    ConfigurationError,
    InvalidSymbolError,
    NoDataError,
    ProviderUnavailableError,
    RateLimitError,
)
from networth.services.market_data.base import QuoteProvider
from networth.utils.decimal_utils import to_decimal
from networth.utils.date_utils import parse_iso_date

logger = logging.getLogger(__name__)


class AlphaVantageProvider(QuoteProvider):
    """
    Alpha Vantage REST client.

    Example:
        provider = AlphaVantageProvider(api_key="...", base_url=settings.alpha_vantage_base_url)
        price = await provider.fetch_price("SHOP.TO")
    """

    RETRYABLE_EXCEPTIONS = (ProviderUnavailableError,)
    API_KEY_SETTING = "alpha_vantage_api_key"

    @property
    def name(self) -> str:
        return "alpha_vantage"

    @staticmethod
    def format_symbol(ticker: str) -> str:
        """Rewrite exchange suffixes Alpha Vantage spells differently (SHOP.TO -> SHOP.TRT)."""
        upper = ticker.strip().upper()
        base, dot, suffix = upper.rpartition(".")
        if dot and base and suffix in ALPHA_VANTAGE_SUFFIXES:
            return f"{base}.{ALPHA_VANTAGE_SUFFIXES[suffix]}"
        return upper

    async def fetch_price(self, ticker: str) -> Decimal:
        api_key = self._require_api_key()
        symbol = self.format_symbol(ticker)

        data = await self._query(
            {"function": "GLOBAL_QUOTE", "symbol": symbol, "apikey": api_key},
            ticker,
        )

        quote = data.get("Global Quote") or {}
        price = to_decimal(quote.get("05. price")) if isinstance(quote, dict) else None
        if price is None or price <= 0:
            raise NoDataError(ticker, self.name, "quote")

        logger.debug(f"Alpha Vantage quote {symbol}: {price}")
        return price

    async def fetch_daily_closes(
            self,
            ticker: str,
            start_date: date,
            end_date: date,
    ) -> dict[date, Decimal]:
        api_key = self._require_api_key()
        symbol = self.format_symbol(ticker)

        data = await self._query(
            {
                "function": "TIME_SERIES_DAILY",
                "symbol": symbol,
                "outputsize": "full",
                "apikey": api_key,
            },
            ticker,
        )

        series = data.get("Time Series (Daily)")
        if not isinstance(series, dict) or not series:
            raise NoDataError(ticker, self.name, "historical")

        prices: dict[date, Decimal] = {}
        for raw_day, bar in series.items():
            try:
                day = parse_iso_date(raw_day)
            except ValueError:
                continue
            if not (start_date <= day <= end_date) or not isinstance(bar, dict):
                continue
            price = to_decimal(bar.get("4. close"))
            if price is not None and price > 0:
                prices[day] = price

        logger.info(f"Alpha Vantage returned {len(prices)} daily closes for {symbol}")
        return prices

    async def _query(self, params: dict[str, Any], ticker: str) -> dict[str, Any]:
        data = await self._get_json(self._base_url, params, ticker)
        if not isinstance(data, dict):
            raise ProviderUnavailableError(self.name, "unexpected response payload")

        if "Error Message" in data:
            raise InvalidSymbolError(ticker, self.name)
        if "Note" in data:
            raise RateLimitError(self.name)
        if "Information" in data:
            info = str(data["Information"])
            if _is_invalid_key_message(info):
                raise ConfigurationError(self.name, self.API_KEY_SETTING, reason=info)
            raise RateLimitError(self.name)
        return data


# Quota notices mention "your API key" too, so they are checked first
_RATE_LIMIT_MARKERS = ("rate limit", "requests per day", "requests per minute", "premium")
_INVALID_KEY_MARKERS = ("invalid api key", "apikey is invalid", "provide a valid apikey", "missing apikey")


def _is_invalid_key_message(info: str) -> bool:
    text = info.lower()
    if any(marker in text for marker in _RATE_LIMIT_MARKERS):
        return False
    return any(marker in text for marker in _INVALID_KEY_MARKERS)
