# backend/networth/services/market_data/finnhub.py
"""
Finnhub quote provider (primary source).

Serves crypto and US stocks: higher rate limit (~60 calls/minute) and no
daily cap, but the free tier does not cover non-US exchanges.

Endpoints consumed:
    GET /quote?symbol=&token=                      -> {"c": <current price>}
    GET /stock/candle?symbol=&resolution=D&from=&to=&token=
    GET /crypto/candle?symbol=&resolution=D&from=&to=&token=
        -> {"s": "ok" | "no_data", "c": [closes], "t": [unix seconds]}

Symbol mapping:
    Stocks pass through unchanged ("AAPL")
    Crypto symbols become Binance USDT pairs ("BTC" -> "BINANCE:BTCUSDT")
    Already-qualified pairs pass through ("COINBASE:BTC-USD")

All quotes are treated as USD-denominated (USDT pairs included).
"""

import logging
from datetime import date, timedelta
from decimal import Decimal

from networth.services.constants import (
    CRYPTO_ALIASES,
    CRYPTO_EXCHANGE_PREFIXES,
    CRYPTO_PAIR_EXCHANGE,
    CRYPTO_QUOTE_ASSET,
    CRYPTO_SYMBOLS,
)
from networth.services.exceptions import (
    InvalidSymbolError,
    NoDataError,
    ProviderUnavailableError,
    RateLimitError,
)
from networth.services.market_data.base import QuoteProvider
from networth.utils.decimal_utils import to_decimal
from networth.utils.date_utils import date_to_timestamp, timestamp_to_date

logger = logging.getLogger(__name__)


class FinnhubProvider(QuoteProvider):
    """
    Finnhub REST client.

    Rate limit responses (HTTP 429) are retried with backoff: the limit is
    per minute, so a short wait usually clears it.

    Example:
        provider = FinnhubProvider(api_key="...", base_url=settings.finnhub_base_url)
        price = await provider.fetch_price("AAPL")
    """

    RETRYABLE_EXCEPTIONS = (ProviderUnavailableError, RateLimitError)
    API_KEY_SETTING = "finnhub_api_key"

    @property
    def name(self) -> str:
        return "finnhub"

    # =========================================================================
    # SYMBOLS
    # =========================================================================

    @staticmethod
    def format_symbol(ticker: str) -> str:
        """Translate a holding ticker into a Finnhub symbol."""
        upper = ticker.strip().upper()
        if ":" in upper:
            return upper
        if upper in CRYPTO_SYMBOLS:
            base = CRYPTO_ALIASES.get(upper, upper)
            return f"{CRYPTO_PAIR_EXCHANGE}:{base}{CRYPTO_QUOTE_ASSET}"
        return upper

    @staticmethod
    def is_crypto_symbol(symbol: str) -> bool:
        return symbol.upper().startswith(CRYPTO_EXCHANGE_PREFIXES)

    # =========================================================================
    # QUOTES
    # =========================================================================

    async def fetch_price(self, ticker: str) -> Decimal:
        token = self._require_api_key()
        symbol = self.format_symbol(ticker)

        data = await self._get_json(
            f"{self._base_url}/quote",
            {"symbol": symbol, "token": token},
            ticker,
        )
        self._check_error_payload(data, ticker)

        price = to_decimal(data.get("c")) if isinstance(data, dict) else None
        if price is None or price <= 0:
            raise NoDataError(ticker, self.name, "quote")

        logger.debug(f"Finnhub quote {symbol}: {price}")
        return price

    # =========================================================================
    # HISTORY
    # =========================================================================

    async def fetch_daily_closes(
            self,
            ticker: str,
            start_date: date,
            end_date: date,
    ) -> dict[date, Decimal]:
        token = self._require_api_key()
        symbol = self.format_symbol(ticker)
        endpoint = "crypto/candle" if self.is_crypto_symbol(symbol) else "stock/candle"

        data = await self._get_json(
            f"{self._base_url}/{endpoint}",
            {
                "symbol": symbol,
                "resolution": "D",
                "from": date_to_timestamp(start_date),
                # Include the whole end day
                "to": date_to_timestamp(end_date + timedelta(days=1)) - 1,
                "token": token,
            },
            ticker,
        )
        self._check_error_payload(data, ticker)

        if not isinstance(data, dict):
            raise ProviderUnavailableError(self.name, "unexpected candle payload")

        status = data.get("s")
        closes = data.get("c") or []
        timestamps = data.get("t") or []
        if status == "no_data" or not closes:
            raise NoDataError(ticker, self.name, "historical")
        if status != "ok":
            raise ProviderUnavailableError(self.name, f"unexpected candle status '{status}'")

        prices: dict[date, Decimal] = {}
        for timestamp, close in zip(timestamps, closes):
            price = to_decimal(close)
            if price is None or price <= 0:
                continue
            day = timestamp_to_date(timestamp)
            if start_date <= day <= end_date:
                prices[day] = price

        logger.info(f"Finnhub returned {len(prices)} daily closes for {symbol}")
        return prices

    def _check_error_payload(self, data: object, ticker: str) -> None:
        if isinstance(data, dict) and data.get("error"):
            raise InvalidSymbolError(ticker, self.name, message=f"{self.name}: {data['error']}")
