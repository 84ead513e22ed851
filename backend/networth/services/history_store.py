# backend/networth/services/history_store.py
"""
Persisted per-ticker daily price history.

Storage format (one document under the "price_history" key):

    {
        "AAPL":   {"currency": "USD", "prices": {"2024-01-02": "185.64", ...}},
        "SHOP.TO": {"currency": "CAD", "prices": {...}},
    }

Prices are stored in the ticker's NATIVE currency together with a currency
tag; conversion to the display currency happens when values are read. This
keeps history correct after the user changes their display currency.

Documents written by older versions (ticker -> {date: price}, no tag) are
read as USD series.

Guarantees:
- Dates are unique per ticker; merge upserts (last write wins per date)
- Merge never deletes. Only clear_ticker/clear_all remove data
- Dates after today are rejected on merge
- get_on_date never interpolates: exact match, else nearest prior date,
  else None

Usage:
    store = PriceHistoryStore(InMemoryKeyValueStore())
    store.merge("AAPL", {date(2024, 1, 2): Decimal("185.64")}, currency="USD")
    store.get_on_date("AAPL", date(2024, 1, 3))  # Decimal("185.64")
"""

import bisect
import json
import logging
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from networth.services.constants import DEFAULT_CURRENCY, PRICE_HISTORY_KEY
from networth.services.protocols import KeyValueStore
from networth.utils.date_utils import parse_iso_date, utc_now
from networth.utils.decimal_utils import to_decimal

logger = logging.getLogger(__name__)


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass(frozen=True)
class Coverage:
    """Extent of the stored series for one ticker."""

    earliest: date | None
    latest: date | None
    count: int

    @property
    def is_empty(self) -> bool:
        return self.count == 0


@dataclass(frozen=True)
class TickerSummary:
    """Per-ticker summary for diagnostics and UI display."""

    ticker: str
    currency: str
    count: int
    start_date: date | None
    end_date: date | None
    latest_price: Decimal | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "currency": self.currency,
            "count": self.count,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "latest_price": str(self.latest_price) if self.latest_price is not None else None,
        }


@dataclass
class _Series:
    currency: str
    prices: dict[date, Decimal] = field(default_factory=dict)
    dates: list[date] = field(default_factory=list)

    def reindex(self) -> None:
        self.dates = sorted(self.prices)


# =============================================================================
# HISTORY STORE
# =============================================================================

class PriceHistoryStore:
    """
    Ticker -> {date -> native price} mapping persisted in a KeyValueStore.

    The document is loaded once on first use and written back after every
    mutation. A lock serializes mutations, so concurrent engine tasks merging
    different tickers cannot lose each other's writes.
    """

    def __init__(
            self,
            store: KeyValueStore,
            key: str = PRICE_HISTORY_KEY,
            clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._key = key
        self._clock = clock
        self._series: dict[str, _Series] | None = None
        self._lock = threading.RLock()

    # =========================================================================
    # READS
    # =========================================================================

    def get_on_date(self, ticker: str, day: date) -> Decimal | None:
        """
        Price on ``day``, falling back to the most recent earlier date.

        Returns None when the ticker has no series or every stored date is
        after ``day``.
        """
        with self._lock:
            series = self._loaded().get(ticker.upper())
            if series is None or not series.dates:
                return None
            exact = series.prices.get(day)
            if exact is not None:
                return exact
            idx = bisect.bisect_right(series.dates, day) - 1
            if idx < 0:
                return None
            return series.prices[series.dates[idx]]

    def coverage(self, ticker: str) -> Coverage:
        with self._lock:
            series = self._loaded().get(ticker.upper())
            if series is None or not series.dates:
                return Coverage(earliest=None, latest=None, count=0)
            return Coverage(
                earliest=series.dates[0],
                latest=series.dates[-1],
                count=len(series.dates),
            )

    def currency_of(self, ticker: str) -> str | None:
        """Native currency tag of the stored series, None if nothing stored."""
        with self._lock:
            series = self._loaded().get(ticker.upper())
            return series.currency if series is not None else None

    def get_latest(self, ticker: str) -> tuple[date, Decimal] | None:
        """(date, price) of the most recent entry, or None."""
        with self._lock:
            series = self._loaded().get(ticker.upper())
            if series is None or not series.dates:
                return None
            latest = series.dates[-1]
            return latest, series.prices[latest]

    def get_latest_price(self, ticker: str) -> Decimal | None:
        latest = self.get_latest(ticker)
        return latest[1] if latest else None

    def get_price_history(
            self,
            ticker: str,
            start_date: date | None = None,
            end_date: date | None = None,
    ) -> dict[date, Decimal]:
        """Stored prices for a ticker within an optional inclusive range, date-ordered."""
        with self._lock:
            series = self._loaded().get(ticker.upper())
            if series is None:
                return {}
            lo = 0 if start_date is None else bisect.bisect_left(series.dates, start_date)
            hi = len(series.dates) if end_date is None else bisect.bisect_right(series.dates, end_date)
            return {d: series.prices[d] for d in series.dates[lo:hi]}

    def has_price_data(self, ticker: str) -> bool:
        return self.coverage(ticker).count > 0

    def tickers(self) -> list[str]:
        with self._lock:
            return sorted(self._loaded())

    def summary(self) -> dict[str, TickerSummary]:
        """Count, date range, latest price and currency for every stored ticker."""
        with self._lock:
            result = {}
            for ticker, series in sorted(self._loaded().items()):
                result[ticker] = TickerSummary(
                    ticker=ticker,
                    currency=series.currency,
                    count=len(series.dates),
                    start_date=series.dates[0] if series.dates else None,
                    end_date=series.dates[-1] if series.dates else None,
                    latest_price=series.prices[series.dates[-1]] if series.dates else None,
                )
            return result

    def serialize(self) -> str:
        """Canonical JSON of the whole history (stable key order)."""
        with self._lock:
            return json.dumps(self._to_document(), sort_keys=True, separators=(",", ":"))

    # =========================================================================
    # WRITES
    # =========================================================================

    def merge(
            self,
            ticker: str,
            prices: Mapping[date | str, Decimal | float | int | str],
            currency: str | None = None,
    ) -> int:
        """
        Upsert prices for a ticker.

        Args:
            ticker: Ticker symbol (normalized to uppercase)
            prices: Date -> price. Dates may be date objects or ISO strings
            currency: Native currency of the prices. Defaults to the existing
                      tag, or USD for a new series

        Returns:
            Number of dates whose stored value was added or changed

        Dates after today and non-positive prices are skipped with a warning.
        Stored prices are never relabelled: prices arriving in a different
        currency than the stored series replace that series entirely.
        """
        ticker = ticker.upper()
        today = self._clock().date()

        incoming: dict[date, Decimal] = {}
        skipped = 0
        for raw_day, raw_price in prices.items():
            day = parse_iso_date(raw_day)
            price = to_decimal(raw_price)
            if day > today or price is None or price <= 0:
                skipped += 1
                continue
            incoming[day] = price

        if skipped:
            logger.warning(f"Skipped {skipped} invalid or future-dated prices for {ticker}")

        with self._lock:
            all_series = self._loaded()
            series = all_series.get(ticker)
            reset = False
            if series is None:
                series = _Series(currency=(currency or DEFAULT_CURRENCY).upper())
            elif currency and currency.upper() != series.currency:
                if not incoming:
                    logger.warning(
                        f"Ignoring empty {currency.upper()} merge for {ticker} "
                        f"(stored series is {series.currency})"
                    )
                    return 0
                logger.warning(
                    f"Resetting {ticker} history: {len(series.prices)} {series.currency} prices "
                    f"replaced by {currency.upper()} prices"
                )
                series = _Series(currency=currency.upper())
                reset = True

            changed = 0
            for day, price in incoming.items():
                if series.prices.get(day) != price:
                    series.prices[day] = price
                    changed += 1

            if ticker not in all_series and not series.prices:
                return 0

            all_series[ticker] = series
            if changed or reset:
                series.reindex()
                self._persist()
                logger.info(f"Stored {changed} prices for {ticker} ({series.currency})")
            return changed

    def clear_ticker(self, ticker: str) -> bool:
        """Remove one ticker's history. Returns False if nothing was stored."""
        with self._lock:
            removed = self._loaded().pop(ticker.upper(), None)
            if removed is None:
                return False
            self._persist()
            logger.info(f"Cleared price history for {ticker.upper()}")
            return True

    def clear_all(self) -> None:
        with self._lock:
            self._series = {}
            self._store.delete(self._key)
            logger.info("Cleared all price history")

    # =========================================================================
    # SERIALIZATION
    # =========================================================================

    def _loaded(self) -> dict[str, _Series]:
        if self._series is None:
            self._series = self._from_document(self._store.get(self._key) or {})
        return self._series

    def _persist(self) -> None:
        self._store.set(self._key, self._to_document())

    def _to_document(self) -> dict[str, Any]:
        return {
            ticker: {
                "currency": series.currency,
                "prices": {d.isoformat(): str(series.prices[d]) for d in series.dates},
            }
            for ticker, series in sorted(self._loaded().items())
        }

    @staticmethod
    def _from_document(document: Mapping[str, Any]) -> dict[str, _Series]:
        result: dict[str, _Series] = {}
        for ticker, payload in document.items():
            if not isinstance(payload, Mapping):
                logger.warning(f"Ignoring malformed history entry for {ticker}")
                continue
            if "prices" in payload:
                currency = str(payload.get("currency") or DEFAULT_CURRENCY).upper()
                raw_prices = payload.get("prices") or {}
            else:
                # Untagged legacy series
                currency = DEFAULT_CURRENCY
                raw_prices = payload

            series = _Series(currency=currency)
            for raw_day, raw_price in raw_prices.items():
                try:
                    day = parse_iso_date(raw_day)
                except ValueError:
                    logger.warning(f"Ignoring invalid date '{raw_day}' in {ticker} history")
                    continue
                price = to_decimal(raw_price)
                if price is not None:
                    series.prices[day] = price
            series.reindex()
            result[ticker.upper()] = series
        return result

