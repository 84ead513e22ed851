# backend/networth/services/cache.py
"""
Time-to-live caches for current quotes and exchange rates.

Both caches absorb provider rate limits with a read-through pattern:
callers check the cache, fetch on a miss, then populate it.

- PriceCache: current quotes keyed by (ticker, source kind), 5 minute TTL
- RateCache: exchange rates keyed by (from, to), 1 hour TTL

Expiry is lazy. An entry older than the TTL is treated as a miss and
dropped on the read that finds it; nothing runs in the background. Both
caches are bounded and evict the least recently used entry when full.

Usage:
    cache = PriceCache(ttl_seconds=300)

    quote = cache.get("AAPL", SourceKind.US_STOCK)
    if quote is None:
        quote = await provider.get_quote("AAPL")
        cache.set("AAPL", SourceKind.US_STOCK, quote)
"""

import logging
import threading
from collections import OrderedDict
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Generic, TypeVar

from networth.utils.date_utils import utc_now

logger = logging.getLogger(__name__)

V = TypeVar("V")

Clock = Callable[[], datetime]


@dataclass(frozen=True)
class CacheInfo:
    """Snapshot of a cache for diagnostics."""

    name: str
    ttl_seconds: int
    entries: int
    valid_entries: int
    oldest_age_seconds: float | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "ttl_seconds": self.ttl_seconds,
            "entries": self.entries,
            "valid_entries": self.valid_entries,
            "oldest_age_seconds": self.oldest_age_seconds,
        }


class TTLCache(Generic[V]):
    """
    Thread-safe bounded cache with lazy time-based expiry.

    An entry is valid while ``now - fetched_at <= ttl``.
    """

    def __init__(
            self,
            name: str,
            ttl_seconds: int,
            maxsize: int = 1024,
            clock: Clock = utc_now,
    ) -> None:
        self.name = name
        self._ttl = timedelta(seconds=ttl_seconds)
        self._maxsize = maxsize
        self._clock = clock
        self._entries: OrderedDict[Hashable, tuple[V, datetime]] = OrderedDict()
        self._lock = threading.Lock()

    @property
    def ttl_seconds(self) -> int:
        return int(self._ttl.total_seconds())

    def get(self, key: Hashable) -> V | None:
        """Return the cached value, or None if absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                logger.debug(f"{self.name} miss: {key}")
                return None

            value, fetched_at = entry
            if self._clock() - fetched_at > self._ttl:
                del self._entries[key]
                logger.debug(f"{self.name} expired: {key}")
                return None

            self._entries.move_to_end(key)
            logger.debug(f"{self.name} hit: {key}")
            return value

    def set(self, key: Hashable, value: V, fetched_at: datetime | None = None) -> None:
        """Store a value, stamping it with the current time unless given."""
        with self._lock:
            if key in self._entries:
                self._entries.move_to_end(key)
            elif len(self._entries) >= self._maxsize:
                self._entries.popitem(last=False)
            self._entries[key] = (value, fetched_at or self._clock())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def info(self) -> CacheInfo:
        with self._lock:
            now = self._clock()
            ages = [(now - fetched_at).total_seconds() for _, fetched_at in self._entries.values()]
            ttl = self._ttl.total_seconds()
            return CacheInfo(
                name=self.name,
                ttl_seconds=int(ttl),
                entries=len(ages),
                valid_entries=sum(1 for age in ages if age <= ttl),
                oldest_age_seconds=max(ages) if ages else None,
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class PriceCache(Generic[V]):
    """Current-quote cache keyed by (ticker, source kind)."""

    def __init__(self, ttl_seconds: int = 300, maxsize: int = 1024, clock: Clock = utc_now) -> None:
        self._cache: TTLCache[V] = TTLCache("PriceCache", ttl_seconds, maxsize=maxsize, clock=clock)

    def get(self, ticker: str, kind: Hashable) -> V | None:
        return self._cache.get((ticker.upper(), kind))

    def set(self, ticker: str, kind: Hashable, quote: V, fetched_at: datetime | None = None) -> None:
        self._cache.set((ticker.upper(), kind), quote, fetched_at)

    def clear(self) -> None:
        self._cache.clear()

    def info(self) -> CacheInfo:
        return self._cache.info()

    def __len__(self) -> int:
        return len(self._cache)


class RateCache:
    """
    Exchange-rate cache keyed by (from, to).

    The identity rate is answered directly: it is never stored and never
    expires.
    """

    IDENTITY_RATE = Decimal("1")

    def __init__(self, ttl_seconds: int = 3600, maxsize: int = 256, clock: Clock = utc_now) -> None:
        self._cache: TTLCache[Decimal] = TTLCache("RateCache", ttl_seconds, maxsize=maxsize, clock=clock)

    def get(self, from_currency: str, to_currency: str) -> Decimal | None:
        from_currency, to_currency = from_currency.upper(), to_currency.upper()
        if from_currency == to_currency:
            return self.IDENTITY_RATE
        return self._cache.get((from_currency, to_currency))

    def set(
            self,
            from_currency: str,
            to_currency: str,
            rate: Decimal,
            fetched_at: datetime | None = None,
    ) -> None:
        from_currency, to_currency = from_currency.upper(), to_currency.upper()
        if from_currency == to_currency:
            return
        self._cache.set((from_currency, to_currency), rate, fetched_at)

    def clear(self) -> None:
        self._cache.clear()

    def info(self) -> CacheInfo:
        return self._cache.info()

    def __len__(self) -> int:
        return len(self._cache)
