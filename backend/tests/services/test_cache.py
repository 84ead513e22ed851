# tests/services/test_cache.py
"""
Tests for the quote and exchange-rate TTL caches.
"""

from decimal import Decimal

from networth.services.cache import PriceCache, RateCache, TTLCache


class TestTTLCache:

    def test_returns_value_within_ttl(self, clock):
        """Should serve an entry while its age is at most the TTL."""
        cache = TTLCache("test", ttl_seconds=300, clock=clock)
        cache.set("k", "v")

        clock.advance(seconds=300)

        assert cache.get("k") == "v"

    def test_expires_lazily_after_ttl(self, clock):
        """Should treat an entry older than the TTL as a miss and drop it."""
        cache = TTLCache("test", ttl_seconds=300, clock=clock)
        cache.set("k", "v")

        clock.advance(seconds=301)

        assert cache.get("k") is None
        assert len(cache) == 0

    def test_explicit_fetched_at(self, clock):
        """Should age entries from the given fetch time."""
        cache = TTLCache("test", ttl_seconds=60, clock=clock)
        clock.advance(seconds=-120)
        stale_time = clock()
        clock.advance(seconds=120)

        cache.set("k", "v", fetched_at=stale_time)

        assert cache.get("k") is None

    def test_evicts_least_recently_used(self, clock):
        """Should evict the least recently used entry when full."""
        cache = TTLCache("test", ttl_seconds=300, maxsize=2, clock=clock)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.get("a")

        cache.set("c", 3)

        assert cache.get("a") == 1
        assert cache.get("b") is None
        assert cache.get("c") == 3

    def test_info_reports_valid_entries(self, clock):
        cache = TTLCache("test", ttl_seconds=60, clock=clock)
        cache.set("old", 1)
        clock.advance(seconds=90)
        cache.set("new", 2)

        info = cache.info()

        assert info.name == "test"
        assert info.entries == 2
        assert info.valid_entries == 1
        assert info.oldest_age_seconds == 90


class TestPriceCache:

    def test_keys_by_ticker_and_kind(self, clock):
        """Should treat the same ticker under a different kind as a different entry."""
        cache = PriceCache(clock=clock)
        cache.set("aapl", "us-stock", "quote")

        assert cache.get("AAPL", "us-stock") == "quote"
        assert cache.get("AAPL", "crypto") is None

    def test_default_ttl_is_five_minutes(self, clock):
        cache = PriceCache(clock=clock)
        cache.set("AAPL", "us-stock", "quote")

        clock.advance(minutes=5, seconds=1)

        assert cache.get("AAPL", "us-stock") is None


class TestRateCache:

    def test_identity_rate_is_never_stored(self, clock):
        """Should answer same-currency lookups with 1 without storing them."""
        cache = RateCache(clock=clock)
        cache.set("USD", "USD", Decimal("2"))

        assert cache.get("usd", "USD") == Decimal("1")
        assert len(cache) == 0

    def test_pairs_are_directional(self, clock):
        cache = RateCache(clock=clock)
        cache.set("USD", "CAD", Decimal("1.36"))

        assert cache.get("USD", "CAD") == Decimal("1.36")
        assert cache.get("CAD", "USD") is None

    def test_default_ttl_is_one_hour(self, clock):
        cache = RateCache(clock=clock)
        cache.set("USD", "CAD", Decimal("1.36"))

        clock.advance(minutes=59)
        assert cache.get("USD", "CAD") == Decimal("1.36")

        clock.advance(minutes=2)
        assert cache.get("USD", "CAD") is None

    def test_clear(self, clock):
        cache = RateCache(clock=clock)
        cache.set("USD", "CAD", Decimal("1.36"))
        cache.clear()
        assert cache.get("USD", "CAD") is None
