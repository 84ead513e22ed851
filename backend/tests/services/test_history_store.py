# tests/services/test_history_store.py
"""
Tests for the persisted per-ticker price history.
"""

import json
from datetime import date, timedelta
from decimal import Decimal

from networth.services.constants import PRICE_HISTORY_KEY
from networth.services.history_store import PriceHistoryStore
from tests.conftest import TODAY


class TestMerge:

    def test_merge_stores_and_counts_changes(self, history):
        """Should upsert prices and report how many changed."""
        changed = history.merge("aapl", {date(2024, 6, 10): Decimal("190.10"), "2024-06-11": "191.20"})

        assert changed == 2
        assert history.get_price_history("AAPL") == {
            date(2024, 6, 10): Decimal("190.10"),
            date(2024, 6, 11): Decimal("191.20"),
        }

    def test_merge_is_idempotent(self, history, store):
        """Should report zero changes and not rewrite the store when nothing changed."""
        prices = {date(2024, 6, 10): Decimal("190.10")}
        history.merge("AAPL", prices)
        before = store.get(PRICE_HISTORY_KEY)

        assert history.merge("AAPL", prices) == 0
        assert store.get(PRICE_HISTORY_KEY) == before

    def test_merge_overwrites_existing_date(self, history):
        history.merge("AAPL", {date(2024, 6, 10): Decimal("190")})
        assert history.merge("AAPL", {date(2024, 6, 10): Decimal("195")}) == 1
        assert history.get_on_date("AAPL", date(2024, 6, 10)) == Decimal("195")

    def test_skips_future_and_non_positive_prices(self, history):
        """Should never store prices dated after today or at/below zero."""
        changed = history.merge("AAPL", {
            TODAY: Decimal("100"),
            TODAY + timedelta(days=1): Decimal("101"),
            date(2024, 6, 1): Decimal("0"),
            date(2024, 6, 2): Decimal("-5"),
        })

        assert changed == 1
        assert list(history.get_price_history("AAPL")) == [TODAY]

    def test_tags_series_with_currency(self, history):
        """Should keep the native currency tag with the series."""
        history.merge("SHOP.TO", {date(2024, 6, 10): Decimal("98.50")}, currency="cad")

        assert history.currency_of("SHOP.TO") == "CAD"
        assert history.currency_of("UNKNOWN") is None

    def test_new_series_defaults_to_usd(self, history):
        history.merge("AAPL", {date(2024, 6, 10): Decimal("190")})
        assert history.currency_of("AAPL") == "USD"

    def test_currency_change_replaces_series(self, history, store):
        """Should drop prices stored under the old currency instead of relabelling them."""
        history.merge("SHOP.TO", {date(2024, 6, 3): Decimal("100")}, currency="USD")

        changed = history.merge("SHOP.TO", {date(2024, 6, 10): Decimal("136")}, currency="CAD")

        assert changed == 1
        assert history.currency_of("SHOP.TO") == "CAD"
        assert history.get_on_date("SHOP.TO", date(2024, 6, 3)) is None
        assert history.get_price_history("SHOP.TO") == {date(2024, 6, 10): Decimal("136")}
        assert store.get(PRICE_HISTORY_KEY)["SHOP.TO"] == {
            "currency": "CAD",
            "prices": {"2024-06-10": "136"},
        }

    def test_same_prices_in_new_currency_are_persisted(self, history, store):
        """Should store the new tag even when the dates and values are unchanged."""
        prices = {date(2024, 6, 10): Decimal("98.50")}
        history.merge("SHOP.TO", prices, currency="USD")

        history.merge("SHOP.TO", prices, currency="CAD")

        assert store.get(PRICE_HISTORY_KEY)["SHOP.TO"]["currency"] == "CAD"

    def test_empty_merge_in_other_currency_keeps_series(self, history):
        history.merge("SHOP.TO", {date(2024, 6, 3): Decimal("100")}, currency="USD")

        assert history.merge("SHOP.TO", {date(2024, 6, 20): Decimal("1")}, currency="CAD") == 0

        assert history.currency_of("SHOP.TO") == "USD"
        assert history.get_on_date("SHOP.TO", date(2024, 6, 3)) == Decimal("100")

    def test_empty_merge_for_new_ticker_stores_nothing(self, history):
        assert history.merge("AAPL", {}) == 0
        assert history.tickers() == []


class TestReads:

    def test_get_on_date_falls_back_to_earlier_price(self, history):
        """Should use the most recent earlier price for weekends and holidays."""
        history.merge("AAPL", {date(2024, 6, 7): Decimal("196.89"), date(2024, 6, 10): Decimal("193.12")})

        assert history.get_on_date("AAPL", date(2024, 6, 8)) == Decimal("196.89")
        assert history.get_on_date("AAPL", date(2024, 6, 9)) == Decimal("196.89")
        assert history.get_on_date("AAPL", date(2024, 6, 10)) == Decimal("193.12")

    def test_get_on_date_before_first_price_is_none(self, history):
        """Should never backfill a price from a later date."""
        history.merge("AAPL", {date(2024, 6, 7): Decimal("196.89")})

        assert history.get_on_date("AAPL", date(2024, 6, 6)) is None
        assert history.get_on_date("MSFT", date(2024, 6, 7)) is None

    def test_range_query_is_inclusive_and_ordered(self, history):
        history.merge("AAPL", {
            date(2024, 6, 12): Decimal("3"),
            date(2024, 6, 10): Decimal("1"),
            date(2024, 6, 11): Decimal("2"),
        })

        prices = history.get_price_history("AAPL", date(2024, 6, 11), date(2024, 6, 12))

        assert list(prices.items()) == [
            (date(2024, 6, 11), Decimal("2")),
            (date(2024, 6, 12), Decimal("3")),
        ]

    def test_latest_and_coverage(self, history):
        history.merge("AAPL", {date(2024, 6, 10): Decimal("1"), date(2024, 6, 12): Decimal("3")})

        assert history.get_latest("AAPL") == (date(2024, 6, 12), Decimal("3"))
        coverage = history.coverage("AAPL")
        assert (coverage.earliest, coverage.latest, coverage.count) == (date(2024, 6, 10), date(2024, 6, 12), 2)
        assert history.coverage("MSFT").is_empty
        assert history.has_price_data("AAPL") and not history.has_price_data("MSFT")

    def test_summary(self, history):
        history.merge("VOD.L", {date(2024, 6, 10): Decimal("0.72")}, currency="GBP")

        summary = history.summary()["VOD.L"]

        assert summary.currency == "GBP"
        assert summary.count == 1
        assert summary.latest_price == Decimal("0.72")


class TestPersistence:

    def test_document_shape(self, history, store):
        """Should persist {ticker: {currency, prices: {iso: decimal string}}}."""
        history.merge("SHOP.TO", {date(2024, 6, 10): Decimal("98.50")}, currency="CAD")

        assert store.get(PRICE_HISTORY_KEY) == {
            "SHOP.TO": {"currency": "CAD", "prices": {"2024-06-10": "98.50"}},
        }

    def test_survives_reload(self, history, store, clock):
        """Should read back exactly what was written."""
        history.merge("BTC", {date(2024, 6, 10): Decimal("69500.12345678")})

        reloaded = PriceHistoryStore(store, clock=clock)

        assert reloaded.get_on_date("BTC", date(2024, 6, 10)) == Decimal("69500.12345678")
        assert reloaded.serialize() == history.serialize()

    def test_reads_legacy_untagged_blob_as_usd(self, store, clock):
        """Should treat an untagged {ticker: {date: price}} blob as USD."""
        store.set(PRICE_HISTORY_KEY, {"AAPL": {"2024-06-10": 190.1, "2024-06-11": "191.2"}})

        history = PriceHistoryStore(store, clock=clock)

        assert history.currency_of("AAPL") == "USD"
        assert history.get_on_date("AAPL", date(2024, 6, 10)) == Decimal("190.1")

    def test_ignores_invalid_dates_in_stored_blob(self, store, clock):
        store.set(PRICE_HISTORY_KEY, {"AAPL": {"currency": "USD", "prices": {"not-a-date": "1", "2024-06-10": "2"}}})

        history = PriceHistoryStore(store, clock=clock)

        assert history.coverage("AAPL").count == 1

    def test_serialize_is_canonical_json(self, history):
        history.merge("MSFT", {date(2024, 6, 10): Decimal("420")})
        history.merge("AAPL", {date(2024, 6, 10): Decimal("190")})

        document = json.loads(history.serialize())

        assert list(document) == ["AAPL", "MSFT"]

    def test_clear_ticker_and_all(self, history, store):
        history.merge("AAPL", {date(2024, 6, 10): Decimal("190")})
        history.merge("MSFT", {date(2024, 6, 10): Decimal("420")})

        assert history.clear_ticker("aapl") is True
        assert history.clear_ticker("AAPL") is False
        assert history.tickers() == ["MSFT"]

        history.clear_all()

        assert history.tickers() == []
        assert store.get(PRICE_HISTORY_KEY) is None
