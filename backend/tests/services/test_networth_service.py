# tests/services/test_networth_service.py
"""
Tests for the NetWorthService facade.
"""

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from networth.services.exceptions import ValidationError
from networth.services.market_data import AlphaVantageProvider, FinnhubProvider
from networth.services.networth_service import NetWorthService
from networth.services.storage import InMemoryKeyValueStore
from networth.services.valuation import SeriesKind
from tests.conftest import TODAY, daily_prices, make_holding


class TestConstruction:

    def test_builds_real_components_from_settings(self, test_settings):
        service = NetWorthService(InMemoryKeyValueStore(), test_settings)

        assert isinstance(service.router.primary, FinnhubProvider)
        assert isinstance(service.router.secondary, AlphaVantageProvider)
        assert service.router.primary.api_key == "test-finnhub"
        assert service.router.primary.breaker.failure_threshold == test_settings.circuit_breaker_failure_threshold
        asyncio.run(service.aclose())

    def test_stored_keys_override_settings(self, store, test_settings):
        store.set("preferences", {"finnhub_api_key": "from-store"})

        service = NetWorthService(store, test_settings)

        assert service.router.primary.api_key == "from-store"


class TestPreferences:

    def test_updating_keys_reconfigures_providers(self, service, primary, secondary):
        service.update_preferences({"finnhub_api_key": "new-key", "alpha_vantage_api_key": "other"})

        assert primary.api_key == "new-key"
        assert secondary.api_key == "other"

    def test_display_currency(self, service):
        assert service.display_currency == "USD"

        service.update_preferences({"display_currency": "cad"})

        assert service.display_currency == "CAD"


class TestHoldings:

    def test_save_and_load(self, service):
        holdings = [make_holding(id="1", purchase_date=date(2024, 1, 2)), make_holding(id="2", name="MSFT")]

        service.save_holdings(holdings)

        assert service.get_holdings() == holdings

    def test_apply_updates_keeps_order(self, service):
        holdings = [make_holding(id="1"), make_holding(id="2"), make_holding(id="3")]
        updated = [make_holding(id="3", current_value=30), make_holding(id="1", current_value=10)]

        result = service.apply_updates(holdings, updated)

        assert [(h.id, h.current_value) for h in result] == [
            ("1", Decimal("10")), ("2", None), ("3", Decimal("30")),
        ]

    def test_default_date_range(self, service):
        assert service.get_default_date_range([make_holding(purchase_date=date(2024, 1, 5))]) == (date(2024, 1, 5), TODAY)


class TestPriceSync:

    def test_refresh_uses_display_currency(self, service, primary):
        primary.prices["AAPL"] = Decimal("100")
        service.update_preferences({"display_currency": "CAD"})

        result = asyncio.run(service.refresh_all_prices([make_holding()]))

        assert result.updated_items[0].current_value == Decimal("136.00")

    def test_refresh_stored_holdings_persists_values(self, service, primary):
        primary.prices["AAPL"] = Decimal("190")
        service.save_holdings([make_holding(id="1", quantity=2), make_holding(id="2", name="House", auto_update=False)])

        asyncio.run(service.refresh_stored_holdings())

        stored = {h.id: h for h in service.get_holdings()}
        assert stored["1"].current_value == Decimal("380")
        assert stored["2"].current_value is None

    def test_ticker_timeout_from_settings(self, store, test_settings, primary, secondary, converter, clock):
        """Should report a slow ticker as timed out while the rest of the batch completes."""
        settings = test_settings.model_copy(update={"price_sync_ticker_timeout_seconds": 0.05})
        service = NetWorthService(
            store, settings, primary=primary, secondary=secondary, converter=converter, clock=clock
        )
        primary.delay = 1.0
        primary.prices["AAPL"] = Decimal("190")
        secondary.prices["SHOP.TO"] = Decimal("100")

        result = asyncio.run(service.refresh_all_prices([
            make_holding(id="1"),
            make_holding(id="2", ticker="SHOP.TO"),
        ]))

        assert [h.id for h in result.updated_items] == ["2"]
        assert [(e.ticker, e.error_type) for e in result.errors] == [("AAPL", "TimeoutError")]

    def test_backfill_stored_holdings(self, service, primary):
        primary.history["AAPL"] = daily_prices(date(2024, 6, 1), TODAY, "190")
        service.save_holdings([make_holding(purchase_date=date(2024, 6, 1))])

        result = asyncio.run(service.backfill_stored_holdings())

        assert result.backfilled_tickers == ["AAPL"]
        assert service.has_price_data("AAPL")
        assert service.get_latest_price("AAPL") == Decimal("190")


class TestSeries:

    def test_converts_stored_series_to_display_currency(self, service):
        service.history.merge("SHOP.TO", {date(2024, 6, 10): Decimal("100")}, currency="CAD")

        series = asyncio.run(service.generate_series(
            "fiat-total", [make_holding(ticker="SHOP.TO")], date(2024, 6, 10), date(2024, 6, 10),
        ))

        assert series.kind is SeriesKind.FIAT_TOTAL
        assert series.display_currency == "USD"
        assert series.points[0].asset_value == Decimal("73.00")
        assert series.conversion_warnings == []

    def test_missing_rate_is_reported(self, service):
        """Should use the unconverted price and say so."""
        service.history.merge("7203.T", {date(2024, 6, 10): Decimal("3500")}, currency="JPY")

        series = asyncio.run(service.generate_series(
            SeriesKind.FIAT_TOTAL, [make_holding(ticker="7203.T")], date(2024, 6, 10), date(2024, 6, 10),
        ))

        assert series.points[0].asset_value == Decimal("3500.00")
        assert len(series.conversion_warnings) == 1
        assert series.conversion_warnings[0].startswith("JPY->USD")

    def test_btc_holdings_needs_no_rates(self, service, converter):
        service.history.merge("SHOP.TO", {date(2024, 6, 10): Decimal("100")}, currency="CAD")

        points = asyncio.run(service.generate_btc_holdings_series(
            [make_holding(category="Bitcoin", name="BTC", quantity="0.25")], date(2024, 6, 10), date(2024, 6, 11),
        ))

        assert [p.btc_amount for p in points] == [Decimal("0.25"), Decimal("0.25")]
        assert converter.requests == []

    def test_btc_equivalent_in_display_currency(self, service):
        service.update_preferences({"display_currency": "CAD"})
        service.history.merge("BTC", {date(2024, 6, 10): Decimal("50000")})

        points = asyncio.run(service.generate_btc_equivalent_series(
            [make_holding(name="House", auto_update=False, purchase_value=68000)], date(2024, 6, 10), date(2024, 6, 10),
        ))

        assert points[0].btc_equivalent == Decimal("1")

    def test_invalid_range(self, service):
        with pytest.raises(ValidationError):
            asyncio.run(service.generate_series("fiat-total", [], date(2024, 6, 2), date(2024, 6, 1)))

    def test_shortcuts_return_points(self, service):
        points = asyncio.run(service.generate_fiat_total_series(
            [make_holding(auto_update=False, purchase_value=1)], date(2024, 6, 1), date(2024, 6, 3),
        ))

        assert len(points) == 3


class TestCurrentValuesAndSummary:

    def test_recalculate_then_summarize(self, service):
        service.history.merge("SHOP.TO", {date(2024, 6, 12): Decimal("100")}, currency="CAD")
        holdings = [make_holding(ticker="SHOP.TO", quantity=10, purchase_value=50, category="Stock")]

        updated = asyncio.run(service.recalculate_current_values(holdings))
        summary = service.summary(updated)

        assert updated[0].current_value == Decimal("730.00")
        assert summary.total_assets == Decimal("730.00")
        assert summary.asset_categories[0].profit_loss == Decimal("230.00")


class TestHistoryManagement:

    def test_summary_and_clear(self, service):
        service.history.merge("AAPL", {date(2024, 6, 10): Decimal("190")})
        service.history.merge("BTC", {date(2024, 6, 10): Decimal("69000")})

        assert set(service.get_price_summary()) == {"AAPL", "BTC"}
        assert service.get_price_history("aapl") == {date(2024, 6, 10): Decimal("190")}
        assert service.clear_ticker_history("AAPL")

        service.clear_all_history()

        assert service.get_price_summary() == {}

    def test_cache_info_and_clear(self, service, primary):
        primary.prices["AAPL"] = Decimal("190")
        asyncio.run(service.router.fetch_quote("AAPL"))

        assert service.cache_info()["quotes"].entries == 1

        service.clear_caches()

        assert service.cache_info()["quotes"].entries == 0
        assert service.cache_info()["rates"].entries == 0
