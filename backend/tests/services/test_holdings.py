# tests/services/test_holdings.py
"""
Tests for the Holding model and holdings helpers.
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from networth.services.holdings import (
    Holding,
    HoldingKind,
    dump_holdings,
    get_default_date_range,
    group_by_ticker,
    parse_holdings,
    resolve_ticker,
)
from tests.conftest import TODAY, make_holding


class TestFromDict:

    def test_camel_case_blob(self):
        holding = Holding.from_dict({
            "id": "h-1",
            "type": "asset",
            "category": "Stock",
            "name": "Apple",
            "ticker": "AAPL",
            "quantity": 10,
            "purchaseDate": "2024-01-02",
            "purchaseValue": 185.64,
            "autoUpdate": True,
            "currentValue": "1920.10",
            "lastUpdated": "2024-03-01T12:00:00Z",
        })

        assert holding.kind is HoldingKind.ASSET
        assert holding.quantity == Decimal("10")
        assert holding.purchase_date == date(2024, 1, 2)
        assert holding.purchase_value == Decimal("185.64")
        assert holding.auto_update is True
        assert holding.current_value == Decimal("1920.10")
        assert holding.last_updated == datetime(2024, 3, 1, 12, tzinfo=timezone.utc)

    def test_snake_case_keys_are_accepted(self):
        holding = Holding.from_dict({"id": "1", "type": "liability", "purchase_value": "5000", "auto_update": False})

        assert holding.is_liability
        assert holding.purchase_value == Decimal("5000")

    def test_defaults(self):
        """Should default quantity to 1 and auto-update to off."""
        holding = Holding.from_dict({"type": "asset", "name": "Car"})

        assert holding.quantity == Decimal("1")
        assert holding.auto_update is False
        assert holding.id

    def test_unknown_keys_round_trip(self):
        """Should hand back collaborator fields it does not interpret."""
        data = {"id": "1", "type": "asset", "name": "AAPL", "notes": "long term", "color": "#fff"}

        out = Holding.from_dict(data).to_dict()

        assert out["notes"] == "long term"
        assert out["color"] == "#fff"

    def test_invalid_type_raises(self):
        with pytest.raises(ValueError):
            Holding.from_dict({"id": "1", "type": "equity"})

    def test_to_dict_uses_camel_case_and_decimal_strings(self):
        holding = make_holding(purchase_date=date(2024, 1, 2), purchase_value="185.64", quantity="0.5")

        data = holding.to_dict()

        assert data["purchaseDate"] == "2024-01-02"
        assert data["purchaseValue"] == "185.64"
        assert data["quantity"] == "0.5"
        assert data["autoUpdate"] is True
        assert "currentValue" not in data


class TestHoldingValues:

    def test_value_prefers_current_value(self):
        assert make_holding(quantity=2, purchase_value=10, current_value=50).value == Decimal("50")

    def test_value_falls_back_to_total_cost(self):
        """Should treat purchase value as per unit."""
        holding = make_holding(quantity=3, purchase_value=10)

        assert holding.total_cost == Decimal("30")
        assert holding.value == Decimal("30")

    def test_held_on(self):
        holding = make_holding(purchase_date=date(2024, 6, 10))

        assert not holding.held_on(date(2024, 6, 9))
        assert holding.held_on(date(2024, 6, 10))
        assert make_holding().held_on(date(1990, 1, 1))

    def test_with_current_value_returns_copy(self):
        holding = make_holding()
        now = datetime(2024, 6, 14, tzinfo=timezone.utc)

        updated = holding.with_current_value(Decimal("190"), now)

        assert updated.current_value == Decimal("190")
        assert updated.last_updated == now
        assert holding.current_value is None


class TestParseHoldings:

    def test_skips_malformed_entries(self):
        holdings = parse_holdings([
            {"id": "1", "type": "asset", "name": "AAPL"},
            {"id": "2", "type": "bogus"},
            {"id": "3", "type": "asset", "purchaseDate": "not-a-date"},
            {"id": "4", "type": "liability", "name": "Mortgage"},
        ])

        assert [h.id for h in holdings] == ["1", "4"]

    def test_none_is_empty(self):
        assert parse_holdings(None) == []

    def test_dump_holdings(self):
        assert dump_holdings([make_holding(id="a"), make_holding(id="b")])[1]["id"] == "b"


class TestResolveTicker:

    def test_explicit_ticker_wins(self):
        assert resolve_ticker(make_holding(name="Shopify", ticker=" shop.to ")) == "SHOP.TO"

    def test_bitcoin_category(self):
        assert resolve_ticker(make_holding(category="Bitcoin", name="Cold wallet")) == "BTC"

    @pytest.mark.parametrize("name", ["btc", "Bitcoin", "BITCOIN"])
    def test_bitcoin_names(self, name):
        assert resolve_ticker(make_holding(category="Crypto", name=name)) == "BTC"

    def test_name_is_fallback_ticker(self):
        assert resolve_ticker(make_holding(name="msft")) == "MSFT"

    def test_no_ticker_when_auto_update_off(self):
        assert resolve_ticker(make_holding(ticker="AAPL", auto_update=False)) is None

    def test_empty_name(self):
        assert resolve_ticker(make_holding(name="  ")) is None

    def test_group_by_ticker_keeps_first_seen_order(self):
        holdings = [
            make_holding(id="1", name="MSFT"),
            make_holding(id="2", name="AAPL"),
            make_holding(id="3", name="msft"),
            make_holding(id="4", name="House", auto_update=False),
        ]

        groups = group_by_ticker(holdings)

        assert list(groups) == ["MSFT", "AAPL"]
        assert [h.id for h in groups["MSFT"]] == ["1", "3"]


class TestDefaultDateRange:

    def test_earliest_purchase_date_to_today(self):
        holdings = [
            make_holding(purchase_date=date(2024, 3, 1)),
            make_holding(purchase_date=date(2023, 11, 5)),
            make_holding(),
        ]

        assert get_default_date_range(holdings, TODAY) == (date(2023, 11, 5), TODAY)

    def test_no_dates_is_today(self):
        assert get_default_date_range([make_holding()], TODAY) == (TODAY, TODAY)

    def test_future_purchase_collapses_to_today(self):
        assert get_default_date_range([make_holding(purchase_date=date(2030, 1, 1))], TODAY) == (TODAY, TODAY)
