# backend/networth/services/valuation/calculators.py
"""
Per-day valuation calculators.

Each calculator does ONE thing:
- PriceLookup: stored price of a ticker on a day, in the display currency
- AssetValueCalculator: value of all assets held on a day
- LiabilityValueCalculator: value of all liabilities on a day
- BTCHoldingsCalculator: BTC held on a day
- CurrentValueCalculator: current values from the latest stored prices
- CategorySummaryCalculator: totals and profit/loss per category

Calculators are stateless apart from their injected lookups and never
touch the network: exchange rates are resolved beforehand and passed in as
a {native currency -> rate} map.

Known limitation: liabilities have no price history, so every day uses
the liability's current value (from the day it originated).
"""

import logging
from collections.abc import Iterable, Mapping
from datetime import date, datetime, time, timezone
from decimal import Decimal, ROUND_HALF_UP

from networth.services.constants import BITCOIN_CATEGORY, BTC_TICKER
from networth.services.history_store import PriceHistoryStore
from networth.services.holdings import Holding, HoldingKind, resolve_ticker
from networth.services.valuation.types import CategorySummary, NetWorthSummary

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
CENT = Decimal("0.01")
SATOSHI = Decimal("0.00000001")
UNCATEGORIZED = "Other"


def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def quantize_btc(value: Decimal) -> Decimal:
    return value.quantize(SATOSHI, rounding=ROUND_HALF_UP)


# =============================================================================
# PRICE LOOKUP
# =============================================================================

class PriceLookup:
    """
    Stored prices converted to the display currency.

    A series whose currency has no entry in ``rates`` is returned in its
    native currency; the caller has already recorded a warning for it.
    """

    def __init__(self, history: PriceHistoryStore, rates: Mapping[str, Decimal] | None = None) -> None:
        self._history = history
        self._rates = {k.upper(): v for k, v in (rates or {}).items()}

    def price_on(self, ticker: str, day: date) -> Decimal | None:
        native = self._history.get_on_date(ticker, day)
        if native is None:
            return None
        return self._convert(ticker, native)

    def latest(self, ticker: str) -> tuple[date, Decimal] | None:
        latest = self._history.get_latest(ticker)
        if latest is None:
            return None
        day, native = latest
        return day, self._convert(ticker, native)

    def _convert(self, ticker: str, native: Decimal) -> Decimal:
        currency = self._history.currency_of(ticker)
        rate = self._rates.get(currency) if currency else None
        return native * rate if rate is not None else native


# =============================================================================
# PER-DAY CALCULATORS
# =============================================================================

class AssetValueCalculator:
    """
    Value of assets held on a day.

    For each asset purchased on or before the day:
        auto-update with a stored price -> price on day x quantity
        otherwise                       -> purchase_value x quantity
    """

    def __init__(self, prices: PriceLookup) -> None:
        self._prices = prices

    def value_on(self, holdings: Iterable[Holding], day: date) -> Decimal:
        total = ZERO
        for holding in holdings:
            if not holding.is_asset or not holding.held_on(day):
                continue
            price = None
            ticker = resolve_ticker(holding)
            if ticker is not None:
                price = self._prices.price_on(ticker, day)
            if price is None:
                price = holding.purchase_value or ZERO
            total += price * holding.quantity
        return total


class LiabilityValueCalculator:
    """Flat current value of each liability from the day it originated."""

    @staticmethod
    def value_on(holdings: Iterable[Holding], day: date) -> Decimal:
        return sum(
            (h.value for h in holdings if h.is_liability and h.held_on(day)),
            ZERO,
        )


class BTCHoldingsCalculator:
    """Quantity of Bitcoin-category assets held on a day."""

    @staticmethod
    def amount_on(holdings: Iterable[Holding], day: date) -> Decimal:
        return sum(
            (
                h.quantity for h in holdings
                if h.is_asset and h.category == BITCOIN_CATEGORY and h.held_on(day)
            ),
            ZERO,
        )


class BTCPriceLookup:
    """BTC price on a day in the display currency (None when not stored)."""

    def __init__(self, prices: PriceLookup) -> None:
        self._prices = prices

    def price_on(self, day: date) -> Decimal | None:
        price = self._prices.price_on(BTC_TICKER, day)
        if price is None or price <= 0:
            return None
        return price


# =============================================================================
# CURRENT VALUES
# =============================================================================

class CurrentValueCalculator:
    """
    Recompute current values from the latest stored price of each ticker.

    Only auto-update assets with stored history change; last_updated is set
    to midnight UTC of the latest price's date. Holdings are returned in
    input order, changed ones as copies.
    """

    def __init__(self, prices: PriceLookup) -> None:
        self._prices = prices

    def recalculate(self, holdings: Iterable[Holding]) -> list[Holding]:
        result = []
        for holding in holdings:
            ticker = resolve_ticker(holding) if holding.is_asset else None
            latest = self._prices.latest(ticker) if ticker else None
            if latest is None:
                result.append(holding)
                continue
            day, price = latest
            result.append(
                holding.with_current_value(
                    quantize_money(price * holding.quantity),
                    datetime.combine(day, time.min, tzinfo=timezone.utc),
                )
            )
        return result


# =============================================================================
# SUMMARIES
# =============================================================================

class CategorySummaryCalculator:
    """Totals, per-category totals and profit/loss from current values."""

    def summarize(self, holdings: Iterable[Holding], currency: str) -> NetWorthSummary:
        holdings = list(holdings)
        assets = [h for h in holdings if h.is_asset]
        liabilities = [h for h in holdings if h.is_liability]

        total_assets = sum((h.value for h in assets), ZERO)
        total_liabilities = sum((h.value for h in liabilities), ZERO)

        return NetWorthSummary(
            currency=currency,
            total_assets=quantize_money(total_assets),
            total_liabilities=quantize_money(total_liabilities),
            net_worth=quantize_money(total_assets - total_liabilities),
            asset_categories=self._categories(assets, HoldingKind.ASSET),
            liability_categories=self._categories(liabilities, HoldingKind.LIABILITY),
        )

    @staticmethod
    def _categories(holdings: list[Holding], kind: HoldingKind) -> list[CategorySummary]:
        groups: dict[str, list[Holding]] = {}
        for holding in holdings:
            groups.setdefault(holding.category or UNCATEGORIZED, []).append(holding)

        summaries = []
        for category in sorted(groups):
            members = groups[category]
            total_cost = sum((h.total_cost for h in members), ZERO)
            current_value = sum((h.value for h in members), ZERO)
            profit_loss = current_value - total_cost
            pct = profit_loss / total_cost * 100 if total_cost > 0 else ZERO
            summaries.append(CategorySummary(
                category=category,
                kind=kind.value,
                count=len(members),
                total_cost=quantize_money(total_cost),
                current_value=quantize_money(current_value),
                profit_loss=quantize_money(profit_loss),
                profit_loss_pct=quantize_money(pct),
            ))
        return summaries
