# backend/networth/services/valuation/types.py
"""
Internal data types for valuation series and summaries.

These dataclasses are used by the valuation calculators and the
NetWorthService. They are NOT Pydantic schemas; those live in
networth/schemas/valuation.py for API serialization.

Design Principles:
- Immutable value objects (frozen=True)
- Decimal for ALL financial values (never float)
- date (not datetime) for valuation days
- Warnings accumulate instead of failing the series

Type Hierarchy:
    SeriesKind           - Which chart series to build
    FiatValuationPoint   - Assets, liabilities and net worth on one day
    BTCEquivalentPoint   - Net worth expressed in BTC on one day
    BTCHoldingsPoint     - BTC held on one day
    ValuationSeries      - Points plus display currency and warnings
    CategorySummary      - Totals and profit/loss for one category
    NetWorthSummary      - Current totals across all holdings
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Union


class SeriesKind(str, Enum):
    FIAT_TOTAL = "fiat-total"
    BTC_EQUIVALENT = "btc-equivalent"
    BTC_HOLDINGS = "btc-holdings"


# =============================================================================
# SERIES POINTS
# =============================================================================

@dataclass(frozen=True)
class FiatValuationPoint:
    """
    Attributes:
        date: Valuation day
        asset_value: Sum of asset values held on the day
        liability_value: Sum of liabilities originated on or before the day
        net_value: asset_value - liability_value
    """

    date: date
    asset_value: Decimal
    liability_value: Decimal
    net_value: Decimal


@dataclass(frozen=True)
class BTCEquivalentPoint:
    date: date
    btc_equivalent: Decimal


@dataclass(frozen=True)
class BTCHoldingsPoint:
    date: date
    btc_amount: Decimal


ValuationPoint = Union[FiatValuationPoint, BTCEquivalentPoint, BTCHoldingsPoint]


@dataclass
class ValuationSeries:
    """
    A generated chart series.

    Attributes:
        kind: Which series this is
        start_date / end_date: Requested inclusive range
        display_currency: Currency of fiat values (btc-holdings is in BTC)
        points: One point per calendar day, except btc-equivalent days
                without a BTC price, which are omitted
        conversion_warnings: Currencies that could not be converted; prices
                             in those currencies were used unconverted
    """

    kind: SeriesKind
    start_date: date
    end_date: date
    display_currency: str
    points: list[ValuationPoint] = field(default_factory=list)
    conversion_warnings: list[str] = field(default_factory=list)

    @property
    def has_warnings(self) -> bool:
        return bool(self.conversion_warnings)


# =============================================================================
# SUMMARIES
# =============================================================================

@dataclass(frozen=True)
class CategorySummary:
    """
    Totals for one category of assets or liabilities.

    Attributes:
        category: Category name ("Other" when unset)
        kind: "asset" or "liability"
        count: Number of holdings in the category
        total_cost: Sum of purchase_value x quantity
        current_value: Sum of current values (value at purchase when unset)
        profit_loss: current_value - total_cost
        profit_loss_pct: profit_loss / total_cost x 100 (0 when no cost)
    """

    category: str
    kind: str
    count: int
    total_cost: Decimal
    current_value: Decimal
    profit_loss: Decimal
    profit_loss_pct: Decimal

    @property
    def is_profit(self) -> bool:
        return self.profit_loss >= 0


@dataclass(frozen=True)
class NetWorthSummary:
    currency: str
    total_assets: Decimal
    total_liabilities: Decimal
    net_worth: Decimal
    asset_categories: list[CategorySummary] = field(default_factory=list)
    liability_categories: list[CategorySummary] = field(default_factory=list)
