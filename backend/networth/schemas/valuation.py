# backend/networth/schemas/valuation.py
"""
Pydantic schemas for valuation series and summaries.

These schemas handle:
- Daily chart series (fiat total, BTC-equivalent, BTC holdings)
- Current net worth with per-category profit/loss
"""

import datetime as dt
from dataclasses import asdict
from decimal import Decimal

from pydantic import BaseModel, Field

from networth.services.valuation import (
    CategorySummary,
    NetWorthSummary,
    SeriesKind,
    ValuationSeries,
)


# =============================================================================
# SERIES
# =============================================================================

class FiatPointSchema(BaseModel):
    date: dt.date
    asset_value: Decimal
    liability_value: Decimal
    net_value: Decimal


class BTCEquivalentPointSchema(BaseModel):
    date: dt.date
    btc_equivalent: Decimal


class BTCHoldingsPointSchema(BaseModel):
    date: dt.date
    btc_amount: Decimal


class ValuationSeriesResponse(BaseModel):
    """One chart series over an inclusive date range."""

    kind: SeriesKind
    start_date: dt.date
    end_date: dt.date
    display_currency: str = Field(description="Currency of fiat values")
    points: list[FiatPointSchema] | list[BTCEquivalentPointSchema] | list[BTCHoldingsPointSchema]
    conversion_warnings: list[str] = Field(
        default_factory=list,
        description="Currencies without a rate; their prices were used unconverted"
    )

    @classmethod
    def from_series(cls, series: ValuationSeries) -> "ValuationSeriesResponse":
        point_schema = {
            SeriesKind.FIAT_TOTAL: FiatPointSchema,
            SeriesKind.BTC_EQUIVALENT: BTCEquivalentPointSchema,
            SeriesKind.BTC_HOLDINGS: BTCHoldingsPointSchema,
        }[series.kind]
        return cls(
            kind=series.kind,
            start_date=series.start_date,
            end_date=series.end_date,
            display_currency=series.display_currency,
            points=[point_schema(**asdict(p)) for p in series.points],
            conversion_warnings=series.conversion_warnings,
        )


# =============================================================================
# SUMMARY
# =============================================================================

class CategorySummarySchema(BaseModel):
    category: str
    kind: str
    count: int
    total_cost: Decimal
    current_value: Decimal
    profit_loss: Decimal
    profit_loss_pct: Decimal
    is_profit: bool

    @classmethod
    def from_summary(cls, summary: CategorySummary) -> "CategorySummarySchema":
        return cls(**asdict(summary), is_profit=summary.is_profit)


class NetWorthSummaryResponse(BaseModel):
    """Current totals from each holding's current value."""

    currency: str
    total_assets: Decimal
    total_liabilities: Decimal
    net_worth: Decimal
    asset_categories: list[CategorySummarySchema]
    liability_categories: list[CategorySummarySchema]

    @classmethod
    def from_summary(cls, summary: NetWorthSummary) -> "NetWorthSummaryResponse":
        return cls(
            currency=summary.currency,
            total_assets=summary.total_assets,
            total_liabilities=summary.total_liabilities,
            net_worth=summary.net_worth,
            asset_categories=[CategorySummarySchema.from_summary(c) for c in summary.asset_categories],
            liability_categories=[
                CategorySummarySchema.from_summary(c) for c in summary.liability_categories
            ],
        )
