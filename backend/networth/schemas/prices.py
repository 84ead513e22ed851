# backend/networth/schemas/prices.py
"""
Pydantic schemas for price synchronization and stored history.

These schemas handle:
- Refresh and backfill outcomes (per-ticker errors never fail the request)
- Stored history summaries and series
- Quote / rate cache diagnostics
"""

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel, Field

from networth.schemas.holdings import HoldingSchema
from networth.services.cache import CacheInfo
from networth.services.history_store import TickerSummary
from networth.services.price_sync import BackfillResult, RefreshResult


class TickerErrorSchema(BaseModel):
    ticker: str
    error: str
    error_type: str = Field(description="Exception class, e.g. RateLimitError")


# =============================================================================
# SYNCHRONIZATION
# =============================================================================

class RefreshResponse(BaseModel):
    """Outcome of a current-price refresh."""

    success: bool = Field(description="True when no ticker failed")
    updated_items: list[HoldingSchema] = Field(
        default_factory=list,
        description="Holdings whose current value was updated"
    )
    errors: list[TickerErrorSchema] = Field(default_factory=list)
    conversion_warnings: list[str] = Field(
        default_factory=list,
        description="Holdings valued in their native currency because no rate was available"
    )

    @classmethod
    def from_result(cls, result: RefreshResult) -> "RefreshResponse":
        return cls(
            success=result.success,
            updated_items=[HoldingSchema.from_holding(h) for h in result.updated_items],
            errors=[TickerErrorSchema(**e.to_dict()) for e in result.errors],
            conversion_warnings=result.conversion_warnings,
        )


class BackfillResponse(BaseModel):
    """Outcome of a history backfill."""

    success: bool = Field(description="True when no ticker failed")
    backfilled_tickers: list[str] = Field(default_factory=list)
    skipped_tickers: list[str] = Field(
        default_factory=list,
        description="Tickers whose stored history was already complete"
    )
    errors: list[TickerErrorSchema] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: BackfillResult) -> "BackfillResponse":
        return cls(
            success=result.success,
            backfilled_tickers=result.backfilled_tickers,
            skipped_tickers=result.skipped_tickers,
            errors=[TickerErrorSchema(**e.to_dict()) for e in result.errors],
        )


# =============================================================================
# STORED HISTORY
# =============================================================================

class TickerHistorySummary(BaseModel):
    ticker: str
    currency: str
    count: int
    start_date: dt.date | None = None
    end_date: dt.date | None = None
    latest_price: Decimal | None = None

    @classmethod
    def from_summary(cls, summary: TickerSummary) -> "TickerHistorySummary":
        return cls(
            ticker=summary.ticker,
            currency=summary.currency,
            count=summary.count,
            start_date=summary.start_date,
            end_date=summary.end_date,
            latest_price=summary.latest_price,
        )


class PricePoint(BaseModel):
    date: dt.date
    price: Decimal


class PriceHistoryResponse(BaseModel):
    """Stored daily closes for one ticker, oldest first, in its native currency."""

    ticker: str
    currency: str
    prices: list[PricePoint]


# =============================================================================
# CACHES
# =============================================================================

class CacheInfoSchema(BaseModel):
    name: str
    ttl_seconds: int
    entries: int
    valid_entries: int
    oldest_age_seconds: float | None = None

    @classmethod
    def from_info(cls, info: CacheInfo) -> "CacheInfoSchema":
        return cls(**info.to_dict())


class CacheInfoResponse(BaseModel):
    quotes: CacheInfoSchema
    rates: CacheInfoSchema
