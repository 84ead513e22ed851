# backend/networth/schemas/__init__.py
"""
Pydantic schemas for the HTTP API.

Service-layer types are dataclasses; the schemas here convert them for
serialization (Decimals are emitted as strings).
"""

from networth.schemas.errors import ErrorDetail, ValidationErrorDetail
from networth.schemas.holdings import HoldingSchema
from networth.schemas.preferences import PreferencesResponse, PreferencesUpdate
from networth.schemas.prices import (
    BackfillResponse,
    CacheInfoResponse,
    CacheInfoSchema,
    PriceHistoryResponse,
    PricePoint,
    RefreshResponse,
    TickerErrorSchema,
    TickerHistorySummary,
)
from networth.schemas.valuation import (
    BTCEquivalentPointSchema,
    BTCHoldingsPointSchema,
    CategorySummarySchema,
    FiatPointSchema,
    NetWorthSummaryResponse,
    ValuationSeriesResponse,
)

__all__ = [
    "ErrorDetail",
    "ValidationErrorDetail",
    "HoldingSchema",
    "PreferencesResponse",
    "PreferencesUpdate",
    "RefreshResponse",
    "BackfillResponse",
    "TickerErrorSchema",
    "TickerHistorySummary",
    "PricePoint",
    "PriceHistoryResponse",
    "CacheInfoSchema",
    "CacheInfoResponse",
    "FiatPointSchema",
    "BTCEquivalentPointSchema",
    "BTCHoldingsPointSchema",
    "ValuationSeriesResponse",
    "CategorySummarySchema",
    "NetWorthSummaryResponse",
]
