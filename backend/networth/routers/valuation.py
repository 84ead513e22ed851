# backend/networth/routers/valuation.py
"""
Valuation endpoints.

Series are computed from stored price history only (no provider calls).
Dates default to the earliest purchase date of the stored holdings
through today.
"""

import logging
from datetime import date

from fastapi import APIRouter, Depends, Query, Request

from networth.dependencies import get_networth_service
from networth.middleware.rate_limit import RATE_LIMIT_DEFAULT, limiter
from networth.schemas.valuation import NetWorthSummaryResponse, ValuationSeriesResponse
from networth.services.networth_service import NetWorthService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/valuation",
    tags=["Valuation"],
)


# Declared before /{kind} so "summary" is not taken as a series kind
@router.get("/summary", response_model=NetWorthSummaryResponse)
@limiter.limit(RATE_LIMIT_DEFAULT)
async def get_summary(
        request: Request,
        service: NetWorthService = Depends(get_networth_service),
):
    """
    Current totals and per-category profit/loss.

    Current values are recalculated from the latest stored price of each
    auto-update asset; nothing is persisted.
    """
    holdings = await service.recalculate_current_values(service.get_holdings())
    return NetWorthSummaryResponse.from_summary(service.summary(holdings))


@router.get(
    "/{kind}",
    response_model=ValuationSeriesResponse,
    summary="Daily valuation series",
)
@limiter.limit(RATE_LIMIT_DEFAULT)
async def get_series(
        request: Request,
        kind: str,
        start_date: date | None = Query(default=None, description="Defaults to earliest purchase date"),
        end_date: date | None = Query(default=None, description="Defaults to today"),
        service: NetWorthService = Depends(get_networth_service),
):
    """
    One point per calendar day for ``fiat-total``, ``btc-equivalent`` or
    ``btc-holdings``. Unknown kinds and inverted ranges return 422.
    """
    holdings = service.get_holdings()
    default_start, default_end = service.get_default_date_range(holdings)
    series = await service.generate_series(
        kind,
        holdings,
        start_date or default_start,
        end_date or default_end,
    )
    return ValuationSeriesResponse.from_series(series)
