# backend/networth/routers/prices.py
"""
Price synchronization and stored history endpoints.

Refresh and backfill work on the persisted holdings. Per-ticker failures
are reported in the response body with HTTP 200; only a missing provider
API key fails the whole request (400, ConfigurationError).
"""

import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from networth.dependencies import get_networth_service
from networth.middleware.rate_limit import RATE_LIMIT_DEFAULT, RATE_LIMIT_SYNC, RATE_LIMIT_WRITE, limiter
from networth.schemas.prices import (
    BackfillResponse,
    CacheInfoResponse,
    CacheInfoSchema,
    PriceHistoryResponse,
    PricePoint,
    RefreshResponse,
    TickerHistorySummary,
)
from networth.services.exceptions import ValidationError
from networth.services.networth_service import NetWorthService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/prices",
    tags=["Prices"],
)


# =============================================================================
# SYNCHRONIZATION
# =============================================================================

@router.post(
    "/refresh",
    response_model=RefreshResponse,
    summary="Refresh current prices",
    response_description="Updated holdings, per-ticker errors and conversion warnings",
)
@limiter.limit(RATE_LIMIT_SYNC)
async def refresh_prices(
        request: Request,
        service: NetWorthService = Depends(get_networth_service),
):
    """
    Fetch a current quote for every auto-update asset, convert it to the
    display currency and write the new current values back to the stored
    holdings.
    """
    result = await service.refresh_stored_holdings()
    logger.info(
        f"Refresh finished: {len(result.updated_items)} updated, {len(result.errors)} failed"
    )
    return RefreshResponse.from_result(result)


@router.post(
    "/backfill",
    response_model=BackfillResponse,
    summary="Backfill price history",
    response_description="Backfilled, skipped and failed tickers",
)
@limiter.limit(RATE_LIMIT_SYNC)
async def backfill_prices(
        request: Request,
        service: NetWorthService = Depends(get_networth_service),
):
    """
    Fetch daily closes from each ticker's earliest purchase date through
    today. Tickers whose stored history is already complete are skipped.
    """
    result = await service.backfill_stored_holdings()
    return BackfillResponse.from_result(result)


# =============================================================================
# STORED HISTORY
# =============================================================================

@router.get("/history", response_model=list[TickerHistorySummary])
@limiter.limit(RATE_LIMIT_DEFAULT)
def list_price_history(
        request: Request,
        service: NetWorthService = Depends(get_networth_service),
):
    """Summary of every ticker with stored history."""
    return [
        TickerHistorySummary.from_summary(summary)
        for summary in service.get_price_summary().values()
    ]


@router.get("/history/{ticker}", response_model=PriceHistoryResponse)
@limiter.limit(RATE_LIMIT_DEFAULT)
def get_price_history(
        request: Request,
        ticker: str,
        start_date: date | None = Query(default=None),
        end_date: date | None = Query(default=None),
        service: NetWorthService = Depends(get_networth_service),
):
    ticker = ticker.upper()
    if start_date and end_date and start_date > end_date:
        raise ValidationError(
            f"start_date {start_date} is after end_date {end_date}", field="start_date"
        )
    if not service.has_price_data(ticker):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No stored prices for {ticker}",
        )

    prices = service.get_price_history(ticker, start_date, end_date)
    return PriceHistoryResponse(
        ticker=ticker,
        currency=service.history.currency_of(ticker),
        prices=[PricePoint(date=day, price=price) for day, price in sorted(prices.items())],
    )


@router.delete("/history/{ticker}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit(RATE_LIMIT_WRITE)
def delete_price_history(
        request: Request,
        ticker: str,
        service: NetWorthService = Depends(get_networth_service),
):
    if not service.clear_ticker_history(ticker.upper()):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No stored prices for {ticker.upper()}",
        )


@router.delete("/history", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit(RATE_LIMIT_WRITE)
def delete_all_price_history(
        request: Request,
        service: NetWorthService = Depends(get_networth_service),
):
    service.clear_all_history()


# =============================================================================
# CACHES
# =============================================================================

@router.get("/cache", response_model=CacheInfoResponse)
@limiter.limit(RATE_LIMIT_DEFAULT)
def get_cache_info(
        request: Request,
        service: NetWorthService = Depends(get_networth_service),
):
    info = service.cache_info()
    return CacheInfoResponse(
        quotes=CacheInfoSchema.from_info(info["quotes"]),
        rates=CacheInfoSchema.from_info(info["rates"]),
    )


@router.delete("/cache", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit(RATE_LIMIT_WRITE)
def clear_caches(
        request: Request,
        service: NetWorthService = Depends(get_networth_service),
):
    """Drop cached quotes and exchange rates; the next refresh refetches them."""
    service.clear_caches()
