# backend/networth/routers/preferences.py
"""
Preferences and holdings endpoints.

Holdings are stored as the collaborator's blob; PUT replaces the whole
list. Unknown holding fields round-trip unchanged.
"""

import logging

from fastapi import APIRouter, Depends, Request

from networth.dependencies import get_networth_service
from networth.middleware.rate_limit import RATE_LIMIT_DEFAULT, RATE_LIMIT_WRITE, limiter
from networth.schemas.holdings import HoldingSchema
from networth.schemas.preferences import PreferencesResponse, PreferencesUpdate
from networth.services.networth_service import NetWorthService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Preferences"])


@router.get("/preferences", response_model=PreferencesResponse)
@limiter.limit(RATE_LIMIT_DEFAULT)
def get_preferences(
        request: Request,
        service: NetWorthService = Depends(get_networth_service),
):
    return PreferencesResponse.from_preferences(service.get_preferences())


@router.put("/preferences", response_model=PreferencesResponse)
@limiter.limit(RATE_LIMIT_WRITE)
def update_preferences(
        request: Request,
        update: PreferencesUpdate,
        service: NetWorthService = Depends(get_networth_service),
):
    """Partial update; an empty API key clears the stored one."""
    preferences = service.update_preferences(update.model_dump(exclude_unset=True))
    return PreferencesResponse.from_preferences(preferences)


@router.get("/holdings", response_model=list[HoldingSchema], response_model_exclude_none=True)
@limiter.limit(RATE_LIMIT_DEFAULT)
def get_holdings(
        request: Request,
        service: NetWorthService = Depends(get_networth_service),
):
    return [HoldingSchema.from_holding(h) for h in service.get_holdings()]


@router.put("/holdings", response_model=list[HoldingSchema], response_model_exclude_none=True)
@limiter.limit(RATE_LIMIT_WRITE)
def replace_holdings(
        request: Request,
        holdings: list[HoldingSchema],
        service: NetWorthService = Depends(get_networth_service),
):
    saved = service.save_holdings(h.to_holding() for h in holdings)
    return [HoldingSchema.from_holding(h) for h in saved]
