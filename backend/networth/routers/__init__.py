# backend/networth/routers/__init__.py
"""
API routers.

- prices: refresh, backfill, stored history and cache management
- valuation: chart series and current net worth summary
- preferences: preferences and holdings blobs
"""

from networth.routers.preferences import router as preferences_router
from networth.routers.prices import router as prices_router
from networth.routers.valuation import router as valuation_router

__all__ = [
    "prices_router",
    "valuation_router",
    "preferences_router",
]
