# backend/networth/dependencies.py
"""
Dependency injection for FastAPI routes.

One NetWorthService is shared by every request so the quote and rate
caches, the provider circuit breakers and the per-provider concurrency
limits are process-wide. Instances are created lazily on first use.

Usage in routers:
    @router.post("/refresh")
    async def refresh(service: NetWorthService = Depends(get_networth_service)):
        ...

Tests replace the service through ``app.dependency_overrides``.
"""

import logging
from functools import lru_cache

from networth.config import settings
from networth.database import SessionLocal
from networth.services.networth_service import NetWorthService
from networth.services.storage import SqlKeyValueStore

logger = logging.getLogger(__name__)


# =============================================================================
# SINGLETON SERVICE INSTANCES
# =============================================================================
# Order matters: the store is built before the service that uses it

@lru_cache(maxsize=1)
def get_key_value_store() -> SqlKeyValueStore:
    logger.debug("Initializing singleton SqlKeyValueStore")
    return SqlKeyValueStore(SessionLocal)


@lru_cache(maxsize=1)
def get_networth_service() -> NetWorthService:
    """Shared price engine facade over the database-backed store."""
    logger.debug("Initializing singleton NetWorthService")
    return NetWorthService(get_key_value_store(), settings)


def is_service_initialized() -> bool:
    return get_networth_service.cache_info().currsize > 0
