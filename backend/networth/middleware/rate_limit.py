# backend/networth/middleware/rate_limit.py
"""
Per-client request limits using slowapi.

Refresh and backfill fan out to Finnhub and Alpha Vantage, whose free
tiers allow a few dozen calls per minute at most, so those endpoints get
the tightest limit. Limits live in networth/services/constants.py.

Key by: client IP (X-Forwarded-For only when the peer is a trusted proxy)
Storage: in-memory (single instance)

Usage:
    @router.post("/refresh")
    @limiter.limit(RATE_LIMIT_SYNC)
    async def refresh(request: Request, ...):
        ...
"""

import logging

from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from starlette.requests import Request
from starlette.responses import JSONResponse

from networth.config import settings
from networth.schemas.errors import ErrorDetail
from networth.services.constants import (
    RATE_LIMIT_DEFAULT,
    RATE_LIMIT_HEALTH,
    RATE_LIMIT_SYNC,
    RATE_LIMIT_WRITE,
)

logger = logging.getLogger(__name__)

# slowapi does not expose the window reset time on the exception
DEFAULT_RETRY_AFTER_SECONDS = 60


def _is_trusted_proxy(request: Request) -> bool:
    """True when forwarded headers from the immediate peer can be trusted."""
    if settings.trust_proxy_headers:
        return True
    return get_remote_address(request) in settings.trusted_proxy_ips


def _get_client_ip(request: Request) -> str:
    """
    Client address used as the rate limit key.

    Forwarded headers are ignored unless the peer is a trusted proxy, so
    clients cannot dodge their limit by spoofing X-Forwarded-For.
    """
    if _is_trusted_proxy(request):
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()
        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip
    return get_remote_address(request)


limiter = Limiter(
    key_func=_get_client_ip,
    default_limits=[RATE_LIMIT_DEFAULT],
    enabled=settings.rate_limit_enabled,
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """429 in the standard error envelope, with Retry-After."""
    limit_info = str(exc.detail) if exc.detail else "Rate limit exceeded"
    logger.warning(f"Rate limit exceeded for {_get_client_ip(request)}: {limit_info}")

    return JSONResponse(
        status_code=429,
        content=ErrorDetail(
            error="RateLimitError",
            message=f"Too many requests. {limit_info}",
            details={"retry_after": DEFAULT_RETRY_AFTER_SECONDS},
        ).model_dump(),
        headers={"Retry-After": str(DEFAULT_RETRY_AFTER_SECONDS)},
    )


__all__ = [
    "limiter",
    "rate_limit_exceeded_handler",
    "SlowAPIMiddleware",
    "RATE_LIMIT_DEFAULT",
    "RATE_LIMIT_WRITE",
    "RATE_LIMIT_SYNC",
    "RATE_LIMIT_HEALTH",
]
