# backend/networth/middleware/__init__.py
"""
Middleware components for the price engine API.

This package contains ASGI middleware for:
- Correlation ID tracking for request tracing
- Rate limiting to protect upstream provider quotas

Usage:
    from networth.middleware import CorrelationIdMiddleware, limiter

    app.add_middleware(CorrelationIdMiddleware)
    app.state.limiter = limiter
"""

from networth.middleware.correlation import CorrelationIdMiddleware
from networth.middleware.rate_limit import (
    RATE_LIMIT_DEFAULT,
    RATE_LIMIT_HEALTH,
    RATE_LIMIT_SYNC,
    RATE_LIMIT_WRITE,
    SlowAPIMiddleware,
    limiter,
    rate_limit_exceeded_handler,
)

__all__ = [
    "CorrelationIdMiddleware",
    "limiter",
    "rate_limit_exceeded_handler",
    "SlowAPIMiddleware",
    "RATE_LIMIT_DEFAULT",
    "RATE_LIMIT_WRITE",
    "RATE_LIMIT_SYNC",
    "RATE_LIMIT_HEALTH",
]
