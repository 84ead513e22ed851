# backend/networth/main.py
"""
FastAPI application entry point.

This file:
- Configures application-wide logging
- Creates the FastAPI application (tables are created on startup)
- Registers global exception handlers
- Registers all routers
- Defines global endpoints (health checks)
"""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from networth.config import settings
from networth.database import get_db, init_db
from networth.dependencies import get_networth_service, is_service_initialized
from networth.middleware import (
    RATE_LIMIT_HEALTH,
    CorrelationIdMiddleware,
    SlowAPIMiddleware,
    limiter,
    rate_limit_exceeded_handler,
)
from networth.routers import preferences_router, prices_router, valuation_router
from networth.schemas.errors import ErrorDetail, ValidationErrorDetail
from networth.services.exceptions import (
    CircuitBreakerOpen,
    ConfigurationError,
    FXRateError,
    InvalidSymbolError,
    MarketDataError,
    ProviderUnavailableError,
    RateLimitError,
    ServiceError,
    ValidationError,
)
from networth.services.networth_service import NetWorthService
from networth.utils import setup_logging

logger = logging.getLogger(__name__)

# =============================================================================
# LOGGING SETUP (must be before app creation)
# =============================================================================

setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield
    if is_service_initialized():
        await get_networth_service().aclose()


# =============================================================================
# APPLICATION SETUP
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description="Multi-currency price engine for a personal net worth tracker",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Order matters: last added = first executed
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(CorrelationIdMiddleware)


# =============================================================================
# GLOBAL EXCEPTION HANDLERS
# =============================================================================
# Service-layer exceptions carry no HTTP knowledge; the mapping lives here.
# Starlette picks the handler of the most specific class in the MRO.

app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)


def _error_response(status_code: int, error: str, message: str, details: dict | None = None,
                    headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorDetail(error=error, message=message, details=details).model_dump(),
        headers=headers,
    )


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    """Missing provider API key (400): the user must fix their settings."""
    logger.warning(f"Configuration error: {exc}")
    return _error_response(
        400,
        "ConfigurationError",
        str(exc),
        details={"provider": exc.provider, "setting": exc.setting},
    )


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    logger.warning(f"Validation error: {exc}")
    return _error_response(
        422,
        "ValidationError",
        str(exc),
        details={"field": exc.field} if exc.field else None,
    )


@app.exception_handler(InvalidSymbolError)
async def invalid_symbol_handler(request: Request, exc: InvalidSymbolError) -> JSONResponse:
    """Unknown ticker or no data (404). NoDataError is a subclass."""
    logger.warning(f"Invalid symbol: {exc}")
    return _error_response(
        404,
        type(exc).__name__,
        str(exc),
        details={"ticker": exc.ticker, "provider": exc.provider},
    )


@app.exception_handler(ProviderUnavailableError)
async def provider_unavailable_handler(request: Request, exc: ProviderUnavailableError) -> JSONResponse:
    logger.error(f"Provider unavailable: {exc}")
    return _error_response(503, "ProviderUnavailableError", str(exc))


@app.exception_handler(RateLimitError)
async def rate_limit_handler(request: Request, exc: RateLimitError) -> JSONResponse:
    """Upstream provider quota exhausted (429)."""
    logger.warning(f"Rate limit exceeded: {exc}")
    headers = {"Retry-After": str(exc.retry_after)} if exc.retry_after else None
    return _error_response(
        429,
        "RateLimitError",
        str(exc),
        details={"retry_after": exc.retry_after} if exc.retry_after else None,
        headers=headers,
    )


@app.exception_handler(CircuitBreakerOpen)
async def circuit_breaker_handler(request: Request, exc: CircuitBreakerOpen) -> JSONResponse:
    """Handle circuit breaker open (503 with Retry-After)."""
    logger.warning(f"Circuit breaker open: {exc.breaker_name}")
    retry_after = int(exc.time_remaining) + 1
    return _error_response(
        503,
        "CircuitBreakerOpen",
        f"Service temporarily unavailable. The {exc.breaker_name} circuit breaker is open.",
        details={"breaker_name": exc.breaker_name, "retry_after": retry_after},
        headers={"Retry-After": str(retry_after)},
    )


@app.exception_handler(MarketDataError)
async def market_data_error_handler(request: Request, exc: MarketDataError) -> JSONResponse:
    logger.error(f"Market data error: {exc}")
    return _error_response(500, "MarketDataError", str(exc))


@app.exception_handler(FXRateError)
async def fx_rate_error_handler(request: Request, exc: FXRateError) -> JSONResponse:
    logger.error(f"FX rate error: {exc}")
    return _error_response(
        503,
        type(exc).__name__,
        str(exc),
        details={
            "base_currency": exc.base_currency,
            "quote_currency": exc.quote_currency,
        },
    )


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Catch-all for service errors without a dedicated handler."""
    logger.error(f"Service error: {exc}")
    return _error_response(500, type(exc).__name__, str(exc))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Convert FastAPI's {"detail": "..."} into the standard envelope."""
    error_types = {
        400: "BadRequestError",
        404: "NotFoundError",
        405: "MethodNotAllowedError",
        422: "ValidationError",
        429: "RateLimitError",
        500: "InternalServerError",
        503: "ServiceUnavailableError",
    }
    return _error_response(
        exc.status_code,
        error_types.get(exc.status_code, "HTTPError"),
        str(exc.detail) if exc.detail else "An error occurred",
        headers=exc.headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content=ValidationErrorDetail(details=errors).model_dump(),
    )


# =============================================================================
# ROUTER REGISTRATION
# =============================================================================

app.include_router(prices_router)  # /prices/*
app.include_router(valuation_router)  # /valuation/*
app.include_router(preferences_router)  # /preferences, /holdings


# =============================================================================
# GLOBAL ENDPOINTS
# =============================================================================

@app.get("/", tags=["Health"])
@limiter.limit(RATE_LIMIT_HEALTH)
def root(request: Request):
    return {
        "message": f"Welcome to {settings.app_name}!",
        "docs": "/docs",
    }


@app.get("/health", tags=["Health"])
@limiter.limit(RATE_LIMIT_HEALTH)
def health_check(
        request: Request,
        db: Session = Depends(get_db),
        service: NetWorthService = Depends(get_networth_service),
):
    """
    Health of the database (critical) and each quote provider's circuit
    breaker (non-critical).

    - 200: healthy, or degraded when a provider circuit is open
    - 503: database unreachable
    """
    checks = {}
    critical_healthy = True
    overall_status = "healthy"

    try:
        db.execute(text("SELECT 1"))
        checks["database"] = {"status": "healthy", "critical": True}
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        checks["database"] = {"status": "unhealthy", "critical": True, "error": str(e)}
        critical_healthy = False
        overall_status = "unhealthy"

    try:
        router = service.router
        for provider in (router.primary, router.secondary):
            breaker = provider.breaker
            stats = breaker.stats
            check = {
                "status": "unhealthy" if breaker.is_open else "healthy",
                "critical": False,
                "configured": provider.is_configured,
                "circuit_breaker_state": breaker.state.value,
                "total_calls": stats.total_calls,
                "failed_calls": stats.failed_calls,
                "rejected_calls": stats.rejected_calls,
            }
            if breaker.is_open and overall_status == "healthy":
                overall_status = "degraded"
            checks[provider.name] = check
    except Exception as e:
        logger.warning(f"Provider health check failed: {e}")
        checks["providers"] = {"status": "unknown", "critical": False, "error": str(e)}

    response_data = {"status": overall_status, "checks": checks}
    if not critical_healthy:
        return JSONResponse(status_code=503, content=response_data)
    return response_data


@app.get("/health/live", tags=["Health"])
@limiter.limit(RATE_LIMIT_HEALTH)
def liveness_check(request: Request):
    """Always 200 while the process is up; checks no dependencies."""
    return {"status": "alive"}


@app.get("/health/ready", tags=["Health"])
@limiter.limit(RATE_LIMIT_HEALTH)
def readiness_check(request: Request, db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))
        return {"status": "ready"}
    except Exception as e:
        logger.error(f"Readiness check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "error": "Database unavailable"},
        )
