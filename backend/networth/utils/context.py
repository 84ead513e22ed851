# backend/networth/utils/context.py
"""
Execution context for log correlation.

Two values are tracked with contextvars, so they follow the current
asyncio task automatically:
- Correlation ID: set per HTTP request by CorrelationIdMiddleware
- Ticker: set by the sync engines while a ticker's task is running

asyncio copies the context when a task is created, so a ticker set inside
one engine task never leaks into its siblings.

Usage:
    from networth.utils.context import set_correlation_id, ticker_context

    set_correlation_id("abc-123")

    with ticker_context("AAPL"):
        logger.info("fetching")  # log record carries ticker=AAPL
"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

# =============================================================================
# CONTEXT VARIABLES
# =============================================================================

_correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)

_ticker_var: ContextVar[str | None] = ContextVar("ticker", default=None)


# =============================================================================
# CORRELATION ID
# =============================================================================

def get_correlation_id() -> str | None:
    """Return the current correlation ID, or None if not set."""
    return _correlation_id_var.get()


def set_correlation_id(correlation_id: str) -> None:
    """
    Set the correlation ID for the current request.

    Called by middleware at the start of each request.
    """
    _correlation_id_var.set(correlation_id)


def clear_correlation_id() -> None:
    """Clear the correlation ID at the end of a request."""
    _correlation_id_var.set(None)


# =============================================================================
# TICKER
# =============================================================================

def get_current_ticker() -> str | None:
    """Return the ticker being processed in this task, if any."""
    return _ticker_var.get()


@contextmanager
def ticker_context(ticker: str) -> Iterator[None]:
    """Mark log records emitted inside the block with ``ticker``."""
    token = _ticker_var.set(ticker)
    try:
        yield
    finally:
        _ticker_var.reset(token)
