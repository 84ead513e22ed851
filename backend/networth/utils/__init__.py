# backend/networth/utils/__init__.py
"""
Cross-cutting utilities for the Net Worth Price Engine.

- logging: Logging setup with correlation ID and ticker support
- context: contextvars for correlation ID and current ticker
- date_utils: ISO date parsing and calendar-day iteration
- decimal_utils: Decimal parsing for provider payloads and stored prices

Usage:
    from networth.utils import setup_logging, get_logger
    from networth.utils import get_correlation_id, set_correlation_id
    from networth.utils.date_utils import iter_calendar_days
"""

from networth.utils.context import (
    get_correlation_id,
    set_correlation_id,
    clear_correlation_id,
    get_current_ticker,
    ticker_context,
)
from networth.utils.logging import setup_logging, get_logger

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    # Context
    "get_correlation_id",
    "set_correlation_id",
    "clear_correlation_id",
    "get_current_ticker",
    "ticker_context",
]
