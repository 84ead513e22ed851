# backend/networth/services/price_sync/__init__.py
"""
Price synchronization engines.

- BackfillEngine: historical daily closes from purchase date to today
- RefreshEngine: one current quote per ticker, revaluing holdings

Both fan out one asyncio task per ticker (runner.py) and collect
per-ticker failures instead of raising them.
"""

from networth.services.price_sync.backfill import (
    BackfillEngine,
    expected_trading_days,
    is_history_complete,
)
from networth.services.price_sync.refresh import RefreshEngine
from networth.services.price_sync.runner import run_per_ticker
from networth.services.price_sync.types import (
    BackfillResult,
    RefreshResult,
    TickerError,
)

__all__ = [
    # Engines
    "BackfillEngine",
    "RefreshEngine",
    # Helpers
    "is_history_complete",
    "expected_trading_days",
    "run_per_ticker",
    # Results
    "BackfillResult",
    "RefreshResult",
    "TickerError",
]
