# backend/networth/services/price_sync/types.py
"""
Result types for the price synchronization engines.

Dataclasses, not Pydantic schemas; the API layer converts them in
networth/schemas/prices.py.

Type Hierarchy:
    TickerError     - One ticker's failure (collected, never raised)
    BackfillResult  - Outcome of BackfillEngine.backfill
    RefreshResult   - Outcome of RefreshEngine.refresh
"""

from dataclasses import dataclass, field
from typing import Any

from networth.services.holdings import Holding


@dataclass(frozen=True)
class TickerError:
    """
    Failure scoped to one ticker.

    Attributes:
        ticker: Ticker that failed
        error: Human-readable error message
        error_type: Exception class name (e.g. "RateLimitError")
    """

    ticker: str
    error: str
    error_type: str

    @classmethod
    def from_exception(cls, ticker: str, exc: BaseException) -> "TickerError":
        return cls(ticker=ticker, error=str(exc) or type(exc).__name__, error_type=type(exc).__name__)

    def to_dict(self) -> dict[str, str]:
        return {"ticker": self.ticker, "error": self.error, "error_type": self.error_type}


@dataclass
class BackfillResult:
    """
    Attributes:
        backfilled_tickers: Tickers whose history is now in place, including
                            ones skipped because they were already complete
        skipped_tickers: Subset of backfilled_tickers that needed no fetch
        errors: Per-ticker failures
    """

    backfilled_tickers: list[str] = field(default_factory=list)
    skipped_tickers: list[str] = field(default_factory=list)
    errors: list[TickerError] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "backfilled_tickers": list(self.backfilled_tickers),
            "skipped_tickers": list(self.skipped_tickers),
            "errors": [e.to_dict() for e in self.errors],
        }


@dataclass
class RefreshResult:
    """
    Attributes:
        updated_items: Copies of every refreshed holding, with current_value
                       and last_updated set
        errors: Per-ticker failures
        conversion_warnings: Degraded conversions; the affected holdings
                             were valued in their native currency
    """

    updated_items: list[Holding] = field(default_factory=list)
    errors: list[TickerError] = field(default_factory=list)
    conversion_warnings: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "updated_items": [h.to_dict() for h in self.updated_items],
            "errors": [e.to_dict() for e in self.errors],
            "conversion_warnings": list(self.conversion_warnings),
        }
