# backend/networth/services/price_sync/runner.py
"""
Per-ticker task fan-out shared by the sync engines.

One asyncio task per ticker, created in the given order. Progress is
reported synchronously as each task starts, before its first await, so
callbacks fire in ticker order.

Error policy:
- ConfigurationError aborts the whole batch: remaining tasks are cancelled
  and the error propagates
- Any other exception is captured as that ticker's TickerError
- Cancelling the awaiting task cancels every in-flight ticker task
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

from networth.services.exceptions import ConfigurationError
from networth.services.price_sync.types import TickerError
from networth.services.protocols import ProgressCallback

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def run_per_ticker(
        tickers: Sequence[str],
        worker: Callable[[str], Awaitable[T]],
        on_progress: ProgressCallback | None = None,
        timeout: float | None = None,
) -> list[T | TickerError]:
    """
    Run ``worker(ticker)`` for every ticker concurrently.

    Args:
        tickers: Distinct tickers in processing order
        worker: Coroutine function doing one ticker's work
        on_progress: Called as (ticker, 1-based index, total)
        timeout: Optional overall budget per ticker, in seconds

    Returns:
        One entry per ticker, in input order: the worker's result or a
        TickerError
    """
    total = len(tickers)

    async def _run(index: int, ticker: str) -> T | TickerError:
        if on_progress is not None:
            on_progress(ticker, index, total)
        try:
            if timeout is None:
                return await worker(ticker)
            return await asyncio.wait_for(worker(ticker), timeout=timeout)
        except ConfigurationError:
            raise
        except asyncio.TimeoutError as e:
            logger.warning(f"{ticker} timed out after {timeout}s")
            return TickerError(ticker=ticker, error=f"Timed out after {timeout}s", error_type=type(e).__name__)
        except Exception as e:
            logger.warning(f"{ticker} failed: {type(e).__name__}: {e}")
            return TickerError.from_exception(ticker, e)

    tasks = [
        asyncio.create_task(_run(index, ticker), name=f"price-sync-{ticker}")
        for index, ticker in enumerate(tickers, start=1)
    ]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
