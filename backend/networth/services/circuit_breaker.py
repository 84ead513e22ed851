# backend/networth/services/circuit_breaker.py
"""
Circuit breaker guarding calls to external quote and rate providers.

When a provider keeps failing at the transport level (timeouts, 5xx), the
breaker opens and rejects further calls immediately, so a batch refresh over
many tickers does not wait out a timeout for every one of them.

States:
    CLOSED    - Normal operation, requests pass through
    OPEN      - Too many failures, requests rejected immediately
    HALF_OPEN - Recovery timeout elapsed, limited probe requests allowed

State Transitions:
    CLOSED -> OPEN: When consecutive failures reach the threshold
    OPEN -> HALF_OPEN: After recovery timeout expires
    HALF_OPEN -> CLOSED: When a probe request succeeds
    HALF_OPEN -> OPEN: When a probe request fails

Only exceptions listed in ``tracked_exceptions`` count as failures. A ticker
the provider does not know is the caller's problem, not an outage.

Usage:
    breaker = CircuitBreaker(
        name="finnhub",
        tracked_exceptions=(ProviderUnavailableError,),
    )

    async with breaker:
        response = await client.get(url)
"""

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class CircuitState(Enum):
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerOpen(Exception):
    """
    Raised when a call is rejected because the circuit is open.

    Attributes:
        breaker_name: Name of the circuit breaker
        time_remaining: Seconds until recovery timeout expires
    """

    def __init__(self, breaker_name: str, time_remaining: float) -> None:
        self.breaker_name = breaker_name
        self.time_remaining = time_remaining
        super().__init__(
            f"Circuit breaker '{breaker_name}' is open. "
            f"Retry in {time_remaining:.1f} seconds."
        )


@dataclass
class CircuitBreakerStats:
    """Counters exposed for health reporting."""
    total_calls: int = 0
    successful_calls: int = 0
    failed_calls: int = 0
    rejected_calls: int = 0
    state_changes: int = 0


@dataclass
class CircuitBreaker:
    """
    Circuit breaker usable as a sync or async context manager.

    Attributes:
        name: Identifier used in logs and errors (usually the provider name)
        failure_threshold: Consecutive tracked failures before opening
        recovery_timeout: Seconds to stay open before allowing a probe
        half_open_max_calls: Probe calls allowed while half-open
        tracked_exceptions: Exception types that count as failures
            (empty tuple = every exception counts)
        clock: Monotonic time source, injectable for tests
    """

    name: str
    failure_threshold: int = 5
    recovery_timeout: float = 60.0
    half_open_max_calls: int = 1
    tracked_exceptions: tuple[type[BaseException], ...] = field(default_factory=tuple)
    clock: Callable[[], float] = time.monotonic

    _state: CircuitState = field(default=CircuitState.CLOSED, init=False)
    _failure_count: int = field(default=0, init=False)
    _opened_at: float = field(default=0.0, init=False)
    _half_open_calls: int = field(default=0, init=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, init=False)
    _stats: CircuitBreakerStats = field(default_factory=CircuitBreakerStats, init=False)

    def __post_init__(self) -> None:
        if self.failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")
        if self.recovery_timeout < 0:
            raise ValueError("recovery_timeout cannot be negative")
        if self.half_open_max_calls < 1:
            raise ValueError("half_open_max_calls must be at least 1")

    @property
    def state(self) -> CircuitState:
        """Current state, after applying any due OPEN -> HALF_OPEN transition."""
        with self._lock:
            self._check_recovery()
            return self._state

    @property
    def stats(self) -> CircuitBreakerStats:
        """Copy of the current counters."""
        with self._lock:
            return CircuitBreakerStats(**vars(self._stats))

    @property
    def is_open(self) -> bool:
        return self.state == CircuitState.OPEN

    # =========================================================================
    # STATE MACHINE (call with lock held)
    # =========================================================================

    def _check_recovery(self) -> None:
        if self._state == CircuitState.OPEN:
            if self.clock() - self._opened_at >= self.recovery_timeout:
                self._transition_to(CircuitState.HALF_OPEN)

    def _transition_to(self, new_state: CircuitState) -> None:
        old_state = self._state
        self._state = new_state
        self._stats.state_changes += 1

        if new_state == CircuitState.OPEN:
            self._opened_at = self.clock()
        elif new_state == CircuitState.HALF_OPEN:
            self._half_open_calls = 0
        else:
            self._failure_count = 0

        log = logger.warning if new_state == CircuitState.OPEN else logger.info
        log(f"CircuitBreaker '{self.name}' state change: {old_state.value} -> {new_state.value}")

    def _acquire(self) -> None:
        with self._lock:
            self._stats.total_calls += 1
            self._check_recovery()

            if self._state == CircuitState.CLOSED:
                return
            if (
                self._state == CircuitState.HALF_OPEN
                and self._half_open_calls < self.half_open_max_calls
            ):
                self._half_open_calls += 1
                return

            self._stats.rejected_calls += 1
            remaining = max(0.0, self.recovery_timeout - (self.clock() - self._opened_at))
            raise CircuitBreakerOpen(self.name, remaining)

    def _release(self, exc: BaseException | None) -> None:
        with self._lock:
            counts_as_failure = exc is not None and (
                not self.tracked_exceptions or isinstance(exc, self.tracked_exceptions)
            )
            if not counts_as_failure:
                self._stats.successful_calls += 1
                if self._state == CircuitState.HALF_OPEN:
                    self._transition_to(CircuitState.CLOSED)
                else:
                    self._failure_count = 0
                return

            self._stats.failed_calls += 1
            if self._state == CircuitState.HALF_OPEN:
                self._transition_to(CircuitState.OPEN)
                return

            self._failure_count += 1
            if self._failure_count >= self.failure_threshold:
                self._transition_to(CircuitState.OPEN)

    # =========================================================================
    # CONTEXT MANAGER PROTOCOLS
    # =========================================================================

    def __enter__(self) -> "CircuitBreaker":
        self._acquire()
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: Any) -> bool:
        self._release(exc_val)
        return False

    async def __aenter__(self) -> "CircuitBreaker":
        self._acquire()
        return self

    async def __aexit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: Any) -> bool:
        self._release(exc_val)
        return False

    def reset(self) -> None:
        """Manually close the circuit."""
        with self._lock:
            self._transition_to(CircuitState.CLOSED)
