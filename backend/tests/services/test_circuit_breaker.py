# tests/services/test_circuit_breaker.py
"""
Tests for the circuit breaker implementation.
"""

import asyncio

import pytest

from networth.services.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerOpen,
    CircuitState,
)
from networth.services.exceptions import InvalidSymbolError, ProviderUnavailableError


class FakeMonotonic:
    def __init__(self):
        self.value = 1000.0

    def __call__(self):
        return self.value


def _fail(breaker, exc=None):
    with pytest.raises(type(exc) if exc else RuntimeError):
        with breaker:
            raise exc or RuntimeError("boom")


class TestCircuitBreakerInit:

    def test_default_values(self):
        """Should initialize closed with default thresholds."""
        breaker = CircuitBreaker(name="test")

        assert breaker.failure_threshold == 5
        assert breaker.recovery_timeout == 60.0
        assert breaker.state == CircuitState.CLOSED

    def test_invalid_failure_threshold(self):
        with pytest.raises(ValueError, match="failure_threshold must be at least 1"):
            CircuitBreaker(name="test", failure_threshold=0)

    def test_invalid_recovery_timeout(self):
        with pytest.raises(ValueError, match="recovery_timeout cannot be negative"):
            CircuitBreaker(name="test", recovery_timeout=-1)


class TestCircuitBreakerTransitions:

    def test_opens_after_consecutive_failures(self):
        """Should open once failures reach the threshold."""
        breaker = CircuitBreaker(name="test", failure_threshold=3)

        for _ in range(3):
            _fail(breaker)

        assert breaker.is_open
        with pytest.raises(CircuitBreakerOpen) as exc_info:
            with breaker:
                pass
        assert exc_info.value.breaker_name == "test"
        assert breaker.stats.rejected_calls == 1

    def test_success_resets_failure_count(self):
        """Should require consecutive failures, not cumulative ones."""
        breaker = CircuitBreaker(name="test", failure_threshold=2)

        _fail(breaker)
        with breaker:
            pass
        _fail(breaker)

        assert breaker.state == CircuitState.CLOSED

    def test_untracked_exceptions_do_not_count(self):
        """Should ignore exceptions outside tracked_exceptions."""
        breaker = CircuitBreaker(
            name="test",
            failure_threshold=1,
            tracked_exceptions=(ProviderUnavailableError,),
        )

        _fail(breaker, InvalidSymbolError("XYZ", "test"))

        assert breaker.state == CircuitState.CLOSED
        assert breaker.stats.successful_calls == 1

    def test_half_open_after_recovery_timeout(self):
        clock = FakeMonotonic()
        breaker = CircuitBreaker(name="test", failure_threshold=1, recovery_timeout=30, clock=clock)
        _fail(breaker)

        clock.value += 30

        assert breaker.state == CircuitState.HALF_OPEN

    def test_successful_probe_closes(self):
        clock = FakeMonotonic()
        breaker = CircuitBreaker(name="test", failure_threshold=1, recovery_timeout=30, clock=clock)
        _fail(breaker)
        clock.value += 31

        with breaker:
            pass

        assert breaker.state == CircuitState.CLOSED

    def test_failed_probe_reopens(self):
        clock = FakeMonotonic()
        breaker = CircuitBreaker(name="test", failure_threshold=1, recovery_timeout=30, clock=clock)
        _fail(breaker)
        clock.value += 31

        _fail(breaker)

        assert breaker.state == CircuitState.OPEN

    def test_reports_time_remaining(self):
        clock = FakeMonotonic()
        breaker = CircuitBreaker(name="test", failure_threshold=1, recovery_timeout=30, clock=clock)
        _fail(breaker)
        clock.value += 10

        with pytest.raises(CircuitBreakerOpen) as exc_info:
            with breaker:
                pass

        assert exc_info.value.time_remaining == pytest.approx(20)

    def test_reset_closes(self):
        breaker = CircuitBreaker(name="test", failure_threshold=1)
        _fail(breaker)

        breaker.reset()

        assert breaker.state == CircuitState.CLOSED


class TestCircuitBreakerAsync:

    def test_async_context_manager(self):
        """Should track failures raised inside `async with`."""
        breaker = CircuitBreaker(name="test", failure_threshold=1)

        async def _call():
            async with breaker:
                raise ProviderUnavailableError("test", "down")

        with pytest.raises(ProviderUnavailableError):
            asyncio.run(_call())

        assert breaker.is_open
