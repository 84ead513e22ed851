# backend/tests/conftest.py
"""
Pytest configuration and fixtures.

This module provides shared fixtures for all tests:
- Deterministic clock
- Fake quote providers and a fake rate API
- Key-value store / history store fixtures
- Holding factory
- A NetWorthService wired to the fakes
"""

import asyncio
import os
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any

# Must run before networth.config is imported anywhere
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from networth.config import Settings
from networth.models import Base
from networth.services.cache import PriceCache, RateCache
from networth.services.exceptions import FXProviderError, NoDataError
from networth.services.fx_rate_service import CurrencyConverter
from networth.services.history_store import PriceHistoryStore
from networth.services.holdings import Holding, HoldingKind
from networth.services.market_data.base import QuoteProvider
from networth.services.market_data.router import SourceRouter
from networth.services.networth_service import NetWorthService
from networth.services.storage import InMemoryKeyValueStore

FIXED_NOW = datetime(2024, 6, 14, 15, 30, tzinfo=timezone.utc)
TODAY = FIXED_NOW.date()


# =============================================================================
# CLOCK
# =============================================================================

class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


# =============================================================================
# FAKE QUOTE PROVIDER
# =============================================================================

class FakeQuoteProvider(QuoteProvider):
    """
    In-memory QuoteProvider.

    Configure prices, history and per-ticker errors; every call is recorded
    and concurrent calls are tracked so tests can assert on limits.
    """

    def __init__(self, name: str = "fake", api_key: str | None = "test-key", delay: float = 0.0):
        self._name = name
        super().__init__(api_key=api_key, base_url="http://fake.invalid")
        self.prices: dict[str, Decimal] = {}
        self.history: dict[str, dict[date, Decimal]] = {}
        self.errors: dict[str, Exception] = {}
        self.delay = delay
        self.price_calls: list[str] = []
        self.history_calls: list[tuple[str, date, date]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    @property
    def name(self) -> str:
        return self._name

    async def _simulate(self, ticker: str) -> None:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.in_flight -= 1
        if ticker in self.errors:
            raise self.errors[ticker]

    async def fetch_price(self, ticker: str) -> Decimal:
        self._require_api_key()
        self.price_calls.append(ticker)
        await self._simulate(ticker)
        if ticker not in self.prices:
            raise NoDataError(ticker, self.name, "quote")
        return self.prices[ticker]

    async def fetch_daily_closes(self, ticker: str, start_date: date, end_date: date) -> dict[date, Decimal]:
        self._require_api_key()
        self.history_calls.append((ticker, start_date, end_date))
        await self._simulate(ticker)
        if ticker not in self.history:
            raise NoDataError(ticker, self.name, "historical")
        return dict(self.history[ticker])


@pytest.fixture
def primary() -> FakeQuoteProvider:
    return FakeQuoteProvider(name="finnhub")


@pytest.fixture
def secondary() -> FakeQuoteProvider:
    return FakeQuoteProvider(name="alpha_vantage")


# =============================================================================
# FAKE RATE API
# =============================================================================

class FakeCurrencyConverter(CurrencyConverter):
    """CurrencyConverter whose rate API is a dict; missing pairs fail like the real API."""

    def __init__(self, rates: dict[tuple[str, str], Decimal] | None = None, clock=None):
        super().__init__(RateCache(clock=clock) if clock else RateCache())
        self.rates = dict(rates or {})
        self.requests: list[tuple[str, str]] = []

    async def _request_rate(self, from_currency: str, to_currency: str) -> Decimal:
        self.requests.append((from_currency, to_currency))
        rate = self.rates.get((from_currency, to_currency))
        if rate is None:
            raise FXProviderError("fake", f"no rate returned for {to_currency}", from_currency, to_currency)
        return rate


@pytest.fixture
def converter(clock) -> FakeCurrencyConverter:
    return FakeCurrencyConverter(
        {
            ("CAD", "USD"): Decimal("0.73"),
            ("USD", "CAD"): Decimal("1.36"),
            ("GBP", "USD"): Decimal("1.27"),
        },
        clock=clock,
    )


# =============================================================================
# STORES
# =============================================================================

@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def history(store, clock) -> PriceHistoryStore:
    return PriceHistoryStore(store, clock=clock)


@pytest.fixture(scope="function")
def db_engine():
    """In-memory SQLite engine with the kv_entries table."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


# =============================================================================
# ENGINE COMPONENTS
# =============================================================================

@pytest.fixture
def router(primary, secondary, clock) -> SourceRouter:
    return SourceRouter(
        primary=primary,
        secondary=secondary,
        price_cache=PriceCache(clock=clock),
        clock=clock,
    )


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        environment="test",
        display_currency="USD",
        finnhub_api_key="test-finnhub",
        alpha_vantage_api_key="test-alpha-vantage",
    )


@pytest.fixture
def service(store, test_settings, primary, secondary, converter, clock) -> NetWorthService:
    return NetWorthService(
        store,
        test_settings,
        primary=primary,
        secondary=secondary,
        converter=converter,
        price_cache=PriceCache(clock=clock),
        clock=clock,
    )


# =============================================================================
# SAMPLE DATA FACTORIES
# =============================================================================

def make_holding(
        id: str = "h-1",
        kind: HoldingKind = HoldingKind.ASSET,
        category: str = "Stock",
        name: str = "AAPL",
        ticker: str | None = None,
        quantity: str | int = 1,
        purchase_date: date | None = None,
        purchase_value: str | int | None = None,
        auto_update: bool = True,
        current_value: str | int | None = None,
        **extra: Any,
) -> Holding:
    """Build a Holding with test defaults (an auto-update AAPL asset)."""
    return Holding(
        id=id,
        kind=kind,
        category=category,
        name=name,
        ticker=ticker,
        quantity=Decimal(str(quantity)),
        purchase_date=purchase_date,
        purchase_value=Decimal(str(purchase_value)) if purchase_value is not None else None,
        auto_update=auto_update,
        current_value=Decimal(str(current_value)) if current_value is not None else None,
        extra=extra,
    )


def daily_prices(start: date, end: date, price: str | Decimal) -> dict[date, Decimal]:
    """One constant price per calendar day (inclusive)."""
    days = (end - start).days
    return {start + timedelta(days=i): Decimal(str(price)) for i in range(days + 1)}


# =============================================================================
# API CLIENT
# =============================================================================

@pytest.fixture
def client(service):
    """TestClient with the shared service replaced by the fake-backed one."""
    from fastapi.testclient import TestClient

    from networth.dependencies import get_networth_service
    from networth.main import app

    app.dependency_overrides[get_networth_service] = lambda: service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
