# tests/services/test_alpha_vantage_provider.py
"""
Tests for the Alpha Vantage client against a mocked HTTP transport.
"""

import asyncio
from datetime import date
from decimal import Decimal

import httpx
import pytest

from networth.services.exceptions import (
    ConfigurationError,
    InvalidSymbolError,
    NoDataError,
    ProviderUnavailableError,
    RateLimitError,
)
from networth.services.market_data.alpha_vantage import AlphaVantageProvider

BASE_URL = "https://alphavantage.test/query"

DAILY_LIMIT_NOTICE = (
    "We have detected your API key as DEMO123 and our standard API rate limit is "
    "25 requests per day. Please subscribe to any of the premium plans at "
    "https://www.alphavantage.co/premium/ to instantly remove all daily rate limits."
)


def make_provider(responses, api_key="secret", requests=None) -> AlphaVantageProvider:
    responses = list(responses)
    seen = requests if requests is not None else []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return responses.pop(0) if len(responses) > 1 else responses[0]

    return AlphaVantageProvider(
        api_key=api_key,
        base_url=BASE_URL,
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        retry_min_wait=0,
        retry_max_wait=0,
    )


class TestFormatSymbol:

    @pytest.mark.parametrize("ticker,expected", [
        ("SHOP.TO", "SHOP.TRT"),
        ("vod.l", "VOD.LON"),
        ("SAP.DE", "SAP.DEX"),
        ("7203.T", "7203.T"),
        ("AAPL", "AAPL"),
    ])
    def test_format_symbol(self, ticker, expected):
        assert AlphaVantageProvider.format_symbol(ticker) == expected


class TestFetchPrice:

    def test_reads_global_quote(self):
        requests = []
        provider = make_provider(
            [httpx.Response(200, json={"Global Quote": {"01. symbol": "SHOP.TRT", "05. price": "98.5000"}})],
            requests=requests,
        )

        assert asyncio.run(provider.fetch_price("SHOP.TO")) == Decimal("98.5000")
        params = requests[0].url.params
        assert params["function"] == "GLOBAL_QUOTE"
        assert params["symbol"] == "SHOP.TRT"
        assert params["apikey"] == "secret"

    def test_empty_quote_is_no_data(self):
        provider = make_provider([httpx.Response(200, json={"Global Quote": {}})])

        with pytest.raises(NoDataError):
            asyncio.run(provider.fetch_price("NOPE.TO"))

    def test_error_message_is_invalid_symbol(self):
        provider = make_provider([httpx.Response(200, json={"Error Message": "Invalid API call."})])

        with pytest.raises(InvalidSymbolError):
            asyncio.run(provider.fetch_price("NOPE.TO"))

    def test_note_is_rate_limit_and_not_retried(self):
        """Should surface the daily quota immediately instead of retrying."""
        requests = []
        provider = make_provider(
            [httpx.Response(200, json={"Note": "Thank you for using Alpha Vantage! Our standard API call frequency is 25 requests per day."})],
            requests=requests,
        )

        with pytest.raises(RateLimitError):
            asyncio.run(provider.fetch_price("SHOP.TO"))

        assert len(requests) == 1

    def test_information_about_api_key_is_configuration_error(self):
        provider = make_provider([httpx.Response(200, json={"Information": "Please provide a valid apikey."})])

        with pytest.raises(ConfigurationError) as exc_info:
            asyncio.run(provider.fetch_price("SHOP.TO"))

        assert exc_info.value.provider == "alpha_vantage"

    def test_information_about_quota_is_rate_limit(self):
        provider = make_provider([httpx.Response(200, json={"Information": "You have reached the daily rate limit."})])

        with pytest.raises(RateLimitError):
            asyncio.run(provider.fetch_price("SHOP.TO"))

    def test_daily_quota_notice_mentioning_key_is_rate_limit(self):
        """Should treat the daily quota notice as a rate limit even though it names the API key."""
        requests = []
        provider = make_provider(
            [httpx.Response(200, json={"Information": DAILY_LIMIT_NOTICE})],
            requests=requests,
        )

        with pytest.raises(RateLimitError):
            asyncio.run(provider.fetch_daily_closes("VOD.L", date(2024, 1, 1), date(2024, 6, 14)))

        assert len(requests) == 1

    def test_server_errors_are_retried(self):
        requests = []
        provider = make_provider(
            [httpx.Response(500), httpx.Response(200, json={"Global Quote": {"05. price": "10"}})],
            requests=requests,
        )

        assert asyncio.run(provider.fetch_price("VOD.L")) == Decimal("10")
        assert len(requests) == 2

    def test_non_object_payload_is_unavailable(self):
        provider = make_provider([httpx.Response(200, json=["unexpected"])])

        with pytest.raises(ProviderUnavailableError):
            asyncio.run(provider.fetch_price("VOD.L"))


class TestFetchDailyCloses:

    def test_filters_series_to_range(self):
        requests = []
        provider = make_provider([httpx.Response(200, json={
            "Meta Data": {"2. Symbol": "VOD.LON"},
            "Time Series (Daily)": {
                "2024-06-11": {"1. open": "0.71", "4. close": "0.7250"},
                "2024-06-10": {"4. close": "0.7200"},
                "2024-06-07": {"4. close": "0.7100"},
                "2024-05-31": {"4. close": "0.7000"},
            },
        })], requests=requests)

        closes = asyncio.run(provider.fetch_daily_closes("VOD.L", date(2024, 6, 7), date(2024, 6, 10)))

        assert closes == {date(2024, 6, 7): Decimal("0.7100"), date(2024, 6, 10): Decimal("0.7200")}
        assert requests[0].url.params["function"] == "TIME_SERIES_DAILY"
        assert requests[0].url.params["outputsize"] == "full"

    def test_missing_series_is_no_data(self):
        provider = make_provider([httpx.Response(200, json={"Meta Data": {}})])

        with pytest.raises(NoDataError):
            asyncio.run(provider.fetch_daily_closes("VOD.L", date(2024, 6, 1), date(2024, 6, 10)))
