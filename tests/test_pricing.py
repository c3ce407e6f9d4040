"""Tests for the stock price lookup against a mocked HTTP endpoint."""

from decimal import Decimal

import httpx
import pytest
from tenacity import wait_none

from wealth_snapshot.config import PriceLookupSettings
from wealth_snapshot.services.pricing import PriceLookupService, normalize_symbol


LOOKUP_URL = "https://prices.example/quote"


def lookup(handler) -> PriceLookupService:
    return PriceLookupService(
        settings=PriceLookupSettings(lookup_url=LOOKUP_URL),
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        retry_wait=wait_none(),
    )


def test_normalize_symbol():
    """Test trimming and upper-casing."""
    assert normalize_symbol(" 0700.hk ") == "0700.HK"


class TestFetchPrice:
    """Tests for single lookups."""

    @pytest.mark.asyncio
    async def test_price(self):
        """Test that the normalized symbol is sent and the price parsed exactly."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.params["symbol"])
            return httpx.Response(200, json={"price": 190.55})

        price = await lookup(handler).fetch_price(" aapl ")

        assert seen == ["AAPL"]
        assert price == Decimal("190.55")

    @pytest.mark.asyncio
    async def test_blank_symbol(self):
        """Test that a blank symbol is not looked up."""
        calls = []
        service = lookup(lambda request: calls.append(request) or httpx.Response(200))
        assert await service.fetch_price("  ") is None
        assert calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("response", [
        httpx.Response(404, json={"error": "unknown symbol"}),
        httpx.Response(200, json={"price": 0}),
        httpx.Response(200, json={"price": -3}),
        httpx.Response(200, json={"price": None}),
        httpx.Response(200, json={"price": "n/a"}),
        httpx.Response(200, json={"price": "NaN"}),
        httpx.Response(200, json={}),
        httpx.Response(200, json=[1, 2]),
        httpx.Response(200, text="<html>oops</html>"),
    ])
    async def test_no_price(self, response):
        """Test that every kind of unusable answer means no update."""
        assert await lookup(lambda request: response).fetch_price("AAPL") is None

    @pytest.mark.asyncio
    async def test_transient_network_error_is_retried(self):
        """Test that a dropped connection is retried."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) == 1:
                raise httpx.ConnectError("connection reset", request=request)
            return httpx.Response(200, json={"price": 452.4})

        assert await lookup(handler).fetch_price("0700.HK") == Decimal("452.4")
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_network_down(self):
        """Test that persistent network errors give up after three attempts."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            raise httpx.ConnectError("unreachable", request=request)

        assert await lookup(handler).fetch_price("0700.HK") is None
        assert len(calls) == 3


class TestFetchPrices:
    """Tests for batch lookups."""

    @pytest.mark.asyncio
    async def test_deduplicates_and_maps(self):
        """Test that each symbol is fetched once and misses map to None."""
        prices = {"AAPL": 190, "0700.HK": 450}
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            symbol = request.url.params["symbol"]
            seen.append(symbol)
            if symbol not in prices:
                return httpx.Response(404)
            return httpx.Response(200, json={"price": prices[symbol]})

        service = lookup(handler)
        result = await service.fetch_prices(["aapl", "AAPL ", "", "0700.hk", "ZZZ"])
        await service.aclose()

        assert sorted(seen) == ["0700.HK", "AAPL", "ZZZ"]
        assert result == {"0700.HK": Decimal("450"), "AAPL": Decimal("190"), "ZZZ": None}

    @pytest.mark.asyncio
    async def test_nothing_to_fetch(self):
        """Test an empty symbol list."""
        assert await lookup(lambda request: httpx.Response(500)).fetch_prices([]) == {}


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
