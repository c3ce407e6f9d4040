"""
Stock Price Lookup

Asks a small HTTP endpoint for the latest price of a ticker:

    GET {lookup_url}?symbol=0700.HK   ->   {"price": 452.4}

Prices are a convenience for refreshing Stock account balances. Any
failure (network error, bad status, missing or non-positive price) means
"no update" and is returned as None, never raised.
"""

import asyncio
from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from wealth_snapshot.config import PriceLookupSettings, get_settings
from wealth_snapshot.log import get_logger


logger = get_logger(__name__)


def normalize_symbol(symbol: str) -> str:
    return symbol.strip().upper()


class PriceLookupService:
    """Fetches prices for ticker symbols over HTTP."""

    def __init__(
        self,
        settings: Optional[PriceLookupSettings] = None,
        client: Optional[httpx.AsyncClient] = None,
        retry_wait: Optional[wait_base] = None,
    ):
        self._settings = settings or get_settings().price_lookup
        self._client = client or httpx.AsyncClient(timeout=self._settings.timeout)
        self._retry_wait = retry_wait or wait_exponential(multiplier=1, min=2, max=10)

    async def _request(self, symbol: str) -> httpx.Response:
        response = await self._client.get(
            self._settings.lookup_url,
            params={"symbol": symbol},
            follow_redirects=True,
        )
        response.raise_for_status()
        return response

    async def fetch_price(self, symbol: str) -> Optional[Decimal]:
        """Latest price for `symbol`, or None if unavailable."""
        symbol = normalize_symbol(symbol)
        if not symbol:
            return None

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(3),
                wait=self._retry_wait,
                retry=retry_if_exception_type(httpx.TransportError),
            ):
                with attempt:
                    response = await self._request(symbol)
        except (RetryError, httpx.HTTPError) as e:
            logger.warning("price_lookup_failed", symbol=symbol, error=str(e))
            return None

        try:
            raw = response.json().get("price")
            price = Decimal(str(raw))
        except (ValueError, AttributeError, InvalidOperation):
            logger.warning("price_lookup_malformed", symbol=symbol)
            return None

        if not price.is_finite() or price <= 0:
            logger.info("price_lookup_no_price", symbol=symbol)
            return None
        return price

    async def fetch_prices(self, symbols: Iterable[str]) -> dict[str, Optional[Decimal]]:
        """
        Look up several symbols concurrently.

        Returns {normalized_symbol: price_or_None}; duplicates are fetched once.
        """
        unique = sorted({normalize_symbol(s) for s in symbols if s and s.strip()})
        if not unique:
            return {}
        prices = await asyncio.gather(*(self.fetch_price(s) for s in unique))
        result = dict(zip(unique, prices))
        logger.info(
            "prices_fetched",
            requested=len(unique),
            found=sum(1 for p in prices if p is not None),
        )
        return result

    async def aclose(self) -> None:
        await self._client.aclose()
