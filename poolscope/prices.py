"""USD price-feed collaborator used for TVL and swap valuation."""
from __future__ import annotations

import logging
import time
from decimal import Decimal
from typing import Callable, Dict, Mapping, Optional, Protocol, Tuple

import httpx

from . import config
from .errors import PriceUnavailable

STABLE_PRICE = Decimal("1")


class PriceFeed(Protocol):
    async def get_usd_price(self, symbol: str) -> Decimal:
        ...


class StaticPriceFeed:
    """Fixed price table, for offline runs and tests."""

    def __init__(self, prices: Mapping[str, Decimal]):
        self.prices = {symbol.upper(): Decimal(str(price)) for symbol, price in prices.items()}

    async def get_usd_price(self, symbol: str) -> Decimal:
        symbol = symbol.upper()
        if symbol in config.STABLE_SYMBOLS:
            return STABLE_PRICE
        try:
            return self.prices[symbol]
        except KeyError:
            raise PriceUnavailable(symbol) from None


class CoinGeckoPriceFeed:
    """CoinGecko ``/simple/price`` lookups with a per-instance TTL cache."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_base: str = config.COINGECKO_API_BASE,
        api_key: Optional[str] = config.COINGECKO_API_KEY,
        ttl: float = config.PRICE_CACHE_TTL,
        token_ids: Mapping[str, str] = config.COINGECKO_IDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client = client
        self.api_base = api_base.rstrip("/")
        self.api_key = api_key
        self.ttl = ttl
        self.token_ids = dict(token_ids)
        self.clock = clock
        self._cache: Dict[str, Tuple[Decimal, float]] = {}

    def _headers(self) -> Dict[str, str]:
        headers = dict(config.DEFAULT_HEADERS)
        if self.api_key:
            headers["x-cg-demo-api-key"] = self.api_key
        return headers

    async def get_usd_price(self, symbol: str) -> Decimal:
        symbol = symbol.upper()
        if symbol in config.STABLE_SYMBOLS:
            return STABLE_PRICE

        cached = self._cache.get(symbol)
        if cached and self.clock() - cached[1] < self.ttl:
            return cached[0]

        token_id = self.token_ids.get(symbol)
        if token_id is None:
            raise PriceUnavailable(symbol, "no CoinGecko id")

        logging.debug("Fetching USD price for %s (%s)", symbol, token_id)
        try:
            response = await self.client.get(
                f"{self.api_base}/simple/price",
                params={"ids": token_id, "vs_currencies": "usd"},
                headers=self._headers(),
            )
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise PriceUnavailable(symbol, str(exc)) from exc

        usd = (payload.get(token_id) or {}).get("usd")
        if usd is None:
            raise PriceUnavailable(symbol, "missing from response")
        price = Decimal(str(usd))
        self._cache[symbol] = (price, self.clock())
        return price
