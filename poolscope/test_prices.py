"""Tests for the USD price feeds."""
import asyncio
from decimal import Decimal

import httpx
import pytest

from poolscope.errors import PriceUnavailable
from poolscope.prices import CoinGeckoPriceFeed, StaticPriceFeed


def make_feed(handler, clock=lambda: 0.0):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return client, CoinGeckoPriceFeed(client, api_base="https://prices.test/api/v3", api_key=None, ttl=60, clock=clock)


def test_coingecko_price_is_cached():
    requests = []

    def handler(request):
        requests.append(request)
        assert request.url.params["ids"] == "solana"
        return httpx.Response(200, json={"solana": {"usd": 142.5}})

    async def scenario():
        client, feed = make_feed(handler)
        async with client:
            first = await feed.get_usd_price("SOL")
            second = await feed.get_usd_price("sol")
        return first, second

    assert asyncio.run(scenario()) == (Decimal("142.5"), Decimal("142.5"))
    assert len(requests) == 1


def test_cache_expires_after_ttl():
    now = [0.0]
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json={"solana": {"usd": 100 + len(calls)}})

    async def scenario():
        client, feed = make_feed(handler, clock=lambda: now[0])
        async with client:
            await feed.get_usd_price("SOL")
            now[0] = 61.0
            return await feed.get_usd_price("SOL")

    assert asyncio.run(scenario()) == Decimal("102")


def test_stablecoins_need_no_request():
    def handler(request):
        raise AssertionError("no request expected")

    async def scenario():
        client, feed = make_feed(handler)
        async with client:
            return await feed.get_usd_price("USDC")

    assert asyncio.run(scenario()) == Decimal("1")


@pytest.mark.parametrize(
    "symbol,response",
    [
        ("SOL", httpx.Response(500, json={})),
        ("SOL", httpx.Response(200, json={})),
        ("NOTATOKEN", httpx.Response(200, json={})),
    ],
)
def test_missing_price_raises_price_unavailable(symbol, response):
    async def scenario():
        client, feed = make_feed(lambda request: response)
        async with client:
            await feed.get_usd_price(symbol)

    with pytest.raises(PriceUnavailable):
        asyncio.run(scenario())


def test_static_feed():
    feed = StaticPriceFeed({"sol": "150.25"})
    assert asyncio.run(feed.get_usd_price("SOL")) == Decimal("150.25")
    assert asyncio.run(feed.get_usd_price("USDT")) == Decimal("1")
    with pytest.raises(PriceUnavailable):
        asyncio.run(feed.get_usd_price("BONK"))
