from __future__ import annotations

import asyncio

import pytest

from kalshi.client import KalshiAPIError, KalshiClient, MarketFilters


@pytest.mark.network
def test_kalshi_client_live_fetches_open_markets():
    async def _fetch() -> list[dict[str, object]]:
        async with KalshiClient() as client:
            return await client.get_markets(MarketFilters(status="open", limit=5))

    try:
        markets = asyncio.run(_fetch())
    except KalshiAPIError as exc:
        pytest.skip(f"Kalshi API unavailable: {exc}")

    assert markets, "Kalshi API returned no markets"
    for market in markets:
        assert isinstance(market, dict)
        assert market.get("ticker"), "market payload missing ticker"
        assert market.get("title"), "market payload missing title"
