"""Ranked market views (trending, ending soon, hot) built from normalized markets."""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from datetime import datetime, timezone

from dateutil import parser as date_parser
from loguru import logger

from app.domain import ACTIVE_STATUSES, MarketStatus, NormalizedMarket
from kalshi.client import KalshiClient, MarketFilters
from kalshi.normalize import normalize_market


DEFAULT_LIMIT = 10

VOLUME_WEIGHT = 0.5
LIQUIDITY_WEIGHT = 0.3
OPEN_INTEREST_WEIGHT = 0.2


def is_active_market(market: NormalizedMarket) -> bool:
    """Open/active status with some trading activity or resting liquidity."""

    if market.status not in ACTIVE_STATUSES:
        return False
    return (market.volume_24h or 0) > 0 or (market.liquidity or 0) > 0


def parse_close_time(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = date_parser.isoparse(value)
    except (ValueError, TypeError, OverflowError):
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _log_activity(value: int | None) -> float:
    # Negative upstream counts clamp to 0; +1 keeps log10 at 0 for empty markets.
    return math.log10(max(value or 0, 0) + 1)


def hot_score(market: NormalizedMarket) -> float:
    return (
        VOLUME_WEIGHT * _log_activity(market.volume_24h)
        + LIQUIDITY_WEIGHT * _log_activity(market.liquidity)
        + OPEN_INTEREST_WEIGHT * _log_activity(market.open_interest)
    )


def _active(markets: Iterable[NormalizedMarket]) -> list[NormalizedMarket]:
    return [market for market in markets if is_active_market(market)]


def rank_trending(markets: Iterable[NormalizedMarket], limit: int = DEFAULT_LIMIT) -> list[NormalizedMarket]:
    ranked = sorted(_active(markets), key=lambda market: market.volume_24h or 0, reverse=True)
    return ranked[: max(limit, 0)]


def rank_ending_soon(
    markets: Iterable[NormalizedMarket],
    limit: int = DEFAULT_LIMIT,
    *,
    now: datetime | None = None,
) -> list[NormalizedMarket]:
    reference = now or datetime.now(timezone.utc)
    if reference.tzinfo is None:
        reference = reference.replace(tzinfo=timezone.utc)

    upcoming: list[tuple[datetime, NormalizedMarket]] = []
    for market in _active(markets):
        close_time = parse_close_time(market.close_time)
        if close_time is not None and close_time > reference:
            upcoming.append((close_time, market))

    upcoming.sort(key=lambda item: item[0])
    return [market for _, market in upcoming[: max(limit, 0)]]


def rank_hot(markets: Iterable[NormalizedMarket], limit: int = DEFAULT_LIMIT) -> list[NormalizedMarket]:
    scored = [(hot_score(market), market) for market in _active(markets)]
    scored.sort(key=lambda item: item[0], reverse=True)
    return [market for _, market in scored[: max(limit, 0)]]


class MarketRankingService:
    """Fetches one pool of open markets per call and ranks it for a dashboard view."""

    def __init__(self, client: KalshiClient, *, pool_size: int = 200) -> None:
        self._client = client
        self._pool_size = pool_size

    async def _market_pool(self) -> Sequence[NormalizedMarket]:
        raw_markets = await self._client.get_markets(
            MarketFilters(status=MarketStatus.OPEN.value, limit=self._pool_size)
        )
        logger.debug("Ranking pool fetched {} markets", len(raw_markets))
        return [normalize_market(raw_market) for raw_market in raw_markets]

    async def trending(self, limit: int = DEFAULT_LIMIT) -> list[NormalizedMarket]:
        return rank_trending(await self._market_pool(), limit)

    async def ending_soon(self, limit: int = DEFAULT_LIMIT, *, now: datetime | None = None) -> list[NormalizedMarket]:
        return rank_ending_soon(await self._market_pool(), limit, now=now)

    async def hot(self, limit: int = DEFAULT_LIMIT) -> list[NormalizedMarket]:
        return rank_hot(await self._market_pool(), limit)

    async def market(self, ticker: str) -> NormalizedMarket:
        return await self._client.get_enriched_market(ticker)
