import argparse
import asyncio
import json

from loguru import logger

from app.core.config import get_settings
from app.schemas import Market
from app.services.ranking_service import DEFAULT_LIMIT, MarketRankingService
from kalshi.client import KalshiAPIError, KalshiClient


VIEWS = ("trending", "ending-soon", "hot")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Print a ranked view of open Kalshi markets")
    parser.add_argument("view", choices=VIEWS, help="Ranking to compute")
    parser.add_argument("--limit", type=int, default=DEFAULT_LIMIT, help="Number of markets to print")
    parser.add_argument(
        "--pool-size",
        type=int,
        default=None,
        help="Open markets fetched before ranking (defaults to MARKET_POOL_SIZE)",
    )
    return parser.parse_args()


async def _rank(view: str, limit: int, pool_size: int) -> list[dict[str, object]]:
    settings = get_settings()
    async with KalshiClient(credentials=settings.credentials) as client:
        service = MarketRankingService(client, pool_size=pool_size)
        if view == "trending":
            markets = await service.trending(limit)
        elif view == "ending-soon":
            markets = await service.ending_soon(limit)
        else:
            markets = await service.hot(limit)
    return [Market.model_validate(market).model_dump(mode="json", by_alias=True) for market in markets]


def main() -> int:
    args = parse_args()
    settings = get_settings()
    pool_size = args.pool_size or settings.market_pool_size

    try:
        markets = asyncio.run(_rank(args.view, args.limit, pool_size))
    except KalshiAPIError as exc:
        logger.error("Kalshi request failed (status={}, code={}): {}", exc.status, exc.code, exc)
        return 1

    logger.info("Ranked {} {} markets from a pool of {}", len(markets), args.view, pool_size)
    print(json.dumps(markets, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
