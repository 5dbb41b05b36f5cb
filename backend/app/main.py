from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Annotated

import httpx
import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response
from loguru import logger

from . import schemas
from .core.config import get_settings, settings
from .domain import NormalizedMarket
from .services.proxy_service import ProxyService
from .services.ranking_service import DEFAULT_LIMIT, MarketRankingService
from kalshi.client import KalshiAPIError, KalshiClient


PROXY_PREFIX = "/api/kalshi"


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    """Open the shared upstream HTTP client at startup and close it on shutdown."""

    fastapi_app.state.http_client = httpx.AsyncClient(timeout=settings.upstream_timeout_seconds)
    if settings.credentials is None:
        logger.warning("Kalshi credentials not configured; GETs are forwarded unsigned and POSTs rejected")
    yield
    await fastapi_app.state.http_client.aclose()


app = FastAPI(
    title="Kalshi Dashboard API",
    version="0.1.0",
    debug=settings.debug,
    lifespan=lifespan,
)


@app.get("/healthz", tags=["system"])
def healthcheck() -> dict[str, str]:
    """Basic readiness probe consumed by infrastructure monitors."""

    return {"status": "ok"}


def _http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


def _proxy_service(client: httpx.AsyncClient = Depends(_http_client)) -> ProxyService:
    """Provide the proxy wired with the shared client and configured credentials."""

    current = get_settings()
    return ProxyService(client, settings=current, credentials=current.credentials)


def _kalshi_client(client: httpx.AsyncClient = Depends(_http_client)) -> KalshiClient:
    return KalshiClient(client=client, credentials=get_settings().credentials)


def _ranking_service(client: KalshiClient = Depends(_kalshi_client)) -> MarketRankingService:
    return MarketRankingService(client, pool_size=get_settings().market_pool_size)


_PROXY_ERROR_RESPONSES = {
    401: {"model": schemas.ProxyErrorBody, "description": "Credentials not configured"},
    500: {"model": schemas.ProxyErrorBody, "description": "Proxy failure"},
}


def _raw_sub_path(request: Request, path: str) -> str:
    """Sub-path after the proxy prefix, still percent-encoded as the client sent it."""

    raw_path = request.scope.get("raw_path")
    if not raw_path:
        return path
    raw = raw_path.decode("latin-1").split("?", 1)[0]
    marker = f"{PROXY_PREFIX}/"
    start = raw.find(marker)
    if start < 0:
        return path
    return raw[start + len(marker):]


@app.options(f"{PROXY_PREFIX}/{{path:path}}", tags=["proxy"])
async def proxy_preflight(path: str, service: ProxyService = Depends(_proxy_service)) -> Response:
    """Answer CORS preflight requests without touching Kalshi."""

    return service.preflight()


@app.get(f"{PROXY_PREFIX}/{{path:path}}", tags=["proxy"], responses=_PROXY_ERROR_RESPONSES)
async def proxy_get(path: str, request: Request, service: ProxyService = Depends(_proxy_service)) -> Response:
    """Forward a read to Kalshi, signing it when credentials are configured."""

    return await service.forward_get(_raw_sub_path(request, path), request.url.query)


@app.post(f"{PROXY_PREFIX}/{{path:path}}", tags=["proxy"], responses=_PROXY_ERROR_RESPONSES)
async def proxy_post(path: str, request: Request, service: ProxyService = Depends(_proxy_service)) -> Response:
    """Forward a signed write to Kalshi with the inbound body unchanged."""

    body = await request.body()
    return await service.forward_post(_raw_sub_path(request, path), request.url.query, body)


def _http_error(exc: KalshiAPIError) -> HTTPException:
    if exc.status is not None and exc.status < 500:
        return HTTPException(status_code=exc.status, detail=str(exc))
    logger.error("Kalshi request failed: {}", exc)
    return HTTPException(status_code=502, detail=str(exc))


def _market_list(markets: list[NormalizedMarket]) -> schemas.MarketList:
    items = [schemas.Market.model_validate(market) for market in markets]
    return schemas.MarketList(total=len(items), items=items)


LimitQuery = Annotated[int, Query(ge=1, le=200, description="Maximum markets to return")]


@app.get("/markets/trending", response_model=schemas.MarketList, tags=["markets"])
async def trending_markets(
    limit: LimitQuery = DEFAULT_LIMIT,
    service: MarketRankingService = Depends(_ranking_service),
):
    """Active open markets ordered by 24h volume."""

    try:
        return _market_list(await service.trending(limit))
    except KalshiAPIError as exc:
        raise _http_error(exc) from exc


@app.get("/markets/ending-soon", response_model=schemas.MarketList, tags=["markets"])
async def ending_soon_markets(
    limit: LimitQuery = DEFAULT_LIMIT,
    service: MarketRankingService = Depends(_ranking_service),
):
    """Active open markets that have not closed yet, soonest first."""

    try:
        return _market_list(await service.ending_soon(limit))
    except KalshiAPIError as exc:
        raise _http_error(exc) from exc


@app.get("/markets/hot", response_model=schemas.MarketList, tags=["markets"])
async def hot_markets(
    limit: LimitQuery = DEFAULT_LIMIT,
    service: MarketRankingService = Depends(_ranking_service),
):
    """Active open markets ordered by a log-scaled volume/liquidity/open-interest score."""

    try:
        return _market_list(await service.hot(limit))
    except KalshiAPIError as exc:
        raise _http_error(exc) from exc


@app.get("/markets/{ticker}", response_model=schemas.Market, tags=["markets"])
async def get_market(ticker: str, service: MarketRankingService = Depends(_ranking_service)):
    """Retrieve a single normalized market by its Kalshi ticker."""

    try:
        market = await service.market(ticker)
    except KalshiAPIError as exc:
        raise _http_error(exc) from exc
    if not market.ticker:
        raise HTTPException(status_code=404, detail="Market not found")
    return schemas.Market.model_validate(market)


def run() -> None:
    """Serve the API with uvicorn."""

    uvicorn.run("app.main:app", host="127.0.0.1", port=8000)
