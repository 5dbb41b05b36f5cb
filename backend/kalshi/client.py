from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlsplit

import httpx
from loguru import logger

from app.core.config import Credentials, settings
from app.domain import NormalizedMarket
from app.errors import ProxyError
from app.security import get_auth_headers

from .normalize import normalize_market


class KalshiAPIError(Exception):
    """Raised for failed Kalshi calls.

    ``status`` is set when Kalshi answered with a non-2xx response (``code`` then
    carries the upstream error code when the body had one); both are ``None`` for
    network/transport failures.
    """

    def __init__(self, message: str, status: int | None = None, code: str | None = None) -> None:
        super().__init__(message)
        self.status = status
        self.code = code

    @property
    def is_network_error(self) -> bool:
        return self.status is None


@dataclass(slots=True)
class MarketFilters:
    status: str | None = None
    series_ticker: str | None = None
    event_ticker: str | None = None
    min_close_ts: int | None = None
    max_close_ts: int | None = None
    limit: int | None = None
    cursor: str | None = None

    def to_params(self) -> dict[str, str]:
        params = {
            "status": self.status,
            "series_ticker": self.series_ticker,
            "event_ticker": self.event_ticker,
            "min_close_ts": self.min_close_ts,
            "max_close_ts": self.max_close_ts,
            "limit": self.limit,
            "cursor": self.cursor,
        }
        return {key: str(value) for key, value in params.items() if value not in (None, "")}


def _error_code(response: httpx.Response) -> str | None:
    try:
        payload = response.json()
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    error = payload.get("error")
    if isinstance(error, dict) and error.get("code"):
        return str(error["code"])
    if payload.get("code"):
        return str(payload["code"])
    return None


class KalshiClient:
    """Async wrapper around the public Kalshi trade API v2 endpoints."""

    def __init__(
        self,
        *,
        base_url: str | None = None,
        credentials: Credentials | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        self.base_url = (base_url or settings.upstream_base_url).rstrip("/")
        self.base_path = urlsplit(self.base_url).path.rstrip("/")
        self.credentials = credentials
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=timeout or settings.upstream_timeout_seconds,
        )

    async def _request(
        self,
        path: str,
        *,
        method: str = "GET",
        params: dict[str, str] | None = None,
        json: Any = None,
    ) -> Any:
        headers = {
            "Content-Type": "application/json",
            "User-Agent": settings.proxy_user_agent,
        }
        if self.credentials is not None:
            try:
                headers.update(get_auth_headers(self.credentials, method, f"{self.base_path}{path}"))
            except ProxyError as exc:
                raise KalshiAPIError(f"Signing error: {exc}") from exc

        logger.debug("Kalshi {} {} params={}", method, path, params)
        try:
            response = await self.client.request(
                method,
                f"{self.base_url}{path}",
                params=params or None,
                json=json,
                headers=headers,
            )
        except httpx.HTTPError as exc:
            raise KalshiAPIError(f"Network error: {str(exc) or type(exc).__name__}") from exc

        if not response.is_success:
            raise KalshiAPIError(
                f"API request failed: {response.reason_phrase}",
                status=response.status_code,
                code=_error_code(response),
            )
        try:
            return response.json()
        except ValueError as exc:
            raise KalshiAPIError(f"Network error: invalid JSON from Kalshi ({exc})") from exc

    async def get_markets(self, filters: MarketFilters | None = None) -> list[dict[str, Any]]:
        params = filters.to_params() if filters else {}
        payload = await self._request("/markets", params=params)
        return payload.get("markets") or []

    async def iter_markets(self, filters: MarketFilters | None = None) -> AsyncIterator[dict[str, Any]]:
        """Yield markets page by page, following Kalshi's ``cursor`` until it runs out."""

        base = filters or MarketFilters()
        cursor = base.cursor
        while True:
            page_filters = MarketFilters(
                status=base.status,
                series_ticker=base.series_ticker,
                event_ticker=base.event_ticker,
                min_close_ts=base.min_close_ts,
                max_close_ts=base.max_close_ts,
                limit=base.limit,
                cursor=cursor,
            )
            payload = await self._request("/markets", params=page_filters.to_params())
            raw_markets = payload.get("markets") or []
            for market in raw_markets:
                yield market

            cursor = payload.get("cursor") or None
            if not cursor or not raw_markets:
                break

    async def get_market(self, ticker: str) -> dict[str, Any]:
        payload = await self._request(f"/markets/{ticker}")
        return payload.get("market") or {}

    async def get_orderbook(self, ticker: str) -> dict[str, Any]:
        payload = await self._request(f"/markets/{ticker}/orderbook")
        return payload.get("orderbook") or {}

    async def get_trades(self, ticker: str, limit: int | None = None) -> list[dict[str, Any]]:
        params = {"limit": str(limit)} if limit else None
        payload = await self._request(f"/markets/{ticker}/trades", params=params)
        return payload.get("trades") or []

    async def get_events(self, limit: int | None = None) -> list[dict[str, Any]]:
        params = {"limit": str(limit)} if limit else None
        payload = await self._request("/events", params=params)
        return payload.get("events") or []

    async def get_event(self, event_ticker: str) -> dict[str, Any]:
        payload = await self._request(f"/events/{event_ticker}")
        return payload.get("event") or {}

    async def get_enriched_market(self, ticker: str) -> NormalizedMarket:
        return normalize_market(await self.get_market(ticker))

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> "KalshiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
