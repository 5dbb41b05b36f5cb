"""Credential-injecting reverse proxy in front of the Kalshi trade API."""

from __future__ import annotations

import json
from typing import Any
from urllib.parse import quote

import httpx
from fastapi import Response
from loguru import logger

from app.core.config import Credentials, Settings
from app.errors import CredentialsMissingError, UpstreamNetworkError
from app.security import get_auth_headers


JSON_MEDIA_TYPE = "application/json"

GET_FAILURE_MESSAGE = "Failed to fetch from Kalshi API"
POST_FAILURE_MESSAGE = "Failed to post to Kalshi API"
MISSING_CREDENTIALS_MESSAGE = "API credentials not configured"

# '%' is safe so escapes already present in the inbound raw path are forwarded as-is.
_PATH_SAFE_CHARS = "/-_.~:@!$&'()*+,;=%"


class ProxyService:
    """Translate inbound ``/api/kalshi/*`` calls into signed upstream calls.

    One inbound request produces at most one upstream request. Upstream status
    codes and bodies are relayed untouched; only failures on this side of the
    wire (URL building, key import, signing, transport) become 500 responses.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        settings: Settings,
        credentials: Credentials | None = None,
    ) -> None:
        self._client = client
        self._settings = settings
        self._credentials = credentials
        self._cors_headers = settings.cors_headers

    @property
    def has_credentials(self) -> bool:
        return self._credentials is not None

    def upstream_url(self, sub_path: str, query: str = "") -> str:
        url = f"{self._settings.upstream_base_url}/{self._quote_path(sub_path)}"
        return f"{url}?{query}" if query else url

    def signing_path(self, sub_path: str) -> str:
        return f"{self._settings.upstream_base_path}/{self._quote_path(sub_path)}"

    @staticmethod
    def _quote_path(sub_path: str) -> str:
        return quote(sub_path.lstrip("/"), safe=_PATH_SAFE_CHARS)

    def _upstream_headers(self, method: str, sub_path: str, *, sign: bool) -> dict[str, str]:
        headers = {
            "Content-Type": JSON_MEDIA_TYPE,
            "User-Agent": self._settings.proxy_user_agent,
        }
        if sign:
            if self._credentials is None:
                raise CredentialsMissingError(MISSING_CREDENTIALS_MESSAGE)
            headers.update(
                get_auth_headers(self._credentials, method, self.signing_path(sub_path))
            )
        return headers

    async def _fetch(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        content: bytes | None = None,
    ) -> httpx.Response:
        try:
            return await self._client.request(method, url, headers=headers, content=content)
        except httpx.TransportError as exc:
            raise UpstreamNetworkError(str(exc) or type(exc).__name__) from exc

    def _json_response(
        self,
        status_code: int,
        payload: dict[str, Any],
    ) -> Response:
        return Response(
            content=json.dumps(payload),
            status_code=status_code,
            headers={**self._cors_headers, "Content-Type": JSON_MEDIA_TYPE},
        )

    def preflight(self) -> Response:
        return Response(status_code=204, headers=dict(self._cors_headers))

    async def forward_get(self, sub_path: str, query: str = "") -> Response:
        try:
            url = self.upstream_url(sub_path, query)
            headers = self._upstream_headers("GET", sub_path, sign=self.has_credentials)
            logger.info("Proxy GET {} (signed={})", self.signing_path(sub_path), self.has_credentials)
            upstream = await self._fetch("GET", url, headers)
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Proxy GET {} failed", sub_path)
            return self._json_response(
                500,
                {"error": GET_FAILURE_MESSAGE, "details": str(exc) or type(exc).__name__},
            )

        if not upstream.is_success:
            logger.info("Kalshi answered GET {} with {}", sub_path, upstream.status_code)
        return Response(
            content=upstream.content,
            status_code=upstream.status_code,
            headers={
                **self._cors_headers,
                "Content-Type": JSON_MEDIA_TYPE,
                "Cache-Control": f"public, max-age={self._settings.proxy_cache_max_age}",
            },
        )

    async def forward_post(self, sub_path: str, query: str = "", body: bytes = b"") -> Response:
        if not self.has_credentials:
            logger.warning("Rejected POST {}: {}", sub_path, MISSING_CREDENTIALS_MESSAGE)
            return self._json_response(401, {"error": MISSING_CREDENTIALS_MESSAGE})

        try:
            url = self.upstream_url(sub_path, query)
            headers = self._upstream_headers("POST", sub_path, sign=True)
            logger.info("Proxy POST {} (signed=True)", self.signing_path(sub_path))
            upstream = await self._fetch("POST", url, headers, content=body)
        except Exception:  # pylint: disable=broad-except
            logger.exception("Proxy POST {} failed", sub_path)
            return self._json_response(500, {"error": POST_FAILURE_MESSAGE})

        return Response(
            content=upstream.content,
            status_code=upstream.status_code,
            headers={**self._cors_headers, "Content-Type": JSON_MEDIA_TYPE},
        )
