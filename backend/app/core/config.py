from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

from pydantic import AnyUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


CORS_ALLOW_METHODS = "GET, POST, PUT, DELETE, OPTIONS"
CORS_ALLOW_HEADERS = "Content-Type"
CORS_MAX_AGE_SECONDS = 86400


@dataclass(frozen=True, slots=True)
class Credentials:
    """API key identifier plus the PEM private key used to sign requests."""

    key_id: str
    private_key_pem: str

    def __repr__(self) -> str:
        return f"Credentials(key_id={self.key_id!r}, private_key_pem=<redacted>)"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    debug: bool = Field(False, description="Enable FastAPI debug mode")
    environment: str = Field(
        default="development",
        description="Runtime environment (development|staging|production)",
    )
    kalshi_api_url: AnyUrl | str = Field(
        default="https://api.elections.kalshi.com/trade-api/v2",
        description="Base URL of the Kalshi trade API",
    )
    kalshi_api_key_id: str | None = Field(
        default=None,
        description="Kalshi API key identifier sent as KALSHI-ACCESS-KEY",
    )
    kalshi_private_key: str | None = Field(
        default=None,
        description="PEM encoded RSA private key (PKCS#1 or PKCS#8) used for request signing",
    )
    kalshi_private_key_path: str | None = Field(
        default=None,
        description="Optional path to a PEM file, read when KALSHI_PRIVATE_KEY is blank",
    )
    proxy_user_agent: str = Field(
        default="KalshiAI/1.0",
        description="User-Agent header attached to every upstream request",
    )
    proxy_cache_max_age: int = Field(
        default=10,
        description="max-age (seconds) advertised on proxied GET responses",
        ge=0,
        le=30,
    )
    upstream_timeout_seconds: float = Field(
        default=10.0,
        description="Timeout applied to outbound Kalshi requests",
        gt=0,
    )
    market_pool_size: int = Field(
        default=200,
        description="Number of open markets fetched before ranking",
        ge=1,
        le=1000,
    )
    cors_allow_origin: str = Field(
        default="*",
        description="Value of Access-Control-Allow-Origin on proxy responses",
    )

    @field_validator("kalshi_api_key_id", "kalshi_private_key", "kalshi_private_key_path", mode="before")
    @classmethod
    def _blank_as_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("kalshi_private_key", mode="after")
    @classmethod
    def _unescape_newlines(cls, value: str | None) -> str | None:
        # Secret stores frequently flatten the PEM into one line with literal "\n".
        if value is None:
            return None
        return value.replace("\\n", "\n")

    @property
    def upstream_base_url(self) -> str:
        return str(self.kalshi_api_url).rstrip("/")

    @property
    def upstream_base_path(self) -> str:
        """Path component of the upstream base URL, e.g. ``/trade-api/v2``."""

        return urlsplit(self.upstream_base_url).path.rstrip("/")

    @property
    def resolved_private_key(self) -> str | None:
        if self.kalshi_private_key:
            return self.kalshi_private_key
        if self.kalshi_private_key_path:
            path = Path(self.kalshi_private_key_path).expanduser()
            if path.is_file():
                return path.read_text(encoding="utf-8")
        return None

    @property
    def credentials(self) -> Credentials | None:
        private_key = self.resolved_private_key
        if not self.kalshi_api_key_id or not private_key:
            return None
        return Credentials(key_id=self.kalshi_api_key_id, private_key_pem=private_key)

    @property
    def cors_headers(self) -> dict[str, str]:
        return {
            "Access-Control-Allow-Origin": self.cors_allow_origin,
            "Access-Control-Allow-Methods": CORS_ALLOW_METHODS,
            "Access-Control-Allow-Headers": CORS_ALLOW_HEADERS,
            "Access-Control-Max-Age": str(CORS_MAX_AGE_SECONDS),
        }


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
