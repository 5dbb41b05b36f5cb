from __future__ import annotations

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from app.core.config import Credentials, Settings


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler) -> None:
        self.requests: list[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)


@pytest.fixture(scope="session")
def rsa_private_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def pkcs8_pem(rsa_private_key) -> str:
    return rsa_private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


@pytest.fixture(scope="session")
def pkcs1_pem(rsa_private_key) -> str:
    return rsa_private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


@pytest.fixture
def credentials(pkcs1_pem) -> Credentials:
    return Credentials(key_id="test-key-id", private_key_pem=pkcs1_pem)


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        kalshi_api_url="https://api.elections.kalshi.com/trade-api/v2",
        kalshi_api_key_id=None,
        kalshi_private_key=None,
        kalshi_private_key_path=None,
        proxy_cache_max_age=10,
    )


@pytest.fixture
def sample_market_payload() -> dict[str, object]:
    return {
        "ticker": "KXHIGHNY-25JAN01-B40",
        "event_ticker": "KXHIGHNY-25JAN01",
        "title": "Will the high temp in NYC be 40-41° on Jan 1, 2025?",
        "subtitle": "40° to 41°",
        "category": "Climate and Weather",
        "market_type": "binary",
        "status": "active",
        "yes_ask": 65,
        "yes_bid": 63,
        "no_ask": 37,
        "no_bid": 35,
        "last_price": 64,
        "previous_price": 50,
        "volume": 15400,
        "volume_24h": 2300,
        "open_interest": 8100,
        "liquidity": 125000,
        "open_time": "2024-12-30T15:00:00Z",
        "close_time": "2025-01-02T04:59:00Z",
        "expiration_time": "2025-01-09T15:00:00Z",
        "result": "",
    }
