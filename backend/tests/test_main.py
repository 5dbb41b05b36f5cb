from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from app.main import _ranking_service, app
from kalshi.client import KalshiAPIError
from kalshi.normalize import normalize_market


@pytest.fixture
def client():
    """Test client that cleans up dependency overrides after each test."""
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def mock_service():
    service = MagicMock()
    app.dependency_overrides[_ranking_service] = lambda: service
    return service


def test_healthcheck(client):
    """Verify the healthcheck endpoint returns a successful response."""
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_trending_markets_serialize_dashboard_aliases(client, mock_service, sample_market_payload):
    """Verify ranked markets carry the camelCase fields the dashboard reads."""
    mock_service.trending = AsyncMock(return_value=[normalize_market(sample_market_payload)])

    response = client.get("/markets/trending", params={"limit": 3})

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    item = body["items"][0]
    assert item["id"] == item["ticker"] == "KXHIGHNY-25JAN01-B40"
    assert item["question"] == item["title"]
    assert item["endDate"] == "2025-01-02T04:59:00Z"
    assert item["yesPrice"] == pytest.approx(0.65)
    assert item["noPrice"] == pytest.approx(0.37)
    assert item["outcomePrices"] == ["0.65", "0.37"]
    assert item["outcomes"] == ["Yes", "No"]
    assert item["change24h"] == pytest.approx(0.28)
    mock_service.trending.assert_awaited_once_with(3)


def test_ending_soon_and_hot_use_default_limit(client, mock_service):
    mock_service.ending_soon = AsyncMock(return_value=[])
    mock_service.hot = AsyncMock(return_value=[])

    assert client.get("/markets/ending-soon").json() == {"total": 0, "items": []}
    assert client.get("/markets/hot").json() == {"total": 0, "items": []}
    mock_service.ending_soon.assert_awaited_once_with(10)
    mock_service.hot.assert_awaited_once_with(10)


def test_limit_out_of_range_is_rejected(client, mock_service):
    response = client.get("/markets/trending", params={"limit": 0})

    assert response.status_code == 422


def test_get_market_success(client, mock_service, sample_market_payload):
    """Verify the /markets/{ticker} endpoint returns a normalized market."""
    mock_service.market = AsyncMock(return_value=normalize_market(sample_market_payload))

    response = client.get("/markets/KXHIGHNY-25JAN01-B40")

    assert response.status_code == 200
    assert response.json()["ticker"] == "KXHIGHNY-25JAN01-B40"
    mock_service.market.assert_awaited_once_with("KXHIGHNY-25JAN01-B40")


def test_get_market_not_found(client, mock_service):
    """Verify a Kalshi 404 is surfaced as a 404."""
    mock_service.market = AsyncMock(side_effect=KalshiAPIError("API request failed: Not Found", status=404))

    response = client.get("/markets/non-existent")

    assert response.status_code == 404
    assert response.json() == {"detail": "API request failed: Not Found"}


def test_get_market_with_empty_payload_is_not_found(client, mock_service):
    mock_service.market = AsyncMock(return_value=normalize_market({}))

    response = client.get("/markets/blank")

    assert response.status_code == 404


def test_upstream_outage_maps_to_bad_gateway(client, mock_service):
    mock_service.hot = AsyncMock(side_effect=KalshiAPIError("Network error: connection refused"))

    response = client.get("/markets/hot")

    assert response.status_code == 502
    assert response.json() == {"detail": "Network error: connection refused"}
