from __future__ import annotations

import pytest
from pydantic import ValidationError

from app.core.config import Settings


def _settings(**overrides) -> Settings:
    values = {
        "kalshi_api_key_id": None,
        "kalshi_private_key": None,
        "kalshi_private_key_path": None,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def test_credentials_require_key_id_and_private_key(pkcs8_pem):
    assert _settings().credentials is None
    assert _settings(kalshi_api_key_id="key").credentials is None
    assert _settings(kalshi_private_key=pkcs8_pem).credentials is None

    credentials = _settings(kalshi_api_key_id="key", kalshi_private_key=pkcs8_pem).credentials

    assert credentials is not None
    assert credentials.key_id == "key"
    assert credentials.private_key_pem == pkcs8_pem
    assert "PRIVATE KEY" not in repr(credentials)


def test_blank_values_count_as_missing():
    settings = _settings(kalshi_api_key_id="  ", kalshi_private_key="")

    assert settings.kalshi_api_key_id is None
    assert settings.credentials is None


def test_escaped_newlines_in_private_key_are_restored(pkcs8_pem):
    flattened = pkcs8_pem.replace("\n", "\\n")

    settings = _settings(kalshi_private_key=flattened)

    assert settings.kalshi_private_key == pkcs8_pem


def test_private_key_can_be_read_from_file(tmp_path, pkcs1_pem):
    key_file = tmp_path / "kalshi.pem"
    key_file.write_text(pkcs1_pem, encoding="utf-8")

    settings = _settings(kalshi_api_key_id="key", kalshi_private_key_path=str(key_file))

    assert settings.credentials is not None
    assert settings.credentials.private_key_pem == pkcs1_pem


def test_missing_key_file_leaves_credentials_unset(tmp_path):
    settings = _settings(kalshi_api_key_id="key", kalshi_private_key_path=str(tmp_path / "absent.pem"))

    assert settings.credentials is None


def test_upstream_base_path_and_url():
    settings = _settings(kalshi_api_url="https://demo-api.kalshi.co/trade-api/v2/")

    assert settings.upstream_base_url == "https://demo-api.kalshi.co/trade-api/v2"
    assert settings.upstream_base_path == "/trade-api/v2"


@pytest.mark.parametrize("max_age", [-1, 31])
def test_cache_max_age_is_bounded(max_age):
    with pytest.raises(ValidationError):
        _settings(proxy_cache_max_age=max_age)


def test_cors_headers_follow_configured_origin():
    headers = _settings(cors_allow_origin="https://dashboard.example").cors_headers

    assert headers["Access-Control-Allow-Origin"] == "https://dashboard.example"
    assert headers["Access-Control-Max-Age"] == "86400"
