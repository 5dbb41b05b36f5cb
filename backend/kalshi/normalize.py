from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from app.domain import BINARY_OUTCOMES, NormalizedMarket


CENTS_PER_DOLLAR = 100


def _parse_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _parse_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            pass
    float_val = _parse_float(value)
    if float_val is None or not math.isfinite(float_val):
        return None
    return int(round(float_val))


def _cents(raw_market: Mapping[str, Any], key: str) -> int:
    return _parse_int(raw_market.get(key)) or 0


def _optional_str(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def compute_change_24h(last_price: int, previous_price: int) -> float:
    """Relative move of ``last_price`` against ``previous_price``; 0 without a reference price."""

    if previous_price > 0:
        return (last_price - previous_price) / previous_price
    return 0.0


def normalize_market(raw_market: Mapping[str, Any]) -> NormalizedMarket:
    """Convert a raw Kalshi market payload into a :class:`NormalizedMarket`.

    The input mapping is only read; ``raw_data`` holds a shallow copy of it.
    """

    yes_ask = _cents(raw_market, "yes_ask")
    no_ask = _cents(raw_market, "no_ask")
    last_price = _cents(raw_market, "last_price")
    previous_price = _cents(raw_market, "previous_price")

    # Ask side, not mid.
    yes_price = yes_ask / CENTS_PER_DOLLAR
    no_price = no_ask / CENTS_PER_DOLLAR

    return NormalizedMarket(
        ticker=str(raw_market.get("ticker") or ""),
        title=str(raw_market.get("title") or ""),
        status=str(raw_market.get("status") or "").lower(),
        yes_ask=yes_ask,
        yes_bid=_cents(raw_market, "yes_bid"),
        no_ask=no_ask,
        no_bid=_cents(raw_market, "no_bid"),
        last_price=last_price,
        previous_price=previous_price,
        volume=_parse_int(raw_market.get("volume")),
        volume_24h=_parse_int(raw_market.get("volume_24h")) or 0,
        open_interest=_parse_int(raw_market.get("open_interest")),
        liquidity=_parse_int(raw_market.get("liquidity")),
        close_time=_optional_str(raw_market.get("close_time")),
        yes_price=yes_price,
        no_price=no_price,
        change_24h=compute_change_24h(last_price, previous_price),
        outcome_prices=(f"{yes_price:.2f}", f"{no_price:.2f}"),
        outcomes=BINARY_OUTCOMES,
        subtitle=_optional_str(raw_market.get("subtitle")),
        event_ticker=_optional_str(raw_market.get("event_ticker")),
        category=_optional_str(raw_market.get("category")),
        market_type=_optional_str(raw_market.get("market_type")),
        result=_optional_str(raw_market.get("result")),
        open_time=_optional_str(raw_market.get("open_time")),
        expiration_time=_optional_str(raw_market.get("expiration_time")),
        raw_data=dict(raw_market),
    )
