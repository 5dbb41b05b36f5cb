"""Typed domain representations shared by the normalizer, ranking views, and APIs."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class MarketStatus(str, Enum):
    UNOPENED = "unopened"
    OPEN = "open"
    CLOSED = "closed"
    SETTLED = "settled"
    ACTIVE = "active"


ACTIVE_STATUSES = frozenset({MarketStatus.ACTIVE.value, MarketStatus.OPEN.value})

BINARY_OUTCOMES: tuple[str, str] = ("Yes", "No")


@dataclass(frozen=True, slots=True)
class NormalizedMarket:
    """Kalshi market with cent prices converted to decimals and UI aliases attached.

    Prices in the upstream payload are integer cents (0-100); ``yes_price`` and
    ``no_price`` are the ask side divided by 100.
    """

    ticker: str
    title: str
    status: str
    yes_ask: int
    yes_bid: int
    no_ask: int
    no_bid: int
    last_price: int
    previous_price: int
    volume: int | None
    volume_24h: int
    open_interest: int | None
    liquidity: int | None
    close_time: str | None
    yes_price: float
    no_price: float
    change_24h: float
    outcome_prices: tuple[str, str]
    outcomes: tuple[str, str] = BINARY_OUTCOMES
    subtitle: str | None = None
    event_ticker: str | None = None
    category: str | None = None
    market_type: str | None = None
    result: str | None = None
    open_time: str | None = None
    expiration_time: str | None = None
    raw_data: dict[str, Any] | None = field(default=None, compare=False, hash=False, repr=False)

    @property
    def id(self) -> str:
        return self.ticker

    @property
    def question(self) -> str:
        return self.title

    @property
    def end_date(self) -> str | None:
        return self.close_time
