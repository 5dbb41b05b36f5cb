from typing import Any

from pydantic import BaseModel, Field, field_validator


class Market(BaseModel):
    """Normalized Kalshi market as served to the dashboard.

    Computed fields serialize under the camelCase names the frontend reads
    (``yesPrice``, ``change24h``, ``outcomePrices`` ...).
    """

    ticker: str
    id: str
    title: str
    question: str
    subtitle: str | None = None
    event_ticker: str | None = None
    category: str | None = None
    market_type: str | None = None
    status: str
    result: str | None = None
    yes_ask: int
    yes_bid: int
    no_ask: int
    no_bid: int
    last_price: int
    previous_price: int
    volume: int | None = None
    volume_24h: int = 0
    open_interest: int | None = None
    liquidity: int | None = None
    open_time: str | None = None
    close_time: str | None = None
    expiration_time: str | None = None
    end_date: str | None = Field(default=None, alias="endDate")
    outcomes: list[str] = Field(default_factory=lambda: ["Yes", "No"])
    outcome_prices: list[str] = Field(default_factory=list, alias="outcomePrices")
    yes_price: float = Field(alias="yesPrice")
    no_price: float = Field(alias="noPrice")
    change_24h: float = Field(default=0.0, alias="change24h")

    model_config = {"from_attributes": True, "populate_by_name": True}

    @field_validator("outcomes", "outcome_prices", mode="before")
    @classmethod
    def _tuple_to_list(cls, value: Any) -> Any:
        if isinstance(value, tuple):
            return list(value)
        return value


class MarketList(BaseModel):
    total: int
    items: list[Market]


class ProxyErrorBody(BaseModel):
    error: str
    details: str | None = None
