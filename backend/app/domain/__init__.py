"""Domain models representing normalized market data."""

from .models import ACTIVE_STATUSES, BINARY_OUTCOMES, MarketStatus, NormalizedMarket

__all__ = [
    "ACTIVE_STATUSES",
    "BINARY_OUTCOMES",
    "MarketStatus",
    "NormalizedMarket",
]
