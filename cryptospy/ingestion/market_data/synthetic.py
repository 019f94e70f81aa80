"""Placeholder series and prices for when no real data is reachable.

Everything produced here is fabricated. Callers must tag results built
from these helpers as ``Provenance.SYNTHETIC``.
"""

import random
import time

from cryptospy.config.constants import DEFAULT_PRICE_RANGE, TYPICAL_PRICE_RANGES
from cryptospy.ingestion.market_data.models import PriceDataPoint

HOUR_MS = 60 * 60 * 1000
DAY_MS = 24 * HOUR_MS


def _now_ms() -> int:
    return int(time.time() * 1000)


def hourly_series(
    base_price: float,
    points: int = 24,
    jitter: float = 0.02,
    now_ms: int | None = None,
) -> list[PriceDataPoint]:
    """One point per hour ending now, each within +/- jitter of base_price."""
    now_ms = _now_ms() if now_ms is None else now_ms
    return [
        PriceDataPoint(
            timestamp=now_ms - i * HOUR_MS,
            price=base_price * random.uniform(1 - jitter, 1 + jitter),
        )
        for i in reversed(range(points))
    ]


def historical_series(base_price: float, days: int, now_ms: int | None = None) -> list[PriceDataPoint]:
    """Hourly points for a one-day window, daily points otherwise (max 365)."""
    now_ms = _now_ms() if now_ms is None else now_ms
    if days <= 1:
        return hourly_series(base_price, points=24, jitter=0.05, now_ms=now_ms)

    return [
        PriceDataPoint(
            timestamp=now_ms - i * DAY_MS,
            price=base_price * random.uniform(0.95, 1.05),
        )
        for i in reversed(range(min(days, 365)))
    ]


def mock_price(coin_id: str) -> float:
    """Plausible price 60% into the coin's typical range, +/- 5%."""
    low, high = TYPICAL_PRICE_RANGES.get(coin_id, DEFAULT_PRICE_RANGE)
    base = low + (high - low) * 0.6
    variation = base * 0.1 * (random.random() - 0.5)
    return max(0.001, base + variation)
