"""Deterministic synthetic market data.

Histories are generated from the shared sine-hash PRNG and keyed by the
cache key, so every request for the same asset inside one 15-minute bucket
sees the same bars.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Tuple

from signal_engine.math.prng import hash_string, seeded_random
from signal_engine.models.market import PriceBar

from .base import MarketDataAdapter, resolve_asset
from .cache import HistoryCache

logger = logging.getLogger(__name__)

INTERVAL_MS: Dict[str, int] = {
    "minute": 60 * 1000,
    "hour": 60 * 60 * 1000,
    "day": 24 * 60 * 60 * 1000,
}

# (base price, per-bar volatility) keyed by asset symbol
SYMBOL_PROFILES: Dict[str, Tuple[float, float]] = {
    "BTC": (50000.0, 0.02),
    "EUR": (1.08, 0.005),
    "XAU": (2000.0, 0.01),
}
DEFAULT_PROFILE: Tuple[float, float] = (100.0, 0.015)


def generate_price_history(
    limit: int,
    interval: str,
    base_price: float,
    volatility: float,
    seed_string: str = "default-seed",
    end: Optional[datetime] = None,
) -> List[PriceBar]:
    """Random-walk OHLCV bars ending at ``end``; identical inputs give identical bars."""

    interval_ms = INTERVAL_MS.get(interval, INTERVAL_MS["day"])
    seed = hash_string(seed_string or "default-seed")
    end = end or datetime.now(timezone.utc)
    current_time = end - timedelta(milliseconds=limit * interval_ms)
    price = base_price

    bars: List[PriceBar] = []
    for i in range(limit):
        base = seed + i
        price += (seeded_random(base) - 0.5) * 2 * volatility * price
        bar_range = price * (volatility / 2)
        open_price = price - bar_range * (seeded_random(base + 0.1) - 0.5)
        high = max(open_price, price) + bar_range * seeded_random(base + 0.2)
        low = min(open_price, price) - bar_range * seeded_random(base + 0.3)
        volume = 1000 + seeded_random(base + 0.4) * 5000
        bars.append(
            PriceBar(
                timestamp=current_time,
                open=open_price,
                high=high,
                low=low,
                close=price,
                volume=volume,
            )
        )
        current_time = current_time + timedelta(milliseconds=interval_ms)
    return bars


class SyntheticMarketDataAdapter(MarketDataAdapter):
    """Serves generated price history for the supported asset pairs."""

    def __init__(
        self,
        cache: Optional[HistoryCache[List[PriceBar]]] = None,
        *,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._clock = clock or time.time
        self.cache = cache if cache is not None else HistoryCache(clock=self._clock)

    @property
    def name(self) -> str:
        return "synthetic"

    def get_latest_history(self, asset: str, limit: int = 100, interval: str = "minute") -> List[PriceBar]:
        spec = resolve_asset(asset)
        now_ms = self._clock() * 1000.0
        key = self.cache.key(f"{spec.symbol}-{spec.currency}", interval, now_ms)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Using cached %s history for %s", interval, asset)
            return list(cached)

        base_price, volatility = SYMBOL_PROFILES.get(spec.symbol, DEFAULT_PROFILE)
        end = datetime.fromtimestamp(now_ms / 1000.0, tz=timezone.utc)
        bars = generate_price_history(limit, interval, base_price, volatility, key, end=end)
        self.cache.set(key, bars)
        logger.info("Generated %d synthetic %s bars for %s", len(bars), interval, asset)
        return list(bars)


__all__ = [
    "DEFAULT_PROFILE",
    "INTERVAL_MS",
    "SYMBOL_PROFILES",
    "SyntheticMarketDataAdapter",
    "generate_price_history",
]
