from datetime import timedelta

import pytest

from signal_engine.adapters import HistoryCache, UnsupportedAssetError, create_adapter
from signal_engine.adapters.synthetic import SyntheticMarketDataAdapter, generate_price_history

from conftest import NOW


class FakeClock:
    def __init__(self, start: float):
        self.now = start

    def __call__(self) -> float:
        return self.now


def test_generated_history_is_deterministic():
    first = generate_price_history(50, "minute", 100.0, 0.02, "seed", end=NOW)
    second = generate_price_history(50, "minute", 100.0, 0.02, "seed", end=NOW)
    other = generate_price_history(50, "minute", 100.0, 0.02, "other-seed", end=NOW)

    assert first == second
    assert [bar.close for bar in first] != [bar.close for bar in other]


def test_generated_bars_are_well_formed():
    bars = generate_price_history(60, "hour", 2000.0, 0.01, "gold", end=NOW)

    assert len(bars) == 60
    assert bars[0].timestamp == NOW - timedelta(hours=60)
    assert all(b.timestamp - a.timestamp == timedelta(hours=1) for a, b in zip(bars, bars[1:]))
    for bar in bars:
        assert bar.low <= min(bar.open, bar.close)
        assert bar.high >= max(bar.open, bar.close)
        assert 1000 <= bar.volume <= 6000


def test_adapter_serves_cached_history_within_a_bucket():
    clock = FakeClock(NOW.timestamp())
    adapter = SyntheticMarketDataAdapter(clock=clock)

    first = adapter.get_latest_history("btc/usd", limit=30)
    clock.now += 60
    second = adapter.get_latest_history("BTC/USD", limit=30)

    assert len(first) == 30
    assert first == second
    assert len(adapter.cache) == 1
    assert 25_000 < first[-1].close < 100_000


def test_adapter_rejects_unknown_assets():
    adapter = SyntheticMarketDataAdapter(clock=FakeClock(NOW.timestamp()))

    with pytest.raises(UnsupportedAssetError):
        adapter.get_latest_history("DOGE/USD")


def test_create_adapter_by_name():
    cache = HistoryCache(ttl_seconds=30)
    adapter = create_adapter("Synthetic", cache=cache)

    assert adapter.name == "synthetic"
    assert adapter.cache is cache
    assert adapter.get_options_raw_metrics("BTC/USD", 1) is None
    with pytest.raises(KeyError):
        create_adapter("polygon")
