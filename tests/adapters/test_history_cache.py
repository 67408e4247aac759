from signal_engine.adapters import HistoryCache

BUCKET_SECONDS = 15 * 60


class FakeClock:
    def __init__(self, start: float = 1_700_000_100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def test_key_embeds_asset_interval_and_bucket():
    clock = FakeClock()
    cache = HistoryCache(clock=clock)
    bucket = int(clock.now // BUCKET_SECONDS)

    assert cache.key("BTC-USD", "minute") == f"BTC-USD-minute-{bucket}"
    assert cache.key("BTC-USD", "minute", now_ms=0) == "BTC-USD-minute-0"


def test_entries_expire_after_ttl():
    clock = FakeClock()
    cache = HistoryCache(ttl_seconds=60, clock=clock)
    cache.set("k", [1, 2, 3])

    clock.advance(59)
    assert cache.get("k") == [1, 2, 3]
    assert "k" in cache

    clock.advance(1)
    assert cache.get("k") is None
    assert len(cache) == 0


def test_new_bucket_misses_even_within_ttl():
    clock = FakeClock(start=BUCKET_SECONDS * 1000 - 30)
    cache = HistoryCache(ttl_seconds=900, clock=clock)
    key = cache.key("XAU-USD", "minute")
    cache.set(key, ["bars"])

    clock.advance(60)
    later = cache.key("XAU-USD", "minute")

    assert later != key
    assert cache.get(later) is None
    assert cache.get(key) == ["bars"]


def test_set_purges_stale_entries():
    clock = FakeClock()
    cache = HistoryCache(ttl_seconds=10, clock=clock)
    cache.set("old", 1)
    clock.advance(11)
    cache.set("new", 2)

    assert len(cache) == 1
    cache.clear()
    assert len(cache) == 0
