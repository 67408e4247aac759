from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Sequence

import pytest

from signal_engine.clock import to_millis
from signal_engine.config import reset_settings_cache
from signal_engine.config.loader import AppSettings, ScanSettings
from signal_engine.models.market import IndicatorRow, PriceBar
from signal_engine.options.synthesizer import OptionsContextSynthesizer
from signal_engine.strategies.base import RuleContext

NOW = datetime(2024, 1, 2, 12, 0, tzinfo=timezone.utc)

NEUTRAL_METRICS = {
    "iv": 0.7,
    "iv_percentile": 50.0,
    "pcr": 1.0,
    "vix": 20.0,
    "trin": 1.0,
    "skew": 0.0,
    "gamma_exposure": 0.0,
    "oi_put_call_ratio": 1.0,
    "term_structure": 0.0,
}


@pytest.fixture(autouse=True)
def clear_settings_cache():
    reset_settings_cache()
    yield
    reset_settings_cache()


@pytest.fixture
def now() -> datetime:
    return NOW


def make_bars(closes: Sequence[float], *, end: datetime = NOW, step: timedelta = timedelta(minutes=1), **columns):
    start = end - step * len(closes)
    bars = []
    for i, close in enumerate(closes):
        extra = {name: values[i] for name, values in columns.items()}
        bars.append(PriceBar(timestamp=start + step * i, close=float(close), **extra))
    return bars


@pytest.fixture
def bar_factory() -> Callable[..., list]:
    return make_bars


@pytest.fixture
def rising_breakout_bars():
    # slow climb for 29 bars, then a jump through the upper band on bar 29
    closes = [100 + 0.1 * i for i in range(29)] + [105.0]
    return make_bars(closes)


@pytest.fixture
def options_factory():
    synthesizer = OptionsContextSynthesizer()

    def _make(asset: str = "BTC/USD", **overrides):
        raw = {**NEUTRAL_METRICS, **overrides}
        return synthesizer.synthesize(asset, to_millis(NOW), raw)

    return _make


@pytest.fixture
def row_factory():
    def _make(close: float = 100.0, **fields) -> IndicatorRow:
        timestamp = fields.pop("timestamp", NOW)
        return IndicatorRow(timestamp=timestamp, close=close, **fields)

    return _make


@pytest.fixture
def context_factory(options_factory):
    def _make(rows, *, options=None, asset: str = "BTC/USD", simulator: Optional[Callable] = None, **kwargs):
        extra = dict(kwargs)
        if simulator is not None:
            extra["simulator"] = simulator
        return RuleContext(
            asset=asset,
            rows=tuple(rows),
            options=options or options_factory(asset),
            **extra,
        )

    return _make


@pytest.fixture
def test_settings() -> AppSettings:
    return AppSettings(
        env="test",
        scan=ScanSettings(confidence_threshold=0, monte_carlo_paths=200, monte_carlo_seed=42),
    )
