import json
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from signal_engine.models import (
    CandidateSignal,
    Direction,
    PriceBar,
    serialize_options_context,
    serialize_scan_result,
    serialize_signals,
)
from signal_engine.scanner import SignalScanner


def test_scan_result_is_json_ready(test_settings, rising_breakout_bars):
    settings = test_settings.with_scan_overrides(active_strategies=["breakout"])
    result = SignalScanner(settings).scan("BTC/USD", history=rising_breakout_bars)

    payload = serialize_scan_result(result)
    json.dumps(payload)

    signal = payload["signals"][0]
    assert signal["direction"] == "BUY_CALL"
    assert signal["strategy_id"] == "breakout"
    assert signal["options_context_snapshot"]["iv_percentile"] == result.options_context.iv.percentile
    assert serialize_signals(result.signals) == payload["signals"]


def test_options_context_serializes_nested_readings(options_factory):
    payload = serialize_options_context(options_factory(vix=31.0))

    assert payload["vix"] == {"value": 31.0, "status": "high"}
    assert payload["iv"]["percentile"] == 50.0
    assert isinstance(payload["signals"], list)


def test_candidate_confidence_is_clamped():
    candidate = CandidateSignal(strategy_id="x", direction=Direction.SELL_OPTIONS, confidence=120, entry_price=1.0)

    assert candidate.confidence == 100.0
    assert not candidate.direction.is_directional
    with pytest.raises(ValidationError):
        CandidateSignal(strategy_id="x", direction="SIDEWAYS", confidence=50, entry_price=1.0)


def test_price_bar_from_provider_payload():
    bar = PriceBar.from_dict({"timestamp": "2024-01-02T12:00:00+00:00", "price": "101.5", "volume": 10})

    assert bar.close == 101.5
    assert bar.volume == 10.0
    assert bar.high_or_price == 101.5
    assert bar.timestamp == datetime(2024, 1, 2, 12, tzinfo=timezone.utc)
    with pytest.raises(ValueError):
        PriceBar.from_dict({"timestamp": "2024-01-02T12:00:00+00:00"})
