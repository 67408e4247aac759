from datetime import datetime, timedelta

import pytest

from signal_engine.clock import to_millis
from signal_engine.models.signal import CandidateSignal, Direction
from signal_engine.scanner import SignalAssembler

from conftest import NOW


def _candidate(strategy_id: str, confidence: float = 80.0) -> CandidateSignal:
    return CandidateSignal(
        strategy_id=strategy_id,
        direction=Direction.BUY_CALL,
        confidence=confidence,
        entry_price=100.0,
        target_price=101.0,
        stop_loss=99.5,
    )


def _publish(assembler, options, strategy_ids, when=NOW, threshold=75.0):
    candidates = [_candidate(strategy_id) for strategy_id in strategy_ids]
    return assembler.publish("BTC/USD", candidates, options, when, 15.0, threshold)


def test_threshold_is_inclusive(options_factory):
    assembler = SignalAssembler()
    candidates = [_candidate("weak", 74.0), _candidate("edge", 75.0), _candidate("strong", 90.0)]

    signals = assembler.publish("BTC/USD", candidates, options_factory(), NOW, 15.0, 75.0)

    assert [s.strategy_id for s in signals] == ["edge", "strong"]


def test_signals_are_stamped(options_factory):
    options = options_factory(vix=32.0)
    (signal,) = _publish(SignalAssembler(), options, ["breakout"])

    assert signal.id == f"breakout-{to_millis(NOW)}"
    assert signal.timestamp == NOW
    assert signal.expiry_time == NOW + timedelta(minutes=15)
    assert signal.asset == "BTC/USD"
    assert signal.options_context_snapshot.vix == 32.0


def test_replace_moves_previous_set_into_history(options_factory):
    assembler = SignalAssembler()
    options = options_factory()
    first = _publish(assembler, options, ["a", "b"])
    second = _publish(assembler, options, ["c"], when=NOW + timedelta(minutes=1))

    assert assembler.current == second
    assert assembler.history == first


def test_empty_scan_still_retires_current_set(options_factory):
    assembler = SignalAssembler()
    options = options_factory()
    first = _publish(assembler, options, ["a"])

    assert _publish(assembler, options, []) == ()
    assert assembler.history == first


def test_history_skips_ids_it_already_holds(options_factory):
    assembler = SignalAssembler()
    options = options_factory()
    _publish(assembler, options, ["a"])
    assembler.replace(assembler.current)
    _publish(assembler, options, [])

    assert [s.id for s in assembler.history] == [f"a-{to_millis(NOW)}"]


def test_history_is_capped_fifo(options_factory):
    assembler = SignalAssembler(history_cap=3)
    options = options_factory()
    for minute in range(5):
        _publish(assembler, options, [f"s{minute}"], when=NOW + timedelta(minutes=minute))

    assert [s.strategy_id for s in assembler.history] == ["s1", "s2", "s3"]
    assert [s.strategy_id for s in assembler.current] == ["s4"]


def test_active_drops_expired_signals(options_factory):
    assembler = SignalAssembler()
    _publish(assembler, options_factory(), ["a"])

    assert len(assembler.active(NOW + timedelta(minutes=14))) == 1
    assert assembler.active(NOW + timedelta(minutes=15)) == ()


def test_clear_and_cap_validation(options_factory):
    assembler = SignalAssembler()
    _publish(assembler, options_factory(), ["a"])
    _publish(assembler, options_factory(), ["b"])
    assembler.clear()

    assert assembler.current == () and assembler.history == ()
    with pytest.raises(ValueError):
        SignalAssembler(history_cap=0)


def test_history_never_exceeds_default_cap(options_factory):
    assembler = SignalAssembler()
    options = options_factory()
    for minute in range(60):
        _publish(assembler, options, ["a", "b"], when=NOW + timedelta(minutes=minute))
        assert len(assembler.history) <= 50

    assert len(assembler.history) == 50


def test_naive_times_are_treated_as_utc(options_factory):
    assembler = SignalAssembler()
    (signal,) = _publish(assembler, options_factory(), ["a"], when=NOW.replace(tzinfo=None))

    assert signal.timestamp == NOW
    assert signal.id == f"a-{to_millis(NOW)}"
    assert len(assembler.active(datetime(2024, 1, 2, 12, 14))) == 1
    assert assembler.active(datetime(2024, 1, 2, 12, 15)) == ()
