import pytest

from signal_engine.clock import to_millis
from signal_engine.errors import InvalidMetricError
from signal_engine.options import OptionsContextSynthesizer, iv_percentile, validate_context

from conftest import NEUTRAL_METRICS, NOW

BUCKET_MS = 15 * 60 * 1000


def test_same_asset_and_bucket_give_identical_context():
    synthesizer = OptionsContextSynthesizer()
    now_ms = to_millis(NOW)

    first = synthesizer.synthesize("BTC/USD", now_ms)
    second = synthesizer.synthesize("BTC/USD", now_ms + 60_000)

    assert first.time_bucket == second.time_bucket
    assert first == second


def test_new_bucket_changes_the_draws():
    synthesizer = OptionsContextSynthesizer()
    now_ms = to_millis(NOW)

    first = synthesizer.synthesize("BTC/USD", now_ms)
    later = synthesizer.synthesize("BTC/USD", now_ms + BUCKET_MS)

    assert later.time_bucket == first.time_bucket + 1
    assert later.iv.value != first.iv.value


@pytest.mark.parametrize("asset, base", [("BTC/USD", 0.7), ("EUR/USD", 0.08), ("XAU/USD", 0.15), ("SPY/USD", 0.3)])
def test_metric_ranges(asset, base):
    context = OptionsContextSynthesizer().synthesize(asset, to_millis(NOW))

    assert base * 0.9 <= context.iv.value <= base * 1.1
    assert 0 <= context.iv.percentile <= 100
    assert 0.7 <= context.pcr.value < 1.5
    assert 15 <= context.vix.value < 35
    assert 0.7 <= context.trin.value < 1.5
    assert -0.1 <= context.skew.value < 0.1
    assert -50000 <= context.gamma_exposure < 50000
    assert 0.8 <= context.oi_put_call_ratio < 1.4
    assert -0.04 <= context.iv.term_structure < 0.06


def test_iv_percentile_counts_strictly_lower_values():
    history = [0.1, 0.2, 0.3, 0.4]

    assert iv_percentile(0.3, history) == 50.0
    assert iv_percentile(0.05, history) == 0.0
    assert iv_percentile(0.5, history) == 100.0
    assert iv_percentile(0.3, []) == 50.0


def test_raw_metrics_are_classified(options_factory):
    context = options_factory(iv_percentile=90.0, pcr=1.3, vix=32.0, trin=0.6, skew=-0.2)

    assert context.iv.status == "high"
    assert context.pcr.status == "high"
    assert context.vix.status == "high"
    assert context.trin.status == "low"
    assert context.skew.status == "high"


def test_missing_raw_metric_raises():
    raw = dict(NEUTRAL_METRICS)
    del raw["vix"]

    with pytest.raises(InvalidMetricError):
        OptionsContextSynthesizer().synthesize("BTC/USD", to_millis(NOW), raw)


def test_validate_context_rejects_non_finite(options_factory):
    context = options_factory()
    broken = context.model_copy(update={"gamma_exposure": float("nan")})

    assert validate_context(context) is context
    with pytest.raises(InvalidMetricError):
        validate_context(broken)
    with pytest.raises(InvalidMetricError):
        validate_context(None)
