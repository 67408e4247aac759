import pytest

from signal_engine.errors import InsufficientDataError, SimulationError
from signal_engine.indicators import IndicatorEngine
from signal_engine.math.monte_carlo import Percentiles, SimulationResult
from signal_engine.models.signal import Direction
from signal_engine.strategies import RULE_REGISTRY, LazySimulation


def _simulation(probability_above: float) -> SimulationResult:
    return SimulationResult(
        probability_above=probability_above,
        probability_below=1.0 - probability_above,
        percentiles=Percentiles(90.0, 95.0, 100.0, 105.0, 110.0),
        steps=1,
        path_count=1000,
    )


def test_breakout_on_rising_series(rising_breakout_bars, context_factory):
    rows = IndicatorEngine().compute(rising_breakout_bars)
    candidate = RULE_REGISTRY["breakout"].evaluate(context_factory(rows))

    assert candidate.direction is Direction.BUY_CALL
    assert candidate.confidence == 85
    assert candidate.target_price == pytest.approx(105.0 * 1.01)
    assert candidate.stop_loss == pytest.approx(105.0 * 0.995)


def test_breakout_requires_a_cross(rising_breakout_bars, context_factory):
    rows = IndicatorEngine().compute(rising_breakout_bars[:-1])

    assert RULE_REGISTRY["breakout"].evaluate(context_factory(rows)) is None


@pytest.mark.parametrize("value, direction", [(25.0, Direction.BUY_CALL), (75.0, Direction.BUY_PUT)])
def test_rsi_extreme(value, direction, row_factory, context_factory):
    candidate = RULE_REGISTRY["rsi-extreme"].evaluate(context_factory([row_factory(rsi=value)]))

    assert candidate.direction is direction
    assert candidate.confidence == 80


def test_rsi_extreme_quiet_and_undefined(row_factory, context_factory):
    rule = RULE_REGISTRY["rsi-extreme"]

    assert rule.evaluate(context_factory([row_factory(rsi=50.0)])) is None
    with pytest.raises(InsufficientDataError):
        rule.evaluate(context_factory([row_factory()]))


def test_macd_cross(row_factory, context_factory):
    rows = [row_factory(macd=-0.1, macd_signal=0.0), row_factory(close=101.0, macd=0.1, macd_signal=0.0)]
    candidate = RULE_REGISTRY["macd-cross"].evaluate(context_factory(rows))

    assert candidate.direction is Direction.BUY_CALL
    assert candidate.confidence == 75
    assert candidate.entry_price == 101.0


def test_price_crossing_its_average(row_factory, context_factory):
    rows = [row_factory(close=99.0, sma20=100.0), row_factory(close=101.0, sma20=100.0)]
    candidate = RULE_REGISTRY["price-sma-cross"].evaluate(context_factory(rows))

    assert candidate.direction is Direction.BUY_CALL


def test_turtle_trading_near_channel_high(row_factory, context_factory):
    rows = [row_factory(close=99.0, low=95.0)] + [row_factory(close=99.5) for _ in range(17)]
    rows += [row_factory(close=100.0, high=100.2), row_factory(close=100.1)]
    candidate = RULE_REGISTRY["turtle-trading"].evaluate(context_factory(rows))

    assert candidate.direction is Direction.BUY_CALL
    assert candidate.confidence == 80
    assert candidate.target_price == pytest.approx(100.2 * 1.01)
    assert candidate.stop_loss == pytest.approx(100.2 * 0.985)


def test_turtle_trading_needs_full_channel(row_factory, context_factory):
    with pytest.raises(InsufficientDataError):
        RULE_REGISTRY["turtle-trading"].evaluate(context_factory([row_factory() for _ in range(5)]))


@pytest.mark.parametrize(
    "key, metrics, expected",
    [
        ("vix-strategy", {"vix": 32.0}, (Direction.BUY_CALL, 75)),
        ("vix-strategy", {"vix": 14.0}, (Direction.BUY_PUT, 70)),
        ("vix-strategy", {"vix": 25.0}, None),
        ("pcr-strategy", {"pcr": 1.3}, (Direction.BUY_CALL, 80)),
        ("pcr-strategy", {"pcr": 0.65}, (Direction.BUY_PUT, 80)),
        ("trin-strategy", {"trin": 1.3}, None),
        ("trin-strategy", {"trin": 1.6}, (Direction.BUY_CALL, 75)),
        ("trin-strategy", {"trin": 0.4}, (Direction.BUY_PUT, 75)),
        ("iv-rank-high", {"iv_percentile": 90.0}, (Direction.SELL_OPTIONS, 85)),
        ("iv-rank-low", {"iv_percentile": 10.0}, (Direction.BUY_OPTIONS, 80)),
        ("iv-rank-high", {"iv_percentile": 80.0}, None),
    ],
)
def test_options_metric_rules(key, metrics, expected, row_factory, context_factory, options_factory):
    context = context_factory([row_factory()], options=options_factory(**metrics))
    candidate = RULE_REGISTRY[key].evaluate(context)

    if expected is None:
        assert candidate is None
    else:
        assert (candidate.direction, candidate.confidence) == expected


def test_premium_signals_carry_no_price_levels(row_factory, context_factory, options_factory):
    context = context_factory([row_factory()], options=options_factory(iv_percentile=95.0))
    candidate = RULE_REGISTRY["iv-rank-high"].evaluate(context)

    assert candidate.target_price is None
    assert candidate.stop_loss is None
    assert candidate.best_strategy == "IRON_CONDOR"


def test_asset_specific_rules_check_the_asset(row_factory, context_factory, options_factory):
    rule = RULE_REGISTRY["crypto-iron-condor"]
    btc = context_factory([row_factory()], options=options_factory("BTC/USD", iv_percentile=90.0))
    eur = context_factory([row_factory()], asset="EUR/USD", options=options_factory("EUR/USD", iv_percentile=90.0))

    assert rule.evaluate(btc).direction is Direction.SELL_OPTIONS
    assert rule.evaluate(eur) is None


def test_sentiment_consensus_follows_strong_sentiment(row_factory, context_factory, options_factory):
    options = options_factory(pcr=1.3, vix=32.0, trin=1.3)
    candidate = RULE_REGISTRY["sentiment-consensus"].evaluate(context_factory([row_factory()], options=options))

    assert candidate.direction is Direction.BUY_CALL
    assert candidate.confidence == 85


@pytest.mark.parametrize(
    "probability_above, expected",
    [
        (0.70, (Direction.BUY_CALL, 70, 105.0, 95.0)),
        (0.20, (Direction.BUY_PUT, 80, 95.0, 105.0)),
        (0.50, None),
    ],
)
def test_monte_carlo_rule(probability_above, expected, row_factory, context_factory):
    context = context_factory([row_factory()], simulator=lambda: _simulation(probability_above))
    candidate = RULE_REGISTRY["monte-carlo"].evaluate(context)

    if expected is None:
        assert candidate is None
    else:
        direction, confidence, target, stop = expected
        assert candidate.direction is direction
        assert candidate.confidence == confidence
        assert candidate.target_price == target
        assert candidate.stop_loss == stop


def test_lazy_simulation_runs_once():
    calls = []

    def run():
        calls.append(1)
        return _simulation(0.6)

    simulation = LazySimulation(run)
    assert not simulation.has_run
    assert simulation() is simulation()
    assert len(calls) == 1


def test_lazy_simulation_caches_failure():
    calls = []

    def run():
        calls.append(1)
        raise SimulationError("bad price")

    simulation = LazySimulation(run)
    for _ in range(2):
        with pytest.raises(SimulationError):
            simulation()
    assert len(calls) == 1
