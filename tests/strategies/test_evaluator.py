import logging

import pytest

from signal_engine.adapters.synthetic import SYMBOL_PROFILES, generate_price_history
from signal_engine.indicators import IndicatorEngine
from signal_engine.math import simulate
from signal_engine.models.signal import StrategyCategory
from signal_engine.strategies import (
    RULE_REGISTRY,
    STRATEGY_CATALOG,
    LazySimulation,
    StrategyEvaluator,
    get_strategy,
    select_strategies,
    strategy_ids,
)

from conftest import NOW


class ExplodingRule:
    key = "breakout"
    requires_simulation = False

    def evaluate(self, context):
        raise ZeroDivisionError("boom")


def test_catalog_is_complete_and_registered():
    ids = [definition.id for definition in STRATEGY_CATALOG]

    assert len(ids) >= 50
    assert len(set(ids)) == len(ids)
    assert {definition.rule_key for definition in STRATEGY_CATALOG} <= set(RULE_REGISTRY)
    assert {definition.category for definition in STRATEGY_CATALOG} == set(StrategyCategory)


def test_catalog_lookup_helpers():
    assert get_strategy("BREAKOUT").name
    assert get_strategy("no-such-strategy") is None
    assert "vix-strategy" in strategy_ids(StrategyCategory.VOLATILITY)
    assert "vix-strategy" not in strategy_ids(StrategyCategory.DIRECTIONAL)


def test_select_strategies_keeps_catalog_order():
    definitions, unknown = select_strategies([" RSI-Extreme", "breakout", "", "mystery"])

    assert [d.id for d in definitions] == ["breakout", "rsi-extreme"]
    assert unknown == ("mystery",)
    assert select_strategies(None)[0] == STRATEGY_CATALOG
    assert select_strategies([]) == ((), ())


def test_failing_rule_is_isolated(rising_breakout_bars, context_factory):
    rows = IndicatorEngine().compute(rising_breakout_bars)
    evaluator = StrategyEvaluator({**RULE_REGISTRY, "breakout": ExplodingRule()})

    report = evaluator.evaluate(context_factory(rows), ["breakout", "rsi-extreme", "iv-rank-low"])

    assert report.failed_ids == ("breakout",)
    assert isinstance(report.failed[0].cause, ZeroDivisionError)
    assert report.evaluated == 3
    assert all(c.strategy_id != "breakout" for c in report.candidates)


def test_unknown_ids_are_logged_and_ignored(row_factory, context_factory, caplog):
    with caplog.at_level(logging.WARNING, logger="signal_engine.strategies.evaluator"):
        report = StrategyEvaluator().evaluate(context_factory([row_factory(rsi=25.0)]), ["rsi-extreme", "mystery"])

    assert [c.strategy_id for c in report.candidates] == ["rsi-extreme"]
    assert "mystery" in caplog.text


def test_missing_simulation_skips_probability_rules(row_factory, context_factory):
    report = StrategyEvaluator().evaluate(context_factory([row_factory()]), ["monte-carlo", "tail-asymmetry"])

    assert report.candidates == []
    assert report.failed == []
    assert report.skipped == ["monte-carlo", "tail-asymmetry"]


def test_short_history_never_fails(row_factory, context_factory):
    rows = [row_factory(close=100.0 + i) for i in range(3)]
    report = StrategyEvaluator().evaluate(context_factory(rows))

    assert report.failed == []
    assert report.evaluated == len(STRATEGY_CATALOG)


def test_iv_expansion_from_zero_atr_is_not_a_failure(bar_factory, context_factory, options_factory):
    # flat closes leave ATR at zero until the final jump
    rows = IndicatorEngine().compute(bar_factory([100.0] * 40 + [103.0]))
    context = context_factory(rows, options=options_factory(iv_percentile=10.0))

    assert rows[-6].atr == 0.0 and rows[-1].atr > 0.0
    report = StrategyEvaluator().evaluate(context, ["iv-expansion"])

    assert report.failed == []
    assert report.candidates == []


@pytest.mark.parametrize("asset", ["BTC/USD", "EUR/USD", "XAU/USD"])
def test_every_rule_runs_cleanly_on_generated_history(asset, context_factory, options_factory):
    base_price, volatility = SYMBOL_PROFILES[asset.split("/")[0]]
    bars = generate_price_history(120, "minute", base_price, volatility, f"{asset}-smoke", end=NOW)
    rows = IndicatorEngine().compute(bars)
    price, iv = rows[-1].close, options_factory(asset).iv.value
    simulator = LazySimulation(lambda: simulate(price, iv, 15 * 60 * 1000, 300, seed=11))

    context = context_factory(rows, asset=asset, options=options_factory(asset), simulator=simulator)
    report = StrategyEvaluator().evaluate(context)

    assert report.failed == []
    assert simulator.has_run
    for candidate in report.candidates:
        assert 0 <= candidate.confidence <= 100
        assert candidate.entry_price == pytest.approx(price)
