import math

import pytest

from signal_engine.errors import SimulationError
from signal_engine.math import MonteCarloSimulator, simulate
from signal_engine.math.monte_carlo import MS_PER_DAY, step_count

FIFTEEN_MINUTES = 15 * 60 * 1000


def test_seeded_runs_are_reproducible():
    first = simulate(100.0, 0.3, FIFTEEN_MINUTES, 1000, seed=42)
    second = simulate(100.0, 0.3, FIFTEEN_MINUTES, 1000, seed=42)

    assert first == second
    assert abs(first.percentiles.p50 - 100.0) < 1.0


def test_probabilities_and_percentiles_are_consistent():
    result = simulate(250.0, 0.8, 3 * MS_PER_DAY, 2000, seed=7)

    assert math.isclose(result.probability_above + result.probability_below, 1.0)
    assert 0.0 <= result.probability_above <= 1.0
    assert result.percentiles.is_monotonic()
    assert result.steps == 3
    assert result.path_count == 2000


def test_zero_horizon_keeps_every_path_at_current_price():
    result = simulate(100.0, 0.5, 0, 500, seed=1)

    assert result.steps == 0
    assert result.probability_above == 0.0
    assert result.probability_below == 1.0
    assert result.percentiles.p10 == result.percentiles.p90 == 100.0


def test_sub_day_horizon_runs_one_daily_step():
    assert step_count(FIFTEEN_MINUTES) == 1
    assert step_count(MS_PER_DAY) == 1
    assert step_count(MS_PER_DAY + 1) == 2
    assert step_count(-5) == 0


def test_zero_volatility_is_flat():
    result = simulate(100.0, 0.0, MS_PER_DAY, 100, seed=3)

    assert result.percentiles.p10 == pytest.approx(100.0)
    assert result.percentiles.p90 == pytest.approx(100.0)


def test_unseeded_simulation_runs():
    result = MonteCarloSimulator(path_count=300).run(50.0, 0.4, FIFTEEN_MINUTES)

    assert result.path_count == 300
    assert result.percentiles.is_monotonic()


@pytest.mark.parametrize(
    "price, iv, horizon, paths",
    [
        (0.0, 0.3, FIFTEEN_MINUTES, 100),
        (float("nan"), 0.3, FIFTEEN_MINUTES, 100),
        (100.0, -0.1, FIFTEEN_MINUTES, 100),
        (100.0, float("inf"), FIFTEEN_MINUTES, 100),
        (100.0, 0.3, float("nan"), 100),
        (100.0, 0.3, FIFTEEN_MINUTES, 0),
    ],
)
def test_invalid_inputs_raise_simulation_error(price, iv, horizon, paths):
    with pytest.raises(SimulationError):
        simulate(price, iv, horizon, paths, seed=1)


def test_reference_scenario_median_stays_near_spot():
    runs = [simulate(100.0, 0.7, FIFTEEN_MINUTES, 1000, seed=42) for _ in range(2)]

    assert runs[0].probability_above == runs[1].probability_above
    assert runs[0].percentiles.p50 == pytest.approx(100.0, abs=1.0)
