"""Monte Carlo simulation of terminal prices under driftless geometric Brownian motion.

Paths are stepped one calendar day at a time using the daily volatility
``iv / sqrt(365)``. Each step multiplies the price by
``exp(-sigma^2 / 2 + sigma * Z)`` where ``Z`` is a Box-Muller normal built
from two uniforms. Uniforms are consumed path-major (``u1, u2`` for path 0
step 0, then path 0 step 1, ...), so a seeded run is reproducible exactly.

Horizons are rounded *up* to whole days: a 15-minute horizon runs a single
daily step. A zero (or negative) horizon runs no steps and every path ends
at the starting price, which makes ``probability_above`` zero.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Dict, Optional

import numpy as np

from signal_engine.errors import SimulationError

from .prng import UniformSource, uniform_source

MS_PER_DAY = 24 * 60 * 60 * 1000
DAYS_PER_YEAR = 365
PERCENTILE_LEVELS = (10, 25, 50, 75, 90)


@dataclass(frozen=True)
class Percentiles:
    p10: float
    p25: float
    p50: float
    p75: float
    p90: float

    def is_monotonic(self) -> bool:
        return self.p10 <= self.p25 <= self.p50 <= self.p75 <= self.p90


@dataclass(frozen=True)
class SimulationResult:
    """Empirical distribution summary of simulated terminal prices."""

    probability_above: float
    probability_below: float
    percentiles: Percentiles
    steps: int
    path_count: int

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


def _validate_inputs(current_price: float, annualized_iv: float, horizon_ms: float, path_count: int) -> None:
    if not isinstance(current_price, (int, float)) or not math.isfinite(current_price) or current_price <= 0:
        raise SimulationError(f"Current price must be a positive finite number, got {current_price!r}")
    if not isinstance(annualized_iv, (int, float)) or not math.isfinite(annualized_iv) or annualized_iv < 0:
        raise SimulationError(f"Implied volatility must be a non-negative finite number, got {annualized_iv!r}")
    if not isinstance(horizon_ms, (int, float)) or not math.isfinite(horizon_ms):
        raise SimulationError(f"Horizon must be finite, got {horizon_ms!r}")
    if int(path_count) < 1:
        raise SimulationError(f"Path count must be at least 1, got {path_count!r}")


def step_count(horizon_ms: float) -> int:
    """Number of daily steps simulated for ``horizon_ms`` (ceil of fractional days)."""

    if horizon_ms <= 0:
        return 0
    return int(math.ceil(horizon_ms / MS_PER_DAY))


def _percentile(sorted_prices: np.ndarray, level: int) -> float:
    n = len(sorted_prices)
    index = min(int(math.floor(level / 100.0 * n)), n - 1)
    return float(sorted_prices[index])


class MonteCarloSimulator:
    """Simulates terminal price distributions for probability-based strategies."""

    def __init__(self, path_count: int = 1000, seed: Optional[int] = None):
        self.path_count = path_count
        self.seed = seed

    def run(
        self,
        current_price: float,
        annualized_iv: float,
        horizon_ms: float,
        path_count: Optional[int] = None,
        seed: Optional[int] = None,
    ) -> SimulationResult:
        paths = int(path_count if path_count is not None else self.path_count)
        _validate_inputs(current_price, annualized_iv, horizon_ms, paths)
        source = uniform_source(seed if seed is not None else self.seed)
        terminal = self._terminal_prices(current_price, annualized_iv, step_count(horizon_ms), paths, source)

        above = int(np.count_nonzero(terminal > current_price))
        probability_above = above / paths
        ordered = np.sort(terminal)
        percentiles = Percentiles(*(_percentile(ordered, level) for level in PERCENTILE_LEVELS))

        return SimulationResult(
            probability_above=probability_above,
            probability_below=1.0 - probability_above,
            percentiles=percentiles,
            steps=step_count(horizon_ms),
            path_count=paths,
        )

    @staticmethod
    def _terminal_prices(
        current_price: float,
        annualized_iv: float,
        steps: int,
        paths: int,
        source: UniformSource,
    ) -> np.ndarray:
        if steps == 0:
            return np.full(paths, float(current_price))

        daily_vol = annualized_iv / math.sqrt(DAYS_PER_YEAR)
        draws = source.uniforms(paths * steps * 2).reshape(paths, steps, 2)
        floor = getattr(source, "resolution", float(np.finfo(float).eps))
        u1 = np.maximum(draws[..., 0], floor)
        u2 = draws[..., 1]
        z = np.sqrt(-2.0 * np.log(u1)) * np.cos(2.0 * np.pi * u2)
        growth = np.exp(-(daily_vol * daily_vol) / 2.0 + daily_vol * z)
        return float(current_price) * np.prod(growth, axis=1)


def simulate(
    current_price: float,
    annualized_iv: float,
    horizon_ms: float,
    path_count: int = 1000,
    seed: Optional[int] = None,
) -> SimulationResult:
    """Run one simulation; identical arguments with a ``seed`` give identical results."""

    return MonteCarloSimulator(path_count=path_count, seed=seed).run(current_price, annualized_iv, horizon_ms)


__all__ = [
    "DAYS_PER_YEAR",
    "MS_PER_DAY",
    "MonteCarloSimulator",
    "Percentiles",
    "SimulationResult",
    "simulate",
    "step_count",
]
