"""Numerical helpers: deterministic random sources and price simulation."""

from .monte_carlo import MonteCarloSimulator, Percentiles, SimulationResult, simulate
from .prng import (
    LinearCongruentialGenerator,
    NumpyUniformSource,
    SineHashRandom,
    hash_string,
    seeded_random,
    uniform_source,
)

__all__ = [
    "LinearCongruentialGenerator",
    "MonteCarloSimulator",
    "NumpyUniformSource",
    "Percentiles",
    "SimulationResult",
    "SineHashRandom",
    "hash_string",
    "seeded_random",
    "simulate",
    "uniform_source",
]
