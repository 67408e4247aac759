"""Deterministic pseudo-random sources shared across the pipeline.

Every consumer that needs reproducible noise (options-context synthesis,
synthetic price history, seeded Monte Carlo runs) draws from one of the
sources below. Each source is seeded once and then produces a stream of
floats in ``[0, 1)``:

* :class:`SineHashRandom` - keyed draws derived from a string seed. Draws
  are addressed by an offset so independent metrics never share a value.
* :class:`LinearCongruentialGenerator` - a sequential stream used when a
  Monte Carlo caller supplies an integer seed.
* :class:`NumpyUniformSource` - the non-deterministic fallback backed by
  ``numpy.random.default_rng``.
"""

from __future__ import annotations

import math
from typing import Optional, Protocol

import numpy as np

LCG_MULTIPLIER = 9301
LCG_INCREMENT = 49297
LCG_MODULUS = 233280


class UniformSource(Protocol):
    """Stream of uniform floats in ``[0, 1)``."""

    def next_float(self) -> float:
        ...

    def uniforms(self, count: int) -> np.ndarray:
        ...


def hash_string(text: str) -> int:
    """32-bit signed rolling hash (``h = h*31 + code``) of ``text``."""

    value = 0
    for char in text:
        value = ((value << 5) - value + ord(char)) & 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return value


def seeded_random(x: float) -> float:
    """Map a number onto ``[0, 1)`` via the fractional part of ``sin(x) * 10000``."""

    scaled = math.sin(x) * 10000.0
    return scaled - math.floor(scaled)


class SineHashRandom:
    """Keyed deterministic draws derived from a string seed."""

    def __init__(self, seed: str):
        self.seed = seed
        self._cursor = 0

    def draw(self, offset: int | float = 0) -> float:
        return seeded_random(hash_string(f"{self.seed}{offset}"))

    def next_float(self) -> float:
        self._cursor += 1
        return self.draw(self._cursor)

    def uniforms(self, count: int) -> np.ndarray:
        return np.fromiter((self.next_float() for _ in range(count)), dtype=float, count=count)


class LinearCongruentialGenerator:
    """Sequential LCG: ``s = (s * 9301 + 49297) % 233280``, ``u = s / 233280``."""

    resolution = 1.0 / LCG_MODULUS

    def __init__(self, seed: int):
        self._state = int(seed) % LCG_MODULUS

    def next_float(self) -> float:
        self._state = (self._state * LCG_MULTIPLIER + LCG_INCREMENT) % LCG_MODULUS
        return self._state / LCG_MODULUS

    def uniforms(self, count: int) -> np.ndarray:
        out = np.empty(count, dtype=float)
        state = self._state
        for i in range(count):
            state = (state * LCG_MULTIPLIER + LCG_INCREMENT) % LCG_MODULUS
            out[i] = state / LCG_MODULUS
        self._state = state
        return out


class NumpyUniformSource:
    """Non-deterministic uniforms from numpy's default generator."""

    resolution = float(np.finfo(float).eps)

    def __init__(self, rng: Optional[np.random.Generator] = None):
        self._rng = rng or np.random.default_rng()

    def next_float(self) -> float:
        return float(self._rng.random())

    def uniforms(self, count: int) -> np.ndarray:
        return self._rng.random(count)


def uniform_source(seed: Optional[int] = None) -> UniformSource:
    """Return a reproducible LCG stream when ``seed`` is given, else a numpy one."""

    if seed is None:
        return NumpyUniformSource()
    return LinearCongruentialGenerator(seed)


__all__ = [
    "LinearCongruentialGenerator",
    "NumpyUniformSource",
    "SineHashRandom",
    "UniformSource",
    "hash_string",
    "seeded_random",
    "uniform_source",
]
