"""Exception taxonomy for the signal pipeline."""

from __future__ import annotations

from typing import Optional


class SignalEngineError(Exception):
    """Base exception for pipeline failures."""


class InsufficientDataError(SignalEngineError):
    """Raised when a history is too short for a computation or rule."""


class InvalidMetricError(SignalEngineError):
    """Raised when an options-context bundle is missing or malformed."""


class SimulationError(SignalEngineError):
    """Raised when Monte Carlo inputs are non-finite or degenerate."""


class RuleEvaluationError(SignalEngineError):
    """Wraps an unexpected failure inside a single strategy rule."""

    def __init__(self, strategy_id: str, cause: Optional[BaseException] = None):
        self.strategy_id = strategy_id
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Strategy '{strategy_id}' failed{detail}")


__all__ = [
    "InsufficientDataError",
    "InvalidMetricError",
    "RuleEvaluationError",
    "SignalEngineError",
    "SimulationError",
]
