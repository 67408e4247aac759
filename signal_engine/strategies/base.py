"""Rule interface and shared helpers for strategy evaluation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Protocol, Sequence, Tuple

from signal_engine.config.loader import IndicatorSettings
from signal_engine.errors import InsufficientDataError, SimulationError
from signal_engine.math.monte_carlo import SimulationResult
from signal_engine.models.market import IndicatorRow
from signal_engine.models.options import OptionsContext
from signal_engine.models.signal import CandidateSignal, Direction

CALL_TARGET = 1.01
CALL_STOP = 0.995
PUT_TARGET = 0.99
PUT_STOP = 1.005


class LazySimulation:
    """Runs the scan's Monte Carlo simulation at most once and remembers the outcome."""

    def __init__(self, run: Callable[[], SimulationResult]):
        self._run = run
        self._result: Optional[SimulationResult] = None
        self._error: Optional[SimulationError] = None
        self._done = False

    def __call__(self) -> SimulationResult:
        if not self._done:
            self._done = True
            try:
                self._result = self._run()
            except SimulationError as exc:
                self._error = exc
        if self._error is not None:
            raise self._error
        assert self._result is not None
        return self._result

    @property
    def has_run(self) -> bool:
        return self._done


def _no_simulation() -> SimulationResult:
    raise SimulationError("No simulator configured for this scan")


@dataclass(frozen=True)
class RuleContext:
    """Read-only state handed to every rule during one scan."""

    asset: str
    rows: Tuple[IndicatorRow, ...]
    options: OptionsContext
    expiration_minutes: float = 15.0
    indicators: IndicatorSettings = field(default_factory=IndicatorSettings)
    simulator: Callable[[], SimulationResult] = _no_simulation

    @property
    def latest(self) -> IndicatorRow:
        if not self.rows:
            raise InsufficientDataError("No indicator rows available")
        return self.rows[-1]

    @property
    def previous(self) -> Optional[IndicatorRow]:
        return self.rows[-2] if len(self.rows) >= 2 else None

    def pair(self) -> Tuple[IndicatorRow, IndicatorRow]:
        """Return (previous, latest) or raise when fewer than two rows exist."""

        if len(self.rows) < 2:
            raise InsufficientDataError("Rule needs at least 2 bars")
        return self.rows[-2], self.rows[-1]

    def window(self, size: int, *, include_latest: bool = True) -> Sequence[IndicatorRow]:
        """Trailing ``size`` rows, optionally excluding the latest bar."""

        needed = size if include_latest else size + 1
        if len(self.rows) < needed:
            raise InsufficientDataError(f"Rule needs {needed} bars, got {len(self.rows)}")
        if include_latest:
            return self.rows[-size:]
        return self.rows[-size - 1 : -1]

    def simulation(self) -> SimulationResult:
        return self.simulator()


class StrategyRule(Protocol):
    """Protocol each strategy rule must implement."""

    key: str
    requires_simulation: bool

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        """Return at most one candidate signal."""


class BaseRule:
    key: str = ""
    requires_simulation: bool = False

    def __init__(self, key: Optional[str] = None):
        if key is not None:
            self.key = key

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:  # pragma: no cover - interface
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}(key={self.key!r})"


def require(*values: Optional[float]) -> None:
    """Raise :class:`InsufficientDataError` if any indicator value is undefined."""

    if any(value is None for value in values):
        raise InsufficientDataError("Indicator not yet defined for the latest bars")


def crossed_above(prev_a: float, prev_b: float, cur_a: float, cur_b: float) -> bool:
    return prev_a <= prev_b and cur_a > cur_b


def crossed_below(prev_a: float, prev_b: float, cur_a: float, cur_b: float) -> bool:
    return prev_a >= prev_b and cur_a < cur_b


def directional_signal(
    strategy_id: str,
    direction: Direction,
    confidence: float,
    price: float,
    drivers: List[str],
    *,
    target: Optional[float] = None,
    stop: Optional[float] = None,
    best_strategy: Optional[str] = None,
) -> CandidateSignal:
    """Candidate with the default 15-minute target/stop for its direction."""

    if direction is Direction.BUY_CALL:
        target = price * CALL_TARGET if target is None else target
        stop = price * CALL_STOP if stop is None else stop
    elif direction is Direction.BUY_PUT:
        target = price * PUT_TARGET if target is None else target
        stop = price * PUT_STOP if stop is None else stop
    return CandidateSignal(
        strategy_id=strategy_id,
        direction=direction,
        confidence=confidence,
        entry_price=price,
        target_price=target,
        stop_loss=stop,
        key_drivers=tuple(drivers),
        best_strategy=best_strategy,
    )


def premium_signal(
    strategy_id: str,
    direction: Direction,
    confidence: float,
    price: float,
    drivers: List[str],
    best_strategy: Optional[str] = None,
) -> CandidateSignal:
    """Candidate for a premium-selling or premium-buying trade (no price target)."""

    return CandidateSignal(
        strategy_id=strategy_id,
        direction=direction,
        confidence=confidence,
        entry_price=price,
        key_drivers=tuple(drivers),
        best_strategy=best_strategy,
    )


__all__ = [
    "BaseRule",
    "LazySimulation",
    "RuleContext",
    "StrategyRule",
    "crossed_above",
    "crossed_below",
    "directional_signal",
    "premium_signal",
    "require",
]
