from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from signal_engine.clock import ensure_utc, to_millis

from .options import OptionsContext


class Direction(str, Enum):
    """Trade direction attached to a signal."""

    BUY_CALL = "BUY_CALL"
    BUY_PUT = "BUY_PUT"
    SELL_OPTIONS = "SELL_OPTIONS"
    BUY_OPTIONS = "BUY_OPTIONS"

    @property
    def is_directional(self) -> bool:
        return self in (Direction.BUY_CALL, Direction.BUY_PUT)


class StrategyCategory(str, Enum):
    DIRECTIONAL = "directional"
    VOLATILITY = "volatility"
    SENTIMENT = "sentiment"
    BREADTH = "breadth"
    PROBABILITY = "probability"
    HYBRID = "hybrid"


class StrategyDefinition(BaseModel):
    """Static catalog entry describing a strategy and the rule that runs it."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str
    category: StrategyCategory
    required_indicators: Tuple[str, ...] = ()
    rule: str = ""

    @property
    def rule_key(self) -> str:
        return self.rule or self.id


class CandidateSignal(BaseModel):
    """Output of a single rule before filtering and stamping."""

    model_config = ConfigDict(frozen=True)

    strategy_id: str
    direction: Direction
    confidence: float
    entry_price: float
    target_price: Optional[float] = None
    stop_loss: Optional[float] = None
    key_drivers: Tuple[str, ...] = ()
    best_strategy: Optional[str] = None

    @field_validator("confidence")
    @classmethod
    def _bound_confidence(cls, value: float) -> float:
        return float(max(0.0, min(100.0, value)))


class OptionsSnapshot(BaseModel):
    """Options-context values captured at signal creation."""

    model_config = ConfigDict(frozen=True)

    iv: float
    iv_percentile: float
    pcr: float
    vix: float
    trin: Optional[float] = None

    @classmethod
    def from_context(cls, context: OptionsContext) -> "OptionsSnapshot":
        return cls(
            iv=context.iv.value,
            iv_percentile=context.iv.percentile,
            pcr=context.pcr.value,
            vix=context.vix.value,
            trin=context.trin.value,
        )


class Signal(BaseModel):
    """A published, time-bounded trading signal."""

    model_config = ConfigDict(frozen=True)

    id: str
    asset: str
    strategy_id: str
    timestamp: datetime
    expiry_time: datetime
    direction: Direction
    confidence: float
    entry_price: float
    target_price: Optional[float] = None
    stop_loss: Optional[float] = None
    key_drivers: Tuple[str, ...] = ()
    best_strategy: Optional[str] = None
    options_context_snapshot: OptionsSnapshot

    @classmethod
    def from_candidate(
        cls,
        candidate: CandidateSignal,
        *,
        asset: str,
        timestamp: datetime,
        expiration_minutes: float,
        snapshot: OptionsSnapshot,
    ) -> "Signal":
        timestamp = ensure_utc(timestamp)
        return cls(
            id=f"{candidate.strategy_id}-{to_millis(timestamp)}",
            asset=asset,
            strategy_id=candidate.strategy_id,
            timestamp=timestamp,
            expiry_time=timestamp + timedelta(minutes=expiration_minutes),
            direction=candidate.direction,
            confidence=candidate.confidence,
            entry_price=candidate.entry_price,
            target_price=candidate.target_price,
            stop_loss=candidate.stop_loss,
            key_drivers=candidate.key_drivers,
            best_strategy=candidate.best_strategy,
            options_context_snapshot=snapshot,
        )

    def is_expired(self, now: datetime) -> bool:
        return ensure_utc(now) >= self.expiry_time


class ProbabilityInfo(BaseModel):
    """Scan-level Monte Carlo summary shown alongside the signals."""

    model_config = ConfigDict(frozen=True)

    probability_up: float
    probability_down: float
    potential_high: float
    potential_low: float
    expected_price: float


class ScanResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    asset: str
    timestamp: datetime
    signals: Tuple[Signal, ...] = ()
    options_context: OptionsContext
    probability_info: Optional[ProbabilityInfo] = None
    evaluated: int = 0
    failed_rules: Tuple[str, ...] = ()
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def strategy_ids(self) -> List[str]:
        return [signal.strategy_id for signal in self.signals]


__all__ = [
    "CandidateSignal",
    "Direction",
    "OptionsSnapshot",
    "ProbabilityInfo",
    "ScanResult",
    "Signal",
    "StrategyCategory",
    "StrategyDefinition",
]
