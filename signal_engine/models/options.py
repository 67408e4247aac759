from __future__ import annotations

from typing import Literal, Tuple

from pydantic import BaseModel, ConfigDict, Field

MetricStatus = Literal["high", "low", "normal"]


class MetricReading(BaseModel):
    """A synthesized market metric with its threshold classification."""

    model_config = ConfigDict(frozen=True)

    value: float
    status: MetricStatus = "normal"


class ImpliedVolatility(MetricReading):
    percentile: float
    term_structure: float = 0.0


class OptionsSignal(BaseModel):
    """Interpretive tag derived from the options context."""

    model_config = ConfigDict(frozen=True)

    type: str
    direction: str
    strength: Literal["weak", "moderate", "strong"]
    description: str
    confidence: float


class SentimentSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    sentiment: Literal["bullish", "bearish", "neutral"] = "neutral"
    strength: Literal["weak", "moderate", "strong"] = "weak"
    bullish_factors: int = 0
    bearish_factors: int = 0


class OptionsContext(BaseModel):
    """Options-market metrics for one asset inside one 15-minute bucket."""

    model_config = ConfigDict(frozen=True)

    asset: str
    time_bucket: int
    iv: ImpliedVolatility
    pcr: MetricReading
    vix: MetricReading
    trin: MetricReading
    skew: MetricReading
    gamma_exposure: float
    oi_put_call_ratio: float
    signals: Tuple[OptionsSignal, ...] = Field(default_factory=tuple)
    sentiment: SentimentSummary = Field(default_factory=SentimentSummary)


__all__ = [
    "ImpliedVolatility",
    "MetricReading",
    "MetricStatus",
    "OptionsContext",
    "OptionsSignal",
    "SentimentSummary",
]
