
from .market import IndicatorRow, PriceBar
from .options import (
    ImpliedVolatility,
    MetricReading,
    OptionsContext,
    OptionsSignal,
    SentimentSummary,
)
from .serialization import (
    serialize_options_context,
    serialize_scan_result,
    serialize_signal,
    serialize_signals,
)
from .signal import (
    CandidateSignal,
    Direction,
    OptionsSnapshot,
    ProbabilityInfo,
    ScanResult,
    Signal,
    StrategyCategory,
    StrategyDefinition,
)

__all__ = [
    "CandidateSignal",
    "Direction",
    "ImpliedVolatility",
    "IndicatorRow",
    "MetricReading",
    "OptionsContext",
    "OptionsSignal",
    "OptionsSnapshot",
    "PriceBar",
    "ProbabilityInfo",
    "ScanResult",
    "SentimentSummary",
    "Signal",
    "StrategyCategory",
    "StrategyDefinition",
    "serialize_options_context",
    "serialize_scan_result",
    "serialize_signal",
    "serialize_signals",
]
