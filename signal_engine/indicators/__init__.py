"""Technical indicator engine."""

from .engine import (
    IndicatorEngine,
    RSI_ZERO_LOSS_EPSILON,
    atr,
    bars_from_frame,
    bollinger_bands,
    ema,
    macd,
    realized_volatility,
    require_history,
    rows_to_frame,
    rsi,
    sma,
    true_range,
)

__all__ = [
    "IndicatorEngine",
    "RSI_ZERO_LOSS_EPSILON",
    "atr",
    "bars_from_frame",
    "bollinger_bands",
    "ema",
    "macd",
    "realized_volatility",
    "require_history",
    "rows_to_frame",
    "rsi",
    "sma",
    "true_range",
]
