"""Technical indicators computed over an ordered price history.

All series helpers take a plain sequence of floats (``None`` allowed) and
return a list of the same length where positions without enough look-back
are ``None``. Nothing here raises for short input. Each output position is
derived only from the input at or before that position.
"""

from __future__ import annotations

import math
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from signal_engine.config.loader import IndicatorSettings
from signal_engine.errors import InsufficientDataError
from signal_engine.models.market import IndicatorRow, PriceBar

OptionalSeries = List[Optional[float]]

# Stand-in for a zero average loss in RSI. This is an approximation carried for
# behavioural parity, not the mathematical limit: with zero losses the RSI lands
# just below 100, and a perfectly flat series (zero gains too) reports 0.
RSI_ZERO_LOSS_EPSILON = 0.001


def _series(values: Sequence[Optional[float]]) -> pd.Series:
    return pd.Series(list(values), dtype=float)


def _optional(series: pd.Series) -> OptionalSeries:
    return [None if pd.isna(value) else float(value) for value in series]


def sma(values: Sequence[Optional[float]], period: int) -> OptionalSeries:
    """Trailing arithmetic mean; ``None`` before ``period`` points exist."""

    if period <= 0:
        raise ValueError("period must be positive")
    return _optional(_series(values).rolling(period, min_periods=period).mean())


def ema(values: Sequence[Optional[float]], period: int) -> OptionalSeries:
    """Exponential moving average seeded with the SMA of the first ``period`` points.

    Leading ``None`` values are skipped, so the seed lands ``period - 1`` places
    after the first defined value. ``Series.ewm(adjust=False)`` seeds from the
    first value instead, hence the explicit recurrence.
    """

    if period <= 0:
        raise ValueError("period must be positive")
    n = len(values)
    result: OptionalSeries = [None] * n
    start = next((i for i, value in enumerate(values) if value is not None), None)
    if start is None or n - start < period:
        return result

    seed_index = start + period - 1
    seed = _series(values[start : seed_index + 1])
    if seed.isna().any():
        return result

    k = 2.0 / (period + 1)
    current = float(seed.mean())
    result[seed_index] = current
    for i in range(seed_index + 1, n):
        value = values[i]
        if value is None:
            continue
        current = (value - current) * k + current
        result[i] = current
    return result


def _rsi_value(avg_gain: float, avg_loss: float) -> float:
    rs = avg_gain / (avg_loss if avg_loss != 0 else RSI_ZERO_LOSS_EPSILON)
    return 100.0 - (100.0 / (1.0 + rs))


def rsi(values: Sequence[Optional[float]], period: int = 14) -> OptionalSeries:
    """Wilder RSI. First value at index ``period``."""

    n = len(values)
    result: OptionalSeries = [None] * n
    if period <= 0 or n <= period:
        return result

    # a gap on either side of a step counts as no change
    change = _series(values).diff().fillna(0.0)
    gains = change.clip(lower=0.0)
    losses = (-change).clip(lower=0.0)

    avg_gain = float(gains.iloc[1 : period + 1].mean())
    avg_loss = float(losses.iloc[1 : period + 1].mean())
    result[period] = _rsi_value(avg_gain, avg_loss)

    # Wilder smoothing, seeded with the simple mean above
    tail = zip(gains.iloc[period + 1 :], losses.iloc[period + 1 :])
    for i, (gain, loss) in enumerate(tail, period + 1):
        avg_gain = (avg_gain * (period - 1) + gain) / period
        avg_loss = (avg_loss * (period - 1) + loss) / period
        result[i] = _rsi_value(avg_gain, avg_loss)
    return result


def macd(
    values: Sequence[Optional[float]],
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
) -> Tuple[OptionalSeries, OptionalSeries, OptionalSeries]:
    """Return (macd line, signal line, histogram)."""

    fast = ema(values, fast_period)
    slow = ema(values, slow_period)
    line: OptionalSeries = [
        f - s if f is not None and s is not None else None for f, s in zip(fast, slow)
    ]
    signal = ema(line, signal_period)
    histogram: OptionalSeries = [
        m - s if m is not None and s is not None else None for m, s in zip(line, signal)
    ]
    return line, signal, histogram


def bollinger_bands(
    values: Sequence[Optional[float]],
    period: int = 20,
    std_dev_multiplier: float = 2.0,
) -> Tuple[OptionalSeries, OptionalSeries, OptionalSeries, OptionalSeries]:
    """Return (middle, upper, lower, width) using the population standard deviation."""

    if period <= 0:
        raise ValueError("period must be positive")
    window = _series(values).rolling(period, min_periods=period)
    middle = window.mean()
    band = window.std(ddof=0) * std_dev_multiplier
    upper = middle + band
    lower = middle - band
    width = (upper - lower) / middle.where(middle != 0)
    return _optional(middle), _optional(upper), _optional(lower), _optional(width)


def true_range(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
) -> pd.Series:
    """Per-bar true range; the first bar has no previous close and uses high - low."""

    high, low, close = _series(highs), _series(lows), _series(closes)
    previous_close = close.shift(1)
    high_low = high - low
    high_close = (high - previous_close).abs()
    low_close = (low - previous_close).abs()
    return pd.concat([high_low, high_close, low_close], axis=1).max(axis=1)


def atr(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
    period: int = 14,
) -> OptionalSeries:
    """Average true range; first value at index ``period - 1``, Wilder smoothed after.

    The seed is the simple mean of the first ``period`` true ranges, which
    ``Series.ewm(alpha=1 / period)`` cannot express, so the smoothing is a loop.
    """

    n = len(closes)
    result: OptionalSeries = [None] * n
    if period <= 0 or n < max(period, 2):
        return result

    ranges = true_range(highs, lows, closes)
    current = float(ranges.iloc[:period].mean())
    result[period - 1] = current
    for i, value in enumerate(ranges.iloc[period:], period):
        current = (current * (period - 1) + value) / period
        result[i] = current
    return result


def realized_volatility(closes: Iterable[float], bars_per_year: float) -> Optional[float]:
    """Annualised standard deviation of log returns."""

    series = pd.Series(list(closes), dtype=float)
    if len(series) < 3:
        return None
    log_returns = np.log(series / series.shift(1)).dropna()
    if log_returns.empty:
        return None
    std = float(log_returns.std())
    if not math.isfinite(std):
        return None
    return std * math.sqrt(bars_per_year)


def require_history(rows: Sequence[object], minimum: int, purpose: str) -> None:
    """Raise :class:`InsufficientDataError` when fewer than ``minimum`` rows exist."""

    if len(rows) < minimum:
        raise InsufficientDataError(f"{purpose} needs {minimum} bars, got {len(rows)}")


_NAMED_AVERAGES = ("sma5", "sma20", "sma50", "ema12", "ema26")


class IndicatorEngine:
    """Builds immutable :class:`IndicatorRow` values from a price history."""

    def __init__(self, settings: Optional[IndicatorSettings] = None):
        self.settings = settings or IndicatorSettings()

    def compute(self, history: Sequence[PriceBar]) -> List[IndicatorRow]:
        if not history:
            return []
        cfg = self.settings
        closes = [bar.close for bar in history]
        highs = [bar.high_or_price for bar in history]
        lows = [bar.low_or_price for bar in history]

        averages: Dict[str, OptionalSeries] = {}
        for period in sorted(set(cfg.sma_periods)):
            averages[f"sma{period}"] = sma(closes, period)
        for period in sorted(set(cfg.ema_periods) | {cfg.macd_fast, cfg.macd_slow}):
            averages[f"ema{period}"] = ema(closes, period)

        rsi_values = rsi(closes, cfg.rsi_period)
        macd_line, macd_signal, macd_hist = macd(closes, cfg.macd_fast, cfg.macd_slow, cfg.macd_signal)
        _, upper, lower, width = bollinger_bands(closes, cfg.bb_period, cfg.bb_std_dev)
        atr_values = atr(highs, lows, closes, cfg.atr_period)

        rows: List[IndicatorRow] = []
        for i, bar in enumerate(history):
            named = {key: averages[key][i] for key in _NAMED_AVERAGES if key in averages}
            extra = {key: series[i] for key, series in averages.items() if key not in _NAMED_AVERAGES}
            rows.append(
                IndicatorRow(
                    timestamp=bar.timestamp,
                    close=bar.close,
                    open=bar.open,
                    high=bar.high,
                    low=bar.low,
                    volume=bar.volume,
                    rsi=rsi_values[i],
                    macd=macd_line[i],
                    macd_signal=macd_signal[i],
                    macd_hist=macd_hist[i],
                    upper_bb=upper[i],
                    lower_bb=lower[i],
                    bb_width=width[i],
                    atr=atr_values[i],
                    averages=extra,
                    **named,
                )
            )
        return rows


def bars_from_frame(frame: pd.DataFrame) -> List[PriceBar]:
    """Convert an OHLCV DataFrame (``Close`` or ``close`` columns) into price bars."""

    if frame.empty:
        return []
    normalized = frame.rename(columns={col: str(col).lower() for col in frame.columns})
    if "close" not in normalized and "price" in normalized:
        normalized = normalized.rename(columns={"price": "close"})
    if "close" not in normalized:
        raise ValueError("Price frame requires a close column")

    if "timestamp" in normalized:
        timestamps = pd.to_datetime(normalized["timestamp"])
    else:
        timestamps = pd.to_datetime(normalized.index)

    def _column(name: str) -> List[Optional[float]]:
        if name not in normalized:
            return [None] * len(normalized)
        return [None if pd.isna(value) else float(value) for value in normalized[name]]

    opens, highs, lows, volumes = (_column(name) for name in ("open", "high", "low", "volume"))
    return [
        PriceBar(
            timestamp=pd.Timestamp(ts).to_pydatetime(),
            close=float(close),
            open=opens[i],
            high=highs[i],
            low=lows[i],
            volume=volumes[i],
        )
        for i, (ts, close) in enumerate(zip(timestamps, normalized["close"]))
    ]


def rows_to_frame(rows: Sequence[IndicatorRow]) -> pd.DataFrame:
    """Tabulate indicator rows, indexed by timestamp."""

    if not rows:
        return pd.DataFrame()
    frame = pd.DataFrame([row.to_dict() for row in rows])
    return frame.set_index("timestamp")


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
