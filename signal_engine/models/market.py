"""Price bars and indicator rows flowing through the pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional


@dataclass(frozen=True)
class PriceBar:
    """Single OHLCV observation. ``close`` doubles as the bar's price."""

    timestamp: datetime
    close: float
    open: Optional[float] = None
    high: Optional[float] = None
    low: Optional[float] = None
    volume: Optional[float] = None

    @property
    def price(self) -> float:
        return self.close

    @property
    def high_or_price(self) -> float:
        return self.close if self.high is None else self.high

    @property
    def low_or_price(self) -> float:
        return self.close if self.low is None else self.low

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "PriceBar":
        """Build a bar from a provider payload (accepts ``price`` for ``close``)."""

        close = payload.get("close", payload.get("price"))
        if close is None:
            raise ValueError("Price bar requires a close/price value")
        timestamp = payload.get("timestamp")
        if isinstance(timestamp, (int, float)):
            timestamp = datetime.fromtimestamp(timestamp / 1000.0)
        elif isinstance(timestamp, str):
            timestamp = datetime.fromisoformat(timestamp)

        def _opt(key: str) -> Optional[float]:
            value = payload.get(key)
            return None if value is None else float(value)

        return cls(
            timestamp=timestamp,
            close=float(close),
            open=_opt("open"),
            high=_opt("high"),
            low=_opt("low"),
            volume=_opt("volume"),
        )


def _freeze(mapping: Optional[Mapping[str, Optional[float]]]) -> Mapping[str, Optional[float]]:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class IndicatorRow:
    """A price bar decorated with the indicators known at that bar."""

    timestamp: datetime
    close: float
    open: Optional[float] = None
    high: Optional[float] = None
    low: Optional[float] = None
    volume: Optional[float] = None
    sma5: Optional[float] = None
    sma20: Optional[float] = None
    sma50: Optional[float] = None
    ema12: Optional[float] = None
    ema26: Optional[float] = None
    rsi: Optional[float] = None
    macd: Optional[float] = None
    macd_signal: Optional[float] = None
    macd_hist: Optional[float] = None
    upper_bb: Optional[float] = None
    lower_bb: Optional[float] = None
    bb_width: Optional[float] = None
    atr: Optional[float] = None
    averages: Mapping[str, Optional[float]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "averages", _freeze(self.averages))

    @property
    def price(self) -> float:
        return self.close

    @property
    def high_or_price(self) -> float:
        return self.close if self.high is None else self.high

    @property
    def low_or_price(self) -> float:
        return self.close if self.low is None else self.low

    def value(self, name: str) -> Optional[float]:
        """Look up an indicator by name, including non-default ``sma{n}``/``ema{n}``."""

        if name in _ROW_FIELDS and name != "averages":
            return getattr(self, name)
        return self.averages.get(name)

    def to_dict(self) -> Dict[str, Any]:
        payload = {name: getattr(self, name) for name in _ROW_FIELDS if name != "averages"}
        payload["timestamp"] = self.timestamp.isoformat() if self.timestamp else None
        payload.update(self.averages)
        return payload


_ROW_FIELDS = tuple(f.name for f in fields(IndicatorRow))


__all__ = ["IndicatorRow", "PriceBar"]
