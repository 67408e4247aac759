"""Rules keyed on implied and realized volatility."""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np

from signal_engine.indicators.engine import realized_volatility
from signal_engine.models.market import IndicatorRow
from signal_engine.models.signal import CandidateSignal, Direction

from .base import BaseRule, RuleContext, directional_signal, premium_signal, require

SECONDS_PER_YEAR = 365 * 24 * 60 * 60


class IvRankRule(BaseRule):
    """IV percentile at either end of its historical range."""

    def __init__(self, key: str, *, high: bool, threshold: float, confidence: float):
        super().__init__(key)
        self.high = high
        self.threshold = threshold
        self.confidence = confidence

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        iv = context.options.iv
        price = context.latest.price
        if self.high and iv.percentile > self.threshold:
            return premium_signal(self.key, Direction.SELL_OPTIONS, self.confidence, price, [
                f"IV Rank: {iv.percentile:.0f}th percentile",
                f"Current IV: {iv.value * 100:.1f}%",
                "Recommend: Iron Condor or Credit Spread",
            ], best_strategy="IRON_CONDOR")
        if not self.high and iv.percentile < self.threshold:
            return premium_signal(self.key, Direction.BUY_OPTIONS, self.confidence, price, [
                f"IV Rank: {iv.percentile:.0f}th percentile",
                f"Current IV: {iv.value * 100:.1f}%",
                "Recommend: Long Straddle or Strangle",
            ], best_strategy="STRADDLE")
        return None


def _widths(rows: Sequence[IndicatorRow]):
    widths = [row.bb_width for row in rows]
    require(*widths)
    return widths


class BollingerSqueezeRule(BaseRule):
    """Band width at its narrowest in the lookback window."""

    key = "bb-squeeze"
    lookback = 20
    confidence = 76.0

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        widths = _widths(context.window(self.lookback))
        if widths[-1] > min(widths[:-1]):
            return None
        return premium_signal(self.key, Direction.BUY_OPTIONS, self.confidence, context.latest.price, [
            f"Bollinger width {widths[-1]:.4f} is a {self.lookback}-bar low",
            "Volatility compression usually precedes expansion",
        ], best_strategy="STRADDLE")


class VolatilityBreakoutRule(BaseRule):
    """Band width expanding well beyond its recent mean while ATR rises."""

    key = "volatility-breakout"
    lookback = 20
    expansion = 1.5
    confidence = 78.0

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        widths = _widths(context.window(self.lookback, include_latest=False))
        prev, latest = context.pair()
        require(latest.bb_width, latest.atr, prev.atr)
        mean_width = float(np.mean(widths))
        if mean_width <= 0 or latest.bb_width < self.expansion * mean_width or latest.atr <= prev.atr:
            return None
        return premium_signal(self.key, Direction.BUY_OPTIONS, self.confidence, latest.price, [
            f"Bollinger width {latest.bb_width / mean_width:.1f}x its {self.lookback}-bar mean",
            "ATR rising",
        ], best_strategy="STRANGLE")


class VolatilityCrushRule(BaseRule):
    """Rich IV while realized ranges are already contracting."""

    key = "volatility-crush"
    min_percentile = 70.0
    confidence = 76.0

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        prev, latest = context.pair()
        require(prev.bb_width, latest.bb_width, prev.atr, latest.atr)
        iv = context.options.iv
        if iv.percentile > self.min_percentile and latest.bb_width < prev.bb_width and latest.atr < prev.atr:
            return premium_signal(self.key, Direction.SELL_OPTIONS, self.confidence, latest.price, [
                f"IV at {iv.percentile:.0f}th percentile",
                "Bollinger width and ATR contracting",
            ], best_strategy="CREDIT_SPREAD")
        return None


class IvExpansionRule(BaseRule):
    """Cheap IV while ATR has started to climb."""

    key = "iv-expansion"
    max_percentile = 30.0
    lookback = 5
    confidence = 74.0

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        window = context.window(self.lookback + 1)
        earlier, latest = window[0], window[-1]
        require(earlier.atr, latest.atr)
        if earlier.atr <= 0:
            return None
        iv = context.options.iv
        if iv.percentile < self.max_percentile and latest.atr > earlier.atr:
            return premium_signal(self.key, Direction.BUY_OPTIONS, self.confidence, latest.price, [
                f"IV at {iv.percentile:.0f}th percentile",
                f"ATR up {(latest.atr / earlier.atr - 1) * 100:.1f}% over {self.lookback} bars",
            ], best_strategy="STRADDLE")
        return None


def bars_per_year(rows: Sequence[IndicatorRow]) -> Optional[float]:
    """Annualisation factor inferred from the median bar spacing."""

    deltas = [
        (b.timestamp - a.timestamp).total_seconds()
        for a, b in zip(rows, rows[1:])
        if a.timestamp is not None and b.timestamp is not None
    ]
    deltas = [delta for delta in deltas if delta > 0]
    if not deltas:
        return None
    return SECONDS_PER_YEAR / float(np.median(deltas))


class IvRealizedSpreadRule(BaseRule):
    """Implied volatility compared with realized volatility of recent closes."""

    key = "iv-hv-spread"
    lookback = 30
    rich = 1.3
    cheap = 0.7
    confidence = 78.0

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        window = context.window(self.lookback)
        annualisation = bars_per_year(window)
        realized = realized_volatility([row.price for row in window], annualisation) if annualisation else None
        require(realized)
        if realized <= 0:
            return None
        implied = context.options.iv.value
        ratio = implied / realized
        drivers = [f"IV {implied * 100:.1f}% vs HV {realized * 100:.1f}%", f"IV/HV ratio {ratio:.2f}"]
        price = context.latest.price
        if ratio > self.rich:
            return premium_signal(self.key, Direction.SELL_OPTIONS, self.confidence, price, drivers,
                                  best_strategy="IRON_CONDOR")
        if ratio < self.cheap:
            return premium_signal(self.key, Direction.BUY_OPTIONS, self.confidence, price, drivers,
                                  best_strategy="STRADDLE")
        return None


class GammaExposureRule(BaseRule):
    key = "gamma-exposure"
    threshold = 30000.0

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        gex = context.options.gamma_exposure
        price = context.latest.price
        if gex < -self.threshold:
            return premium_signal(self.key, Direction.BUY_OPTIONS, 76.0, price, [
                f"Dealer gamma exposure {gex:,.0f}",
                "Negative gamma amplifies moves",
            ], best_strategy="STRANGLE")
        if gex > self.threshold:
            return premium_signal(self.key, Direction.SELL_OPTIONS, 74.0, price, [
                f"Dealer gamma exposure {gex:,.0f}",
                "Positive gamma pins price",
            ], best_strategy="IRON_BUTTERFLY")
        return None


class VixTermStructureRule(BaseRule):
    key = "vix-term-structure"
    threshold = 0.04

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        term = context.options.iv.term_structure
        price = context.latest.price
        if term < -self.threshold:
            return directional_signal(self.key, Direction.BUY_PUT, 78.0, price, [
                f"Inverted term structure ({term:+.3f})",
                "Near-term stress priced above longer dated",
            ])
        if term > self.threshold and context.options.vix.status != "high":
            return directional_signal(self.key, Direction.BUY_CALL, 72.0, price, [
                f"Upward sloping term structure ({term:+.3f})",
                f"VIX calm at {context.options.vix.value:.1f}",
            ])
        return None


class SkewAnalysisRule(BaseRule):
    """Contrarian read of the put/call volatility skew."""

    key = "skew-analysis"
    threshold = 0.08
    confidence = 74.0

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        skew = context.options.skew.value
        price = context.latest.price
        if skew < -self.threshold:
            return directional_signal(self.key, Direction.BUY_CALL, self.confidence, price, [
                f"Put skew {skew:+.3f}: downside hedging crowded",
            ])
        if skew > self.threshold:
            return directional_signal(self.key, Direction.BUY_PUT, self.confidence, price, [
                f"Call skew {skew:+.3f}: upside chasing",
            ])
        return None


class VolatilityDivergenceRule(BaseRule):
    """New channel extreme made without support from implied volatility."""

    key = "vol-divergence"
    max_percentile = 40.0
    confidence = 72.0

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        prior = context.window(context.indicators.channel_period, include_latest=False)
        price = context.latest.price
        percentile = context.options.iv.percentile
        if percentile >= self.max_percentile:
            return None
        if price > max(row.high_or_price for row in prior):
            return directional_signal(self.key, Direction.BUY_PUT, self.confidence, price, [
                "New high with subdued implied volatility",
                f"IV percentile {percentile:.0f}",
            ])
        if price < min(row.low_or_price for row in prior):
            return directional_signal(self.key, Direction.BUY_CALL, self.confidence, price, [
                "New low without a volatility spike",
                f"IV percentile {percentile:.0f}",
            ])
        return None


__all__ = [
    "BollingerSqueezeRule",
    "GammaExposureRule",
    "IvExpansionRule",
    "IvRankRule",
    "IvRealizedSpreadRule",
    "SkewAnalysisRule",
    "VixTermStructureRule",
    "VolatilityBreakoutRule",
    "VolatilityCrushRule",
    "VolatilityDivergenceRule",
    "bars_per_year",
]
