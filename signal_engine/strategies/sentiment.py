"""Contrarian sentiment and market-breadth rules over the options context."""

from __future__ import annotations

from typing import Optional

from signal_engine.models.options import MetricReading
from signal_engine.models.signal import CandidateSignal, Direction

from .base import BaseRule, RuleContext, directional_signal, require


class MetricExtremeRule(BaseRule):
    """Contrarian call when a metric is flagged high and past ``high``, put when low and under ``low``."""

    def __init__(
        self,
        key: str,
        metric: str,
        *,
        high: float,
        low: float,
        high_confidence: float,
        low_confidence: float,
        label: Optional[str] = None,
        high_strategy: Optional[str] = None,
    ):
        super().__init__(key)
        self.metric = metric
        self.high = high
        self.low = low
        self.high_confidence = high_confidence
        self.low_confidence = low_confidence
        self.label = label or metric.upper()
        self.high_strategy = high_strategy

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        reading: MetricReading = getattr(context.options, self.metric)
        price = context.latest.price
        if reading.status == "high" and reading.value > self.high:
            return directional_signal(
                self.key, Direction.BUY_CALL, self.high_confidence, price,
                [f"{self.label} elevated at {reading.value:.2f}", "Contrarian bullish: fear is stretched"],
                best_strategy=self.high_strategy,
            )
        if reading.status == "low" and reading.value < self.low:
            return directional_signal(
                self.key, Direction.BUY_PUT, self.low_confidence, price,
                [f"{self.label} depressed at {reading.value:.2f}", "Contrarian bearish: complacency"],
            )
        return None


class OpenInterestRatioRule(BaseRule):
    key = "oi-pcr"
    high = 1.25
    low = 0.85
    confidence = 72.0

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        ratio = context.options.oi_put_call_ratio
        price = context.latest.price
        if ratio > self.high:
            return directional_signal(self.key, Direction.BUY_CALL, self.confidence, price, [
                f"Open-interest put/call ratio {ratio:.2f}",
                "Heavy put positioning",
            ])
        if ratio < self.low:
            return directional_signal(self.key, Direction.BUY_PUT, self.confidence, price, [
                f"Open-interest put/call ratio {ratio:.2f}",
                "Heavy call positioning",
            ])
        return None


class SentimentConsensusRule(BaseRule):
    """Follows the aggregate contrarian sentiment when it is decisive."""

    key = "sentiment-consensus"
    confidence_by_strength = {"strong": 85.0, "moderate": 75.0}

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        summary = context.options.sentiment
        confidence = self.confidence_by_strength.get(summary.strength)
        if confidence is None or summary.sentiment == "neutral":
            return None
        direction = Direction.BUY_CALL if summary.sentiment == "bullish" else Direction.BUY_PUT
        return directional_signal(self.key, direction, confidence, context.latest.price, [
            f"Options sentiment {summary.sentiment} ({summary.strength})",
            f"Bullish factors: {summary.bullish_factors}, bearish factors: {summary.bearish_factors}",
        ])


class OptionsFlowConfluenceRule(BaseRule):
    """Two or more one-sided interpretive signals, RSI not already stretched."""

    key = "options-flow-confluence"
    minimum = 2

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        signals = context.options.signals
        bullish = [s for s in signals if s.direction == "BULLISH"]
        bearish = [s for s in signals if s.direction == "BEARISH"]
        latest = context.latest
        rsi = latest.rsi
        if len(bullish) >= self.minimum and not bearish and (rsi is None or rsi < 70):
            confidence = min(95.0, sum(s.confidence for s in bullish) / len(bullish) + 5)
            return directional_signal(self.key, Direction.BUY_CALL, confidence, latest.price,
                                      [f"{len(bullish)} bullish options signals"] + [s.type for s in bullish])
        if len(bearish) >= self.minimum and not bullish and (rsi is None or rsi > 30):
            confidence = min(95.0, sum(s.confidence for s in bearish) / len(bearish) + 5)
            return directional_signal(self.key, Direction.BUY_PUT, confidence, latest.price,
                                      [f"{len(bearish)} bearish options signals"] + [s.type for s in bearish])
        return None


class FearGreedContrarianRule(BaseRule):
    key = "fear-greed-contrarian"

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        options = context.options
        price = context.latest.price
        if options.vix.status == "high" and options.pcr.status == "high":
            return directional_signal(self.key, Direction.BUY_CALL, 88.0, price, [
                f"VIX {options.vix.value:.1f} and PCR {options.pcr.value:.2f} both elevated",
                "Extreme fear",
            ])
        if options.vix.status == "low" and options.pcr.status == "low":
            return directional_signal(self.key, Direction.BUY_PUT, 84.0, price, [
                f"VIX {options.vix.value:.1f} and PCR {options.pcr.value:.2f} both depressed",
                "Extreme greed",
            ])
        return None


class TrinMomentumRule(BaseRule):
    """Breadth extreme confirmed by price on the right side of SMA5."""

    key = "trin-momentum"
    confidence = 77.0

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        latest = context.latest
        require(latest.sma5)
        trin = context.options.trin
        if trin.status == "high" and latest.price > latest.sma5:
            return directional_signal(self.key, Direction.BUY_CALL, self.confidence, latest.price, [
                f"TRIN oversold at {trin.value:.2f}",
                "Price reclaiming SMA5",
            ])
        if trin.status == "low" and latest.price < latest.sma5:
            return directional_signal(self.key, Direction.BUY_PUT, self.confidence, latest.price, [
                f"TRIN overbought at {trin.value:.2f}",
                "Price losing SMA5",
            ])
        return None


class BreadthDivergenceRule(BaseRule):
    """Price at a channel extreme that breadth does not support."""

    key = "breadth-divergence"
    confidence = 74.0

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        prior = context.window(context.indicators.channel_period, include_latest=False)
        price = context.latest.price
        trin = context.options.trin
        if trin.status == "high" and price >= max(row.high_or_price for row in prior):
            return directional_signal(self.key, Direction.BUY_PUT, self.confidence, price, [
                "Price at channel high while TRIN shows selling pressure",
                f"TRIN {trin.value:.2f}",
            ])
        if trin.status == "low" and price <= min(row.low_or_price for row in prior):
            return directional_signal(self.key, Direction.BUY_CALL, self.confidence, price, [
                "Price at channel low while TRIN shows buying pressure",
                f"TRIN {trin.value:.2f}",
            ])
        return None


__all__ = [
    "BreadthDivergenceRule",
    "FearGreedContrarianRule",
    "MetricExtremeRule",
    "OpenInterestRatioRule",
    "OptionsFlowConfluenceRule",
    "SentimentConsensusRule",
    "TrinMomentumRule",
]
