"""Rules driven by the scan's Monte Carlo terminal-price distribution."""

from __future__ import annotations

from typing import Optional

from signal_engine.models.signal import CandidateSignal, Direction

from .base import BaseRule, RuleContext, directional_signal, premium_signal, require


class MonteCarloRule(BaseRule):
    key = "monte-carlo"
    requires_simulation = True
    threshold = 0.65

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        result = context.simulation()
        price = context.latest.price
        pct = result.percentiles
        if result.probability_above > self.threshold:
            p = result.probability_above
            return directional_signal(
                self.key, Direction.BUY_CALL, round(p * 100), price,
                [f"{p * 100:.1f}% of {result.path_count} paths finish higher",
                 f"Median terminal price {pct.p50:.2f}"],
                target=pct.p75, stop=pct.p25,
            )
        if result.probability_below > self.threshold:
            p = result.probability_below
            return directional_signal(
                self.key, Direction.BUY_PUT, round(p * 100), price,
                [f"{p * 100:.1f}% of {result.path_count} paths finish lower",
                 f"Median terminal price {pct.p50:.2f}"],
                target=pct.p25, stop=pct.p75,
            )
        return None


class MonteCarloTrendRule(BaseRule):
    """Simulated edge agreeing with trend and MACD momentum."""

    key = "mc-trend-confluence"
    requires_simulation = True
    threshold = 0.55
    bonus = 25

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        latest = context.latest
        require(latest.sma20, latest.macd_hist)
        result = context.simulation()
        if result.probability_above > self.threshold and latest.price > latest.sma20 and latest.macd_hist > 0:
            confidence = min(95, round(result.probability_above * 100) + self.bonus)
            return directional_signal(self.key, Direction.BUY_CALL, confidence, latest.price, [
                f"P(up) {result.probability_above:.2f} with price above SMA20",
                "MACD histogram positive",
            ])
        if result.probability_below > self.threshold and latest.price < latest.sma20 and latest.macd_hist < 0:
            confidence = min(95, round(result.probability_below * 100) + self.bonus)
            return directional_signal(self.key, Direction.BUY_PUT, confidence, latest.price, [
                f"P(down) {result.probability_below:.2f} with price below SMA20",
                "MACD histogram negative",
            ])
        return None


class ExpectedMoveFadeRule(BaseRule):
    """Price stretched from SMA20 by more than the simulated interquartile range."""

    key = "expected-move-fade"
    requires_simulation = True
    confidence = 76.0

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        latest = context.latest
        require(latest.sma20)
        pct = context.simulation().percentiles
        band = pct.p75 - pct.p25
        if band <= 0:
            return None
        stretch = latest.price - latest.sma20
        if stretch > band:
            return directional_signal(
                self.key, Direction.BUY_PUT, self.confidence, latest.price,
                [f"Price {stretch:.2f} above SMA20 exceeds expected move {band:.2f}"],
                target=latest.sma20,
            )
        if -stretch > band:
            return directional_signal(
                self.key, Direction.BUY_CALL, self.confidence, latest.price,
                [f"Price {-stretch:.2f} below SMA20 exceeds expected move {band:.2f}"],
                target=latest.sma20,
            )
        return None


class TailAsymmetryRule(BaseRule):
    """One simulated tail much longer than the other."""

    key = "tail-asymmetry"
    requires_simulation = True
    ratio = 1.5
    confidence = 75.0

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        price = context.latest.price
        pct = context.simulation().percentiles
        downside = price - pct.p10
        upside = pct.p90 - price
        if downside <= 0 or upside <= 0:
            return None
        if downside > self.ratio * upside:
            return directional_signal(self.key, Direction.BUY_PUT, self.confidence, price, [
                f"Downside tail {downside:.2f} vs upside {upside:.2f}",
            ], target=pct.p10)
        if upside > self.ratio * downside:
            return directional_signal(self.key, Direction.BUY_CALL, self.confidence, price, [
                f"Upside tail {upside:.2f} vs downside {downside:.2f}",
            ], target=pct.p90)
        return None


class VolatilityPremiumRule(BaseRule):
    """ATR compared with the half interquartile move implied by the simulation."""

    key = "mc-volatility-premium"
    requires_simulation = True

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        latest = context.latest
        require(latest.atr)
        pct = context.simulation().percentiles
        implied_move = (pct.p75 - pct.p25) / 2
        if implied_move <= 0:
            return None
        if latest.atr > 2 * implied_move:
            return premium_signal(self.key, Direction.BUY_OPTIONS, 76.0, latest.price, [
                f"ATR {latest.atr:.4f} exceeds twice the simulated move {implied_move:.4f}",
                "Options underpricing realized movement",
            ], best_strategy="STRADDLE")
        if latest.atr < 0.25 * implied_move:
            return premium_signal(self.key, Direction.SELL_OPTIONS, 74.0, latest.price, [
                f"ATR {latest.atr:.4f} well below simulated move {implied_move:.4f}",
                "Options overpricing realized movement",
            ], best_strategy="IRON_CONDOR")
        return None


__all__ = [
    "ExpectedMoveFadeRule",
    "MonteCarloRule",
    "MonteCarloTrendRule",
    "TailAsymmetryRule",
    "VolatilityPremiumRule",
]
