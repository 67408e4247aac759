"""Rules combining indicators with options metrics, plus asset-specific setups."""

from __future__ import annotations

from typing import Optional

from signal_engine.models.signal import CandidateSignal, Direction

from .base import (
    BaseRule,
    RuleContext,
    crossed_above,
    crossed_below,
    directional_signal,
    premium_signal,
    require,
)


class VixRsiConfluenceRule(BaseRule):
    key = "vix-extreme"

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        latest = context.latest
        require(latest.rsi)
        vix = context.options.vix
        if vix.status == "high" and latest.rsi < 40:
            return directional_signal(self.key, Direction.BUY_CALL, 82.0, latest.price, [
                f"VIX elevated at {vix.value:.1f}",
                f"RSI washed out at {latest.rsi:.1f}",
            ])
        if vix.status == "low" and latest.rsi > 60:
            return directional_signal(self.key, Direction.BUY_PUT, 78.0, latest.price, [
                f"VIX complacent at {vix.value:.1f}",
                f"RSI extended at {latest.rsi:.1f}",
            ])
        return None


class SqueezeBreakoutRule(BaseRule):
    """Band break on the bar right after a width squeeze."""

    key = "squeeze-breakout"
    lookback = 20
    confidence = 82.0

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        prior = context.window(self.lookback, include_latest=False)
        widths = [row.bb_width for row in prior]
        latest = context.latest
        require(*widths, latest.upper_bb, latest.lower_bb)
        if widths[-1] > min(widths):
            return None
        if latest.price > latest.upper_bb:
            return directional_signal(self.key, Direction.BUY_CALL, self.confidence, latest.price, [
                "Bollinger squeeze resolved upward",
                f"Close above upper band ({latest.upper_bb:.2f})",
            ])
        if latest.price < latest.lower_bb:
            return directional_signal(self.key, Direction.BUY_PUT, self.confidence, latest.price, [
                "Bollinger squeeze resolved downward",
                f"Close below lower band ({latest.lower_bb:.2f})",
            ])
        return None


class RsiIvConfluenceRule(BaseRule):
    """RSI extreme while options are cheap."""

    key = "rsi-iv-confluence"
    confidence = 88.0

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        latest = context.latest
        require(latest.rsi)
        iv = context.options.iv
        if iv.status != "low":
            return None
        if latest.rsi < 30:
            return directional_signal(self.key, Direction.BUY_CALL, self.confidence, latest.price, [
                f"RSI oversold at {latest.rsi:.1f}",
                f"IV cheap at {iv.percentile:.0f}th percentile",
            ])
        if latest.rsi > 70:
            return directional_signal(self.key, Direction.BUY_PUT, self.confidence, latest.price, [
                f"RSI overbought at {latest.rsi:.1f}",
                f"IV cheap at {iv.percentile:.0f}th percentile",
            ])
        return None


class MacdPcrConfluenceRule(BaseRule):
    key = "macd-pcr-confluence"
    confidence = 83.0

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        prev, latest = context.pair()
        require(prev.macd, prev.macd_signal, latest.macd, latest.macd_signal)
        pcr = context.options.pcr.value
        if crossed_above(prev.macd, prev.macd_signal, latest.macd, latest.macd_signal) and pcr > 1.0:
            return directional_signal(self.key, Direction.BUY_CALL, self.confidence, latest.price, [
                "MACD bullish cross",
                f"Put/call ratio {pcr:.2f} shows hedged positioning",
            ])
        if crossed_below(prev.macd, prev.macd_signal, latest.macd, latest.macd_signal) and pcr < 0.9:
            return directional_signal(self.key, Direction.BUY_PUT, self.confidence, latest.price, [
                "MACD bearish cross",
                f"Put/call ratio {pcr:.2f} shows call chasing",
            ])
        return None


class CryptoIronCondorRule(BaseRule):
    key = "crypto-iron-condor"
    asset = "BTC/USD"

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        iv = context.options.iv
        if context.asset.upper() != self.asset or iv.percentile <= 85:
            return None
        return premium_signal(self.key, Direction.SELL_OPTIONS, 85.0, context.latest.price, [
            f"Bitcoin IV at {iv.percentile:.0f}th percentile",
            "Sell wings around the expected range",
        ], best_strategy="IRON_CONDOR")


class ForexStraddleRule(BaseRule):
    key = "forex-straddle"
    asset = "EUR/USD"

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        iv = context.options.iv
        if context.asset.upper() != self.asset or iv.percentile >= 15:
            return None
        return premium_signal(self.key, Direction.BUY_OPTIONS, 80.0, context.latest.price, [
            f"EUR/USD IV at {iv.percentile:.0f}th percentile",
            "Unusually quiet forex volatility",
        ], best_strategy="STRADDLE")


class GoldSafeHavenRule(BaseRule):
    key = "gold-safe-haven"
    asset = "XAU/USD"

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        options = context.options
        if context.asset.upper() != self.asset or options.vix.value <= 25 or options.iv.percentile >= 50:
            return None
        return directional_signal(self.key, Direction.BUY_CALL, 80.0, context.latest.price, [
            f"VIX elevated at {options.vix.value:.1f}",
            f"Gold IV moderate at {options.iv.percentile:.0f}th percentile",
            "Safe-haven demand",
        ])


__all__ = [
    "CryptoIronCondorRule",
    "ForexStraddleRule",
    "GoldSafeHavenRule",
    "MacdPcrConfluenceRule",
    "RsiIvConfluenceRule",
    "SqueezeBreakoutRule",
    "VixRsiConfluenceRule",
]
