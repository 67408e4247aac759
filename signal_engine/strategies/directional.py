"""Price and indicator driven rules producing BUY_CALL / BUY_PUT candidates."""

from __future__ import annotations

from typing import Optional

from signal_engine.models.signal import CandidateSignal, Direction

from .base import BaseRule, RuleContext, crossed_above, crossed_below, directional_signal, require


class BollingerBreakoutRule(BaseRule):
    """Close crossing strictly outside the Bollinger band."""

    key = "breakout"
    confidence = 85.0

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        prev, latest = context.pair()
        require(prev.upper_bb, prev.lower_bb, latest.upper_bb, latest.lower_bb)
        price = latest.price
        if crossed_above(prev.price, prev.upper_bb, price, latest.upper_bb):
            return directional_signal(self.key, Direction.BUY_CALL, self.confidence, price, [
                f"Price broke above upper Bollinger Band ({latest.upper_bb:.2f})",
                f"RSI: {latest.rsi:.1f}" if latest.rsi is not None else "RSI: n/a",
                "Breakout with momentum",
            ])
        if crossed_below(prev.price, prev.lower_bb, price, latest.lower_bb):
            return directional_signal(self.key, Direction.BUY_PUT, self.confidence, price, [
                f"Price broke below lower Bollinger Band ({latest.lower_bb:.2f})",
                f"RSI: {latest.rsi:.1f}" if latest.rsi is not None else "RSI: n/a",
                "Breakdown with momentum",
            ])
        return None


class MovingAverageCrossoverRule(BaseRule):
    """Fast series crossing a slow series between the last two bars."""

    def __init__(self, key: str, fast: str, slow: str, confidence: float):
        super().__init__(key)
        self.fast = fast
        self.slow = slow
        self.confidence = confidence

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        prev, latest = context.pair()
        values = (prev.value(self.fast), prev.value(self.slow), latest.value(self.fast), latest.value(self.slow))
        require(*values)
        if crossed_above(*values):
            return directional_signal(self.key, Direction.BUY_CALL, self.confidence, latest.price, [
                f"{self.fast.upper()} crossed above {self.slow.upper()}",
                f"{self.fast.upper()}: {values[2]:.2f}, {self.slow.upper()}: {values[3]:.2f}",
            ])
        if crossed_below(*values):
            return directional_signal(self.key, Direction.BUY_PUT, self.confidence, latest.price, [
                f"{self.fast.upper()} crossed below {self.slow.upper()}",
                f"{self.fast.upper()}: {values[2]:.2f}, {self.slow.upper()}: {values[3]:.2f}",
            ])
        return None


class RsiExtremeRule(BaseRule):
    key = "rsi-extreme"
    oversold = 30.0
    overbought = 70.0
    confidence = 80.0

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        latest = context.latest
        require(latest.rsi)
        if latest.rsi < self.oversold:
            return directional_signal(self.key, Direction.BUY_CALL, self.confidence, latest.price, [
                f"RSI oversold at {latest.rsi:.1f}",
                "Expecting mean reversion bounce",
            ])
        if latest.rsi > self.overbought:
            return directional_signal(self.key, Direction.BUY_PUT, self.confidence, latest.price, [
                f"RSI overbought at {latest.rsi:.1f}",
                "Expecting mean reversion pullback",
            ])
        return None


class MacdCrossRule(BaseRule):
    key = "macd-cross"
    confidence = 75.0

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        prev, latest = context.pair()
        require(prev.macd, prev.macd_signal, latest.macd, latest.macd_signal)
        if crossed_above(prev.macd, prev.macd_signal, latest.macd, latest.macd_signal):
            return directional_signal(self.key, Direction.BUY_CALL, self.confidence, latest.price, [
                "MACD crossed above signal line",
                f"MACD: {latest.macd:.4f}, Signal: {latest.macd_signal:.4f}",
            ])
        if crossed_below(prev.macd, prev.macd_signal, latest.macd, latest.macd_signal):
            return directional_signal(self.key, Direction.BUY_PUT, self.confidence, latest.price, [
                "MACD crossed below signal line",
                f"MACD: {latest.macd:.4f}, Signal: {latest.macd_signal:.4f}",
            ])
        return None


class BollingerBounceRule(BaseRule):
    """Re-entry into the bands after a close outside, confirmed by RSI turning."""

    key = "bollinger-bounce"
    confidence = 78.0

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        prev, latest = context.pair()
        require(prev.lower_bb, prev.upper_bb, latest.lower_bb, latest.upper_bb, prev.rsi, latest.rsi)
        if prev.price <= prev.lower_bb and latest.price > latest.lower_bb and latest.rsi > prev.rsi:
            return directional_signal(self.key, Direction.BUY_CALL, self.confidence, latest.price, [
                "Price bounced back inside the lower Bollinger Band",
                f"RSI turning up ({prev.rsi:.1f} -> {latest.rsi:.1f})",
            ])
        if prev.price >= prev.upper_bb and latest.price < latest.upper_bb and latest.rsi < prev.rsi:
            return directional_signal(self.key, Direction.BUY_PUT, self.confidence, latest.price, [
                "Price fell back inside the upper Bollinger Band",
                f"RSI turning down ({prev.rsi:.1f} -> {latest.rsi:.1f})",
            ])
        return None


class TurtleTradingRule(BaseRule):
    """Price within a small percentage of the trailing channel extreme."""

    key = "turtle-trading"
    proximity_pct = 0.25
    confidence = 80.0

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        window = context.window(context.indicators.channel_period)
        price = context.latest.price
        highest = max(row.high_or_price for row in window)
        lowest = min(row.low_or_price for row in window)
        to_high = (highest - price) / price * 100
        to_low = (price - lowest) / price * 100
        period = len(window)

        if to_high <= self.proximity_pct:
            return directional_signal(
                self.key, Direction.BUY_CALL, self.confidence, price,
                [f"Price near {period}-bar high ({highest:.2f})", f"Distance to high: {to_high:.2f}%"],
                target=highest * 1.01, stop=highest * 0.985,
            )
        if to_low <= self.proximity_pct:
            return directional_signal(
                self.key, Direction.BUY_PUT, self.confidence, price,
                [f"Price near {period}-bar low ({lowest:.2f})", f"Distance to low: {to_low:.2f}%"],
                target=lowest * 0.99, stop=lowest * 1.015,
            )
        return None


class MeanReversionRule(BaseRule):
    """Stretched distance from the 20-bar mean with RSI agreeing."""

    key = "mean-reversion"
    deviation_pct = 1.0
    confidence = 76.0

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        latest = context.latest
        require(latest.sma20, latest.rsi)
        deviation = (latest.price - latest.sma20) / latest.sma20 * 100
        if deviation <= -self.deviation_pct and latest.rsi < 40:
            return directional_signal(
                self.key, Direction.BUY_CALL, self.confidence, latest.price,
                [f"Price {abs(deviation):.2f}% below SMA20", f"RSI: {latest.rsi:.1f}"],
                target=latest.sma20,
            )
        if deviation >= self.deviation_pct and latest.rsi > 60:
            return directional_signal(
                self.key, Direction.BUY_PUT, self.confidence, latest.price,
                [f"Price {deviation:.2f}% above SMA20", f"RSI: {latest.rsi:.1f}"],
                target=latest.sma20,
            )
        return None


class TripleMovingAverageRule(BaseRule):
    key = "triple-ma"
    confidence = 76.0

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        latest = context.latest
        require(latest.sma5, latest.sma20, latest.sma50)
        if latest.price > latest.sma5 > latest.sma20 > latest.sma50:
            return directional_signal(self.key, Direction.BUY_CALL, self.confidence, latest.price, [
                "Price > SMA5 > SMA20 > SMA50",
                "All moving averages stacked bullish",
            ])
        if latest.price < latest.sma5 < latest.sma20 < latest.sma50:
            return directional_signal(self.key, Direction.BUY_PUT, self.confidence, latest.price, [
                "Price < SMA5 < SMA20 < SMA50",
                "All moving averages stacked bearish",
            ])
        return None


class VolumeBreakoutRule(BaseRule):
    """Break of the prior channel on volume well above its average."""

    key = "volume-breakout"
    volume_multiple = 1.5
    confidence = 82.0

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        prior = context.window(context.indicators.channel_period, include_latest=False)
        latest = context.latest
        volumes = [row.volume for row in prior if row.volume is not None]
        require(latest.volume, *(volumes or [None]))
        average_volume = sum(volumes) / len(volumes)
        if average_volume <= 0 or latest.volume < self.volume_multiple * average_volume:
            return None
        ratio = latest.volume / average_volume
        prior_high = max(row.high_or_price for row in prior)
        prior_low = min(row.low_or_price for row in prior)
        if latest.price > prior_high:
            return directional_signal(self.key, Direction.BUY_CALL, self.confidence, latest.price, [
                f"Close above {len(prior)}-bar high ({prior_high:.2f})",
                f"Volume {ratio:.1f}x average",
            ])
        if latest.price < prior_low:
            return directional_signal(self.key, Direction.BUY_PUT, self.confidence, latest.price, [
                f"Close below {len(prior)}-bar low ({prior_low:.2f})",
                f"Volume {ratio:.1f}x average",
            ])
        return None


class MomentumDivergenceRule(BaseRule):
    """New price extreme that RSI fails to confirm."""

    key = "momentum-divergence"
    lookback = 14
    confidence = 74.0

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        prior = context.window(self.lookback, include_latest=False)
        latest = context.latest
        prior_rsi = [row.rsi for row in prior]
        require(latest.rsi, *prior_rsi)
        prices = [row.price for row in prior]
        if latest.price > max(prices) and latest.rsi < max(prior_rsi):
            return directional_signal(self.key, Direction.BUY_PUT, self.confidence, latest.price, [
                "Bearish divergence: new price high without a new RSI high",
                f"RSI: {latest.rsi:.1f} vs prior peak {max(prior_rsi):.1f}",
            ])
        if latest.price < min(prices) and latest.rsi > min(prior_rsi):
            return directional_signal(self.key, Direction.BUY_CALL, self.confidence, latest.price, [
                "Bullish divergence: new price low without a new RSI low",
                f"RSI: {latest.rsi:.1f} vs prior trough {min(prior_rsi):.1f}",
            ])
        return None


class TrendPlusMomentumRule(BaseRule):
    key = "trend-plus-momentum"
    confidence = 80.0

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        latest = context.latest
        require(latest.sma20, latest.sma50, latest.rsi, latest.macd_hist)
        if latest.price > latest.sma20 > latest.sma50 and 50 < latest.rsi < 70 and latest.macd_hist > 0:
            return directional_signal(self.key, Direction.BUY_CALL, self.confidence, latest.price, [
                "Uptrend: price above SMA20 above SMA50",
                f"RSI {latest.rsi:.1f} with positive MACD histogram",
            ])
        if latest.price < latest.sma20 < latest.sma50 and 30 < latest.rsi < 50 and latest.macd_hist < 0:
            return directional_signal(self.key, Direction.BUY_PUT, self.confidence, latest.price, [
                "Downtrend: price below SMA20 below SMA50",
                f"RSI {latest.rsi:.1f} with negative MACD histogram",
            ])
        return None


class MacdHistogramReversalRule(BaseRule):
    """Three bars of shrinking histogram on one side of zero."""

    key = "macd-histogram-reversal"
    confidence = 72.0

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        window = context.window(3)
        hist = [row.macd_hist for row in window]
        require(*hist)
        price = context.latest.price
        if hist[0] < hist[1] < hist[2] < 0:
            return directional_signal(self.key, Direction.BUY_CALL, self.confidence, price, [
                "MACD histogram negative but rising for 3 bars",
                "Selling momentum fading",
            ])
        if hist[0] > hist[1] > hist[2] > 0:
            return directional_signal(self.key, Direction.BUY_PUT, self.confidence, price, [
                "MACD histogram positive but falling for 3 bars",
                "Buying momentum fading",
            ])
        return None


class RsiMidlineCrossRule(BaseRule):
    key = "rsi-midline-cross"
    confidence = 70.0

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        prev, latest = context.pair()
        require(prev.rsi, latest.rsi)
        if prev.rsi <= 50 < latest.rsi:
            return directional_signal(self.key, Direction.BUY_CALL, self.confidence, latest.price, [
                f"RSI crossed above 50 ({latest.rsi:.1f})",
            ])
        if prev.rsi >= 50 > latest.rsi:
            return directional_signal(self.key, Direction.BUY_PUT, self.confidence, latest.price, [
                f"RSI crossed below 50 ({latest.rsi:.1f})",
            ])
        return None


class DonchianBreakoutRule(BaseRule):
    """Close beyond the prior channel's high or low."""

    key = "donchian-breakout"
    confidence = 80.0

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        prior = context.window(context.indicators.channel_period, include_latest=False)
        price = context.latest.price
        upper = max(row.high_or_price for row in prior)
        lower = min(row.low_or_price for row in prior)
        if price > upper:
            return directional_signal(
                self.key, Direction.BUY_CALL, self.confidence, price,
                [f"Close above {len(prior)}-bar Donchian high ({upper:.2f})"],
                stop=min(upper, price * 0.995),
            )
        if price < lower:
            return directional_signal(
                self.key, Direction.BUY_PUT, self.confidence, price,
                [f"Close below {len(prior)}-bar Donchian low ({lower:.2f})"],
                stop=max(lower, price * 1.005),
            )
        return None


class AtrExpansionRule(BaseRule):
    """Latest bar range at least twice the prior ATR."""

    key = "atr-expansion"
    multiple = 2.0
    confidence = 76.0

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        prev, latest = context.pair()
        require(prev.atr, latest.high, latest.low)
        bar_range = latest.high - latest.low
        if prev.atr <= 0 or bar_range < self.multiple * prev.atr:
            return None
        opened = latest.open if latest.open is not None else prev.price
        drivers = [f"Bar range {bar_range:.4f} is {bar_range / prev.atr:.1f}x ATR"]
        if latest.price > opened:
            return directional_signal(self.key, Direction.BUY_CALL, self.confidence, latest.price,
                                      drivers + ["Expansion bar closed up"])
        if latest.price < opened:
            return directional_signal(self.key, Direction.BUY_PUT, self.confidence, latest.price,
                                      drivers + ["Expansion bar closed down"])
        return None


class GapMomentumRule(BaseRule):
    """Opening gap beyond half an ATR that the bar then extends."""

    key = "gap-momentum"
    gap_atr = 0.5
    confidence = 72.0

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        prev, latest = context.pair()
        require(latest.open, prev.atr)
        gap = latest.open - prev.price
        threshold = self.gap_atr * prev.atr
        if gap > threshold and latest.price > latest.open:
            return directional_signal(self.key, Direction.BUY_CALL, self.confidence, latest.price, [
                f"Gap up of {gap:.4f} held into the close",
            ])
        if gap < -threshold and latest.price < latest.open:
            return directional_signal(self.key, Direction.BUY_PUT, self.confidence, latest.price, [
                f"Gap down of {abs(gap):.4f} extended into the close",
            ])
        return None


class HigherHighsRule(BaseRule):
    key = "higher-highs-lows"
    bars = 4
    confidence = 73.0

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        window = context.window(self.bars)
        steps = list(zip(window, window[1:]))
        price = context.latest.price
        if all(b.high_or_price > a.high_or_price and b.low_or_price > a.low_or_price for a, b in steps):
            return directional_signal(self.key, Direction.BUY_CALL, self.confidence, price, [
                f"{self.bars} consecutive higher highs and higher lows",
            ])
        if all(b.high_or_price < a.high_or_price and b.low_or_price < a.low_or_price for a, b in steps):
            return directional_signal(self.key, Direction.BUY_PUT, self.confidence, price, [
                f"{self.bars} consecutive lower highs and lower lows",
            ])
        return None


class KeltnerBreakoutRule(BaseRule):
    """Cross of an EMA12 +/- 2 ATR channel."""

    key = "keltner-breakout"
    atr_multiple = 2.0
    confidence = 78.0

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        prev, latest = context.pair()
        require(prev.ema12, prev.atr, latest.ema12, latest.atr)
        prev_upper = prev.ema12 + self.atr_multiple * prev.atr
        prev_lower = prev.ema12 - self.atr_multiple * prev.atr
        upper = latest.ema12 + self.atr_multiple * latest.atr
        lower = latest.ema12 - self.atr_multiple * latest.atr
        if crossed_above(prev.price, prev_upper, latest.price, upper):
            return directional_signal(self.key, Direction.BUY_CALL, self.confidence, latest.price, [
                f"Price broke above Keltner channel ({upper:.2f})",
            ])
        if crossed_below(prev.price, prev_lower, latest.price, lower):
            return directional_signal(self.key, Direction.BUY_PUT, self.confidence, latest.price, [
                f"Price broke below Keltner channel ({lower:.2f})",
            ])
        return None


class RsiTrendPullbackRule(BaseRule):
    """RSI recovering from a pullback in the direction of the SMA50 trend."""

    key = "rsi-trend-pullback"
    confidence = 76.0

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        prev, latest = context.pair()
        require(latest.sma50, prev.rsi, latest.rsi)
        if latest.price > latest.sma50 and prev.rsi < 40 <= latest.rsi:
            return directional_signal(self.key, Direction.BUY_CALL, self.confidence, latest.price, [
                "Price above SMA50",
                f"RSI recovered through 40 ({latest.rsi:.1f})",
            ])
        if latest.price < latest.sma50 and prev.rsi > 60 >= latest.rsi:
            return directional_signal(self.key, Direction.BUY_PUT, self.confidence, latest.price, [
                "Price below SMA50",
                f"RSI rolled over through 60 ({latest.rsi:.1f})",
            ])
        return None


class InsideBarBreakoutRule(BaseRule):
    key = "inside-bar-breakout"
    confidence = 72.0

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        mother, inside, latest = context.window(3)
        if not (inside.high_or_price <= mother.high_or_price and inside.low_or_price >= mother.low_or_price):
            return None
        if latest.price > inside.high_or_price:
            return directional_signal(
                self.key, Direction.BUY_CALL, self.confidence, latest.price,
                ["Close above inside-bar high"], stop=min(inside.low_or_price, latest.price * 0.995),
            )
        if latest.price < inside.low_or_price:
            return directional_signal(
                self.key, Direction.BUY_PUT, self.confidence, latest.price,
                ["Close below inside-bar low"], stop=max(inside.high_or_price, latest.price * 1.005),
            )
        return None


class FibonacciRetracementRule(BaseRule):
    """Price testing the 61.8% retracement of the latest swing."""

    key = "fibonacci-retracement"
    lookback = 50
    level = 0.618
    tolerance_pct = 0.25
    confidence = 74.0

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        window = context.window(min(self.lookback, max(len(context.rows), 20)))
        prev, latest = context.pair()
        require(prev.rsi, latest.rsi)
        highs = [row.high_or_price for row in window]
        lows = [row.low_or_price for row in window]
        swing_high, swing_low = max(highs), min(lows)
        span = swing_high - swing_low
        if span <= 0:
            return None
        high_index, low_index = highs.index(swing_high), lows.index(swing_low)
        price = latest.price

        if high_index > low_index:
            level = swing_high - self.level * span
            if abs(price - level) / price * 100 <= self.tolerance_pct and latest.rsi > prev.rsi:
                return directional_signal(
                    self.key, Direction.BUY_CALL, self.confidence, price,
                    [f"Holding 61.8% retracement at {level:.2f}", "RSI turning up"],
                    stop=min(swing_low, price * 0.995),
                )
        elif low_index > high_index:
            level = swing_low + self.level * span
            if abs(price - level) / price * 100 <= self.tolerance_pct and latest.rsi < prev.rsi:
                return directional_signal(
                    self.key, Direction.BUY_PUT, self.confidence, price,
                    [f"Rejected at 61.8% retracement {level:.2f}", "RSI turning down"],
                    stop=max(swing_high, price * 1.005),
                )
        return None


def _midpoint(rows) -> float:
    return (max(row.high_or_price for row in rows) + min(row.low_or_price for row in rows)) / 2


class IchimokuCrossRule(BaseRule):
    """Tenkan/Kijun cross with price on the same side of both lines."""

    key = "ichimoku-cloud"
    tenkan_period = 9
    kijun_period = 26
    confidence = 76.0

    def evaluate(self, context: RuleContext) -> Optional[CandidateSignal]:
        rows = context.window(self.kijun_period + 1)
        current, before = rows[1:], rows[:-1]
        tenkan = _midpoint(current[-self.tenkan_period:])
        kijun = _midpoint(current)
        prev_tenkan = _midpoint(before[-self.tenkan_period:])
        prev_kijun = _midpoint(before)
        price = context.latest.price
        if crossed_above(prev_tenkan, prev_kijun, tenkan, kijun) and price > max(tenkan, kijun):
            return directional_signal(self.key, Direction.BUY_CALL, self.confidence, price, [
                f"Tenkan ({tenkan:.2f}) crossed above Kijun ({kijun:.2f})",
                "Price above both lines",
            ])
        if crossed_below(prev_tenkan, prev_kijun, tenkan, kijun) and price < min(tenkan, kijun):
            return directional_signal(self.key, Direction.BUY_PUT, self.confidence, price, [
                f"Tenkan ({tenkan:.2f}) crossed below Kijun ({kijun:.2f})",
                "Price below both lines",
            ])
        return None


__all__ = [
    "AtrExpansionRule",
    "BollingerBounceRule",
    "BollingerBreakoutRule",
    "DonchianBreakoutRule",
    "FibonacciRetracementRule",
    "GapMomentumRule",
    "HigherHighsRule",
    "IchimokuCrossRule",
    "InsideBarBreakoutRule",
    "KeltnerBreakoutRule",
    "MacdCrossRule",
    "MacdHistogramReversalRule",
    "MeanReversionRule",
    "MomentumDivergenceRule",
    "MovingAverageCrossoverRule",
    "RsiExtremeRule",
    "RsiMidlineCrossRule",
    "RsiTrendPullbackRule",
    "TrendPlusMomentumRule",
    "TripleMovingAverageRule",
    "TurtleTradingRule",
    "VolumeBreakoutRule",
]
