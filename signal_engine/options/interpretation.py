"""Rule-based readings of an options context.

Two views are produced from the same metrics: a list of interpretive
signals (each with a fixed confidence) and an aggregate sentiment built by
counting contrarian bullish and bearish factors across IV, PCR, VIX, TRIN
and skew.
"""

from __future__ import annotations

from typing import List

from signal_engine.models.options import OptionsContext, OptionsSignal, SentimentSummary

IV_HIGH_PERCENTILE = 80.0
IV_LOW_PERCENTILE = 20.0
PCR_HIGH = 1.2
PCR_LOW = 0.7
VIX_HIGH = 30.0
VIX_LOW = 15.0
TRIN_HIGH = 1.2
TRIN_LOW = 0.8
SKEW_PUT_HEAVY = -0.1
SKEW_CALL_HEAVY = 0.1
TERM_STRUCTURE_INVERTED = -0.05
TERM_STRUCTURE_STEEP = 0.05


def classify_iv(percentile: float) -> str:
    if percentile > IV_HIGH_PERCENTILE:
        return "high"
    if percentile < IV_LOW_PERCENTILE:
        return "low"
    return "normal"


def classify_pcr(value: float) -> str:
    if value > PCR_HIGH:
        return "high"
    if value < PCR_LOW:
        return "low"
    return "normal"


def classify_vix(value: float) -> str:
    if value > VIX_HIGH:
        return "high"
    if value < VIX_LOW:
        return "low"
    return "normal"


def classify_trin(value: float) -> str:
    if value > TRIN_HIGH:
        return "high"
    if value < TRIN_LOW:
        return "low"
    return "normal"


def classify_skew(value: float) -> str:
    # "high" means puts carry the richer volatility
    if value < SKEW_PUT_HEAVY:
        return "high"
    if value > SKEW_CALL_HEAVY:
        return "low"
    return "normal"


def _signal(kind: str, direction: str, strength: str, description: str, confidence: float) -> OptionsSignal:
    return OptionsSignal(
        type=kind,
        direction=direction,
        strength=strength,
        description=description,
        confidence=confidence,
    )


def generate_options_signals(context: OptionsContext) -> List[OptionsSignal]:
    """Interpretive tags for the context's metrics, in a fixed rule order."""

    signals: List[OptionsSignal] = []
    iv = context.iv

    if iv.percentile > IV_HIGH_PERCENTILE:
        signals.append(_signal(
            "volatility", "SELL_PREMIUM", "strong",
            "IV is in the top 20% of its range - options are expensive. "
            "Consider selling premium (credit spreads or iron condors).",
            85,
        ))
    elif iv.percentile < IV_LOW_PERCENTILE:
        signals.append(_signal(
            "volatility", "BUY_PREMIUM", "strong",
            "IV is in the bottom 20% of its range - options are cheap. "
            "Consider buying premium (straddles or strangles).",
            85,
        ))

    if context.pcr.value > PCR_HIGH:
        signals.append(_signal(
            "sentiment", "BULLISH", "moderate",
            "High put/call ratio indicates excessive bearish positioning. "
            "Consider a contrarian bullish position.",
            75,
        ))
    elif context.pcr.value < PCR_LOW:
        signals.append(_signal(
            "sentiment", "BEARISH", "moderate",
            "Low put/call ratio indicates excessive bullish positioning. "
            "Consider a contrarian bearish position.",
            75,
        ))

    if context.vix.value > VIX_HIGH:
        signals.append(_signal(
            "volatility", "BULLISH", "moderate",
            "Elevated VIX indicates high fear levels. "
            "Consider contrarian bullish strategies or selling volatility.",
            70,
        ))
    elif context.vix.value < VIX_LOW:
        signals.append(_signal(
            "volatility", "BEARISH", "weak",
            "Low VIX indicates complacency. Consider purchasing protection or bearish strategies.",
            65,
        ))

    if context.trin.value > TRIN_HIGH:
        signals.append(_signal(
            "breadth", "BULLISH", "moderate",
            "Elevated TRIN indicates oversold conditions. Consider bullish strategies.",
            70,
        ))
    elif context.trin.value < TRIN_LOW:
        signals.append(_signal(
            "breadth", "BEARISH", "moderate",
            "Low TRIN indicates overbought conditions. Consider bearish strategies.",
            70,
        ))

    if context.skew.value < SKEW_PUT_HEAVY:
        signals.append(_signal(
            "volatility", "BEARISH", "moderate",
            "Negative volatility skew indicates put demand exceeding calls. Market is hedging downside.",
            70,
        ))
    elif context.skew.value > SKEW_CALL_HEAVY:
        signals.append(_signal(
            "volatility", "BULLISH", "moderate",
            "Positive volatility skew is unusual and indicates call demand exceeding puts.",
            70,
        ))

    if iv.term_structure < TERM_STRUCTURE_INVERTED:
        signals.append(_signal(
            "volatility", "BEARISH", "strong",
            "Inverted IV term structure (short-term IV > long-term IV) "
            "indicates significant near-term uncertainty.",
            80,
        ))
    elif iv.term_structure > TERM_STRUCTURE_STEEP:
        signals.append(_signal(
            "volatility", "BULLISH", "moderate",
            "Steep IV term structure indicates normal market conditions "
            "with higher longer-term uncertainty.",
            70,
        ))

    asset = context.asset.upper()
    if asset == "BTC/USD" and iv.percentile > 85:
        signals.append(_signal(
            "crypto", "IRON_CONDOR", "strong",
            "Extremely high IV in Bitcoin options. Iron condors can be very profitable.",
            85,
        ))
    elif asset == "EUR/USD" and iv.percentile < 15:
        signals.append(_signal(
            "forex", "STRADDLE", "strong",
            "Unusually low forex volatility. Straddles positioned before economic "
            "announcements can be profitable.",
            80,
        ))
    elif asset == "XAU/USD" and context.vix.value > 25 and iv.percentile < 50:
        signals.append(_signal(
            "commodity", "BULLISH", "strong",
            "High VIX but moderate gold IV suggests gold may function as a safe haven. Consider calls.",
            80,
        ))

    return signals


def overall_sentiment(context: OptionsContext | None) -> SentimentSummary:
    """Contrarian factor count across five metrics.

    A gap of one factor or less is neutral/weak, two is moderate and three or
    more is strong.
    """

    if context is None:
        return SentimentSummary()

    statuses = {
        "iv": classify_iv(context.iv.percentile),
        "pcr": classify_pcr(context.pcr.value),
        "vix": classify_vix(context.vix.value),
        "trin": classify_trin(context.trin.value),
        "skew": classify_skew(context.skew.value),
    }
    bullish = sum((
        statuses["iv"] == "low",
        statuses["pcr"] == "high",
        statuses["vix"] == "high",
        statuses["trin"] == "high",
        statuses["skew"] == "low",
    ))
    bearish = sum((
        statuses["iv"] == "high",
        statuses["pcr"] == "low",
        statuses["vix"] == "low",
        statuses["trin"] == "low",
        statuses["skew"] == "high",
    ))

    gap = abs(bullish - bearish)
    if gap <= 1:
        return SentimentSummary(sentiment="neutral", strength="weak", bullish_factors=bullish, bearish_factors=bearish)
    strength = "strong" if gap >= 3 else "moderate"
    sentiment = "bullish" if bullish > bearish else "bearish"
    return SentimentSummary(sentiment=sentiment, strength=strength, bullish_factors=bullish, bearish_factors=bearish)


__all__ = [
    "classify_iv",
    "classify_pcr",
    "classify_skew",
    "classify_trin",
    "classify_vix",
    "generate_options_signals",
    "overall_sentiment",
]
