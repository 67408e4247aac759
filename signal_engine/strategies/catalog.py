"""Static strategy catalog and the registry of rules that evaluate it."""

from __future__ import annotations

from typing import Dict, Iterable, Optional, Tuple

from signal_engine.models.signal import StrategyCategory, StrategyDefinition

from .base import StrategyRule
from .directional import (
    AtrExpansionRule,
    BollingerBounceRule,
    BollingerBreakoutRule,
    DonchianBreakoutRule,
    FibonacciRetracementRule,
    GapMomentumRule,
    HigherHighsRule,
    IchimokuCrossRule,
    InsideBarBreakoutRule,
    KeltnerBreakoutRule,
    MacdCrossRule,
    MacdHistogramReversalRule,
    MeanReversionRule,
    MomentumDivergenceRule,
    MovingAverageCrossoverRule,
    RsiExtremeRule,
    RsiMidlineCrossRule,
    RsiTrendPullbackRule,
    TrendPlusMomentumRule,
    TripleMovingAverageRule,
    TurtleTradingRule,
    VolumeBreakoutRule,
)
from .hybrid import (
    CryptoIronCondorRule,
    ForexStraddleRule,
    GoldSafeHavenRule,
    MacdPcrConfluenceRule,
    RsiIvConfluenceRule,
    SqueezeBreakoutRule,
    VixRsiConfluenceRule,
)
from .probability import (
    ExpectedMoveFadeRule,
    MonteCarloRule,
    MonteCarloTrendRule,
    TailAsymmetryRule,
    VolatilityPremiumRule,
)
from .sentiment import (
    BreadthDivergenceRule,
    FearGreedContrarianRule,
    MetricExtremeRule,
    OpenInterestRatioRule,
    OptionsFlowConfluenceRule,
    SentimentConsensusRule,
    TrinMomentumRule,
)
from .volatility import (
    BollingerSqueezeRule,
    GammaExposureRule,
    IvExpansionRule,
    IvRankRule,
    IvRealizedSpreadRule,
    SkewAnalysisRule,
    VixTermStructureRule,
    VolatilityBreakoutRule,
    VolatilityCrushRule,
    VolatilityDivergenceRule,
)

D = StrategyCategory.DIRECTIONAL
V = StrategyCategory.VOLATILITY
S = StrategyCategory.SENTIMENT
B = StrategyCategory.BREADTH
P = StrategyCategory.PROBABILITY
H = StrategyCategory.HYBRID


def _define(id: str, name: str, category: StrategyCategory, description: str, *indicators: str) -> StrategyDefinition:
    return StrategyDefinition(
        id=id,
        name=name,
        description=description,
        category=category,
        required_indicators=tuple(indicators),
    )


STRATEGY_CATALOG: Tuple[StrategyDefinition, ...] = (
    # directional
    _define("breakout", "Bollinger Breakout", D, "Close crosses outside the Bollinger bands", "upper_bb", "lower_bb"),
    _define("ma-crossover", "SMA 5/20 Crossover", D, "Fast SMA crosses the slow SMA", "sma5", "sma20"),
    _define("ema-crossover", "EMA 12/26 Crossover", D, "EMA12 crosses EMA26", "ema12", "ema26"),
    _define("golden-cross", "Golden / Death Cross", D, "SMA20 crosses SMA50", "sma20", "sma50"),
    _define("price-sma-cross", "Price / SMA20 Cross", D, "Close crosses its 20-bar average", "sma20"),
    _define("rsi-extreme", "RSI Extremes", D, "RSI below 30 or above 70", "rsi"),
    _define("macd-cross", "MACD Signal Cross", D, "MACD line crosses its signal line", "macd", "macd_signal"),
    _define("bollinger-bounce", "Bollinger Bounce", D, "Re-entry into the bands with RSI turning", "upper_bb", "lower_bb", "rsi"),
    _define("turtle-trading", "Turtle Trading", D, "Price within 0.25% of the 20-bar high or low"),
    _define("mean-reversion", "Mean Reversion", D, "Stretched distance from SMA20 with RSI agreeing", "sma20", "rsi"),
    _define("triple-ma", "Triple Moving Average", D, "Price and SMA5/20/50 stacked in order", "sma5", "sma20", "sma50"),
    _define("volume-breakout", "Volume Breakout", D, "Channel break on 1.5x average volume", "volume"),
    _define("momentum-divergence", "RSI Divergence", D, "New price extreme not confirmed by RSI", "rsi"),
    _define("trend-plus-momentum", "Trend + Momentum", D, "Aligned trend with RSI and MACD momentum", "sma20", "sma50", "rsi", "macd_hist"),
    _define("macd-histogram-reversal", "MACD Histogram Reversal", D, "Histogram shrinking for three bars", "macd_hist"),
    _define("rsi-midline-cross", "RSI Midline Cross", D, "RSI crosses 50", "rsi"),
    _define("donchian-breakout", "Donchian Breakout", D, "Close beyond the prior 20-bar channel"),
    _define("atr-expansion", "ATR Expansion Bar", D, "Bar range at least twice the ATR", "atr"),
    _define("gap-momentum", "Gap Momentum", D, "Opening gap beyond half an ATR that holds", "atr"),
    _define("higher-highs-lows", "Higher Highs / Lower Lows", D, "Four bars of stepping highs and lows"),
    _define("keltner-breakout", "Keltner Channel Breakout", D, "Cross of EMA12 +/- 2 ATR", "ema12", "atr"),
    _define("rsi-trend-pullback", "RSI Trend Pullback", D, "RSI recovers from a pullback within the SMA50 trend", "sma50", "rsi"),
    _define("inside-bar-breakout", "Inside Bar Breakout", D, "Close beyond an inside bar's range"),
    _define("fibonacci-retracement", "Fibonacci Retracement", D, "Price testing the 61.8% retracement", "rsi"),
    _define("ichimoku-cloud", "Ichimoku Tenkan/Kijun Cross", D, "Conversion line crosses base line"),
    # volatility
    _define("iv-rank-high", "High IV Rank", V, "Sell premium when IV is above the 80th percentile"),
    _define("iv-rank-low", "Low IV Rank", V, "Buy premium when IV is below the 20th percentile"),
    _define("bb-squeeze", "Bollinger Squeeze", V, "Band width at a 20-bar low", "bb_width"),
    _define("volatility-breakout", "Volatility Breakout", V, "Band width expands with rising ATR", "bb_width", "atr"),
    _define("volatility-crush", "Volatility Crush", V, "Rich IV while realized range contracts", "bb_width", "atr"),
    _define("iv-expansion", "IV Expansion", V, "Cheap IV while ATR climbs", "atr"),
    _define("iv-hv-spread", "IV vs Realized Volatility", V, "Implied volatility compared with realized"),
    _define("gamma-exposure", "Gamma Exposure", V, "Dealer gamma positioning"),
    _define("vix-term-structure", "Volatility Term Structure", V, "Inverted or steep IV term structure"),
    _define("skew-analysis", "Volatility Skew", V, "Contrarian read of put/call skew"),
    _define("vol-divergence", "Volatility Divergence", V, "New price extreme with subdued IV"),
    _define("vix-strategy", "VIX Contrarian", V, "VIX above 30 or below 15"),
    # sentiment
    _define("pcr-strategy", "Put/Call Ratio", S, "PCR above 1.2 or below 0.7"),
    _define("pcr-extreme", "Put/Call Ratio Extreme", S, "PCR above 1.4 or below 0.6"),
    _define("oi-pcr", "Open Interest Put/Call", S, "Open-interest put/call positioning"),
    _define("sentiment-consensus", "Sentiment Consensus", S, "Decisive aggregate options sentiment"),
    _define("options-flow-confluence", "Options Flow Confluence", S, "Several one-sided options signals"),
    _define("fear-greed-contrarian", "Fear & Greed Contrarian", S, "VIX and PCR extremes together"),
    # breadth
    _define("trin-strategy", "TRIN (Arms Index)", B, "TRIN above 1.5 or below 0.5"),
    _define("trin-momentum", "TRIN Momentum", B, "TRIN extreme confirmed by SMA5", "sma5"),
    _define("breadth-divergence", "Breadth Divergence", B, "Channel extreme contradicted by TRIN"),
    # probability
    _define("monte-carlo", "Monte Carlo Probability", P, "Simulated probability above 65%"),
    _define("mc-trend-confluence", "Monte Carlo Trend Confluence", P, "Simulated edge agreeing with trend", "sma20", "macd_hist"),
    _define("expected-move-fade", "Expected Move Fade", P, "Stretch from SMA20 beyond the simulated IQR", "sma20"),
    _define("tail-asymmetry", "Tail Asymmetry", P, "One simulated tail much longer than the other"),
    _define("mc-volatility-premium", "Simulated Volatility Premium", P, "ATR against the simulated move", "atr"),
    # hybrid
    _define("vix-extreme", "VIX + RSI Extreme", H, "VIX extreme confirmed by RSI", "rsi"),
    _define("squeeze-breakout", "Squeeze Breakout", H, "Band break right after a squeeze", "bb_width", "upper_bb", "lower_bb"),
    _define("rsi-iv-confluence", "RSI + Cheap IV", H, "RSI extreme while options are cheap", "rsi"),
    _define("macd-pcr-confluence", "MACD + PCR Confluence", H, "MACD cross confirmed by put/call ratio", "macd", "macd_signal"),
    _define("crypto-iron-condor", "Crypto Iron Condor", H, "BTC/USD IV above the 85th percentile"),
    _define("forex-straddle", "Forex Straddle", H, "EUR/USD IV below the 15th percentile"),
    _define("gold-safe-haven", "Gold Safe Haven", H, "XAU/USD calls when VIX is high and gold IV moderate"),
)

_RULES: Tuple[StrategyRule, ...] = (
    BollingerBreakoutRule(),
    MovingAverageCrossoverRule("ma-crossover", "sma5", "sma20", 75.0),
    MovingAverageCrossoverRule("ema-crossover", "ema12", "ema26", 75.0),
    MovingAverageCrossoverRule("golden-cross", "sma20", "sma50", 80.0),
    MovingAverageCrossoverRule("price-sma-cross", "close", "sma20", 72.0),
    RsiExtremeRule(),
    MacdCrossRule(),
    BollingerBounceRule(),
    TurtleTradingRule(),
    MeanReversionRule(),
    TripleMovingAverageRule(),
    VolumeBreakoutRule(),
    MomentumDivergenceRule(),
    TrendPlusMomentumRule(),
    MacdHistogramReversalRule(),
    RsiMidlineCrossRule(),
    DonchianBreakoutRule(),
    AtrExpansionRule(),
    GapMomentumRule(),
    HigherHighsRule(),
    KeltnerBreakoutRule(),
    RsiTrendPullbackRule(),
    InsideBarBreakoutRule(),
    FibonacciRetracementRule(),
    IchimokuCrossRule(),
    IvRankRule("iv-rank-high", high=True, threshold=80.0, confidence=85.0),
    IvRankRule("iv-rank-low", high=False, threshold=20.0, confidence=80.0),
    BollingerSqueezeRule(),
    VolatilityBreakoutRule(),
    VolatilityCrushRule(),
    IvExpansionRule(),
    IvRealizedSpreadRule(),
    GammaExposureRule(),
    VixTermStructureRule(),
    SkewAnalysisRule(),
    VolatilityDivergenceRule(),
    MetricExtremeRule("vix-strategy", "vix", high=30.0, low=15.0, high_confidence=75.0, low_confidence=70.0,
                      high_strategy="SELL_PUT"),
    MetricExtremeRule("pcr-strategy", "pcr", high=1.2, low=0.7, high_confidence=80.0, low_confidence=80.0,
                      label="Put/Call ratio"),
    MetricExtremeRule("pcr-extreme", "pcr", high=1.4, low=0.6, high_confidence=85.0, low_confidence=85.0,
                      label="Put/Call ratio"),
    OpenInterestRatioRule(),
    SentimentConsensusRule(),
    OptionsFlowConfluenceRule(),
    FearGreedContrarianRule(),
    MetricExtremeRule("trin-strategy", "trin", high=1.5, low=0.5, high_confidence=75.0, low_confidence=75.0),
    TrinMomentumRule(),
    BreadthDivergenceRule(),
    MonteCarloRule(),
    MonteCarloTrendRule(),
    ExpectedMoveFadeRule(),
    TailAsymmetryRule(),
    VolatilityPremiumRule(),
    VixRsiConfluenceRule(),
    SqueezeBreakoutRule(),
    RsiIvConfluenceRule(),
    MacdPcrConfluenceRule(),
    CryptoIronCondorRule(),
    ForexStraddleRule(),
    GoldSafeHavenRule(),
)

RULE_REGISTRY: Dict[str, StrategyRule] = {rule.key: rule for rule in _RULES}

_BY_ID: Dict[str, StrategyDefinition] = {definition.id: definition for definition in STRATEGY_CATALOG}


def get_strategy(strategy_id: str) -> Optional[StrategyDefinition]:
    return _BY_ID.get(strategy_id.lower())


def strategy_ids(category: Optional[StrategyCategory] = None) -> Tuple[str, ...]:
    return tuple(d.id for d in STRATEGY_CATALOG if category is None or d.category == category)


def select_strategies(active_ids: Optional[Iterable[str]]) -> Tuple[Tuple[StrategyDefinition, ...], Tuple[str, ...]]:
    """Split an allow-list into catalog entries (in catalog order) and unknown ids.

    ``None`` selects the whole catalog.
    """

    if active_ids is None:
        return STRATEGY_CATALOG, ()
    wanted = {item.strip().lower() for item in active_ids if item and item.strip()}
    unknown = tuple(sorted(wanted - set(_BY_ID)))
    return tuple(d for d in STRATEGY_CATALOG if d.id in wanted), unknown


__all__ = [
    "RULE_REGISTRY",
    "STRATEGY_CATALOG",
    "get_strategy",
    "select_strategies",
    "strategy_ids",
]
