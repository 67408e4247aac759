"""Deterministic options-market context per asset and 15-minute bucket."""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Mapping, Optional

from scipy.stats import percentileofscore

from signal_engine.clock import time_bucket
from signal_engine.config.loader import OptionsSettings
from signal_engine.errors import InvalidMetricError
from signal_engine.math.prng import SineHashRandom
from signal_engine.models.options import ImpliedVolatility, MetricReading, OptionsContext

from .interpretation import (
    classify_iv,
    classify_pcr,
    classify_skew,
    classify_trin,
    classify_vix,
    generate_options_signals,
    overall_sentiment,
)

logger = logging.getLogger(__name__)

HISTORICAL_IV_OFFSET = 100
RAW_METRIC_KEYS = ("iv", "pcr", "vix", "trin", "skew", "gamma_exposure", "oi_put_call_ratio", "term_structure")


def iv_percentile(current_iv: float, historical_ivs: List[float]) -> float:
    """Share of historical IVs strictly below ``current_iv``, as a whole percent."""

    if not historical_ivs:
        return 50.0
    rank = percentileofscore(historical_ivs, current_iv, kind="strict")
    return float(math.floor(rank + 0.5))


class OptionsContextSynthesizer:
    """Derives every options metric from seeded draws keyed by ``asset + bucket``."""

    def __init__(self, settings: Optional[OptionsSettings] = None):
        self.settings = settings or OptionsSettings()

    def bucket(self, now_ms: float) -> int:
        return time_bucket(now_ms, self.settings.bucket_minutes)

    def raw_metrics(self, asset: str, bucket: int) -> Dict[str, Any]:
        rng = SineHashRandom(f"{asset}{bucket}")
        base_iv = self.settings.base_iv(asset)
        iv = base_iv + (rng.draw(1) - 0.5) * 0.2 * base_iv
        history = [
            base_iv * (0.7 + rng.draw(HISTORICAL_IV_OFFSET + i) * 0.6)
            for i in range(self.settings.historical_samples)
        ]
        return {
            "iv": iv,
            "iv_history": history,
            "pcr": 0.7 + rng.draw(2) * 0.8,
            "vix": 15 + rng.draw(3) * 20,
            "trin": 0.7 + rng.draw(4) * 0.8,
            "skew": (rng.draw(5) - 0.5) * 0.2,
            "gamma_exposure": (rng.draw(6) - 0.5) * 100000,
            "oi_put_call_ratio": 0.8 + rng.draw(7) * 0.6,
            "term_structure": (rng.draw(8) - 0.4) * 0.1,
        }

    def synthesize(
        self,
        asset: str,
        now_ms: float,
        raw: Optional[Mapping[str, Any]] = None,
    ) -> OptionsContext:
        """Build the context for ``asset`` at ``now_ms``.

        ``raw`` may carry externally sourced metric values; otherwise they are
        synthesized. Identical ``(asset, bucket)`` inputs give identical output.
        """

        bucket = self.bucket(now_ms)
        metrics = dict(raw) if raw is not None else self.raw_metrics(asset, bucket)
        missing = [key for key in RAW_METRIC_KEYS if metrics.get(key) is None]
        if missing:
            raise InvalidMetricError(f"Options metrics for {asset} missing: {', '.join(missing)}")

        if metrics.get("iv_percentile") is not None:
            percentile = float(metrics["iv_percentile"])
        else:
            percentile = iv_percentile(float(metrics["iv"]), list(metrics.get("iv_history") or []))

        context = OptionsContext(
            asset=asset,
            time_bucket=bucket,
            iv=ImpliedVolatility(
                value=float(metrics["iv"]),
                percentile=percentile,
                status=classify_iv(percentile),
                term_structure=float(metrics["term_structure"]),
            ),
            pcr=MetricReading(value=float(metrics["pcr"]), status=classify_pcr(float(metrics["pcr"]))),
            vix=MetricReading(value=float(metrics["vix"]), status=classify_vix(float(metrics["vix"]))),
            trin=MetricReading(value=float(metrics["trin"]), status=classify_trin(float(metrics["trin"]))),
            skew=MetricReading(value=float(metrics["skew"]), status=classify_skew(float(metrics["skew"]))),
            gamma_exposure=float(metrics["gamma_exposure"]),
            oi_put_call_ratio=float(metrics["oi_put_call_ratio"]),
        )
        validate_context(context)
        enriched = context.model_copy(
            update={
                "signals": tuple(generate_options_signals(context)),
                "sentiment": overall_sentiment(context),
            }
        )
        logger.debug(
            "Options context %s bucket=%s iv=%.4f pct=%.0f pcr=%.2f vix=%.1f",
            asset, bucket, enriched.iv.value, enriched.iv.percentile, enriched.pcr.value, enriched.vix.value,
        )
        return enriched


def validate_context(context: Optional[OptionsContext]) -> OptionsContext:
    """Raise :class:`InvalidMetricError` unless every metric is present and finite."""

    if context is None:
        raise InvalidMetricError("No options market context available for signal generation")
    values = {
        "iv": context.iv.value,
        "iv_percentile": context.iv.percentile,
        "term_structure": context.iv.term_structure,
        "pcr": context.pcr.value,
        "vix": context.vix.value,
        "trin": context.trin.value,
        "skew": context.skew.value,
        "gamma_exposure": context.gamma_exposure,
        "oi_put_call_ratio": context.oi_put_call_ratio,
    }
    bad = [name for name, value in values.items() if value is None or not math.isfinite(value)]
    if bad:
        raise InvalidMetricError(f"Options context for {context.asset} has invalid metrics: {', '.join(bad)}")
    if context.iv.value < 0:
        raise InvalidMetricError(f"Options context for {context.asset} has negative implied volatility")
    return context


__all__ = ["OptionsContextSynthesizer", "iv_percentile", "validate_context"]
