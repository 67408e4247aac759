"""Scan orchestration: history -> indicators -> options context -> rules -> signals."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from signal_engine.adapters import HistoryCache, MarketDataAdapter, create_adapter
from signal_engine.clock import ensure_utc, to_millis, utcnow
from signal_engine.config.loader import AppSettings, get_settings
from signal_engine.errors import InsufficientDataError, SimulationError
from signal_engine.indicators.engine import IndicatorEngine
from signal_engine.math.monte_carlo import MonteCarloSimulator
from signal_engine.models.market import PriceBar
from signal_engine.models.signal import ProbabilityInfo, ScanResult, Signal
from signal_engine.options.synthesizer import OptionsContextSynthesizer, validate_context
from signal_engine.strategies.base import LazySimulation, RuleContext
from signal_engine.strategies.evaluator import StrategyEvaluator

from .assembler import SignalAssembler

logger = logging.getLogger(__name__)

ERROR_PREFIX = "Failed to generate signals"
RETRY_HINT = " - Please try again later or check your connection."
RETRY_HINT_AFTER = 3

SignalsCallback = Callable[[Tuple[Signal, ...]], None]
ErrorCallback = Callable[[str], None]


def build_adapter(settings: AppSettings) -> MarketDataAdapter:
    """Create the configured adapter with a history cache sized from settings."""

    cache = HistoryCache(settings.cache.ttl_seconds, bucket_minutes=settings.options.bucket_minutes)
    return create_adapter(settings.adapter.provider, cache=cache, **settings.adapter.settings)


class SignalScanner:
    """Runs one scan at a time and publishes the resulting signal set."""

    def __init__(
        self,
        settings: Optional[AppSettings] = None,
        adapter: Optional[MarketDataAdapter] = None,
        *,
        on_signals_generated: Optional[SignalsCallback] = None,
        on_scan_error: Optional[ErrorCallback] = None,
        evaluator: Optional[StrategyEvaluator] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._adapter = adapter
        self.on_signals_generated = on_signals_generated
        self.on_scan_error = on_scan_error
        self.engine = IndicatorEngine(self.settings.indicators)
        self.synthesizer = OptionsContextSynthesizer(self.settings.options)
        self.evaluator = evaluator or StrategyEvaluator()
        self.assembler = SignalAssembler(self.settings.scan.history_cap)

        self.scan_attempts = 0
        self.last_error: Optional[str] = None
        self.last_scan_time: Optional[datetime] = None
        self.results: Dict[str, ScanResult] = {}
        self._scanning = False

    @property
    def adapter(self) -> MarketDataAdapter:
        if self._adapter is None:
            self._adapter = build_adapter(self.settings)
        return self._adapter

    @property
    def is_scanning(self) -> bool:
        return self._scanning

    @property
    def current_signals(self) -> Tuple[Signal, ...]:
        return self.assembler.current

    @property
    def history(self) -> Tuple[Signal, ...]:
        return self.assembler.history

    def active_signals(self, now: Optional[datetime] = None) -> Tuple[Signal, ...]:
        return self.assembler.active(now)

    def _ensure_idle(self, action: str) -> None:
        if self._scanning:
            raise RuntimeError(f"Cannot {action} while a scan is running")

    def set_active_strategies(self, strategy_ids: Optional[Iterable[str]]) -> None:
        self._ensure_idle("change active strategies")
        ids = None if strategy_ids is None else list(strategy_ids)
        self.settings = self.settings.with_scan_overrides(active_strategies=ids)

    def set_confidence_threshold(self, threshold: float) -> None:
        self._ensure_idle("change the confidence threshold")
        self.settings = self.settings.with_scan_overrides(confidence_threshold=threshold)

    def scan(
        self,
        asset: str,
        history: Optional[Sequence[PriceBar]] = None,
        now: Optional[datetime] = None,
    ) -> Optional[ScanResult]:
        """Run the full pipeline for ``asset``.

        Returns ``None`` when a scan is already running or when the pipeline
        fails; in the latter case the previous signal set is left untouched
        and ``on_scan_error`` receives the message.
        """

        if self._scanning:
            logger.info("Scan already in progress, ignoring request for %s", asset)
            return None

        self._scanning = True
        previous_attempts = self.scan_attempts
        self.scan_attempts += 1
        self.last_error = None
        try:
            result = self._run(asset.upper(), history, now if now is not None else utcnow())
        except Exception as exc:
            message = f"{ERROR_PREFIX}: {exc}"
            if previous_attempts > RETRY_HINT_AFTER:
                message += RETRY_HINT
            self.last_error = message
            logger.error("Scan for %s failed: %s", asset, exc, exc_info=True)
            if self.on_scan_error is not None:
                self.on_scan_error(message)
            return None
        finally:
            self._scanning = False
            self.last_scan_time = utcnow()

        self.results[result.asset] = result
        if self.on_signals_generated is not None:
            self.on_signals_generated(result.signals)
        return result

    def _run(self, asset: str, history: Optional[Sequence[PriceBar]], now: datetime) -> ScanResult:
        now = ensure_utc(now)
        settings = self.settings
        scan_cfg = settings.scan
        now_ms = to_millis(now)

        if history is None:
            bars: List[PriceBar] = list(self.adapter.get_latest_history(asset, scan_cfg.history_limit, scan_cfg.interval))
            source = self.adapter.name
        else:
            bars = list(history)
            source = "history"
        if not bars:
            raise InsufficientDataError(f"No price history available for {asset}")

        rows = self.engine.compute(bars)
        latest = rows[-1]

        raw = None
        if self._adapter is not None:
            raw = self._adapter.get_options_raw_metrics(asset, self.synthesizer.bucket(now_ms))
        options = validate_context(self.synthesizer.synthesize(asset, now_ms, raw))

        simulator = MonteCarloSimulator(path_count=scan_cfg.monte_carlo_paths, seed=scan_cfg.monte_carlo_seed)
        horizon_ms = scan_cfg.expiration_minutes * 60 * 1000
        simulation = LazySimulation(lambda: simulator.run(latest.price, options.iv.value, horizon_ms))
        context = RuleContext(
            asset=asset,
            rows=tuple(rows),
            options=options,
            expiration_minutes=scan_cfg.expiration_minutes,
            indicators=settings.indicators,
            simulator=simulation,
        )

        report = self.evaluator.evaluate(context, scan_cfg.active_strategies)
        signals = self.assembler.build(
            asset,
            report.candidates,
            options,
            now,
            scan_cfg.expiration_minutes,
            scan_cfg.confidence_threshold,
        )
        probability_info = self._probability_info(asset, simulation)
        published = self.assembler.replace(signals)

        logger.info(
            "Scan for %s: %d signals from %d candidates (%d strategies, %d failed)",
            asset, len(published), len(report.candidates), report.evaluated, len(report.failed),
        )
        return ScanResult(
            asset=asset,
            timestamp=now,
            signals=published,
            options_context=options,
            probability_info=probability_info,
            evaluated=report.evaluated,
            failed_rules=report.failed_ids,
            metadata={
                "environment": settings.env,
                "source": source,
                "bars": len(rows),
                "candidates": len(report.candidates),
                "skipped": list(report.skipped),
                "confidenceThreshold": scan_cfg.confidence_threshold,
                "expirationMinutes": scan_cfg.expiration_minutes,
            },
        )

    @staticmethod
    def _probability_info(asset: str, simulation: LazySimulation) -> Optional[ProbabilityInfo]:
        try:
            result = simulation()
        except SimulationError as exc:
            logger.warning("Monte Carlo summary unavailable for %s: %s", asset, exc)
            return None
        return ProbabilityInfo(
            probability_up=result.probability_above,
            probability_down=result.probability_below,
            potential_high=result.percentiles.p90,
            potential_low=result.percentiles.p10,
            expected_price=result.percentiles.p50,
        )


def run_scan(
    asset: str,
    *,
    settings: Optional[AppSettings] = None,
    adapter: Optional[MarketDataAdapter] = None,
) -> Tuple[Optional[ScanResult], Optional[str]]:
    """One-shot scan returning ``(result, error_message)``."""

    scanner = SignalScanner(settings, adapter)
    result = scanner.scan(asset)
    return result, scanner.last_error


__all__ = ["SignalScanner", "build_adapter", "run_scan"]
