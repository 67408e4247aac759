"""Runs the selected catalog rules against one scan's context."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Mapping, Optional, Tuple

from signal_engine.errors import InsufficientDataError, RuleEvaluationError, SimulationError
from signal_engine.models.signal import CandidateSignal

from .base import RuleContext, StrategyRule
from .catalog import RULE_REGISTRY, select_strategies

logger = logging.getLogger(__name__)


@dataclass
class EvaluationReport:
    candidates: List[CandidateSignal] = field(default_factory=list)
    failed: List[RuleEvaluationError] = field(default_factory=list)
    evaluated: int = 0
    skipped: List[str] = field(default_factory=list)

    @property
    def failed_ids(self) -> Tuple[str, ...]:
        return tuple(error.strategy_id for error in self.failed)


class StrategyEvaluator:
    """Evaluates each active strategy in isolation; one bad rule never stops the rest."""

    def __init__(self, registry: Optional[Mapping[str, StrategyRule]] = None):
        self.registry = dict(RULE_REGISTRY if registry is None else registry)

    def evaluate(self, context: RuleContext, active_ids: Optional[Iterable[str]] = None) -> EvaluationReport:
        definitions, unknown = select_strategies(active_ids)
        for strategy_id in unknown:
            logger.warning("Ignoring unknown strategy id %r", strategy_id)

        report = EvaluationReport()
        for definition in definitions:
            rule = self.registry.get(definition.rule_key)
            if rule is None:
                logger.warning("No rule registered for strategy %s", definition.id)
                continue
            report.evaluated += 1
            try:
                candidate = rule.evaluate(context)
            except InsufficientDataError as exc:
                logger.debug("Skipping %s: %s", definition.id, exc)
                report.skipped.append(definition.id)
                continue
            except SimulationError as exc:
                logger.warning("Skipping %s, simulation unavailable: %s", definition.id, exc)
                report.skipped.append(definition.id)
                continue
            except Exception as exc:
                error = RuleEvaluationError(definition.id, exc)
                logger.exception("Strategy %s failed", definition.id)
                report.failed.append(error)
                continue

            if candidate is None:
                continue
            if candidate.strategy_id != definition.id:
                candidate = candidate.model_copy(update={"strategy_id": definition.id})
            report.candidates.append(candidate)

        logger.debug(
            "Evaluated %d strategies for %s: %d candidates, %d failed",
            report.evaluated, context.asset, len(report.candidates), len(report.failed),
        )
        return report


__all__ = ["EvaluationReport", "StrategyEvaluator"]
