"""Strategy catalog, rule implementations and the evaluator."""

from .base import LazySimulation, RuleContext, StrategyRule
from .catalog import RULE_REGISTRY, STRATEGY_CATALOG, get_strategy, select_strategies, strategy_ids
from .evaluator import EvaluationReport, StrategyEvaluator

__all__ = [
    "EvaluationReport",
    "LazySimulation",
    "RULE_REGISTRY",
    "RuleContext",
    "STRATEGY_CATALOG",
    "StrategyEvaluator",
    "StrategyRule",
    "get_strategy",
    "select_strategies",
    "strategy_ids",
]
