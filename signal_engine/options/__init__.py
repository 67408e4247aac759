"""Options-market context synthesis and interpretation."""

from .interpretation import generate_options_signals, overall_sentiment
from .synthesizer import OptionsContextSynthesizer, iv_percentile, validate_context

__all__ = [
    "OptionsContextSynthesizer",
    "generate_options_signals",
    "iv_percentile",
    "overall_sentiment",
    "validate_context",
]
