"""Serialization helpers shared between the CLI and callers."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List

from .options import OptionsContext
from .signal import ScanResult, Signal


def serialize_signal(signal: Signal) -> Dict[str, Any]:
    """Return a JSON-compatible representation of a signal."""

    return signal.model_dump(mode="json")


def serialize_signals(signals: Iterable[Signal]) -> List[Dict[str, Any]]:
    return [serialize_signal(signal) for signal in signals]


def serialize_options_context(context: OptionsContext) -> Dict[str, Any]:
    return context.model_dump(mode="json")


def serialize_scan_result(result: ScanResult) -> Dict[str, Any]:
    """Return a JSON-compatible payload for a completed scan."""

    return result.model_dump(mode="json")


__all__ = [
    "serialize_options_context",
    "serialize_scan_result",
    "serialize_signal",
    "serialize_signals",
]
