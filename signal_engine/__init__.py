"""Signal-generation pipeline for short-horizon options trading signals."""

from __future__ import annotations

from typing import Any


def create_scanner(*args: Any, **kwargs: Any):
    """Lazily import and construct the scan service."""

    from .scanner.service import SignalScanner

    return SignalScanner(*args, **kwargs)


__all__ = ["create_scanner"]
