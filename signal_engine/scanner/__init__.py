"""Scan service, signal assembly and command line entry point."""

from .assembler import DEFAULT_HISTORY_CAP, SignalAssembler
from .service import SignalScanner, build_adapter, run_scan

__all__ = ["DEFAULT_HISTORY_CAP", "SignalAssembler", "SignalScanner", "build_adapter", "run_scan"]
