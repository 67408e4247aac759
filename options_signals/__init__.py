"""Command line package for the options signal engine."""

from signal_engine.scanner.cli import main

__all__ = ["main"]
