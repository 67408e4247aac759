"""Command line interface: run a scan or list the strategy catalog."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

import pandas as pd

from signal_engine.config.loader import AppSettings, LoggingSettings, get_settings
from signal_engine.models.serialization import serialize_scan_result
from signal_engine.models.signal import ScanResult
from signal_engine.strategies.catalog import STRATEGY_CATALOG

from .service import SignalScanner

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
DEFAULT_LOG_FILE = "logs/signal_engine/scan.log"

logger = logging.getLogger(__name__)

# handlers this module attached to the root logger
_installed_handlers: List[logging.Handler] = []


def configure_logging(config: LoggingSettings, *, log_file: Optional[str] = None) -> None:
    """Console handler on stderr plus an optional file handler."""

    root = logging.getLogger()
    root.setLevel(config.level)
    reset_logging()

    formatter = logging.Formatter(LOG_FORMAT)
    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    _install(root, console)

    path = log_file or config.file
    if path:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        _install(root, file_handler)


def _install(root: logging.Logger, handler: logging.Handler) -> None:
    root.addHandler(handler)
    _installed_handlers.append(handler)


def reset_logging() -> None:
    """Detach and close the handlers added by :func:`configure_logging`."""

    root = logging.getLogger()
    while _installed_handlers:
        handler = _installed_handlers.pop()
        root.removeHandler(handler)
        handler.close()


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--env", default=None, help="Configuration environment (defaults to APP_ENV or dev)")
    common.add_argument("--log-file", default=None, help=f"Also write logs to this file (e.g. {DEFAULT_LOG_FILE})")

    parser = argparse.ArgumentParser(prog="options_signals", description="Short-horizon options signal scanner")
    commands = parser.add_subparsers(dest="command", required=True)

    scan = commands.add_parser("scan", parents=[common], help="Run one scan for an asset pair")
    scan.add_argument("--asset", default="BTC/USD", help="Asset pair, e.g. BTC/USD, EUR/USD, XAU/USD")
    scan.add_argument("--bars", type=int, default=None, help="Number of history bars to request")
    scan.add_argument("--threshold", type=float, default=None, help="Minimum confidence (0-100)")
    scan.add_argument(
        "--strategies",
        default=None,
        help="Comma separated strategy ids to evaluate (default: all)",
    )
    scan.add_argument("--seed", type=int, default=None, help="Seed the Monte Carlo simulation")
    scan.add_argument("--json", action="store_true", help="Print the scan result as JSON")
    scan.add_argument("--json-indent", type=int, default=2, help="Indentation for JSON output")

    listing = commands.add_parser("strategies", parents=[common], help="List the strategy catalog")
    listing.add_argument("--category", default=None, help="Only show one category")
    return parser.parse_args(argv)


def _apply_overrides(settings: AppSettings, args: argparse.Namespace) -> AppSettings:
    overrides = {}
    if args.bars is not None:
        overrides["history_limit"] = args.bars
    if args.threshold is not None:
        overrides["confidence_threshold"] = args.threshold
    if args.strategies:
        overrides["active_strategies"] = args.strategies
    if args.seed is not None:
        overrides["monte_carlo_seed"] = args.seed
    return settings.with_scan_overrides(**overrides) if overrides else settings


def signals_frame(result: ScanResult) -> pd.DataFrame:
    columns = ["strategy", "direction", "confidence", "entry", "target", "stop", "expires"]
    rows = [
        {
            "strategy": signal.strategy_id,
            "direction": signal.direction.value,
            "confidence": signal.confidence,
            "entry": signal.entry_price,
            "target": signal.target_price,
            "stop": signal.stop_loss,
            "expires": signal.expiry_time.strftime("%H:%M:%S"),
        }
        for signal in result.signals
    ]
    return pd.DataFrame(rows, columns=columns)


def catalog_frame(category: Optional[str] = None) -> pd.DataFrame:
    rows = [
        {"id": d.id, "name": d.name, "category": d.category.value, "description": d.description}
        for d in STRATEGY_CATALOG
        if category is None or d.category.value == category.lower()
    ]
    return pd.DataFrame(rows, columns=["id", "name", "category", "description"])


def _render(result: ScanResult) -> str:
    options = result.options_context
    lines: List[str] = [
        f"{result.asset} @ {result.timestamp.isoformat()}",
        (
            f"IV {options.iv.value * 100:.1f}% (pct {options.iv.percentile:.0f}, {options.iv.status})  "
            f"PCR {options.pcr.value:.2f}  VIX {options.vix.value:.1f}  TRIN {options.trin.value:.2f}  "
            f"sentiment {options.sentiment.sentiment}/{options.sentiment.strength}"
        ),
    ]
    if result.probability_info is not None:
        info = result.probability_info
        lines.append(
            f"P(up) {info.probability_up:.2f}  P(down) {info.probability_down:.2f}  "
            f"range {info.potential_low:.2f} - {info.potential_high:.2f}  expected {info.expected_price:.2f}"
        )
    frame = signals_frame(result)
    lines.append(f"{len(frame)} signal(s) from {result.evaluated} strategies")
    if not frame.empty:
        lines.append(frame.to_string(index=False, float_format=lambda value: f"{value:,.4f}"))
    return "\n".join(lines)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)
    try:
        settings = get_settings(args.env)
    except FileNotFoundError as exc:
        print(exc, file=sys.stderr)
        return 2
    configure_logging(settings.logging, log_file=args.log_file)

    if args.command == "strategies":
        print(catalog_frame(args.category).to_string(index=False))
        return 0

    try:
        settings = _apply_overrides(settings, args)
    except ValueError as exc:
        print(f"Invalid scan option: {exc}", file=sys.stderr)
        return 2
    logger.info("Running %s scan for %s", settings.env, args.asset)
    scanner = SignalScanner(settings)
    result = scanner.scan(args.asset)
    if result is None:
        print(scanner.last_error or "Scan did not run", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(serialize_scan_result(result), indent=args.json_indent))
    else:
        print(_render(result))
    return 0


__all__ = ["catalog_frame", "configure_logging", "main", "signals_frame"]
