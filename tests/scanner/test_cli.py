import json
import logging

import pytest

from signal_engine.config.loader import LoggingSettings
from signal_engine.scanner.cli import catalog_frame, configure_logging, main, reset_logging


@pytest.fixture(autouse=True)
def detach_cli_handlers():
    yield
    reset_logging()


def test_strategies_lists_catalog(capsys):
    assert main(["strategies", "--env", "test"]) == 0

    out = capsys.readouterr().out
    assert "rsi-extreme" in out
    assert "monte-carlo" in out


def test_strategies_filters_by_category(capsys, monkeypatch):
    monkeypatch.setenv("APP_ENV", "test")

    assert main(["strategies", "--category", "Probability"]) == 0

    out = capsys.readouterr().out
    assert "monte-carlo" in out
    assert "rsi-extreme" not in out
    assert set(catalog_frame("probability")["category"]) == {"probability"}


def test_scan_prints_json(capsys):
    assert main(["scan", "--env", "test", "--asset", "EUR/USD", "--json", "--seed", "7"]) == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload["asset"] == "EUR/USD"
    assert payload["metadata"]["environment"] == "test"
    assert payload["probability_info"] is not None


def test_scan_renders_table(capsys):
    argv = ["scan", "--env", "test", "--strategies", "iv-rank-high,iv-rank-low", "--seed", "1"]

    assert main(argv) == 0

    out = capsys.readouterr().out
    assert out.startswith("BTC/USD @ ")
    assert "from 2 strategies" in out


def test_failed_scan_exits_nonzero(capsys):
    assert main(["scan", "--env", "test", "--asset", "DOGE/USD"]) == 1

    assert "Failed to generate signals" in capsys.readouterr().err


@pytest.mark.parametrize(
    "argv",
    [
        ["scan", "--env", "nowhere"],
        ["scan", "--env", "test", "--threshold", "150"],
    ],
)
def test_bad_configuration_exits_with_usage_code(argv, capsys):
    assert main(argv) == 2
    assert capsys.readouterr().err


def test_package_entry_point_is_the_cli():
    import options_signals

    assert options_signals.main is main


def test_configure_logging_replaces_only_its_own_handlers(tmp_path):
    root = logging.getLogger()
    before = list(root.handlers)
    foreign = logging.NullHandler()
    root.addHandler(foreign)
    try:
        configure_logging(LoggingSettings(level="debug"))
        configure_logging(LoggingSettings(), log_file=str(tmp_path / "logs" / "scan.log"))

        added = [handler for handler in root.handlers if handler is not foreign and handler not in before]
        assert [type(handler) for handler in added] == [logging.StreamHandler, logging.FileHandler]
        assert foreign in root.handlers
        assert (tmp_path / "logs").is_dir()

        reset_logging()
        assert root.handlers == before + [foreign]
    finally:
        root.removeHandler(foreign)
