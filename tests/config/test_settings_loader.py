import pytest
from pydantic import ValidationError

from signal_engine.config import AppSettings, ScanSettings, get_settings, reset_settings_cache
from signal_engine.config.loader import DEFAULT_SETTINGS


def test_dev_settings_follow_defaults():
    settings = get_settings("dev")

    assert settings.env == "dev"
    assert settings.scan.confidence_threshold == DEFAULT_SETTINGS["scan"]["confidence_threshold"]
    assert settings.scan.active_strategies is None
    assert settings.adapter.provider == "synthetic"
    assert settings.logging.level == "DEBUG"
    assert settings.options.base_iv("btc/usd") == pytest.approx(0.7)
    assert settings.options.base_iv("SPY/USD") == pytest.approx(0.3)


def test_prod_settings_override_scan_options():
    settings = get_settings("prod")

    assert settings.scan.confidence_threshold == 80
    assert settings.scan.monte_carlo_paths == 2000
    assert "monte-carlo" in settings.scan.active_strategies
    assert settings.cache.ttl_seconds == 300
    assert settings.logging.file == "logs/signal_engine/scan.log"


def test_test_settings_are_seeded():
    settings = get_settings("test")

    assert settings.scan.confidence_threshold == 0
    assert settings.scan.monte_carlo_seed == 42
    # values absent from test.yaml fall back to the defaults
    assert settings.scan.history_cap == 50
    assert settings.options.bucket_minutes == 15


def test_app_env_selects_environment(monkeypatch):
    monkeypatch.setenv("APP_ENV", "prod")
    assert get_settings().env == "prod"

    monkeypatch.setenv("APP_ENV", " TEST ")
    assert get_settings().env == "test"


def test_settings_are_cached_until_reset():
    first = get_settings("dev")
    assert get_settings("dev") is first

    reset_settings_cache()
    assert get_settings("dev") is not first


def test_unknown_environment_raises():
    with pytest.raises(FileNotFoundError):
        get_settings("staging")


def test_scan_overrides_are_validated():
    settings = AppSettings()
    updated = settings.with_scan_overrides(confidence_threshold=60, active_strategies="Breakout, rsi-extreme,,")

    assert updated.scan.confidence_threshold == 60.0
    assert updated.scan.active_strategies == ["breakout", "rsi-extreme"]
    assert settings.scan.confidence_threshold == 75.0

    with pytest.raises(ValidationError):
        settings.with_scan_overrides(expiration_minutes=0)


@pytest.mark.parametrize(
    "payload",
    [
        {"confidence_threshold": -1},
        {"history_cap": 0},
        {"monte_carlo_paths": 0},
    ],
)
def test_invalid_scan_settings(payload):
    with pytest.raises(ValidationError):
        ScanSettings(**payload)


def test_invalid_indicator_periods():
    with pytest.raises(ValidationError):
        AppSettings.model_validate({"indicators": {"macd_fast": 30, "macd_slow": 26}})
    with pytest.raises(ValidationError):
        AppSettings.model_validate({"indicators": {"sma_periods": [5, 0]}})
