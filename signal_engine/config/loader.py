"""Environment aware configuration loader for the signal pipeline."""

from __future__ import annotations

import copy
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Mapping, MutableMapping, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_BASE_VOLATILITY: Dict[str, float] = {
    "BTC/USD": 0.7,
    "EUR/USD": 0.08,
    "XAU/USD": 0.15,
}

DEFAULT_SETTINGS: Dict[str, Any] = {
    "scan": {
        "confidence_threshold": 75.0,
        "expiration_minutes": 15.0,
        "active_strategies": None,
        "history_cap": 50,
        "monte_carlo_paths": 1000,
        "monte_carlo_seed": None,
        "history_limit": 100,
        "interval": "minute",
    },
    "indicators": {},
    "options": {
        "bucket_minutes": 15,
        "base_volatility": copy.deepcopy(DEFAULT_BASE_VOLATILITY),
        "default_volatility": 0.3,
        "historical_samples": 100,
    },
    "adapter": {
        "provider": "synthetic",
        "settings": {},
    },
    "cache": {
        "ttl_seconds": 900,
    },
    "logging": {
        "level": "INFO",
        "file": None,
    },
}

CONFIG_DIR = Path(__file__).resolve().parents[2] / "config"
ENVIRONMENT_VARIABLE = "APP_ENV"


class IndicatorSettings(BaseModel):
    """Look-back periods used by the indicator engine and channel rules."""

    model_config = ConfigDict(frozen=True)

    sma_periods: List[int] = Field(default_factory=lambda: [5, 20, 50])
    ema_periods: List[int] = Field(default_factory=lambda: [12, 26])
    rsi_period: int = 14
    macd_fast: int = 12
    macd_slow: int = 26
    macd_signal: int = 9
    bb_period: int = 20
    bb_std_dev: float = 2.0
    atr_period: int = 14
    channel_period: int = 20

    @field_validator("sma_periods", "ema_periods")
    @classmethod
    def _positive_periods(cls, value: List[int]) -> List[int]:
        periods = [int(item) for item in value]
        if any(period <= 0 for period in periods):
            raise ValueError("moving average periods must be positive")
        return periods

    @model_validator(mode="after")
    def _check_macd(self) -> "IndicatorSettings":
        if self.macd_fast >= self.macd_slow:
            raise ValueError("macd_fast must be shorter than macd_slow")
        for name in ("rsi_period", "macd_signal", "bb_period", "atr_period", "channel_period"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        return self


class ScanSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    confidence_threshold: float = 75.0
    expiration_minutes: float = 15.0
    active_strategies: Optional[List[str]] = None
    history_cap: int = 50
    monte_carlo_paths: int = 1000
    monte_carlo_seed: Optional[int] = None
    history_limit: int = 100
    interval: str = "minute"

    @field_validator("confidence_threshold")
    @classmethod
    def _threshold_range(cls, value: float) -> float:
        if not 0.0 <= float(value) <= 100.0:
            raise ValueError("confidence_threshold must be between 0 and 100")
        return float(value)

    @field_validator("expiration_minutes")
    @classmethod
    def _positive_expiration(cls, value: float) -> float:
        if float(value) <= 0:
            raise ValueError("expiration_minutes must be greater than zero")
        return float(value)

    @field_validator("history_cap", "monte_carlo_paths", "history_limit")
    @classmethod
    def _positive_count(cls, value: int) -> int:
        if int(value) < 1:
            raise ValueError("counts must be at least 1")
        return int(value)

    @field_validator("active_strategies", mode="before")
    @classmethod
    def _normalize_strategies(cls, value: Any) -> Optional[List[str]]:
        if value is None:
            return None
        if isinstance(value, str):
            value = value.split(",")
        return [str(item).strip().lower() for item in value if str(item).strip()]


class OptionsSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    bucket_minutes: int = 15
    base_volatility: Dict[str, float] = Field(default_factory=lambda: dict(DEFAULT_BASE_VOLATILITY))
    default_volatility: float = 0.3
    historical_samples: int = 100

    @field_validator("base_volatility", mode="before")
    @classmethod
    def _coerce_volatility(cls, value: Mapping[str, Any]) -> Dict[str, float]:
        return {key.upper(): float(val) for key, val in dict(value or {}).items()}

    def base_iv(self, asset: str) -> float:
        return self.base_volatility.get(asset.upper(), self.default_volatility)


class AdapterSettings(BaseModel):
    provider: str = "synthetic"
    settings: Dict[str, Any] = Field(default_factory=dict)


class CacheSettings(BaseModel):
    ttl_seconds: int = 900


class LoggingSettings(BaseModel):
    level: str = "INFO"
    file: Optional[str] = None

    @field_validator("level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()


class AppSettings(BaseModel):
    """Fully resolved application settings loaded from YAML."""

    model_config = ConfigDict(frozen=True)

    env: str = "dev"
    scan: ScanSettings = Field(default_factory=ScanSettings)
    indicators: IndicatorSettings = Field(default_factory=IndicatorSettings)
    options: OptionsSettings = Field(default_factory=OptionsSettings)
    adapter: AdapterSettings = Field(default_factory=AdapterSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @field_validator("env")
    @classmethod
    def _normalize_env(cls, value: str) -> str:
        return value.lower()

    def with_scan_overrides(self, **overrides: Any) -> "AppSettings":
        """Return a copy with selected scan options replaced (validated)."""

        scan = ScanSettings.model_validate({**self.scan.model_dump(), **overrides})
        return self.model_copy(update={"scan": scan})


def _deep_merge(base: MutableMapping[str, Any], overrides: Mapping[str, Any]) -> MutableMapping[str, Any]:
    for key, value in overrides.items():
        if isinstance(value, Mapping):
            existing = base.get(key)
            if isinstance(existing, MutableMapping):
                base[key] = _deep_merge(copy.deepcopy(existing), value)
            else:
                base[key] = copy.deepcopy(value)
        else:
            base[key] = copy.deepcopy(value)
    return base


def _load_yaml(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle.read()) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Configuration file {path} must contain a mapping at the root.")
        return data


def _build_settings(env: str) -> AppSettings:
    config_path = CONFIG_DIR / f"{env}.yaml"
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file for environment '{env}' not found at {config_path}")

    merged = copy.deepcopy(DEFAULT_SETTINGS)
    overrides = _load_yaml(config_path)
    merged = _deep_merge(merged, overrides)
    merged["env"] = env
    return AppSettings.model_validate(merged)


@lru_cache(maxsize=None)
def _cached_settings(env: str) -> AppSettings:
    return _build_settings(env)


def get_settings(env: Optional[str] = None) -> AppSettings:
    """Load settings for the requested environment (default: APP_ENV or 'dev')."""

    resolved_env = (env or os.getenv(ENVIRONMENT_VARIABLE, "dev")).strip().lower()
    return _cached_settings(resolved_env)


def reset_settings_cache() -> None:
    """Clear the cached settings, primarily used during tests."""

    _cached_settings.cache_clear()


__all__ = [
    "AdapterSettings",
    "AppSettings",
    "CacheSettings",
    "IndicatorSettings",
    "LoggingSettings",
    "OptionsSettings",
    "ScanSettings",
    "get_settings",
    "reset_settings_cache",
]
