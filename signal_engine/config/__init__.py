"""Configuration helpers for the signal pipeline."""

from .loader import (
    AdapterSettings,
    AppSettings,
    CacheSettings,
    IndicatorSettings,
    LoggingSettings,
    OptionsSettings,
    ScanSettings,
    get_settings,
    reset_settings_cache,
)

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
