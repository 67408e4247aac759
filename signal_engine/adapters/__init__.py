"""Adapter implementations for market data sources."""

from __future__ import annotations

from importlib import import_module
from typing import Any, Dict, Type

from .base import (
    AdapterError,
    DataNotAvailable,
    MarketDataAdapter,
    SUPPORTED_ASSETS,
    UnsupportedAssetError,
)
from .cache import HistoryCache

_ADAPTER_REGISTRY: Dict[str, str] = {
    "synthetic": "signal_engine.adapters.synthetic:SyntheticMarketDataAdapter",
}


def create_adapter(provider: str, **options: Any) -> MarketDataAdapter:
    """Instantiate a market data adapter by name.

    Args:
        provider: The lowercase name of the provider to load.
        **options: Keyword arguments forwarded to the adapter constructor.

    Returns:
        An instance of the requested adapter implementation.

    Raises:
        KeyError: If the provider name is unknown.
    """

    normalized = provider.lower()
    try:
        dotted_path = _ADAPTER_REGISTRY[normalized]
    except KeyError as exc:
        raise KeyError(f"Unknown market data provider: {provider}") from exc

    module_name, class_name = dotted_path.split(":", 1)
    module = import_module(module_name)
    adapter_cls: Type[MarketDataAdapter] = getattr(module, class_name)
    return adapter_cls(**options)


__all__ = [
    "AdapterError",
    "DataNotAvailable",
    "HistoryCache",
    "MarketDataAdapter",
    "SUPPORTED_ASSETS",
    "UnsupportedAssetError",
    "create_adapter",
]
