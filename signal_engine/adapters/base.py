"""Core abstractions for market data adapters."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional

from signal_engine.models.market import PriceBar


class AdapterError(Exception):
    """Base exception raised for adapter related failures."""


class UnsupportedAssetError(AdapterError):
    """Raised when an asset pair is not known to the adapter."""


class DataNotAvailable(AdapterError):
    """Raised when requested data is not available from a provider."""


@dataclass(frozen=True)
class AssetSpec:
    symbol: str
    currency: str
    asset_type: str


SUPPORTED_ASSETS: Mapping[str, AssetSpec] = {
    "BTC/USD": AssetSpec("BTC", "USD", "crypto"),
    "EUR/USD": AssetSpec("EUR", "USD", "forex"),
    "XAU/USD": AssetSpec("XAU", "USD", "commodity"),
}


def resolve_asset(asset: str) -> AssetSpec:
    try:
        return SUPPORTED_ASSETS[asset.upper()]
    except KeyError as exc:
        raise UnsupportedAssetError(f"Unsupported asset pair: {asset}") from exc


class MarketDataAdapter(ABC):
    """Abstract source of price history and, optionally, raw options metrics."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human readable provider name."""

    @abstractmethod
    def get_latest_history(self, asset: str, limit: int = 100, interval: str = "minute") -> List[PriceBar]:
        """Return an ordered (oldest first) price history for ``asset``."""

    def get_options_raw_metrics(self, asset: str, time_bucket: int) -> Optional[Dict[str, float]]:
        """Return externally sourced raw options metrics, or ``None`` to synthesize them."""

        return None


__all__ = [
    "AdapterError",
    "AssetSpec",
    "DataNotAvailable",
    "MarketDataAdapter",
    "SUPPORTED_ASSETS",
    "UnsupportedAssetError",
    "resolve_asset",
]
