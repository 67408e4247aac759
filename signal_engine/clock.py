"""Wall-clock helpers shared by the cache, synthesizer and assembler."""

from __future__ import annotations

import math
from datetime import datetime, timezone

DEFAULT_BUCKET_MINUTES = 15


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(moment: datetime) -> datetime:
    """Aware UTC datetime; naive values are taken to already be UTC."""

    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def to_millis(moment: datetime) -> int:
    """Epoch milliseconds; naive datetimes are treated as UTC."""

    return int(ensure_utc(moment).timestamp() * 1000)


def from_millis(value: float) -> datetime:
    return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)


def time_bucket(now_ms: float, bucket_minutes: int = DEFAULT_BUCKET_MINUTES) -> int:
    """Index of the ``bucket_minutes`` window containing ``now_ms``."""

    return int(math.floor(now_ms / (bucket_minutes * 60 * 1000)))


__all__ = ["DEFAULT_BUCKET_MINUTES", "ensure_utc", "from_millis", "time_bucket", "to_millis", "utcnow"]
