"""Turns surviving candidates into published, time-stamped signals."""

from __future__ import annotations

import logging
from collections import deque
from datetime import datetime
from typing import Deque, Iterable, Optional, Tuple

from signal_engine.clock import ensure_utc, utcnow
from signal_engine.models.options import OptionsContext
from signal_engine.models.signal import CandidateSignal, OptionsSnapshot, Signal

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_CAP = 50


class SignalAssembler:
    """Holds the current signal set and a bounded FIFO history of superseded signals.

    The current set is always replaced wholesale by a new tuple, so readers
    see either the previous set or the new one, never a mix.
    """

    def __init__(self, history_cap: int = DEFAULT_HISTORY_CAP):
        if history_cap < 1:
            raise ValueError("history_cap must be at least 1")
        self.history_cap = history_cap
        self._current: Tuple[Signal, ...] = ()
        self._history: Deque[Signal] = deque(maxlen=history_cap)

    @property
    def current(self) -> Tuple[Signal, ...]:
        return self._current

    @property
    def history(self) -> Tuple[Signal, ...]:
        return tuple(self._history)

    def active(self, now: Optional[datetime] = None) -> Tuple[Signal, ...]:
        moment = ensure_utc(now) if now is not None else utcnow()
        return tuple(signal for signal in self._current if not signal.is_expired(moment))

    def build(
        self,
        asset: str,
        candidates: Iterable[CandidateSignal],
        options: OptionsContext,
        scan_time: datetime,
        expiration_minutes: float,
        confidence_threshold: float,
    ) -> Tuple[Signal, ...]:
        """Filter by threshold and stamp each survivor; does not publish."""

        snapshot = OptionsSnapshot.from_context(options)
        signals = []
        for candidate in candidates:
            if candidate.confidence < confidence_threshold:
                logger.debug(
                    "Dropping %s: confidence %.0f below threshold %.0f",
                    candidate.strategy_id, candidate.confidence, confidence_threshold,
                )
                continue
            signals.append(
                Signal.from_candidate(
                    candidate,
                    asset=asset,
                    timestamp=scan_time,
                    expiration_minutes=expiration_minutes,
                    snapshot=snapshot,
                )
            )
        return tuple(signals)

    def replace(self, signals: Tuple[Signal, ...]) -> Tuple[Signal, ...]:
        """Retire the current set into history and install ``signals``."""

        if self._current:
            known = {signal.id for signal in self._history}
            for signal in self._current:
                if signal.id not in known:
                    self._history.append(signal)
                    known.add(signal.id)
        self._current = tuple(signals)
        return self._current

    def publish(
        self,
        asset: str,
        candidates: Iterable[CandidateSignal],
        options: OptionsContext,
        scan_time: datetime,
        expiration_minutes: float,
        confidence_threshold: float,
    ) -> Tuple[Signal, ...]:
        signals = self.build(asset, candidates, options, scan_time, expiration_minutes, confidence_threshold)
        return self.replace(signals)

    def clear(self) -> None:
        self._current = ()
        self._history.clear()


__all__ = ["DEFAULT_HISTORY_CAP", "SignalAssembler"]
