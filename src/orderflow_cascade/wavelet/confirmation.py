"""
Prediction confirmation tracking

Every predictive signal gets a confirmation window. Within the window an
external confirmation (a later confirmed cascade) resolves it CONFIRMED with
the realized lead time; once the window has elapsed it resolves
FALSE_POSITIVE. Each signal is resolved exactly once.

Expiry is driven by data time (expire()). Optional wall-clock timers do the
same for idle streams; a timer only holds a weak reference to its tracker and
all timers are cancelled by cancel_all().
"""

import logging
import threading
import weakref
from collections import OrderedDict
from typing import Callable, Dict, List, Optional

from ..models import PredictiveSignal, SignalStatus

logger = logging.getLogger(__name__)


def _expire_from_timer(tracker_ref: "weakref.ReferenceType", timestamp: float) -> None:
    tracker = tracker_ref()
    if tracker is not None:
        tracker.expire_signal(timestamp)


class ConfirmationTracker:
    """Pending predictive signals keyed by their timestamp"""

    def __init__(self, window_seconds: float,
                 on_resolved: Optional[Callable[[PredictiveSignal], None]] = None,
                 use_timers: bool = False):
        self.window_seconds = float(window_seconds)
        self.on_resolved = on_resolved
        self.use_timers = use_timers

        self._pending: "OrderedDict[float, PredictiveSignal]" = OrderedDict()
        self._timers: Dict[float, threading.Timer] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)

    @property
    def pending(self) -> List[PredictiveSignal]:
        with self._lock:
            return list(self._pending.values())

    def register(self, signal: PredictiveSignal) -> None:
        with self._lock:
            self._pending[signal.timestamp] = signal
            if self.use_timers:
                timer = threading.Timer(self.window_seconds, _expire_from_timer,
                                        args=(weakref.ref(self), signal.timestamp))
                timer.daemon = True
                self._timers[signal.timestamp] = timer
                timer.start()

    def confirm(self, predictive_timestamp: float, observed_timestamp: float) -> Optional[PredictiveSignal]:
        """
        Resolve a pending signal as CONFIRMED

        Returns:
            The resolved signal, or None when no pending signal has that
            timestamp or the observation is outside its window.
        """
        lead_time = float(observed_timestamp) - float(predictive_timestamp)
        with self._lock:
            if predictive_timestamp not in self._pending or lead_time < 0:
                return None
            signal = self._pop(predictive_timestamp)
            if lead_time > self.window_seconds:
                signal.resolve(SignalStatus.FALSE_POSITIVE, signal.timestamp + self.window_seconds)
                confirmed = None
            else:
                signal.resolve(SignalStatus.CONFIRMED, observed_timestamp, lead_time)
                confirmed = signal

        self._notify(signal)
        return confirmed

    def mark_false_positive(self, predictive_timestamp: float, at: Optional[float] = None) -> Optional[PredictiveSignal]:
        with self._lock:
            signal = self._pop(predictive_timestamp)
            if signal is None:
                return None
            resolved_at = at if at is not None else signal.timestamp + self.window_seconds
            if not signal.resolve(SignalStatus.FALSE_POSITIVE, resolved_at):
                return None
        self._notify(signal)
        return signal

    def expire(self, now: float) -> List[PredictiveSignal]:
        """Resolve every signal whose window ended at or before `now` as FALSE_POSITIVE"""
        expired = []
        with self._lock:
            for timestamp in list(self._pending):
                if now - timestamp < self.window_seconds:
                    break
                signal = self._pop(timestamp)
                if signal.resolve(SignalStatus.FALSE_POSITIVE, timestamp + self.window_seconds):
                    expired.append(signal)
        for signal in expired:
            self._notify(signal)
        return expired

    def expire_signal(self, predictive_timestamp: float) -> Optional[PredictiveSignal]:
        """Timer entry point: expire one signal regardless of data time"""
        return self.mark_false_positive(predictive_timestamp)

    def cancel_all(self) -> None:
        with self._lock:
            for timer in self._timers.values():
                timer.cancel()
            self._timers.clear()

    def _pop(self, timestamp: float) -> Optional[PredictiveSignal]:
        timer = self._timers.pop(timestamp, None)
        if timer is not None:
            timer.cancel()
        return self._pending.pop(timestamp, None)

    def _notify(self, signal: PredictiveSignal) -> None:
        if self.on_resolved is not None:
            self.on_resolved(signal)


__all__ = ["ConfirmationTracker"]
