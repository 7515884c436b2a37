"""
Recurring callback registration used for the periodic session check.

A scheduler keeps at most one registration per name.  Registering a
name that is already present replaces the old registration, and
cancelling an unknown name does nothing.
"""

from __future__ import annotations

import threading
from datetime import timedelta
from typing import Callable, Dict, List, Protocol, Tuple

from .exceptions import ValidationError
from .logging_utils import get_logger

logger = get_logger(__name__)

ALLOWED_MINUTE_INTERVALS = frozenset({1, 5, 10, 15, 30})


class RecurringScheduler(Protocol):
    def register(self, name: str, callback: Callable[[], None], interval: timedelta) -> None:
        ...

    def cancel(self, name: str) -> None:
        ...

    def is_registered(self, name: str) -> bool:
        ...


def validate_interval(interval: timedelta) -> None:
    """Reject intervals a time-based trigger cannot express.

    Valid intervals are a whole number of hours, or exactly 1, 5, 10,
    15 or 30 minutes.
    """
    seconds = interval.total_seconds()
    if seconds <= 0 or seconds % 60:
        raise ValidationError(f"Unsupported check interval: {interval}")
    minutes = int(seconds // 60)
    if minutes % 60 == 0:
        return
    if minutes not in ALLOWED_MINUTE_INTERVALS:
        raise ValidationError(
            "Check interval must be whole hours or one of "
            f"{sorted(ALLOWED_MINUTE_INTERVALS)} minutes, got {minutes} minutes"
        )


class ThreadingScheduler:
    """Run callbacks on daemon timer threads.

    Each registration is a chain of :class:`threading.Timer` objects;
    the next timer is armed before the callback runs so a slow or
    failing callback does not stop the chain.
    """

    def __init__(self) -> None:
        self._timers: Dict[str, threading.Timer] = {}
        self._lock = threading.Lock()

    def register(self, name: str, callback: Callable[[], None], interval: timedelta) -> None:
        validate_interval(interval)
        with self._lock:
            self._cancel_locked(name)
            self._arm_locked(name, callback, interval)
        logger.debug("Registered recurring callback %s every %s", name, interval)

    def cancel(self, name: str) -> None:
        with self._lock:
            self._cancel_locked(name)

    def is_registered(self, name: str) -> bool:
        with self._lock:
            return name in self._timers

    def shutdown(self) -> None:
        with self._lock:
            for name in list(self._timers):
                self._cancel_locked(name)

    def _arm_locked(self, name: str, callback: Callable[[], None], interval: timedelta) -> None:
        timer = threading.Timer(
            interval.total_seconds(), self._fire, args=(name, callback, interval)
        )
        timer.daemon = True
        self._timers[name] = timer
        timer.start()

    def _cancel_locked(self, name: str) -> None:
        timer = self._timers.pop(name, None)
        if timer is not None:
            timer.cancel()

    def _fire(self, name: str, callback: Callable[[], None], interval: timedelta) -> None:
        with self._lock:
            current = self._timers.get(name)
            if current is None or current is not threading.current_thread():
                # cancelled or replaced while waiting
                return
            self._arm_locked(name, callback, interval)
        try:
            callback()
        except Exception:
            logger.exception("Recurring callback %s failed", name)


class ManualScheduler:
    """Scheduler whose callbacks only run when :meth:`run_pending` is called."""

    def __init__(self) -> None:
        self.registrations: Dict[str, Tuple[Callable[[], None], timedelta]] = {}

    def register(self, name: str, callback: Callable[[], None], interval: timedelta) -> None:
        validate_interval(interval)
        self.registrations[name] = (callback, interval)

    def cancel(self, name: str) -> None:
        self.registrations.pop(name, None)

    def is_registered(self, name: str) -> bool:
        return name in self.registrations

    def interval(self, name: str) -> timedelta:
        return self.registrations[name][1]

    def run_pending(self) -> List[str]:
        """Fire every registered callback once and return their names."""
        fired = []
        for name, (callback, _) in list(self.registrations.items()):
            callback()
            fired.append(name)
        return fired
