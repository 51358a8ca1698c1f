"""Keyed debounce timers on an asyncio event loop."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_MS = 50
DEFAULT_CHANGE_DELAY_MS = 100

_UNSET = object()


@dataclass
class DebounceEntry:
    """A pending timer: at most one exists per key."""

    key: str
    callback: Callable[[], Any]
    handle: asyncio.TimerHandle
    scheduled_at: float  # loop.time() when the timer was started


class DebounceScheduler:
    """Coalesces bursts of keyed calls into one delayed call per key.

    Usage::

        scheduler = DebounceScheduler(loop)
        scheduler.schedule("inv::TOTAL", recompute, 50)
        scheduler.schedule("inv::TOTAL", recompute, 50)  # replaces the first

    Timers run on *loop*, or on the running loop when none is given.
    Rescheduling under the same key is the only way a pending call is
    replaced; :meth:`clear` tears every timer down at once.
    """

    __slots__ = ("_loop", "_timers", "_last_values")

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop
        self._timers: dict[str, DebounceEntry] = {}
        # key -> last value seen by run_if_changed
        self._last_values: dict[str, Any] = {}

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None:
            return self._loop
        return asyncio.get_running_loop()

    def schedule(
        self,
        key: str,
        callback: Callable[[], Any],
        delay_ms: float = DEFAULT_DEBOUNCE_MS,
    ) -> None:
        """Run *callback* after *delay_ms*, replacing any pending call for *key*."""
        if not callable(callback):
            raise TypeError(f"callback for {key!r} is not callable")
        loop = self._get_loop()
        self.cancel(key)
        handle = loop.call_later(max(delay_ms, 0) / 1000.0, self._fire, key, callback)
        self._timers[key] = DebounceEntry(key, callback, handle, loop.time())

    def _fire(self, key: str, callback: Callable[[], Any]) -> None:
        # Drop the entry first so the callback may reschedule under its own key.
        self._timers.pop(key, None)
        try:
            callback()
        except Exception:
            logger.exception("Debounced callback for %r failed", key)

    def cancel(self, key: str) -> bool:
        """Cancel the pending call for *key*; ``True`` if one existed."""
        entry = self._timers.pop(key, None)
        if entry is None:
            return False
        entry.handle.cancel()
        return True

    def run_if_changed(
        self,
        key: str,
        new_value: Any,
        callback: Callable[[Any, Any], Any],
        delay_ms: float = DEFAULT_CHANGE_DELAY_MS,
    ) -> bool:
        """Debounce ``callback(new_value, previous)`` only when the value changed.

        Values are compared by their ``str()``.  The first value seen for a
        key always counts as a change.  Returns whether a call was scheduled.
        """
        previous = self._last_values.get(key, _UNSET)
        if previous is not _UNSET and str(previous) == str(new_value):
            logger.debug("Value for %r unchanged, skipping", key)
            return False
        self._last_values[key] = new_value
        if previous is _UNSET:
            previous = None
        self.schedule(f"change_{key}", lambda: callback(new_value, previous), delay_ms)
        return True

    def pending(self, key: str) -> bool:
        return key in self._timers

    def entry(self, key: str) -> DebounceEntry | None:
        return self._timers.get(key)

    @property
    def pending_keys(self) -> list[str]:
        return list(self._timers)

    def clear(self) -> None:
        """Cancel every pending timer and forget tracked values."""
        for entry in self._timers.values():
            entry.handle.cancel()
        count = len(self._timers)
        self._timers.clear()
        self._last_values.clear()
        if count:
            logger.debug("Cleared %d pending timers", count)

    def __len__(self) -> int:
        return len(self._timers)
