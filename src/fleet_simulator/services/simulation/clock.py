"""Clock and timer abstractions driving the fleet scheduler.

``AsyncioClock`` schedules callbacks on the running event loop. ``VirtualClock``
keeps its own timer queue and only moves when ``advance`` is called, which
lets restart cycles be exercised without real delays.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Protocol

Callback = Callable[[], None]


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Clock(Protocol):
    def now(self) -> datetime: ...

    def call_later(self, delay: float, callback: Callback) -> TimerHandle: ...


class RepeatingTimer:
    """Fires ``callback`` every ``interval`` seconds after an initial delay."""

    def __init__(
        self,
        clock: Clock,
        interval: float,
        callback: Callback,
        *,
        first_delay: Optional[float] = None,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be > 0")
        self.clock = clock
        self.interval = interval
        self.callback = callback
        self.first_delay = interval if first_delay is None else first_delay
        self._handle: Optional[TimerHandle] = None
        self._cancelled = False

    @property
    def active(self) -> bool:
        return self._handle is not None and not self._cancelled

    def start(self) -> "RepeatingTimer":
        self._cancelled = False
        self._handle = self.clock.call_later(self.first_delay, self._fire)
        return self

    def cancel(self) -> None:
        self._cancelled = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        if self._cancelled:
            return
        # Reschedule first so a failing callback cannot stop the cadence.
        self._handle = self.clock.call_later(self.interval, self._fire)
        self.callback()


class AsyncioClock:
    def now(self) -> datetime:
        return datetime.now().astimezone()

    def call_later(self, delay: float, callback: Callback) -> asyncio.TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)


class VirtualTimer:
    __slots__ = ("due", "callback", "cancelled")

    def __init__(self, due: float, callback: Callback) -> None:
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class VirtualClock:
    """Manually advanced clock. Timers fire in due order, ties in scheduling order."""

    def __init__(self, start: Optional[datetime] = None) -> None:
        self.start = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        self.elapsed = 0.0
        self._queue: list[tuple[float, int, VirtualTimer]] = []
        self._sequence = itertools.count()

    def now(self) -> datetime:
        return self.start + timedelta(seconds=self.elapsed)

    def call_later(self, delay: float, callback: Callback) -> VirtualTimer:
        timer = VirtualTimer(self.elapsed + max(delay, 0.0), callback)
        heapq.heappush(self._queue, (timer.due, next(self._sequence), timer))
        return timer

    def pending(self) -> int:
        return sum(1 for _, _, timer in self._queue if not timer.cancelled)

    def advance(self, seconds: float) -> None:
        target = self.elapsed + seconds
        while self._queue and self._queue[0][0] <= target:
            due, _, timer = heapq.heappop(self._queue)
            self.elapsed = due
            if not timer.cancelled:
                timer.callback()
        self.elapsed = target
