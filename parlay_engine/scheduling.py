"""
Timer seam for the simulation clock.

The clock only needs ``call_later(delay, callback) -> handle`` with
``handle.cancel()`` and a ``now()`` reading.  ``AsyncioScheduler`` maps
that onto the running event loop; ``ManualScheduler`` is a virtual clock
that fires callbacks as time is advanced by hand (offline runs, tests).
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import time
from typing import Callable, List, Optional, Tuple


class AsyncioScheduler:
    """Schedules callbacks on the event loop that is running at call time."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self._get_loop().call_later(delay, callback)

    def now(self) -> float:
        return time.monotonic()


class ManualHandle:
    def __init__(self):
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """Deterministic virtual-time scheduler.

    ``advance(seconds)`` fires every due callback in time order (ties in
    scheduling order), including callbacks scheduled by callbacks.
    """

    def __init__(self, start: float = 0.0):
        self._now = start
        self._queue: List[Tuple[float, int, ManualHandle, Callable[[], None]]] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualHandle:
        handle = ManualHandle()
        heapq.heappush(self._queue, (self._now + max(0.0, delay), next(self._seq), handle, callback))
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for _, _, h, _ in self._queue if not h.cancelled)

    def advance(self, seconds: float) -> int:
        """Move time forward, firing due callbacks.  Returns how many fired."""
        target = self._now + seconds
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            when, _, handle, callback = heapq.heappop(self._queue)
            self._now = when
            if handle.cancelled:
                continue
            callback()
            fired += 1
        self._now = target
        return fired

    def run_until_idle(self, max_seconds: float = 3600.0) -> int:
        """Fire callbacks until the queue drains or ``max_seconds`` pass."""
        fired = 0
        deadline = self._now + max_seconds
        while self._queue and self._now < deadline:
            next_at = self._queue[0][0]
            if next_at > deadline:
                break
            fired += self.advance(max(0.0, next_at - self._now))
        return fired
