"""
Cancellable scheduled callbacks.

The recovery flow never runs a free-running loop for its countdown. It asks a
scheduler for a single delayed callback, keeps the returned handle, and
reschedules from inside the callback. Cancelling the handle is therefore
enough to stop the countdown for good.
"""

import asyncio
import heapq
import itertools
import logging
import time
from typing import Callable, List, Optional, Protocol, Tuple

log = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...

    def cancelled(self) -> bool: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class AsyncioScheduler:
    """Schedules callbacks on the running event loop."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)


class PolledTimerHandle:
    def __init__(self, due: float):
        self.due = due
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled


class PolledScheduler:
    """
    Fires due callbacks only when poll() is called.

    Streamlit re-runs the script instead of keeping an event loop alive, so the
    UI polls this scheduler from a fragment that re-runs every second. Missed
    ticks are caught up in order: a callback rescheduling itself during poll()
    is timed from its own due time, not from the wall clock.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._queue: List[Tuple[float, int, PolledTimerHandle, Callable[[], None]]] = []
        self._seq = itertools.count()
        self._firing_at: Optional[float] = None

    def _now(self) -> float:
        return self._firing_at if self._firing_at is not None else self._clock()

    def call_later(self, delay: float, callback: Callable[[], None]) -> PolledTimerHandle:
        handle = PolledTimerHandle(self._now() + delay)
        heapq.heappush(self._queue, (handle.due, next(self._seq), handle, callback))
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for _, _, handle, _ in self._queue if not handle.cancelled())

    def poll(self) -> int:
        """Runs every callback due by now. Returns how many fired."""
        now = self._clock()
        fired = 0
        while self._queue and self._queue[0][0] <= now:
            due, _, handle, callback = heapq.heappop(self._queue)
            if handle.cancelled():
                continue
            self._firing_at = due
            try:
                callback()
            except Exception as e:
                log.error(f"Scheduled callback failed: {e}", exc_info=True)
            finally:
                self._firing_at = None
            fired += 1
        return fired
