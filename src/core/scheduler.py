"""Virtual-time scheduler driving AI ticks, move completions and teleports.

All times are milliseconds on a clock that only moves when ``advance`` is
called, so a session is fully reproducible under test and the web server
can drive it from a real-time loop.
"""

import heapq
import itertools
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


@dataclass(order=True)
class ScheduledJob:
    due: float
    seq: int
    name: str = field(compare=False)
    callback: Callable[[], None] = field(compare=False, repr=False)
    cancelled: bool = field(default=False, compare=False)


class TickScheduler:
    """Single-threaded timer queue with explicit pause/resume."""

    def __init__(self):
        self.now = 0.0
        self.paused = False
        self._queue: List[ScheduledJob] = []
        self._counter = itertools.count()

    def call_later(self, delay_ms: float, callback: Callable[[], None], name: str = "job") -> ScheduledJob:
        job = ScheduledJob(self.now + max(0.0, delay_ms), next(self._counter), name, callback)
        heapq.heappush(self._queue, job)
        return job

    def run_periodic(self, name: str, callback: Callable[[], Optional[float]],
                     first_delay_ms: float = 0.0) -> Callable[[], Optional[ScheduledJob]]:
        """Run ``callback`` after ``first_delay_ms``, then again after whatever
        delay it returns. Returning ``None`` stops the cycle.

        Returns a zero-argument accessor for the currently pending job so the
        caller can cancel the cycle.
        """
        holder = {"job": None}

        def _fire():
            next_delay = callback()
            if next_delay is None:
                holder["job"] = None
                return
            holder["job"] = self.call_later(next_delay, _fire, name)

        holder["job"] = self.call_later(first_delay_ms, _fire, name)
        return lambda: holder["job"]

    def cancel(self, job: Optional[ScheduledJob]):
        if job is not None:
            job.cancelled = True

    def cancel_all(self):
        for job in self._queue:
            job.cancelled = True
        self._queue = []

    def pending(self) -> List[ScheduledJob]:
        return sorted(job for job in self._queue if not job.cancelled)

    def pause(self):
        self.paused = True

    def resume(self):
        self.paused = False

    def advance(self, ms: float) -> int:
        """Move the clock forward, firing every job that falls due.

        Jobs scheduled by callbacks inside the window also fire. While paused
        the clock does not move. Returns the number of jobs fired.
        """
        if self.paused or ms <= 0:
            return 0

        target = self.now + ms
        fired = 0
        while self._queue and self._queue[0].due <= target:
            job = heapq.heappop(self._queue)
            if job.cancelled:
                continue
            self.now = max(self.now, job.due)
            job.callback()
            fired += 1
            if self.paused:
                # A callback paused us; the rest of the window does not elapse.
                return fired
        self.now = target
        return fired
