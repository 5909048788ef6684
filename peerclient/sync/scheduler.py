"""Single-threaded timer queue for polling subscriptions.

Callbacks never run concurrently: the owner of the queue (the daemon loop or
the dashboard's tick task) calls run_due() and each due callback runs to
completion before the next one starts.
"""

import heapq
import itertools
import logging
import time
from collections.abc import Callable

logger = logging.getLogger(__name__)


class TimerHandle:
    def __init__(self, deadline: float, seq: int, callback: Callable[[], None], label: str):
        self.deadline = deadline
        self.seq = seq
        self.callback = callback
        self.label = label
        self.cancelled = False
        self.fired = False

    @property
    def active(self) -> bool:
        return not (self.cancelled or self.fired)

    def cancel(self) -> None:
        self.cancelled = True

    def __lt__(self, other: "TimerHandle") -> bool:
        return (self.deadline, self.seq) < (other.deadline, other.seq)

    def __repr__(self) -> str:
        return f"TimerHandle({self.label!r}, deadline={self.deadline:.3f}, active={self.active})"


class TimerQueue:
    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        self._heap: list[TimerHandle] = []
        self._counter = itertools.count()

    def call_later(self, delay_s: float, callback: Callable[[], None], label: str = "") -> TimerHandle:
        handle = TimerHandle(self.clock() + max(0.0, delay_s), next(self._counter), callback, label)
        heapq.heappush(self._heap, handle)
        return handle

    def pending(self, label: str | None = None) -> list[TimerHandle]:
        """Active timers, optionally only those with the given label."""
        return sorted(
            h for h in self._heap if h.active and (label is None or h.label == label)
        )

    def next_deadline(self) -> float | None:
        self._drop_cancelled()
        return self._heap[0].deadline if self._heap else None

    def run_due(self) -> int:
        """Run every timer whose deadline has passed. Returns how many ran.

        Timers armed by a callback for an already-passed deadline run in the
        same call.
        """
        ran = 0
        while True:
            self._drop_cancelled()
            if not self._heap or self._heap[0].deadline > self.clock():
                return ran
            handle = heapq.heappop(self._heap)
            handle.fired = True
            try:
                handle.callback()
            except Exception:
                logger.exception("Timer callback %s failed", handle.label or handle.callback)
            ran += 1

    def cancel_all(self) -> None:
        for h in self._heap:
            h.cancel()
        self._heap.clear()

    def _drop_cancelled(self) -> None:
        while self._heap and self._heap[0].cancelled:
            heapq.heappop(self._heap)
