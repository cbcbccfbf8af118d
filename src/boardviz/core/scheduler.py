"""Time and timer sources for the core.

The visual state engine and the recorder never read the clock or start
timers themselves; they use a Scheduler. Live sessions use
ThreadingScheduler (wall clock, one worker thread). Offline replay and tests
use VirtualScheduler, whose clock only moves when advanced, which makes
timed behavior fully deterministic.

Both fire callbacks one at a time, in due order, ties in scheduling order.

All times are in milliseconds.
"""

import heapq
import itertools
import logging
import threading
import time
from collections.abc import Callable
from typing import Protocol

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    """A pending callback that can be cancelled."""

    def cancel(self) -> None:
        """Cancel the callback if it has not fired yet."""
        ...


class Scheduler(Protocol):
    """Clock plus delayed-callback source."""

    def now(self) -> float:
        """Current time in milliseconds (monotonic)."""
        ...

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        """Run `callback` after `delay_ms` milliseconds."""
        ...


class ScheduledCall:
    """Timer handle shared by both schedulers."""

    def __init__(self, due: float, callback: Callable[[], None]):
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class TimerQueue:
    """Heap of scheduled calls ordered by (due, scheduling order)."""

    def __init__(self):
        self._heap: list[tuple[float, int, ScheduledCall]] = []
        self._sequence = itertools.count()

    def push(self, due: float, callback: Callable[[], None]) -> ScheduledCall:
        call = ScheduledCall(due, callback)
        heapq.heappush(self._heap, (due, next(self._sequence), call))
        return call

    def next_due(self) -> float | None:
        """Due time of the earliest live call (cancelled heads are dropped)."""
        while self._heap and self._heap[0][2].cancelled:
            heapq.heappop(self._heap)
        return self._heap[0][0] if self._heap else None

    def pop_due(self, now: float) -> ScheduledCall | None:
        """Remove and return the earliest live call due at or before `now`."""
        due = self.next_due()
        if due is None or due > now:
            return None
        return heapq.heappop(self._heap)[2]

    def clear(self) -> None:
        for _, _, call in self._heap:
            call.cancel()
        self._heap.clear()

    def __len__(self) -> int:
        return sum(1 for _, _, call in self._heap if not call.cancelled)


def _run_callback(callback: Callable[[], None]) -> None:
    try:
        callback()
    except Exception as e:
        logger.error(f"Error in scheduled callback {callback}: {e}", exc_info=True)


class ThreadingScheduler:
    """
    Wall-clock scheduler with a single worker thread.

    The worker is started on the first call_later() and sleeps on a
    condition until the earliest call is due, so a take of thousands of
    events costs one thread and replays in recorded order.
    """

    def __init__(self):
        self._queue = TimerQueue()
        self._condition = threading.Condition()
        self._thread: threading.Thread | None = None
        self._closing = False

    def now(self) -> float:
        return time.monotonic() * 1000.0

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> ScheduledCall:
        with self._condition:
            call = self._queue.push(self.now() + max(0.0, delay_ms), callback)
            if self._thread is None or not self._thread.is_alive():
                self._closing = False
                self._thread = threading.Thread(target=self._worker, name="scheduler", daemon=True)
                self._thread.start()
            self._condition.notify()
        return call

    @property
    def pending(self) -> int:
        """Number of calls still waiting to fire."""
        with self._condition:
            return len(self._queue)

    def close(self, timeout: float = 1.0) -> None:
        """Drop pending calls and stop the worker thread."""
        with self._condition:
            self._closing = True
            self._queue.clear()
            self._condition.notify_all()
            thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)
        logger.debug("Scheduler closed")

    def _worker(self) -> None:
        while True:
            with self._condition:
                call = None
                while call is None:
                    if self._closing:
                        return
                    due = self._queue.next_due()
                    if due is None:
                        self._condition.wait()
                        continue
                    call = self._queue.pop_due(self.now())
                    if call is None:
                        self._condition.wait((due - self.now()) / 1000.0)
            if not call.cancelled:
                _run_callback(call.callback)


class VirtualScheduler:
    """
    Deterministic scheduler with a manually advanced clock.

    Callbacks run synchronously inside advance()/run_until_idle(), in due
    order (ties in scheduling order). Callbacks may schedule further
    callbacks; those run too if they fall inside the advanced window.

    Example:
        ```python
        scheduler = VirtualScheduler()
        scheduler.call_later(120, lambda: print("fired"))
        scheduler.advance(100)  # nothing yet
        scheduler.advance(20)   # prints "fired"
        ```
    """

    def __init__(self, start_ms: float = 0.0):
        self._now = start_ms
        self._queue = TimerQueue()

    def now(self) -> float:
        return self._now

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> ScheduledCall:
        return self._queue.push(self._now + max(0.0, delay_ms), callback)

    @property
    def pending(self) -> int:
        """Number of timers that are still waiting to fire."""
        return len(self._queue)

    def advance(self, delta_ms: float) -> int:
        """
        Move the clock forward, firing every timer that falls due.

        Returns:
            Number of callbacks run
        """
        return self.advance_to(self._now + delta_ms)

    def advance_to(self, target_ms: float) -> int:
        """Move the clock to `target_ms`, firing due timers in order."""
        fired = 0
        while True:
            call = self._queue.pop_due(target_ms)
            if call is None:
                break
            self._now = max(self._now, call.due)
            call.callback()
            fired += 1
        self._now = max(self._now, target_ms)
        return fired

    def run_until_idle(self, limit_ms: float | None = None) -> int:
        """
        Fire timers until none are pending (or the clock would pass `limit_ms`).

        Returns:
            Number of callbacks run
        """
        fired = 0
        while True:
            due = self._queue.next_due()
            if due is None or (limit_ms is not None and due > limit_ms):
                return fired
            fired += self.advance_to(due)
