"""Single-threaded timer queue for debounced writes and store polling.

Nothing here spawns threads. The terminal loop calls `run_due()` between
prompts; tests drive a `ManualClock` and call `run_until_idle()`.
"""

import heapq
import itertools
import logging
import time
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


class ManualClock:
    """A clock that only moves when told to."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class TimerHandle:
    """A scheduled callback. Cancelling is idempotent."""

    def __init__(self, when: float, callback: Callable, args: tuple):
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self):
        self.cancelled = True

    def __repr__(self):
        state = "cancelled" if self.cancelled else "pending"
        return f"TimerHandle(when={self.when:.3f}, {state})"


class TimerQueue:
    """Callbacks ordered by due time; ties run in scheduling order."""

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        self.clock = clock or time.monotonic
        self._heap: List[tuple] = []
        self._seq = itertools.count()

    def time(self) -> float:
        return self.clock()

    def call_later(self, delay: float, callback: Callable, *args) -> TimerHandle:
        return self.call_at(self.clock() + max(0.0, delay), callback, *args)

    def call_at(self, when: float, callback: Callable, *args) -> TimerHandle:
        handle = TimerHandle(when, callback, args)
        heapq.heappush(self._heap, (when, next(self._seq), handle))
        return handle

    def pending(self) -> int:
        return sum(1 for _, _, h in self._heap if not h.cancelled)

    def next_due(self) -> Optional[float]:
        """Due time of the earliest live timer, or None."""
        self._drop_cancelled()
        return self._heap[0][0] if self._heap else None

    def run_due(self) -> int:
        """Run every callback that is due now. Returns how many ran."""
        ran = 0
        while True:
            self._drop_cancelled()
            if not self._heap or self._heap[0][0] > self.clock():
                return ran
            _, _, handle = heapq.heappop(self._heap)
            handle.cancelled = True
            handle.callback(*handle.args)
            ran += 1

    def run_until_idle(self, limit: int = 1000) -> int:
        """Run due callbacks, jumping a ManualClock forward to each deadline.

        Only meaningful with a ManualClock; recurring timers (store polls)
        would run forever, so `limit` bounds the number of callbacks.
        """
        ran = 0
        while ran < limit:
            due = self.next_due()
            if due is None:
                break
            if isinstance(self.clock, ManualClock) and due > self.clock.now:
                self.clock.now = due
            count = self.run_due()
            if count == 0:
                break
            ran += count
        return ran

    def cancel_all(self):
        for _, _, handle in self._heap:
            handle.cancel()
        self._heap.clear()

    def _drop_cancelled(self):
        while self._heap and self._heap[0][2].cancelled:
            heapq.heappop(self._heap)


class Debouncer:
    """Coalesce bursts of calls into one callback after a quiet period."""

    def __init__(self, timers: TimerQueue, delay: float, callback: Callable[[], None]):
        self.timers = timers
        self.delay = delay
        self.callback = callback
        self._handle: Optional[TimerHandle] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None and not self._handle.cancelled

    def trigger(self, delay: Optional[float] = None):
        """(Re)start the countdown."""
        self.cancel()
        self._handle = self.timers.call_later(
            self.delay if delay is None else delay, self._fire)

    def defer_until(self, when: float):
        """Push a pending callback out to `when` (never earlier)."""
        if self._handle is not None and self._handle.when >= when:
            return
        self.cancel()
        self._handle = self.timers.call_at(when, self._fire)

    def flush(self) -> bool:
        """Fire now if something is pending."""
        if not self.pending:
            return False
        self.cancel()
        self._fire()
        return True

    def cancel(self):
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self):
        self._handle = None
        self.callback()
