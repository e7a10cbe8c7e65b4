"""Scheduled continuations for the single-threaded capture loop.

Nothing in the engine sleeps. Delays are expressed as timers on a
``TimerQueue`` which the owning loop drains with :meth:`TimerQueue.run_pending`.
Tests drive the same queue with a :class:`ManualClock`.
"""

from __future__ import annotations

import heapq
import itertools
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Protocol

logger = logging.getLogger(__name__)


class Clock(Protocol):
    def now(self) -> float: ...


class MonotonicClock:
    """Wall clock used by live sessions."""

    def now(self) -> float:
        return time.monotonic()


@dataclass
class ManualClock:
    """Virtual clock advanced explicitly by tests."""

    current: float = 0.0

    def now(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds

    def advance_to(self, moment: float) -> None:
        self.current = max(self.current, moment)


@dataclass(order=True)
class TimerHandle:
    due: float
    sequence: int
    callback: Callable[..., Any] = field(compare=False)
    args: tuple = field(default=(), compare=False)
    interval: Optional[float] = field(default=None, compare=False)
    cancelled: bool = field(default=False, compare=False)

    def cancel(self) -> None:
        self.cancelled = True


class TimerQueue:
    """Min-heap of pending callbacks keyed by due time."""

    def __init__(self, clock: Optional[Clock] = None) -> None:
        self.clock: Clock = clock or MonotonicClock()
        self._heap: List[TimerHandle] = []
        self._sequence = itertools.count()

    def __len__(self) -> int:
        return sum(1 for handle in self._heap if not handle.cancelled)

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        handle = TimerHandle(
            due=self.clock.now() + max(delay, 0.0),
            sequence=next(self._sequence),
            callback=callback,
            args=args,
        )
        heapq.heappush(self._heap, handle)
        return handle

    def call_soon(self, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        return self.call_later(0.0, callback, *args)

    def call_every(self, interval: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        if interval <= 0:
            raise ValueError("interval must be positive")
        handle = self.call_later(interval, callback, *args)
        handle.interval = interval
        return handle

    def next_due(self) -> Optional[float]:
        while self._heap and self._heap[0].cancelled:
            heapq.heappop(self._heap)
        return self._heap[0].due if self._heap else None

    def run_pending(self) -> int:
        """Runs every callback due at the current clock reading."""

        now = self.clock.now()
        executed = 0
        while self._heap and self._heap[0].due <= now:
            handle = heapq.heappop(self._heap)
            if handle.cancelled:
                continue
            if handle.interval is not None:
                handle.due = now + handle.interval
                handle.sequence = next(self._sequence)
                heapq.heappush(self._heap, handle)
            executed += 1
            try:
                handle.callback(*handle.args)
            except Exception:
                logger.debug("Scheduled callback %r failed", handle.callback, exc_info=True)
        return executed

    def advance(self, seconds: float) -> int:
        """Moves a manual clock forward, running timers as they come due."""

        advance_to = getattr(self.clock, "advance_to", None)
        if advance_to is None:
            raise TypeError("advance() requires a ManualClock")

        target = self.clock.now() + seconds
        executed = self.run_pending()
        while True:
            due = self.next_due()
            if due is None or due > target:
                break
            advance_to(due)
            executed += self.run_pending()
        advance_to(target)
        executed += self.run_pending()
        return executed
