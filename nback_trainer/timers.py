from __future__ import annotations

import heapq
import itertools
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol


class Clock(Protocol):
    """Monotonic seconds. Pacing and grace windows read time only through this."""

    def now(self) -> float:
        ...


class RealClock:
    def now(self) -> float:
        return time.monotonic()


@dataclass(slots=True)
class TimerHandle:
    """Cancellation token for one scheduled callback."""

    due_at_s: float
    label: str
    cancelled: bool = False
    fired: bool = False

    @property
    def pending(self) -> bool:
        return not (self.cancelled or self.fired)

    def cancel(self) -> None:
        self.cancelled = True


@dataclass(order=True, slots=True)
class _Entry:
    due_at_s: float
    seq: int
    handle: TimerHandle = field(compare=False)
    callback: Callable[[float], None] = field(compare=False)


class TimerQueue:
    """One-shot timers pumped from a host loop.

    Nothing fires on its own: ``run_due()`` fires every pending timer whose
    deadline has passed, in deadline order, passing the deadline itself as the
    logical time. Callbacks may schedule or cancel further timers; a timer
    scheduled with a deadline that is already due fires in the same pump.
    """

    def __init__(self, *, clock: Clock) -> None:
        self._clock = clock
        self._heap: list[_Entry] = []
        self._counter = itertools.count()

    def schedule(
        self,
        delay_s: float,
        callback: Callable[[float], None],
        *,
        label: str = "",
        now: float | None = None,
    ) -> TimerHandle:
        base = self._clock.now() if now is None else float(now)
        handle = TimerHandle(due_at_s=base + max(0.0, float(delay_s)), label=label)
        heapq.heappush(self._heap, _Entry(handle.due_at_s, next(self._counter), handle, callback))
        return handle

    def cancel_all(self) -> None:
        for entry in self._heap:
            entry.handle.cancel()
        self._heap.clear()

    def run_due(self, now: float | None = None) -> int:
        limit = self._clock.now() if now is None else float(now)
        fired = 0
        while self._heap and self._heap[0].due_at_s <= limit:
            entry = heapq.heappop(self._heap)
            if entry.handle.cancelled:
                continue
            entry.handle.fired = True
            entry.callback(entry.due_at_s)
            fired += 1
        return fired

    def next_due_at_s(self) -> float | None:
        while self._heap and self._heap[0].handle.cancelled:
            heapq.heappop(self._heap)
        return None if not self._heap else self._heap[0].due_at_s
