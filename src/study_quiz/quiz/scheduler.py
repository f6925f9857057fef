"""Scheduled callbacks with explicit cancellation handles.

The engine never sleeps or spawns threads. It asks a :class:`Scheduler` to
call it back later and keeps the returned :class:`ScheduledTask` so the
callback can be cancelled when the session completes or is replaced.
"""

from __future__ import annotations

import heapq
import itertools
from typing import Callable, Protocol

__all__ = [
    "ScheduledTask",
    "Scheduler",
    "ManualScheduler",
]

Callback = Callable[[], None]


class ScheduledTask:
    """Handle for a pending one-shot or repeating callback."""

    def __init__(
        self, callback: Callback, due: float, interval: float | None = None
    ) -> None:
        self.callback = callback
        self.due = due
        self.interval = interval
        self._cancelled = False
        self._finished = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def active(self) -> bool:
        return not (self._cancelled or self._finished)

    def cancel(self) -> None:
        self._cancelled = True

    def _fire(self) -> None:
        if self.interval is None:
            self._finished = True
        self.callback()


class Scheduler(Protocol):
    def call_later(
        self, delay: float, callback: Callback
    ) -> ScheduledTask: ...

    def call_every(
        self, interval: float, callback: Callback
    ) -> ScheduledTask: ...


class ManualScheduler:
    """Scheduler driven by an explicit clock.

    Callbacks run only inside :meth:`run_until` / :meth:`advance`, in due
    order, on the caller's thread. Tests advance it directly; the console
    session pumps it with ``time.monotonic()``.
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._queue: list[tuple[float, int, ScheduledTask]] = []
        self._sequence = itertools.count()

    @property
    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callback) -> ScheduledTask:
        task = ScheduledTask(callback, self._now + max(delay, 0.0))
        self._push(task)
        return task

    def call_every(self, interval: float, callback: Callback) -> ScheduledTask:
        if interval <= 0:
            raise ValueError("interval must be positive")
        task = ScheduledTask(callback, self._now + interval, interval)
        self._push(task)
        return task

    def pending(self) -> list[ScheduledTask]:
        return [task for _, _, task in sorted(self._queue) if task.active]

    def advance(self, seconds: float) -> int:
        return self.run_until(self._now + seconds)

    def run_until(self, moment: float) -> int:
        """Fire callbacks due at or before ``moment``; return how many ran."""

        fired = 0
        while self._queue and self._queue[0][0] <= moment:
            due, _, task = heapq.heappop(self._queue)
            if not task.active:
                continue
            self._now = max(self._now, due)
            task._fire()
            fired += 1
            if task.interval is not None and task.active:
                task.due = due + task.interval
                self._push(task)
        self._now = max(self._now, moment)
        return fired

    def _push(self, task: ScheduledTask) -> None:
        heapq.heappush(self._queue, (task.due, next(self._sequence), task))
