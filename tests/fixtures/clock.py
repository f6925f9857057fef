"""Deterministic clocks for engine and console session tests."""

from __future__ import annotations

from dataclasses import dataclass

from study_quiz.quiz.scheduler import ManualScheduler

EPOCH_MS = 1_700_000_000_000


@dataclass
class SchedulerClock:
    """Epoch-millisecond clock that follows a :class:`ManualScheduler`."""

    scheduler: ManualScheduler
    base: int = EPOCH_MS

    def __call__(self) -> int:
        return self.base + int(self.scheduler.now * 1000)


@dataclass
class FakeMonotonic:
    """Monotonic clock whose ``sleep`` moves time instead of blocking."""

    now: float = 0.0

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.now += seconds
