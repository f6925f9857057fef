from __future__ import annotations

import pytest

from study_quiz.quiz.scheduler import ManualScheduler


def test_call_later_fires_once_when_due():
    scheduler = ManualScheduler()
    fired = []
    task = scheduler.call_later(2.0, lambda: fired.append(scheduler.now))

    assert scheduler.advance(1.999) == 0
    assert task.active
    assert scheduler.advance(0.001) == 1
    assert fired == [2.0]
    assert not task.active
    assert scheduler.advance(10) == 0


def test_cancelled_task_never_fires():
    scheduler = ManualScheduler()
    fired = []
    task = scheduler.call_later(1.0, lambda: fired.append("late"))

    task.cancel()
    scheduler.advance(5)

    assert fired == []
    assert task.cancelled
    assert scheduler.pending() == []


def test_call_every_repeats_until_cancelled():
    scheduler = ManualScheduler()
    ticks = []
    task = scheduler.call_every(1.0, lambda: ticks.append(scheduler.now))

    assert scheduler.advance(3.5) == 3
    assert ticks == [1.0, 2.0, 3.0]
    task.cancel()
    assert scheduler.advance(3) == 0


def test_callbacks_run_in_due_order_and_can_cancel_each_other():
    scheduler = ManualScheduler()
    order = []
    later = scheduler.call_later(3.0, lambda: order.append("later"))

    def first():
        order.append("first")
        later.cancel()

    scheduler.call_later(1.0, first)
    scheduler.call_later(1.0, lambda: order.append("second"))

    scheduler.run_until(10)

    assert order == ["first", "second"]
    assert scheduler.now == 10


def test_call_every_rejects_non_positive_interval():
    with pytest.raises(ValueError):
        ManualScheduler().call_every(0, lambda: None)
