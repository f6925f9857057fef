from __future__ import annotations

import random

import pytest
from rich.console import Console

from fixtures import FakeMonotonic, question_bank
from fixtures.clock import EPOCH_MS

from study_quiz.quiz.engine import EngineSettings, QuizSessionEngine
from study_quiz.quiz.models import QuizMode, SessionStatus
from study_quiz.quiz.scheduler import ManualScheduler
from study_quiz.quiz.session import (
    SessionCommand,
    option_hint,
    parse_session_command,
    render_summary,
    run_quiz_session,
)
from study_quiz.quiz.storage import MemoryStore, PersistenceGateway


@pytest.fixture
def mono() -> FakeMonotonic:
    return FakeMonotonic()


@pytest.fixture
def console() -> Console:
    return Console(record=True, width=100, color_system=None)


@pytest.fixture
def rig(mono):
    """Engine, scheduler and gateway sharing one fake monotonic clock."""

    scheduler = ManualScheduler()
    gateway = PersistenceGateway(MemoryStore())
    engine = QuizSessionEngine(
        gateway=gateway,
        scheduler=scheduler,
        rng=random.Random(0),
        clock=lambda: EPOCH_MS + int(mono.now * 1000),
        settings=EngineSettings(shuffle_questions=False),
    )
    return engine, scheduler, gateway


def _run(rig, mono, console, provider):
    engine, scheduler, _ = rig
    return run_quiz_session(
        engine,
        scheduler,
        console,
        provider,
        clock=mono,
        sleeper=mono.sleep,
    )


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("n", SessionCommand("next")),
        (" NEXT ", SessionCommand("next")),
        ("submit", SessionCommand("submit")),
        ("finish", SessionCommand("submit")),
        ("q", SessionCommand("quit")),
        ("restart", SessionCommand("restart")),
        ("b", SessionCommand("select", "B")),
        ("a, c", SessionCommand("select", "AC")),
        ("a c", SessionCommand("select", "AC")),
        ("", None),
        (None, None),
        ("?", None),
        ("1", None),
    ],
)
def test_parse_session_command(raw, expected):
    assert parse_session_command(raw) == expected


def test_option_hint_only_for_multi_select():
    single, multi, _ = question_bank()

    assert option_hint(single) is None
    assert option_hint(multi) == "Select 2 correct options"


def test_practice_session_shows_feedback_and_auto_advances(
    rig, mono, console, make_provider
):
    engine, _, gateway = rig
    engine.start(question_bank(), QuizMode.PRACTICE)

    result = _run(rig, mono, console, make_provider(["a", "a b", "b"]))

    assert result.exit_action == "completed"
    assert result.stats.correct_count == 2
    assert result.stats.score_percent == 67
    assert result.stats.time_spent_seconds == 6
    assert result.session.answers["q3"] == ("A",)
    assert engine.status is SessionStatus.COMPLETED
    assert gateway.latest_stats() == result.stats

    output = console.export_text()
    assert "Question 1 / 3" in output
    assert "Select 2 correct options" in output
    assert "Correct!" in output
    assert "Correct answer: D" in output
    assert "Quiz Summary" in output
    assert "67%" in output
    assert "Single three" in output


def test_exam_session_shows_timer_and_submits(
    rig, mono, console, make_provider
):
    engine, _, _ = rig
    engine.start(question_bank(), QuizMode.EXAM)

    result = _run(
        rig,
        mono,
        console,
        make_provider(["a", "n", "a b", "a", "n", "submit"]),
    )

    assert result.exit_action == "completed"
    assert result.session.answers == {"q1": ("A",), "q2": ("C",)}
    assert result.stats.correct_count == 1
    output = console.export_text()
    assert "Time remaining 6:00" in output
    assert "Correct!" not in output
    assert "(no answer)" in output


def test_exam_countdown_expires_while_waiting_for_input(
    rig, mono, console
):
    engine, _, gateway = rig
    engine.start(question_bank(), QuizMode.EXAM)

    def slow_provider():
        mono.sleep(400)
        return "a"

    result = _run(rig, mono, console, slow_provider)

    assert result.exit_action == "completed"
    assert result.session.answers == {}
    assert result.stats.time_spent_seconds == 360
    assert len(gateway.load_stats_history()) == 1
    assert "Time is up!" in console.export_text()


def test_quit_keeps_saved_progress(rig, mono, console, make_provider):
    engine, _, gateway = rig
    engine.start(question_bank(), QuizMode.EXAM)

    result = _run(rig, mono, console, make_provider(["a", "quit"]))

    assert result.exit_action == "quit"
    assert result.stats is None
    saved = gateway.load_progress()
    assert saved.session.answers == {"q1": ("A",)}
    assert "study-quiz resume" in console.export_text()


def test_exhausted_input_ends_the_session(rig, mono, console, make_provider):
    engine, _, _ = rig
    engine.start(question_bank(), QuizMode.PRACTICE)

    result = _run(rig, mono, console, make_provider([]))

    assert result.exit_action == "quit"
    assert "Session interrupted." in console.export_text()


def test_invalid_input_is_reported_and_ignored(
    rig, mono, console, make_provider
):
    engine, _, _ = rig
    engine.start(question_bank(), QuizMode.EXAM)

    result = _run(rig, mono, console, make_provider(["?", "z", "q"]))

    assert result.exit_action == "quit"
    assert engine.session.answers == {}
    output = console.export_text()
    assert "Unrecognized command" in output
    assert "'Z' is not a valid choice" in output


def test_restart_command_starts_over(rig, mono, console, make_provider):
    engine, _, _ = rig
    engine.start(question_bank(), QuizMode.EXAM)

    _run(rig, mono, console, make_provider(["a", "n", "restart", "q"]))

    assert engine.session.current_index == 0
    assert engine.session.answers == {}
    assert "Quiz restarted." in console.export_text()


def test_render_summary_for_a_perfect_score(console):
    from study_quiz.quiz.models import QuizStats

    render_summary(
        console,
        QuizStats(
            total_questions=2,
            correct_count=2,
            incorrect_count=0,
            time_spent_seconds=65,
            score_percent=100,
        ),
    )

    output = console.export_text()
    assert "100%" in output
    assert "1:05" in output
    assert "Every question answered correctly." in output
