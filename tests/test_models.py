from __future__ import annotations

import pytest

from fixtures import question_bank

from study_quiz.quiz.models import (
    Question,
    QuizMode,
    QuizProgress,
    QuizSession,
    QuizStats,
)


def test_quiz_mode_from_value_is_forgiving_about_case():
    assert QuizMode.from_value(" Exam ") is QuizMode.EXAM
    with pytest.raises(ValueError, match="practice, exam"):
        QuizMode.from_value("timed")


def test_question_ordered_follows_display_order():
    question = Question(
        id="q",
        question_text="?",
        correct_answers=("a", "b"),
        incorrect_answers=("c", "d"),
        all_options=("d", "b", "c", "a"),
    )

    assert question.ordered({"a", "b", "d"}) == ("d", "b", "a")
    assert question.is_correct(["b", "a"])
    assert not question.is_correct(None)


def test_session_navigation_helpers():
    questions = tuple(question_bank())
    session = QuizSession(
        questions=questions,
        mode=QuizMode.PRACTICE,
        start_time=0,
        current_index=2,
        answers={"q1": ("A",), "q2": ()},
    )

    assert session.current_question is questions[2]
    assert session.is_last_question
    assert session.answered_count() == 1
    assert session.question_by_id("missing") is None
    assert session.selection_for("q3") == ()


def test_progress_round_trips_through_dicts():
    questions = tuple(question_bank())
    session = QuizSession(
        questions=questions,
        mode=QuizMode.EXAM,
        start_time=5,
        current_index=1,
        answers={"q2": ("A", "C")},
        time_limit_seconds=360,
    )
    progress = QuizProgress("id-1", session, last_updated=9)

    assert QuizProgress.from_dict(progress.to_dict()) == progress


@pytest.mark.parametrize(
    "patch",
    [
        {"current_index": 7},
        {"current_index": -1},
        {"answers": ["q1"]},
        {"answers": {"q1": "A"}},
        {"mode": "timed"},
    ],
)
def test_session_from_dict_rejects_inconsistent_payloads(patch):
    session = QuizSession(
        questions=tuple(question_bank()),
        mode=QuizMode.EXAM,
        start_time=0,
    )
    payload = {**session.to_dict(), **patch}

    with pytest.raises(ValueError):
        QuizSession.from_dict(payload)


def test_stats_from_dict_tolerates_missing_optional_fields():
    stats = QuizStats.from_dict(
        {
            "total_questions": 2,
            "correct_count": 1,
            "incorrect_count": 1,
            "time_spent_seconds": 3,
            "score_percent": 50,
        }
    )

    assert stats.incorrect_questions == ()
    assert stats.mode is None
    assert stats.completed_at is None
