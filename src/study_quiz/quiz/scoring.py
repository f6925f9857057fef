"""Pure scoring helpers used when a session completes."""

from __future__ import annotations

from typing import Mapping, Sequence

from .models import IncorrectQuestion, Question, QuizMode, QuizStats


def score_percent(correct: int, total: int) -> int:
    """Integer percentage rounded half up (``12.5`` becomes ``13``)."""

    if total <= 0:
        raise ValueError("Cannot score an empty question set.")
    return (correct * 200 + total) // (total * 2)


def elapsed_seconds(start_time: int, end_time: int) -> int:
    """Whole seconds between two epoch-millisecond timestamps."""

    return max(0, (end_time - start_time) // 1000)


def compute_stats(
    questions: Sequence[Question],
    answers: Mapping[str, Sequence[str]],
    *,
    start_time: int,
    now: int,
    mode: QuizMode | None = None,
) -> QuizStats:
    """Score ``answers`` against ``questions``.

    A question counts as correct only when the selection equals its correct
    answers exactly. Wrong and unanswered questions are listed in question
    order, unanswered ones with an empty selection.
    """

    correct = 0
    incorrect: list[IncorrectQuestion] = []
    for question in questions:
        selection = tuple(answers.get(question.id, ()))
        if question.is_correct(selection):
            correct += 1
            continue
        incorrect.append(
            IncorrectQuestion(
                question_text=question.question_text,
                correct_answers=question.correct_answers,
                user_answers=question.ordered(selection),
            )
        )
    total = len(questions)
    return QuizStats(
        total_questions=total,
        correct_count=correct,
        incorrect_count=total - correct,
        time_spent_seconds=elapsed_seconds(start_time, now),
        score_percent=score_percent(correct, total),
        incorrect_questions=tuple(incorrect),
        mode=mode,
        completed_at=now,
    )
