from __future__ import annotations

from datetime import date

import pytest

from study_quiz.quiz.models import IncorrectQuestion, QuizStats
from study_quiz.quiz.report import (
    ScoreBand,
    export_filename,
    format_duration,
    render_report,
    score_band,
    write_report,
)


def _stats(*incorrect: IncorrectQuestion) -> QuizStats:
    return QuizStats(
        total_questions=4,
        correct_count=4 - len(incorrect),
        incorrect_count=len(incorrect),
        time_spent_seconds=75,
        score_percent=50,
        incorrect_questions=incorrect,
    )


def test_render_report_quotes_every_field():
    stats = _stats(
        IncorrectQuestion(
            question_text='Who said "hi"?',
            correct_answers=("Ann", "Bo"),
            user_answers=("Cy",),
        ),
        IncorrectQuestion(
            question_text="Skipped, sadly",
            correct_answers=("4",),
            user_answers=(),
        ),
    )

    assert render_report(stats).splitlines() == [
        '"question","correctAnswers","userAnswers"',
        '"Who said ""hi""?","Ann; Bo","Cy"',
        '"Skipped, sadly","4",""',
    ]


def test_render_report_with_no_mistakes_has_only_the_header():
    assert render_report(_stats()) == (
        '"question","correctAnswers","userAnswers"\n'
    )


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [(0, "0:00"), (9, "0:09"), (75, "1:15"), (360, "6:00"), (3725, "62:05")],
)
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected


@pytest.mark.parametrize(
    ("score", "band"),
    [
        (100, ScoreBand.PASS),
        (80, ScoreBand.PASS),
        (79, ScoreBand.BORDERLINE),
        (60, ScoreBand.BORDERLINE),
        (59, ScoreBand.FAIL),
        (0, ScoreBand.FAIL),
    ],
)
def test_score_band_thresholds(score, band):
    assert score_band(score) is band


def test_export_filename_uses_the_date():
    assert export_filename(date(2024, 3, 9)) == "quiz-results-2024-03-09.csv"


def test_write_report_to_directory_uses_dated_name(tmp_path):
    stats = _stats(
        IncorrectQuestion("Q", correct_answers=("A",), user_answers=("B",))
    )

    written = write_report(stats, tmp_path)

    assert written.parent == tmp_path
    assert written.name.startswith("quiz-results-")
    assert written.read_text(encoding="utf-8") == render_report(stats)


def test_write_report_to_explicit_file(tmp_path):
    target = tmp_path / "nested" / "mine.csv"

    written = write_report(_stats(), target)

    assert written == target
    assert target.exists()
