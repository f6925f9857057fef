"""Result presentation helpers: CSV export, time format and score bands."""

from __future__ import annotations

import csv
import io
from datetime import date
from enum import Enum
from pathlib import Path

from .models import QuizStats

__all__ = [
    "ScoreBand",
    "REPORT_HEADER",
    "ANSWER_SEPARATOR",
    "export_filename",
    "format_duration",
    "render_report",
    "score_band",
    "write_report",
]

REPORT_HEADER = ("question", "correctAnswers", "userAnswers")
ANSWER_SEPARATOR = "; "


class ScoreBand(Enum):
    PASS = "pass"
    BORDERLINE = "borderline"
    FAIL = "fail"

    @property
    def style(self) -> str:
        return {
            ScoreBand.PASS: "bold green",
            ScoreBand.BORDERLINE: "bold yellow",
            ScoreBand.FAIL: "bold red",
        }[self]


def score_band(score_percent: int) -> ScoreBand:
    if score_percent >= 80:
        return ScoreBand.PASS
    if score_percent >= 60:
        return ScoreBand.BORDERLINE
    return ScoreBand.FAIL


def format_duration(seconds: int) -> str:
    """Format seconds as ``m:ss`` (minutes are not capped at 59)."""

    minutes, secs = divmod(max(int(seconds), 0), 60)
    return f"{minutes}:{secs:02d}"


def render_report(stats: QuizStats) -> str:
    """CSV text with one row per wrong or unanswered question.

    Every field is quoted and embedded quotes are doubled.
    """

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(REPORT_HEADER)
    for item in stats.incorrect_questions:
        writer.writerow(
            (
                item.question_text,
                ANSWER_SEPARATOR.join(item.correct_answers),
                ANSWER_SEPARATOR.join(item.user_answers),
            )
        )
    return buffer.getvalue()


def export_filename(day: date | None = None) -> str:
    return f"quiz-results-{(day or date.today()).isoformat()}.csv"


def write_report(stats: QuizStats, target: Path) -> Path:
    """Write the report to ``target``; a directory gets the dated name."""

    if target.is_dir():
        target = target / export_filename()
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(render_report(stats), encoding="utf-8")
    return target
