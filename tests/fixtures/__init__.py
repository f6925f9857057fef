"""Shared testing fixtures for the study_quiz test suite."""

from .clock import FakeMonotonic, SchedulerClock  # noqa: F401
from .questions import (  # noqa: F401
    HEADER,
    SAMPLE_ROWS,
    csv_bytes,
    make_question,
    question_bank,
    xlsx_bytes,
)
from .workspace import WorkspaceBuilder  # noqa: F401

__all__ = [
    "FakeMonotonic",
    "HEADER",
    "SAMPLE_ROWS",
    "SchedulerClock",
    "WorkspaceBuilder",
    "csv_bytes",
    "make_question",
    "question_bank",
    "xlsx_bytes",
]
