"""Domain records shared by the parser, engine and persistence layers.

Every record is a frozen dataclass. Sessions are replaced, never mutated:
engine operations return a new :class:`QuizSession` built with
:func:`dataclasses.replace`. ``to_dict``/``from_dict`` produce the JSON shape
stored by :mod:`study_quiz.quiz.storage`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Mapping, Protocol


class QuizMode(Enum):
    """Study modes offered after a question file is loaded."""

    PRACTICE = "practice"
    EXAM = "exam"

    @classmethod
    def from_value(cls, value: str) -> "QuizMode":
        normalized = str(value).strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        expected = ", ".join(member.value for member in cls)
        raise ValueError(
            f"Unknown quiz mode '{value}'. Expected one of: {expected}."
        )


class SessionStatus(Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class RandomSource(Protocol):
    """Anything that can shuffle a list in place, e.g. ``random.Random``."""

    def shuffle(self, x: list[Any]) -> None: ...


@dataclass(frozen=True)
class Question:
    """One validated spreadsheet row.

    ``all_options`` is the display order, shuffled once by the parser and
    kept for the lifetime of the question.
    """

    id: str
    question_text: str
    correct_answers: tuple[str, ...]
    incorrect_answers: tuple[str, ...]
    all_options: tuple[str, ...]

    @property
    def is_multi_select(self) -> bool:
        return len(self.correct_answers) > 1

    def is_correct(self, selection: Iterable[str] | None) -> bool:
        """Exact set match: order is ignored, partial credit is not given."""

        return frozenset(selection or ()) == frozenset(self.correct_answers)

    def ordered(self, selection: Iterable[str]) -> tuple[str, ...]:
        """Return ``selection`` sorted by display order."""

        chosen = set(selection)
        return tuple(option for option in self.all_options if option in chosen)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "question_text": self.question_text,
            "correct_answers": list(self.correct_answers),
            "incorrect_answers": list(self.incorrect_answers),
            "all_options": list(self.all_options),
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Question":
        return cls(
            id=str(payload["id"]),
            question_text=str(payload["question_text"]),
            correct_answers=_str_tuple(payload["correct_answers"]),
            incorrect_answers=_str_tuple(payload["incorrect_answers"]),
            all_options=_str_tuple(payload["all_options"]),
        )


@dataclass(frozen=True)
class QuizSession:
    """Snapshot of a running or finished quiz.

    ``answers`` maps question id to the selected options in display order; a
    missing key means the question was never answered. ``start_time`` and
    ``end_time`` are epoch milliseconds.
    """

    questions: tuple[Question, ...]
    mode: QuizMode
    start_time: int
    current_index: int = 0
    answers: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    is_completed: bool = False
    end_time: int | None = None
    time_limit_seconds: int | None = None

    @property
    def total_questions(self) -> int:
        return len(self.questions)

    @property
    def current_question(self) -> Question | None:
        if self.is_completed or self.current_index >= len(self.questions):
            return None
        return self.questions[self.current_index]

    @property
    def is_last_question(self) -> bool:
        return self.current_index >= len(self.questions) - 1

    def question_by_id(self, question_id: str) -> Question | None:
        for question in self.questions:
            if question.id == question_id:
                return question
        return None

    def selection_for(self, question_id: str) -> tuple[str, ...]:
        return tuple(self.answers.get(question_id, ()))

    def answered_count(self) -> int:
        return sum(1 for value in self.answers.values() if value)

    def to_dict(self) -> dict[str, Any]:
        return {
            "questions": [question.to_dict() for question in self.questions],
            "mode": self.mode.value,
            "start_time": self.start_time,
            "current_index": self.current_index,
            "answers": {
                key: list(value) for key, value in self.answers.items()
            },
            "is_completed": self.is_completed,
            "end_time": self.end_time,
            "time_limit_seconds": self.time_limit_seconds,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "QuizSession":
        questions = tuple(
            Question.from_dict(item) for item in payload["questions"]
        )
        answers = payload.get("answers") or {}
        if not isinstance(answers, Mapping):
            raise ValueError("Session answers must be a mapping.")
        current_index = int(payload.get("current_index", 0))
        if not 0 <= current_index <= len(questions):
            raise ValueError(
                f"Session index {current_index} is out of range."
            )
        end_time = payload.get("end_time")
        limit = payload.get("time_limit_seconds")
        return cls(
            questions=questions,
            mode=QuizMode.from_value(payload["mode"]),
            start_time=int(payload["start_time"]),
            current_index=current_index,
            answers={
                str(key): _str_tuple(value) for key, value in answers.items()
            },
            is_completed=bool(payload.get("is_completed", False)),
            end_time=int(end_time) if end_time is not None else None,
            time_limit_seconds=int(limit) if limit is not None else None,
        )


@dataclass(frozen=True)
class IncorrectQuestion:
    """A question answered wrongly or left unanswered."""

    question_text: str
    correct_answers: tuple[str, ...]
    user_answers: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "question_text": self.question_text,
            "correct_answers": list(self.correct_answers),
            "user_answers": list(self.user_answers),
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "IncorrectQuestion":
        return cls(
            question_text=str(payload["question_text"]),
            correct_answers=_str_tuple(payload["correct_answers"]),
            user_answers=_str_tuple(payload.get("user_answers", ())),
        )


@dataclass(frozen=True)
class QuizStats:
    """Results computed once when a session completes."""

    total_questions: int
    correct_count: int
    incorrect_count: int
    time_spent_seconds: int
    score_percent: int
    incorrect_questions: tuple[IncorrectQuestion, ...] = ()
    mode: QuizMode | None = None
    completed_at: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_questions": self.total_questions,
            "correct_count": self.correct_count,
            "incorrect_count": self.incorrect_count,
            "time_spent_seconds": self.time_spent_seconds,
            "score_percent": self.score_percent,
            "incorrect_questions": [
                item.to_dict() for item in self.incorrect_questions
            ],
            "mode": self.mode.value if self.mode else None,
            "completed_at": self.completed_at,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "QuizStats":
        mode = payload.get("mode")
        completed_at = payload.get("completed_at")
        return cls(
            total_questions=int(payload["total_questions"]),
            correct_count=int(payload["correct_count"]),
            incorrect_count=int(payload["incorrect_count"]),
            time_spent_seconds=int(payload["time_spent_seconds"]),
            score_percent=int(payload["score_percent"]),
            incorrect_questions=tuple(
                IncorrectQuestion.from_dict(item)
                for item in payload.get("incorrect_questions", ())
            ),
            mode=QuizMode.from_value(mode) if mode else None,
            completed_at=(
                int(completed_at) if completed_at is not None else None
            ),
        )


@dataclass(frozen=True)
class QuizProgress:
    """Persisted snapshot used to resume an interrupted session."""

    session_id: str
    session: QuizSession
    last_updated: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "session": self.session.to_dict(),
            "last_updated": self.last_updated,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "QuizProgress":
        return cls(
            session_id=str(payload["session_id"]),
            session=QuizSession.from_dict(payload["session"]),
            last_updated=int(payload["last_updated"]),
        )


def _str_tuple(values: Any) -> tuple[str, ...]:
    if isinstance(values, (str, bytes)) or not isinstance(values, Iterable):
        raise ValueError(f"Expected a list of strings, found {values!r}.")
    return tuple(str(value) for value in values)
