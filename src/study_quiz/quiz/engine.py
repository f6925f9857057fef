"""Quiz session lifecycle: start, answer, advance, countdown and completion.

The engine owns the active :class:`QuizSession` and every timer scheduled on
its behalf. State moves ``NOT_STARTED -> IN_PROGRESS -> COMPLETED`` and
nothing leaves ``COMPLETED`` except starting, restarting or resuming a new
session, which first cancels the previous session's timers.

Practice mode shows feedback as soon as a question has as many selections as
it has correct answers, then advances automatically after a short delay.
Exam mode advances only on request and runs an overall countdown that
completes the session when it reaches zero.
"""

from __future__ import annotations

import logging
import random
import time
import uuid
from dataclasses import dataclass, replace
from functools import partial
from typing import Callable, Iterable, Sequence

from .errors import InvalidState, UnknownOption, UnknownQuestion
from .models import (
    Question,
    QuizMode,
    QuizProgress,
    QuizSession,
    QuizStats,
    RandomSource,
    SessionStatus,
)
from .scheduler import ManualScheduler, ScheduledTask, Scheduler
from .scoring import compute_stats, elapsed_seconds
from .storage import PersistenceGateway

__all__ = [
    "EngineSettings",
    "PracticeFeedback",
    "QuizSessionEngine",
    "epoch_millis",
]

COUNTDOWN_INTERVAL_SECONDS = 1.0

Clock = Callable[[], int]


def epoch_millis() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class EngineSettings:
    practice_delay_seconds: float = 2.0
    exam_seconds_per_question: int = 120
    shuffle_questions: bool = True


@dataclass(frozen=True)
class PracticeFeedback:
    """Result shown for the current question before auto-advance."""

    question_id: str
    is_correct: bool
    selected: tuple[str, ...]
    correct_answers: tuple[str, ...]


class QuizSessionEngine:
    """Drive one quiz session at a time.

    All collaborators are injected: ``gateway`` persists progress and
    results (optional), ``scheduler`` runs the deferred advance and the exam
    countdown, ``rng`` shuffles question order and ``clock`` returns epoch
    milliseconds.
    """

    def __init__(
        self,
        *,
        gateway: PersistenceGateway | None = None,
        scheduler: Scheduler | None = None,
        rng: RandomSource | None = None,
        clock: Clock | None = None,
        settings: EngineSettings | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._gateway = gateway
        self._scheduler: Scheduler = scheduler or ManualScheduler()
        self._rng: RandomSource = rng or random.Random()
        self._clock: Clock = clock or epoch_millis
        self._settings = settings or EngineSettings()
        self._logger = logger or logging.getLogger(__name__)

        self._pool: tuple[Question, ...] = ()
        self._session: QuizSession | None = None
        self._session_id: str | None = None
        self._stats: QuizStats | None = None
        self._feedback: PracticeFeedback | None = None
        self._time_remaining: int | None = None
        self._countdown: ScheduledTask | None = None
        self._pending_advance: ScheduledTask | None = None

    @property
    def settings(self) -> EngineSettings:
        return self._settings

    @property
    def session(self) -> QuizSession | None:
        return self._session

    @property
    def session_id(self) -> str | None:
        return self._session_id

    @property
    def pool(self) -> tuple[Question, ...]:
        return self._pool

    @property
    def stats(self) -> QuizStats | None:
        return self._stats

    @property
    def feedback(self) -> PracticeFeedback | None:
        return self._feedback

    @property
    def time_remaining(self) -> int | None:
        """Seconds left on the exam countdown, ``None`` in practice mode."""

        return self._time_remaining

    @property
    def status(self) -> SessionStatus:
        if self._session is None:
            return SessionStatus.NOT_STARTED
        if self._session.is_completed:
            return SessionStatus.COMPLETED
        return SessionStatus.IN_PROGRESS

    def start(
        self, questions: Sequence[Question], mode: QuizMode | str
    ) -> QuizSession:
        """Begin a new session over a shuffled copy of ``questions``."""

        pool = tuple(questions)
        if not pool:
            raise InvalidState("Cannot start a quiz without questions.")
        if not isinstance(mode, QuizMode):
            mode = QuizMode.from_value(mode)

        self._cancel_timers()
        order = list(pool)
        if self._settings.shuffle_questions:
            self._rng.shuffle(order)
        time_limit = None
        if mode is QuizMode.EXAM:
            time_limit = self._settings.exam_seconds_per_question * len(order)

        self._pool = pool
        self._session = QuizSession(
            questions=tuple(order),
            mode=mode,
            start_time=self._clock(),
            time_limit_seconds=time_limit,
        )
        self._session_id = uuid.uuid4().hex
        self._stats = None
        self._feedback = None
        self._time_remaining = None
        if time_limit is not None:
            self._start_countdown(time_limit)

        self._logger.info(
            "Quiz session started",
            extra={
                "session_id": self._session_id,
                "mode": mode.value,
                "questions": len(order),
                "time_limit_seconds": time_limit,
            },
        )
        self._save_progress()
        return self._session

    def record_answer(
        self, question_id: str, selection: str | Iterable[str]
    ) -> QuizSession:
        """Record a selection for ``question_id``.

        A single option string toggles that option: selecting it again
        removes it. Any other iterable replaces the whole selection. An
        empty selection marks the question unanswered again.
        """

        session = self._require_in_progress()
        question = session.question_by_id(question_id)
        if question is None:
            raise UnknownQuestion(
                f"Question '{question_id}' is not part of this session."
            )
        feedback = self._feedback
        if feedback is not None and feedback.question_id == question_id:
            raise InvalidState("Answer is locked while feedback is shown.")

        if isinstance(selection, str):
            chosen = set(session.selection_for(question_id))
            self._check_option(question, selection)
            chosen.symmetric_difference_update({selection})
        else:
            chosen = set(selection)
            for option in chosen:
                self._check_option(question, option)

        answers = dict(session.answers)
        if chosen:
            answers[question_id] = question.ordered(chosen)
        else:
            answers.pop(question_id, None)
        session = replace(session, answers=answers)
        self._session = session

        if (
            session.mode is QuizMode.PRACTICE
            and session.current_index == session.questions.index(question)
            and len(chosen) == len(question.correct_answers)
        ):
            self._show_feedback(question, session)
        self._save_progress()
        return session

    def advance(self) -> QuizSession:
        """Move to the next question, completing the session after the last."""

        session = self._require_in_progress()
        self._cancel_pending_advance()
        self._feedback = None
        if session.is_last_question:
            self.complete()
            return self._session  # type: ignore[return-value]
        session = replace(session, current_index=session.current_index + 1)
        self._session = session
        self._save_progress()
        return session

    def tick(self) -> int | None:
        """Count down one second; completes the session when time runs out."""

        if self._time_remaining is None:
            return None
        if self.status is not SessionStatus.IN_PROGRESS:
            return self._time_remaining
        self._time_remaining = max(self._time_remaining - 1, 0)
        if self._time_remaining == 0:
            self._logger.info(
                "Exam time expired",
                extra={"session_id": self._session_id},
            )
            self.complete()
        return self._time_remaining

    def complete(self) -> QuizStats:
        """Finish the session and compute its stats exactly once."""

        session = self._session
        if session is None:
            raise InvalidState("No quiz session has been started.")
        if session.is_completed and self._stats is not None:
            return self._stats

        now = self._clock()
        if session.time_limit_seconds is not None:
            # Time spent never exceeds the exam allotment.
            deadline = session.start_time + session.time_limit_seconds * 1000
            now = min(now, deadline)
        self._cancel_timers()
        self._feedback = None
        stats = compute_stats(
            session.questions,
            session.answers,
            start_time=session.start_time,
            now=now,
            mode=session.mode,
        )
        self._session = replace(session, is_completed=True, end_time=now)
        self._stats = stats

        self._logger.info(
            "Quiz session completed",
            extra={
                "session_id": self._session_id,
                "score_percent": stats.score_percent,
                "correct": stats.correct_count,
                "total": stats.total_questions,
                "time_spent_seconds": stats.time_spent_seconds,
            },
        )
        if self._gateway is not None:
            self._gateway.append_stats(stats)
            self._gateway.clear_progress()
        return stats

    def restart(self) -> QuizSession:
        """Start again with the same mode over a re-shuffled question pool."""

        if self._session is None:
            raise InvalidState("No quiz session to restart.")
        self._logger.info(
            "Quiz session restarted", extra={"session_id": self._session_id}
        )
        return self.start(self._pool, self._session.mode)

    def resume(
        self, progress: QuizProgress | None = None
    ) -> QuizSession | None:
        """Continue a saved, unfinished session.

        Without ``progress`` the snapshot is loaded from the gateway. An exam
        countdown continues from whatever remains of its allotment; a session
        whose time already ran out completes immediately.
        """

        if progress is None and self._gateway is not None:
            progress = self._gateway.load_progress()
        if progress is None or progress.session.is_completed:
            return None
        session = progress.session
        if not session.questions:
            return None

        self._cancel_timers()
        self._pool = session.questions
        self._session = session
        self._session_id = progress.session_id
        self._stats = None
        self._feedback = None
        self._time_remaining = None
        self._logger.info(
            "Quiz session resumed",
            extra={
                "session_id": progress.session_id,
                "current_index": session.current_index,
            },
        )

        if session.mode is QuizMode.EXAM:
            limit = session.time_limit_seconds
            if limit is None:
                limit = self._settings.exam_seconds_per_question * len(
                    session.questions
                )
            elapsed = elapsed_seconds(session.start_time, self._clock())
            remaining = limit - elapsed
            if remaining <= 0:
                self._time_remaining = 0
                self.complete()
                return self._session
            self._start_countdown(remaining)
        return self._session

    def discard(self) -> None:
        """Drop the current session and its saved progress."""

        self._cancel_timers()
        self._pool = ()
        self._session = None
        self._session_id = None
        self._stats = None
        self._feedback = None
        self._time_remaining = None
        if self._gateway is not None:
            self._gateway.clear_progress()

    def _require_in_progress(self) -> QuizSession:
        session = self._session
        if session is None:
            raise InvalidState("No quiz session has been started.")
        if session.is_completed:
            raise InvalidState("The quiz session is already completed.")
        return session

    @staticmethod
    def _check_option(question: Question, option: str) -> None:
        if option not in question.all_options:
            raise UnknownOption(
                f"'{option}' is not an option of question '{question.id}'."
            )

    def _show_feedback(self, question: Question, session: QuizSession) -> None:
        selected = session.selection_for(question.id)
        self._feedback = PracticeFeedback(
            question_id=question.id,
            is_correct=question.is_correct(selected),
            selected=selected,
            correct_answers=question.correct_answers,
        )
        self._cancel_pending_advance()
        self._pending_advance = self._scheduler.call_later(
            self._settings.practice_delay_seconds,
            partial(
                self._deferred_advance,
                self._session_id,
                session.current_index,
            ),
        )

    def _deferred_advance(self, session_id: str | None, index: int) -> None:
        self._pending_advance = None
        session = self._session
        if (
            session is None
            or session.is_completed
            or session_id != self._session_id
            or session.current_index != index
        ):
            self._logger.debug("Skipping stale auto-advance")
            return
        self.advance()

    def _start_countdown(self, seconds: int) -> None:
        self._time_remaining = seconds
        self._countdown = self._scheduler.call_every(
            COUNTDOWN_INTERVAL_SECONDS, self.tick
        )

    def _cancel_pending_advance(self) -> None:
        if self._pending_advance is not None:
            self._pending_advance.cancel()
            self._logger.debug("Cancelled pending auto-advance")
            self._pending_advance = None

    def _cancel_timers(self) -> None:
        self._cancel_pending_advance()
        if self._countdown is not None:
            self._countdown.cancel()
            self._countdown = None

    def _save_progress(self) -> None:
        if self._gateway is None or self._session is None:
            return
        self._gateway.save_progress(
            QuizProgress(
                session_id=self._session_id or "",
                session=self._session,
                last_updated=self._clock(),
            )
        )
