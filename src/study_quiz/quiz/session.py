"""Rich-powered console loop driving a :class:`QuizSessionEngine`.

The engine owns all quiz rules; this module only renders state, reads
commands and pumps the engine's :class:`ManualScheduler` with a monotonic
clock so practice auto-advance and the exam countdown fire between prompts.
Input, clock and sleep are injected so tests can script a whole session.
"""

from __future__ import annotations

import string
import time
from dataclasses import dataclass
from typing import Callable, Literal

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .engine import QuizSessionEngine
from .errors import SessionError
from .models import Question, QuizMode, QuizSession, QuizStats, SessionStatus
from .report import format_duration, score_band
from .scheduler import ManualScheduler

InputProvider = Callable[[], str]
MonotonicClock = Callable[[], float]
Sleeper = Callable[[float], None]
ExitAction = Literal["completed", "quit"]

OPTION_KEYS = string.ascii_uppercase


@dataclass(frozen=True)
class SessionCommand:
    """Normalized user command parsed from console input."""

    type: Literal["next", "submit", "quit", "restart", "select"]
    choice: str | None = None


@dataclass(frozen=True)
class QuizRunResult:
    """Return value from :func:`run_quiz_session`."""

    exit_action: ExitAction
    session: QuizSession | None
    stats: QuizStats | None


def parse_session_command(raw: str | None) -> SessionCommand | None:
    """Parse raw user input into a structured command.

    Letters select options; several may be given at once (``"a c"``).
    """

    if raw is None:
        return None
    text = raw.strip()
    if not text:
        return None
    lowered = text.lower()
    if lowered in {"n", "next"}:
        return SessionCommand("next")
    if lowered in {"submit", "s", "finish"}:
        return SessionCommand("submit")
    if lowered in {"quit", "q", "exit"}:
        return SessionCommand("quit")
    if lowered in {"r", "restart"}:
        return SessionCommand("restart")
    keys = "".join(text.replace(",", " ").split()).upper()
    if keys.isalpha():
        return SessionCommand("select", keys)
    return None


def option_hint(question: Question) -> str | None:
    """Prompt shown for questions with more than one correct answer."""

    if not question.is_multi_select:
        return None
    return f"Select {len(question.correct_answers)} correct options"


class ConsoleSession:
    """Console front-end for one engine.

    The engine must be built on ``scheduler``; scheduler time is measured in
    seconds since this object was created.
    """

    def __init__(
        self,
        engine: QuizSessionEngine,
        scheduler: ManualScheduler,
        console: Console,
        input_provider: InputProvider,
        *,
        clock: MonotonicClock = time.monotonic,
        sleeper: Sleeper = time.sleep,
    ) -> None:
        self._engine = engine
        self._scheduler = scheduler
        self._console = console
        self._input = input_provider
        self._clock = clock
        self._sleep = sleeper
        self._origin = clock() - scheduler.now

    def run(self) -> QuizRunResult:
        engine = self._engine
        while engine.status is SessionStatus.IN_PROGRESS:
            self._pump()
            if engine.status is not SessionStatus.IN_PROGRESS:
                break
            self._render_question()
            try:
                raw = self._input()
            except (EOFError, KeyboardInterrupt, StopIteration):
                self._console.print("\n[bold yellow]Session interrupted.[/]")
                return self._quit()
            self._pump()
            if engine.status is not SessionStatus.IN_PROGRESS:
                self._console.print("\n[bold red]Time is up![/]")
                break
            command = parse_session_command(raw)
            if command is None:
                self._console.print("[red]Unrecognized command. Try again.[/]")
                continue
            if command.type == "quit":
                self._console.print(
                    "\n[bold yellow]Progress saved. Resume it later with "
                    "'study-quiz resume'.[/]"
                )
                return self._quit()
            self._apply_command(command)

        stats = engine.stats
        if stats is not None:
            render_summary(self._console, stats)
        return QuizRunResult("completed", engine.session, stats)

    def _quit(self) -> QuizRunResult:
        return QuizRunResult("quit", self._engine.session, None)

    def _pump(self) -> None:
        self._scheduler.run_until(self._clock() - self._origin)

    def _apply_command(self, command: SessionCommand) -> None:
        engine = self._engine
        if command.type == "next":
            engine.advance()
            return
        if command.type == "submit":
            engine.complete()
            return
        if command.type == "restart":
            engine.restart()
            self._console.print("[bold cyan]Quiz restarted.[/]")
            return
        if command.type == "select" and command.choice:
            self._select(command.choice)

    def _select(self, keys: str) -> None:
        engine = self._engine
        session = engine.session
        question = session.current_question if session else None
        if question is None:
            return
        for key in keys:
            index = OPTION_KEYS.find(key)
            if index < 0 or index >= len(question.all_options):
                self._console.print(
                    f"[red]'{key}' is not a valid choice for this "
                    "question.[/red]"
                )
                return
        for key in keys:
            option = question.all_options[OPTION_KEYS.index(key)]
            try:
                engine.record_answer(question.id, option)
            except SessionError as exc:
                self._console.print(f"[red]{exc}[/red]")
                return
            if engine.feedback is not None:
                break
        if engine.feedback is not None:
            self._render_feedback(question)
            self._sleep(engine.settings.practice_delay_seconds)

    def _render_question(self) -> None:
        engine = self._engine
        session = engine.session
        question = session.current_question if session else None
        if session is None or question is None:
            return
        header = Text.assemble(
            (f"Question {session.current_index + 1}", "bold cyan"),
            (f" / {session.total_questions}", "dim"),
            (f"  {session.mode.value.title()} mode", "dim"),
        )
        self._console.print()
        self._console.rule(header)
        if engine.time_remaining is not None:
            self._console.print(
                Text(
                    f"Time remaining {format_duration(engine.time_remaining)}",
                    style="bold magenta",
                )
            )
        self._console.print(Text(question.question_text, style="bold"))
        hint = option_hint(question)
        if hint:
            self._console.print(Text(hint, style="italic yellow"))

        table = Table(show_header=False, box=box.SIMPLE, expand=True)
        table.add_column("Key", justify="center", style="cyan")
        table.add_column("Choice")
        selected = set(session.selection_for(question.id))
        for key, option in zip(OPTION_KEYS, question.all_options):
            chosen = option in selected
            row_text = Text("• " if chosen else "  ")
            row_text.append(option, style="bold green" if chosen else "")
            table.add_row(key, row_text)
        self._console.print(table)

        keys = f"A-{OPTION_KEYS[len(question.all_options) - 1]}"
        if session.mode is QuizMode.EXAM:
            command_hint = f"choices [{keys}] toggle, n (next), submit, quit"
        else:
            command_hint = f"choices [{keys}] toggle, n (skip), quit"
        self._console.print(
            Text(
                f"Answered {session.answered_count()}/"
                f"{session.total_questions} | Commands: {command_hint}",
                style="dim",
            )
        )

    def _render_feedback(self, question: Question) -> None:
        feedback = self._engine.feedback
        if feedback is None:
            return
        if feedback.is_correct:
            body = Text("Correct!", style="bold green")
            border = "green"
        else:
            body = Text("Incorrect. ", style="bold red")
            body.append(
                "Correct answer: " + ", ".join(feedback.correct_answers)
            )
            border = "red"
        self._console.print(
            Panel(body, title=question.question_text, border_style=border)
        )


def run_quiz_session(
    engine: QuizSessionEngine,
    scheduler: ManualScheduler,
    console: Console,
    input_provider: InputProvider,
    *,
    clock: MonotonicClock = time.monotonic,
    sleeper: Sleeper = time.sleep,
) -> QuizRunResult:
    """Run the engine's active session interactively until it ends."""

    return ConsoleSession(
        engine,
        scheduler,
        console,
        input_provider,
        clock=clock,
        sleeper=sleeper,
    ).run()


def render_summary(console: Console, stats: QuizStats) -> None:
    band = score_band(stats.score_percent)
    console.print()
    console.rule(Text("Quiz Summary", style="bold magenta"))

    overview = Table(show_header=False, box=box.MINIMAL_DOUBLE_HEAD)
    overview.add_column("Metric", style="bold")
    overview.add_column("Value", justify="right")
    score = Text(f"{stats.score_percent}%", style=band.style)
    overview.add_row("Score", score)
    overview.add_row("Total questions", str(stats.total_questions))
    overview.add_row("Correct", str(stats.correct_count))
    overview.add_row("Incorrect", str(stats.incorrect_count))
    overview.add_row("Time spent", format_duration(stats.time_spent_seconds))
    console.print(overview)

    if not stats.incorrect_questions:
        console.print("[bold green]Every question answered correctly.[/]")
        return
    review = Table(title="Review", box=box.SIMPLE, expand=True)
    review.add_column("#", justify="right")
    review.add_column("Question", overflow="fold")
    review.add_column("Your answer")
    review.add_column("Correct answer")
    for idx, item in enumerate(stats.incorrect_questions, start=1):
        review.add_row(
            str(idx),
            item.question_text,
            ", ".join(item.user_answers) or "(no answer)",
            ", ".join(item.correct_answers),
        )
    console.print(review)
