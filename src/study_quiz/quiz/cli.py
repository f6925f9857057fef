"""Command-line entry points for loading question files and taking quizzes."""

from __future__ import annotations

import argparse
import logging
import random
import sys
from datetime import datetime
from pathlib import Path
from typing import Sequence

from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from study_quiz.core import config_templates
from study_quiz.core import workspace as workspace_mod
from study_quiz.core.config_templates import ConfigTemplateError
from study_quiz.core.logging import configure_logger
from study_quiz.core.workspace import WorkspaceError

from .config import (
    CONFIG_FILENAME,
    ConfigOverrides,
    LoadResult,
    QuizConfigError,
    load_config,
)
from .engine import QuizSessionEngine
from .errors import ParseError
from .models import QuizMode, SessionStatus
from .parser import load_question_file
from .report import export_filename, format_duration, score_band, write_report
from .scheduler import ManualScheduler
from .session import InputProvider, render_summary, run_quiz_session
from .storage import JsonFileStore, PersistenceGateway

LOGGER_NAME = "study_quiz"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="study-quiz",
        description="Practice or sit timed exams from spreadsheet questions.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    config_parser = subparsers.add_parser(
        "config",
        help="Manage the quiz configuration file.",
    )
    _build_config_subcommands(config_parser)

    check_parser = subparsers.add_parser(
        "check",
        help="Parse a question file and report what was found.",
    )
    check_parser.add_argument("file", type=Path, help="Question file.")
    _add_common_flags(check_parser)

    start_parser = subparsers.add_parser(
        "start",
        help="Start a new quiz from a .xlsx, .xls or .csv question file.",
    )
    start_parser.add_argument("file", type=Path, help="Question file.")
    _add_common_flags(start_parser)
    start_parser.add_argument(
        "--mode",
        choices=[mode.value for mode in QuizMode],
        default=QuizMode.PRACTICE.value,
        help="practice shows feedback per question; exam is timed.",
    )
    start_parser.add_argument(
        "--num",
        type=int,
        default=0,
        help="Only ask this many randomly chosen questions.",
    )
    _add_session_flags(start_parser)

    resume_parser = subparsers.add_parser(
        "resume",
        help="Continue the last unfinished quiz.",
    )
    _add_common_flags(resume_parser)
    resume_parser.add_argument(
        "--discard",
        action="store_true",
        help="Drop the saved quiz instead of continuing it.",
    )
    _add_session_flags(resume_parser)

    history_parser = subparsers.add_parser(
        "history",
        help="Show results of completed quizzes, newest first.",
    )
    history_parser.add_argument(
        "--limit",
        type=int,
        default=10,
        help="Number of results to show (default: 10).",
    )
    _add_common_flags(history_parser)

    export_parser = subparsers.add_parser(
        "export",
        help="Write the latest result's review as CSV.",
    )
    export_parser.add_argument(
        "--output",
        type=Path,
        help=(
            "Destination file or directory (defaults to the workspace "
            "exports directory)."
        ),
    )
    _add_common_flags(export_parser)
    return parser


def _build_config_subcommands(parent: argparse.ArgumentParser) -> None:
    subparsers = parent.add_subparsers(dest="config_command", required=True)

    init_parser = subparsers.add_parser(
        "init",
        help="Write the default quiz.toml template.",
    )
    init_parser.add_argument(
        "--path",
        type=Path,
        help=(
            "Destination for the config TOML (defaults to the workspace "
            "config directory)."
        ),
    )
    init_parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite the destination if a config already exists.",
    )
    _add_common_flags(init_parser)

    path_parser = subparsers.add_parser(
        "path",
        help="Print the config path that would be loaded.",
    )
    _add_common_flags(path_parser)


def _add_common_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=Path,
        help=(
            "Path to a TOML config file (defaults to the workspace config "
            "directory)."
        ),
    )
    parser.add_argument(
        "--workspace",
        type=Path,
        help="Override the workspace root used for state, logs and exports.",
    )


def _add_session_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--practice-delay",
        type=float,
        help="Seconds to show practice feedback before moving on.",
    )
    parser.add_argument(
        "--exam-seconds",
        type=int,
        help="Exam countdown seconds per question.",
    )
    parser.add_argument(
        "--log-level",
        help="Set the logging level for the run (defaults to INFO).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Echo log records to stderr.",
    )


def _build_console() -> Console:
    return Console()


def _build_input_provider(console: Console) -> InputProvider:
    return lambda: console.input("[bold cyan]> [/]")


def _load(args: argparse.Namespace) -> LoadResult:
    overrides = ConfigOverrides(
        practice_delay_seconds=getattr(args, "practice_delay", None),
        exam_seconds_per_question=getattr(args, "exam_seconds", None),
        log_level=getattr(args, "log_level", None),
    )
    return load_config(
        config_path=args.config,
        overrides=overrides,
        workspace_path=args.workspace,
    )


def _build_gateway(
    load_result: LoadResult, logger: logging.Logger
) -> PersistenceGateway:
    store = JsonFileStore(load_result.layout.path_for("state"))
    return PersistenceGateway(
        store,
        history_limit=load_result.config.history_limit,
        logger=logger,
    )


def _open_logger(
    load_result: LoadResult, *, verbose: bool = False
) -> logging.Logger:
    logger, _ = configure_logger(
        LOGGER_NAME,
        log_dir=load_result.layout.path_for("logs"),
        level=load_result.config.log_level,
        verbose=verbose,
    )
    return logger


def _handle_config(args: argparse.Namespace) -> int:
    command = args.config_command
    if command == "init":
        return _handle_config_init(args)
    if command == "path":
        return _handle_config_path(args)
    raise RuntimeError(f"Unhandled config command: {command}")


def _handle_config_init(args: argparse.Namespace) -> int:
    try:
        target = _resolve_config_target(args)
    except WorkspaceError as exc:
        _print_error(str(exc))
        return 2

    template = config_templates.get_template("quiz")
    try:
        written = template.write(target, overwrite=args.force)
    except ConfigTemplateError as exc:
        _print_error(str(exc))
        return 2

    print(f"Wrote quiz config to {written}")
    return 0


def _handle_config_path(args: argparse.Namespace) -> int:
    try:
        load_result = _load(args)
    except QuizConfigError as exc:
        _print_error(str(exc))
        return 2
    default = load_result.layout.path_for("config") / CONFIG_FILENAME
    path = load_result.config_path or default
    status = "loaded" if load_result.config_path else "not found, defaults"
    print(f"{path} ({status})")
    return 0


def _resolve_config_target(args: argparse.Namespace) -> Path:
    candidate = args.path or args.config
    if candidate is not None:
        candidate = candidate.expanduser()
        if not candidate.is_absolute():
            candidate = (Path.cwd() / candidate).resolve()
        return candidate

    layout = workspace_mod.ensure_workspace(path=args.workspace)
    return layout.path_for("config") / CONFIG_FILENAME


def _handle_check(args: argparse.Namespace) -> int:
    try:
        loaded = load_question_file(args.file)
    except ParseError as exc:
        _print_error(str(exc))
        return 1
    multi = sum(1 for question in loaded.questions if question.is_multi_select)
    print(f"{loaded.source}: {len(loaded.questions)} question(s)")
    print(f"  rows read: {loaded.rows_read}")
    print(f"  rows skipped: {loaded.skipped_rows}")
    print(f"  multi-select: {multi}")
    for idx, question in enumerate(loaded.questions, start=1):
        marker = " [multi]" if question.is_multi_select else ""
        print(f"  {idx}. {question.question_text}{marker}")
    return 0


def _handle_start(args: argparse.Namespace) -> int:
    if args.num < 0:
        _print_error("--num must be zero or a positive integer.")
        return 2
    try:
        load_result = _load(args)
    except QuizConfigError as exc:
        _print_error(str(exc))
        return 2
    logger = _open_logger(load_result, verbose=args.verbose)

    try:
        loaded = load_question_file(args.file)
    except ParseError as exc:
        logger.warning(
            "Question file rejected",
            extra={"path": str(args.file), "error": str(exc)},
        )
        _print_error(str(exc))
        return 1

    questions = loaded.questions
    if 0 < args.num < len(questions):
        questions = random.Random().sample(questions, args.num)

    gateway = _build_gateway(load_result, logger)
    if gateway.load_progress() is not None:
        print("Replacing the unfinished quiz saved earlier.")
    scheduler = ManualScheduler()
    engine = QuizSessionEngine(
        gateway=gateway,
        scheduler=scheduler,
        settings=load_result.config.engine_settings(),
        logger=logger,
    )
    engine.start(questions, QuizMode.from_value(args.mode))
    return _run(engine, scheduler)


def _handle_resume(args: argparse.Namespace) -> int:
    try:
        load_result = _load(args)
    except QuizConfigError as exc:
        _print_error(str(exc))
        return 2
    logger = _open_logger(load_result, verbose=args.verbose)

    scheduler = ManualScheduler()
    engine = QuizSessionEngine(
        gateway=_build_gateway(load_result, logger),
        scheduler=scheduler,
        settings=load_result.config.engine_settings(),
        logger=logger,
    )
    if args.discard:
        engine.discard()
        print("Discarded the saved quiz.")
        return 0
    if engine.resume() is None:
        print("No unfinished quiz to resume.")
        return 1
    if engine.status is SessionStatus.COMPLETED:
        console = _build_console()
        console.print("[bold red]Time ran out while the quiz was closed.[/]")
        if engine.stats is not None:
            render_summary(console, engine.stats)
        return 0
    return _run(engine, scheduler)


def _run(engine: QuizSessionEngine, scheduler: ManualScheduler) -> int:
    console = _build_console()
    run_quiz_session(
        engine,
        scheduler,
        console,
        _build_input_provider(console),
    )
    return 0


def _handle_history(args: argparse.Namespace) -> int:
    try:
        load_result = _load(args)
    except QuizConfigError as exc:
        _print_error(str(exc))
        return 2
    logger = _open_logger(load_result)
    history = _build_gateway(load_result, logger).load_stats_history()
    if not history:
        print("No completed quizzes yet.")
        return 0

    table = Table(title="Quiz history", box=box.SIMPLE)
    table.add_column("Completed")
    table.add_column("Mode")
    table.add_column("Score", justify="right")
    table.add_column("Correct", justify="right")
    table.add_column("Time", justify="right")
    for stats in reversed(history[-max(args.limit, 1):]):
        completed = "-"
        if stats.completed_at is not None:
            completed = datetime.fromtimestamp(
                stats.completed_at / 1000
            ).strftime("%Y-%m-%d %H:%M")
        table.add_row(
            completed,
            stats.mode.value if stats.mode else "-",
            Text(
                f"{stats.score_percent}%",
                style=score_band(stats.score_percent).style,
            ),
            f"{stats.correct_count}/{stats.total_questions}",
            format_duration(stats.time_spent_seconds),
        )
    _build_console().print(table)
    return 0


def _handle_export(args: argparse.Namespace) -> int:
    try:
        load_result = _load(args)
    except QuizConfigError as exc:
        _print_error(str(exc))
        return 2
    logger = _open_logger(load_result)
    stats = _build_gateway(load_result, logger).latest_stats()
    if stats is None:
        _print_error("No completed quiz to export.")
        return 1

    target = args.output
    if target is None:
        target = load_result.layout.path_for("exports") / export_filename()
    try:
        written = write_report(stats, target.expanduser())
    except OSError as exc:
        _print_error(f"Unable to write report: {exc}")
        return 1
    logger.info("Results exported", extra={"path": str(written)})
    print(f"Wrote {len(stats.incorrect_questions)} review row(s) to {written}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    try:
        args = parser.parse_args(list(argv) if argv is not None else None)
    except SystemExit as exc:  # pragma: no cover - argparse already handles
        return int(exc.code or 0)

    handlers = {
        "config": _handle_config,
        "check": _handle_check,
        "start": _handle_start,
        "resume": _handle_resume,
        "history": _handle_history,
        "export": _handle_export,
    }
    handler = handlers.get(args.command)
    if handler is None:
        parser.error("Command not implemented yet.")
        return 2
    return handler(args)


def _print_error(message: str) -> None:
    sys.stderr.write(message + "\n")


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
