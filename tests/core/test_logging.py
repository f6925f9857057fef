from __future__ import annotations

import json
import logging
from pathlib import Path

from study_quiz.core import logging as core_logging


def _close(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def test_configure_logger_writes_json(tmp_path):
    log_dir = tmp_path / "logs"
    logger, log_path = core_logging.configure_logger(
        "study_quiz.test",
        log_dir=log_dir,
        level="INFO",
        filename="test.log",
    )

    logger.debug("hidden")
    logger.info("hello world", extra={"event": "unit", "value": 3})

    class _Helper:
        def __repr__(self):  # noqa: D401
            return "helper"

    try:
        raise ValueError("boom")
    except ValueError:
        logger.exception(
            "with error",
            extra={
                "items": [Path(log_dir), 1],
                "mapping": {"k": ("v",)},
                "obj": _Helper(),
            },
        )
    for handler in logger.handlers:
        handler.flush()

    lines = log_path.read_text(encoding="utf-8").strip().splitlines()
    assert len(lines) == 2
    first = json.loads(lines[0])
    assert first["message"] == "hello world"
    assert first["level"] == "INFO"
    assert first["logger"] == "study_quiz.test"
    assert first["extra"] == {"event": "unit", "value": 3}

    payload = json.loads(lines[-1])
    assert "ValueError: boom" in payload["exception"]
    assert payload["extra"]["obj"] == "helper"
    assert payload["extra"]["items"] == [str(log_dir), 1]
    assert payload["extra"]["mapping"] == {"k": ["v"]}

    _close(logger)


def test_configure_logger_reuses_handlers(tmp_path):
    name = "study_quiz.test_reuse"
    first, path_one = core_logging.configure_logger(
        name, log_dir=tmp_path / "logs"
    )
    second, path_two = core_logging.configure_logger(
        name, log_dir=tmp_path / "logs", level="DEBUG"
    )

    assert first is second
    assert path_one == path_two
    assert len(second.handlers) == 1
    assert second.handlers[0].level == logging.DEBUG

    _close(second)


def test_configure_logger_toggles_console_handler(tmp_path):
    name = "study_quiz.test_verbose"
    logger, _ = core_logging.configure_logger(
        name,
        log_dir=tmp_path / "logs",
        verbose=True,
        filename="verbose.log",
    )

    def console_handlers():
        return [
            handler
            for handler in logger.handlers
            if getattr(handler, "_study_quiz_console", False)
        ]

    assert len(console_handlers()) == 1

    core_logging.configure_logger(
        name, log_dir=tmp_path / "logs", filename="verbose.log"
    )
    assert console_handlers() == []

    _close(logger)


def test_child_loggers_propagate_into_file(tmp_path):
    name = "study_quiz.test_parent"
    logger, log_path = core_logging.configure_logger(
        name, log_dir=tmp_path / "logs"
    )

    logging.getLogger(f"{name}.child").info("from child")
    for handler in logger.handlers:
        handler.flush()

    payload = json.loads(log_path.read_text(encoding="utf-8").strip())
    assert payload["logger"] == f"{name}.child"

    _close(logger)
