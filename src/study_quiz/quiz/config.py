"""Configuration loader for quiz sessions."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, MutableMapping, Optional

from study_quiz.core import config as core_config
from study_quiz.core import workspace as workspace_mod

from .engine import EngineSettings
from .errors import QuizError

CONFIG_FILENAME = "quiz.toml"
CONFIG_ENV = "STUDY_QUIZ_CONFIG"
ENV_PREFIX = "STUDY_QUIZ_"

_DEFAULT_PRACTICE_DELAY = 2.0
_DEFAULT_EXAM_SECONDS = 120
_DEFAULT_SHUFFLE = True
_DEFAULT_HISTORY_LIMIT = 50
_DEFAULT_LOG_LEVEL = "INFO"


class QuizConfigError(QuizError):
    """Raised when configuration parsing or validation fails."""


@dataclass(frozen=True)
class QuizConfig:
    """Fully resolved configuration for a quiz run."""

    practice_delay_seconds: float
    exam_seconds_per_question: int
    shuffle_questions: bool
    history_limit: int
    log_level: str

    def engine_settings(self) -> EngineSettings:
        return EngineSettings(
            practice_delay_seconds=self.practice_delay_seconds,
            exam_seconds_per_question=self.exam_seconds_per_question,
            shuffle_questions=self.shuffle_questions,
        )


@dataclass(frozen=True)
class ConfigOverrides:
    """CLI-sourced overrides applied on top of file/env options."""

    practice_delay_seconds: Optional[float] = None
    exam_seconds_per_question: Optional[int] = None
    shuffle_questions: Optional[bool] = None
    history_limit: Optional[int] = None
    log_level: Optional[str] = None


@dataclass(frozen=True)
class LoadResult:
    """Result of loading configuration, including workspace context."""

    config: QuizConfig
    layout: workspace_mod.WorkspaceLayout
    config_path: Optional[Path]


def load_config(
    *,
    config_path: Optional[Path] = None,
    overrides: Optional[ConfigOverrides] = None,
    env: Optional[Mapping[str, str]] = None,
    workspace_path: Optional[Path] = None,
) -> LoadResult:
    """Load configuration applying precedence CLI > env > TOML defaults."""

    overrides = overrides or ConfigOverrides()
    env_map = os.environ if env is None else env

    try:
        layout = workspace_mod.ensure_workspace(
            env=env_map, path=workspace_path
        )
    except workspace_mod.WorkspaceError as exc:
        raise QuizConfigError(str(exc)) from exc
    default_path = layout.path_for("config") / CONFIG_FILENAME

    requested_path = _resolve_config_path(
        config_path=config_path,
        env_map=env_map,
        default_path=default_path,
    )

    defaults = _default_table()
    loaded_path: Optional[Path]
    if requested_path.exists():
        loaded_path = requested_path
        try:
            defaults = core_config.read_layer(requested_path, defaults)
        except core_config.TomlConfigError as exc:
            raise QuizConfigError(str(exc)) from exc
    else:
        loaded_path = None
        if config_path is not None or _has_env_config(env_map):
            raise QuizConfigError(f"Config file not found: {requested_path}")

    session = defaults["session"]
    practice_delay = _positive_float(
        "session.practice_delay_seconds",
        _pick_first(
            overrides.practice_delay_seconds,
            _parse_env_string(env_map, "PRACTICE_DELAY"),
            session["practice_delay_seconds"],
        ),
    )
    exam_seconds = _positive_int(
        "session.exam_seconds_per_question",
        _pick_first(
            overrides.exam_seconds_per_question,
            _parse_env_string(env_map, "EXAM_SECONDS"),
            session["exam_seconds_per_question"],
        ),
    )
    shuffle = _resolve_bool(
        "session.shuffle_questions",
        _pick_first(overrides.shuffle_questions, session["shuffle_questions"]),
    )
    history_limit = _positive_int(
        "history.limit",
        _pick_first(
            overrides.history_limit,
            _parse_env_string(env_map, "HISTORY_LIMIT"),
            defaults["history"]["limit"],
        ),
    )
    log_level = _resolve_log_level(
        _pick_first(
            overrides.log_level,
            _parse_env_string(env_map, "LOG_LEVEL"),
            defaults["logging"]["level"],
        )
    )

    config = QuizConfig(
        practice_delay_seconds=practice_delay,
        exam_seconds_per_question=exam_seconds,
        shuffle_questions=shuffle,
        history_limit=history_limit,
        log_level=log_level,
    )
    return LoadResult(config=config, layout=layout, config_path=loaded_path)


def _default_table() -> MutableMapping[str, MutableMapping[str, object]]:
    return {
        "session": {
            "practice_delay_seconds": _DEFAULT_PRACTICE_DELAY,
            "exam_seconds_per_question": _DEFAULT_EXAM_SECONDS,
            "shuffle_questions": _DEFAULT_SHUFFLE,
        },
        "history": {"limit": _DEFAULT_HISTORY_LIMIT},
        "logging": {"level": _DEFAULT_LOG_LEVEL},
    }


def _resolve_config_path(
    *,
    config_path: Optional[Path],
    env_map: Mapping[str, str],
    default_path: Path,
) -> Path:
    if config_path is not None:
        return config_path.expanduser()
    env_candidate = (env_map.get(CONFIG_ENV) or "").strip()
    if env_candidate:
        return Path(env_candidate).expanduser()
    return default_path


def _has_env_config(env_map: Mapping[str, str]) -> bool:
    env_candidate = env_map.get(CONFIG_ENV)
    return bool(env_candidate and env_candidate.strip())


def _positive_float(name: str, value: object) -> float:
    if isinstance(value, bool):
        raise QuizConfigError(f"{name} must be a number.")
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise QuizConfigError(f"{name} must be a number.") from exc
    if number <= 0:
        raise QuizConfigError(f"{name} must be greater than zero.")
    return number


def _positive_int(name: str, value: object) -> int:
    if isinstance(value, bool) or isinstance(value, float):
        raise QuizConfigError(f"{name} must be an integer.")
    try:
        number = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise QuizConfigError(f"{name} must be an integer.") from exc
    if number <= 0:
        raise QuizConfigError(f"{name} must be greater than zero.")
    return number


def _resolve_bool(name: str, value: object) -> bool:
    if isinstance(value, bool):
        return value
    raise QuizConfigError(f"{name} must be true or false.")


def _resolve_log_level(candidate: object) -> str:
    if not isinstance(candidate, str):
        raise QuizConfigError("logging.level must be a string.")
    level = candidate.strip()
    if not level:
        raise QuizConfigError("logging.level must be a non-empty string.")
    return level.upper()


def _parse_env_string(env_map: Mapping[str, str], key: str) -> Optional[str]:
    raw = env_map.get(f"{ENV_PREFIX}{key}")
    if raw is None:
        return None
    value = raw.strip()
    return value or None


def _pick_first(*candidates: object) -> object:
    for candidate in candidates:
        if candidate is not None:
            return candidate
    return None
