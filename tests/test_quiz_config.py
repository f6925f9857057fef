from __future__ import annotations

import pytest

from study_quiz.quiz import config as quiz_config
from study_quiz.quiz.config import ConfigOverrides, QuizConfigError
from study_quiz.quiz.errors import QuizError


def test_defaults_apply_without_a_config_file(workspace):
    result = quiz_config.load_config(env=workspace.env())

    cfg = result.config
    assert result.config_path is None
    assert result.layout.home == workspace.home.absolute()
    assert cfg.practice_delay_seconds == 2.0
    assert cfg.exam_seconds_per_question == 120
    assert cfg.shuffle_questions is True
    assert cfg.history_limit == 50
    assert cfg.log_level == "INFO"


def test_toml_values_override_defaults(workspace):
    path = workspace.write_config(
        "[session]\n"
        "practice_delay_seconds = 1\n"
        "exam_seconds_per_question = 90\n"
        "shuffle_questions = false\n"
        "[history]\nlimit = 5\n"
        "[logging]\nlevel = 'debug'\n"
    )

    result = quiz_config.load_config(env=workspace.env())

    cfg = result.config
    assert result.config_path == path
    assert cfg.practice_delay_seconds == 1.0
    assert cfg.exam_seconds_per_question == 90
    assert cfg.shuffle_questions is False
    assert cfg.history_limit == 5
    assert cfg.log_level == "DEBUG"
    settings = cfg.engine_settings()
    assert settings.exam_seconds_per_question == 90
    assert settings.shuffle_questions is False


def test_precedence_is_cli_then_env_then_file(workspace):
    workspace.write_config(
        "[session]\nexam_seconds_per_question = 90\n"
        "practice_delay_seconds = 3.0\n"
    )
    env = {
        **workspace.env(),
        "STUDY_QUIZ_EXAM_SECONDS": "60",
        "STUDY_QUIZ_PRACTICE_DELAY": "1.5",
        "STUDY_QUIZ_HISTORY_LIMIT": "7",
        "STUDY_QUIZ_LOG_LEVEL": "warning",
    }

    result = quiz_config.load_config(
        env=env,
        overrides=ConfigOverrides(exam_seconds_per_question=30),
    )

    cfg = result.config
    assert cfg.exam_seconds_per_question == 30
    assert cfg.practice_delay_seconds == 1.5
    assert cfg.history_limit == 7
    assert cfg.log_level == "WARNING"


def test_config_env_points_at_an_alternate_file(workspace):
    custom = workspace.write("elsewhere.toml", "[history]\nlimit = 3\n")
    env = {**workspace.env(), "STUDY_QUIZ_CONFIG": str(custom)}

    result = quiz_config.load_config(env=env)

    assert result.config_path == custom
    assert result.config.history_limit == 3


def test_explicit_missing_config_is_an_error(workspace):
    with pytest.raises(QuizConfigError, match="not found"):
        quiz_config.load_config(
            env=workspace.env(),
            config_path=workspace.root / "missing.toml",
        )
    env = {
        **workspace.env(),
        "STUDY_QUIZ_CONFIG": str(workspace.root / "gone.toml"),
    }
    with pytest.raises(QuizConfigError):
        quiz_config.load_config(env=env)


@pytest.mark.parametrize(
    "content",
    [
        "[session]\nunknown = 1\n",
        "[session\n",
        "session = 3\n",
        "[session]\npractice_delay_seconds = 0\n",
        "[session]\nexam_seconds_per_question = 'long'\n",
        "[session]\nexam_seconds_per_question = 1.5\n",
        "[session]\nshuffle_questions = 'yes'\n",
        "[history]\nlimit = -1\n",
        "[logging]\nlevel = ''\n",
    ],
)
def test_invalid_config_values_raise(workspace, content):
    workspace.write_config(content)

    with pytest.raises(QuizConfigError):
        quiz_config.load_config(env=workspace.env())


def test_invalid_env_value_raises(workspace):
    env = {**workspace.env(), "STUDY_QUIZ_HISTORY_LIMIT": "many"}

    with pytest.raises(QuizConfigError, match="history.limit"):
        quiz_config.load_config(env=env)


def test_config_errors_share_the_quiz_error_base(workspace):
    workspace.write_config("[history]\nlimit = 0\n")

    with pytest.raises(QuizError, match="history.limit"):
        quiz_config.load_config(env=workspace.env())
