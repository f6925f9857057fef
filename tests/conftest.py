from __future__ import annotations

import logging
import random
import sys
from pathlib import Path
from typing import Callable, Iterable, Iterator

import pytest

TESTS_DIR = Path(__file__).resolve().parent
ROOT = TESTS_DIR.parent
# Ensure src/ and the shared fixtures are importable without installation
for extra in (TESTS_DIR, ROOT / "src"):
    path_str = str(extra)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)

from fixtures import SchedulerClock, WorkspaceBuilder  # noqa: E402

from study_quiz.quiz.engine import (  # noqa: E402
    EngineSettings,
    QuizSessionEngine,
)
from study_quiz.quiz.scheduler import ManualScheduler  # noqa: E402
from study_quiz.quiz.storage import (  # noqa: E402
    MemoryStore,
    PersistenceGateway,
)


@pytest.fixture
def workspace(tmp_path: Path) -> WorkspaceBuilder:
    """Provide a helper bound to pytest's per-test tmp directory."""

    return WorkspaceBuilder(tmp_path)


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def gateway(store: MemoryStore) -> PersistenceGateway:
    return PersistenceGateway(store)


@pytest.fixture
def make_engine(
    scheduler: ManualScheduler, gateway: PersistenceGateway
) -> Callable[..., QuizSessionEngine]:
    """Build engines sharing the test scheduler, store and a seeded RNG."""

    def factory(**settings: object) -> QuizSessionEngine:
        return QuizSessionEngine(
            gateway=gateway,
            scheduler=scheduler,
            rng=random.Random(7),
            clock=SchedulerClock(scheduler),
            settings=EngineSettings(**settings),  # type: ignore[arg-type]
        )

    return factory


@pytest.fixture
def make_provider() -> Callable[[Iterable[str]], Callable[[], str]]:
    """Turn scripted console input into an input provider."""

    def factory(inputs: Iterable[str]) -> Callable[[], str]:
        iterator: Iterator[str] = iter(inputs)
        return lambda: next(iterator)

    return factory


@pytest.fixture(autouse=True)
def _reset_package_logger() -> Iterator[None]:
    """Undo CLI logger setup so caplog sees package records again."""

    yield
    logger = logging.getLogger("study_quiz")
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
