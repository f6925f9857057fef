"""Spreadsheet question ingestion and quiz session engine."""

from .engine import (  # noqa: F401
    EngineSettings,
    PracticeFeedback,
    QuizSessionEngine,
)
from .errors import (  # noqa: F401
    InvalidFileType,
    InvalidState,
    MalformedInput,
    NoValidRows,
    ParseError,
    QuizError,
    SessionError,
    UnknownOption,
    UnknownQuestion,
)
from .models import (  # noqa: F401
    IncorrectQuestion,
    Question,
    QuizMode,
    QuizProgress,
    QuizSession,
    QuizStats,
    SessionStatus,
)
from .parser import (  # noqa: F401
    QuestionFile,
    load_question_file,
    parse_rows,
    parse_upload,
)
from .report import (  # noqa: F401
    ScoreBand,
    format_duration,
    render_report,
    score_band,
    write_report,
)
from .scheduler import ManualScheduler, ScheduledTask  # noqa: F401
from .session import QuizRunResult, run_quiz_session  # noqa: F401
from .storage import (  # noqa: F401
    JsonFileStore,
    MemoryStore,
    PersistenceGateway,
)
