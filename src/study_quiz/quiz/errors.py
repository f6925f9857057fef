"""Error taxonomy for question ingestion and quiz sessions."""

from __future__ import annotations

__all__ = [
    "QuizError",
    "ParseError",
    "InvalidFileType",
    "NoValidRows",
    "MalformedInput",
    "SessionError",
    "InvalidState",
    "UnknownQuestion",
    "UnknownOption",
]


class QuizError(RuntimeError):
    """Base class for every error raised by the quiz package."""


class ParseError(QuizError):
    """A question file could not be turned into questions."""


class InvalidFileType(ParseError):
    """The upload is not one of the accepted spreadsheet or CSV kinds."""


class NoValidRows(ParseError):
    """No row survived validation."""


class MalformedInput(ParseError):
    """The bytes could not be decoded as tabular data."""


class SessionError(QuizError):
    """An engine operation was used against its contract."""


class InvalidState(SessionError):
    """The operation is not allowed in the session's current state."""


class UnknownQuestion(SessionError):
    """The question id does not belong to the active session."""


class UnknownOption(SessionError):
    """The option is not one of the question's choices."""
