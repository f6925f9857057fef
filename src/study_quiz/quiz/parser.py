"""Turn an uploaded spreadsheet or CSV into validated questions.

Expected layout (first row is a header and is ignored)::

    question text | answer 1 | answer 2 | answer 3 | answer 4

An answer cell ending in ``*`` is a correct answer; the marker is stripped.
Rows with no marker at all use the legacy convention where the first answer
is the only correct one. Rows with fewer than five filled cells are skipped.
"""

from __future__ import annotations

import csv
import io
import logging
import random
import uuid
import zipfile
from xml.etree.ElementTree import ParseError as XMLParseError
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Sequence

import openpyxl
import xlrd
from openpyxl.utils.exceptions import InvalidFileException

from .errors import InvalidFileType, MalformedInput, NoValidRows
from .models import Question, RandomSource

__all__ = [
    "ACCEPTED_EXTENSIONS",
    "ACCEPTED_MEDIA_TYPES",
    "CORRECT_MARKER",
    "QuestionFile",
    "detect_kind",
    "read_rows",
    "parse_row",
    "parse_rows",
    "parse_upload",
    "load_question_file",
]

logger = logging.getLogger(__name__)

CORRECT_MARKER = "*"
ACCEPTED_EXTENSIONS = ("xlsx", "xls", "csv")
ACCEPTED_MEDIA_TYPES = {
    (
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    ): "xlsx",
    "application/vnd.ms-excel": "xls",
    "text/csv": "csv",
}
_ROW_WIDTH = 5
_CSV_DELIMITERS = ",;\t"
_WORKBOOK_ERRORS = (
    InvalidFileException,
    zipfile.BadZipFile,
    KeyError,
    OSError,
    XMLParseError,
    ValueError,
    TypeError,
)


@dataclass(frozen=True)
class QuestionFile:
    """Questions read from one upload plus row accounting."""

    source: str
    questions: list[Question]
    rows_read: int
    skipped_rows: int


def detect_kind(filename: str | None, media_type: str | None = None) -> str:
    """Return ``xlsx``, ``xls`` or ``csv`` for an accepted upload.

    The extension is checked first, then the declared media type.
    """

    suffix = Path(filename or "").suffix.lower().lstrip(".")
    if suffix in ACCEPTED_EXTENSIONS:
        return suffix
    declared = (media_type or "").split(";", 1)[0].strip().lower()
    if declared in ACCEPTED_MEDIA_TYPES:
        return ACCEPTED_MEDIA_TYPES[declared]
    raise InvalidFileType(
        f"Unsupported file type for '{filename or 'upload'}'. "
        "Upload a .xlsx, .xls or .csv file."
    )


def read_rows(data: bytes, kind: str) -> list[list[Any]]:
    """Decode the first sheet of ``data`` into raw rows of cell values."""

    if kind == "xlsx":
        return _read_xlsx(data)
    if kind == "xls":
        return _read_xls(data)
    if kind == "csv":
        return _read_csv(data)
    raise InvalidFileType(f"Unsupported file kind '{kind}'.")


def parse_row(
    row: Sequence[Any], *, question_id: str, rng: RandomSource
) -> Question | None:
    """Build a question from one data row, or ``None`` when it is invalid."""

    if len(row) < _ROW_WIDTH:
        return None
    cells = [_cell_text(value).strip() for value in row[:_ROW_WIDTH]]
    if not all(cells):
        return None
    question_text, *answers = cells
    correct, incorrect = _classify_answers(answers)
    if not correct:
        return None
    options = [*correct, *incorrect]
    rng.shuffle(options)
    return Question(
        id=question_id,
        question_text=question_text,
        correct_answers=tuple(correct),
        incorrect_answers=tuple(incorrect),
        all_options=tuple(options),
    )


def parse_rows(
    rows: Iterable[Sequence[Any]],
    *,
    rng: RandomSource | None = None,
    has_header: bool = True,
) -> list[Question]:
    """Parse data rows into questions, raising :class:`NoValidRows` if none."""

    questions, _ = _parse(rows, rng=rng, has_header=has_header)
    return questions


def parse_upload(
    data: bytes,
    filename: str | None,
    *,
    media_type: str | None = None,
    rng: RandomSource | None = None,
) -> QuestionFile:
    """Check the file kind, decode ``data`` and parse its questions."""

    kind = detect_kind(filename, media_type)
    rows = read_rows(data, kind)
    questions, skipped = _parse(rows, rng=rng, has_header=True)
    source = filename or "upload"
    logger.info(
        "Parsed %d question(s) from %s",
        len(questions),
        source,
        extra={"kind": kind, "rows": len(rows), "skipped": skipped},
    )
    return QuestionFile(
        source=source,
        questions=questions,
        rows_read=max(len(rows) - 1, 0),
        skipped_rows=skipped,
    )


def load_question_file(
    path: Path,
    *,
    media_type: str | None = None,
    rng: RandomSource | None = None,
) -> QuestionFile:
    """Read ``path`` from disk and parse it with :func:`parse_upload`."""

    detect_kind(path.name, media_type)
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise MalformedInput(f"Unable to read {path}: {exc}") from exc
    return parse_upload(data, path.name, media_type=media_type, rng=rng)


def _parse(
    rows: Iterable[Sequence[Any]],
    *,
    rng: RandomSource | None,
    has_header: bool,
) -> tuple[list[Question], int]:
    source = rng or random.Random()
    batch = uuid.uuid4().hex[:8]
    questions: list[Question] = []
    skipped = 0
    for index, row in enumerate(rows):
        if has_header and index == 0:
            continue
        question = parse_row(
            row or (), question_id=f"q_{index}_{batch}", rng=source
        )
        if question is None:
            skipped += 1
            continue
        questions.append(question)
    if not questions:
        raise NoValidRows(
            "No valid questions found in the file. Each row needs a question "
            "and four answers."
        )
    return questions, skipped


def _classify_answers(answers: Sequence[str]) -> tuple[list[str], list[str]]:
    if not any(answer.endswith(CORRECT_MARKER) for answer in answers):
        correct = [answers[0]]
        incorrect = list(answers[1:])
    else:
        correct, incorrect = [], []
        for answer in answers:
            if answer.endswith(CORRECT_MARKER):
                correct.append(answer[: -len(CORRECT_MARKER)].rstrip())
            else:
                incorrect.append(answer)
    unique_correct = _unique(answer for answer in correct if answer)
    unique_incorrect = _unique(
        answer for answer in incorrect if answer not in unique_correct
    )
    return unique_correct, unique_incorrect


def _unique(values: Iterable[str]) -> list[str]:
    seen: dict[str, None] = {}
    for value in values:
        seen.setdefault(value, None)
    return list(seen)


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _read_xlsx(data: bytes) -> list[list[Any]]:
    # Read-only sheets parse their XML lazily, so iteration can fail too.
    try:
        workbook = openpyxl.load_workbook(
            io.BytesIO(data), read_only=True, data_only=True
        )
        try:
            if not workbook.worksheets:
                return []
            sheet = workbook.worksheets[0]
            return [list(row) for row in sheet.iter_rows(values_only=True)]
        finally:
            workbook.close()
    except _WORKBOOK_ERRORS as exc:
        raise MalformedInput(
            "Unable to read the workbook. Check that it is a valid Excel file."
        ) from exc


def _read_xls(data: bytes) -> list[list[Any]]:
    try:
        book = xlrd.open_workbook(file_contents=data, on_demand=True)
    # xlrd reports corrupt input through several unrelated exception types.
    except Exception as exc:
        raise MalformedInput(
            "Unable to read the workbook. Check that it is a valid Excel file."
        ) from exc
    try:
        if book.nsheets == 0:
            return []
        sheet = book.sheet_by_index(0)
        return [sheet.row_values(index) for index in range(sheet.nrows)]
    finally:
        book.release_resources()


def _read_csv(data: bytes) -> list[list[Any]]:
    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise MalformedInput("The CSV file is not valid UTF-8 text.") from exc
    if "\x00" in text:
        raise MalformedInput("The CSV file contains binary data.")
    try:
        delimiter = csv.Sniffer().sniff(
            text[:4096], delimiters=_CSV_DELIMITERS
        ).delimiter
    except csv.Error:
        delimiter = ","
    try:
        reader = csv.reader(io.StringIO(text, newline=""), delimiter=delimiter)
        return list(reader)
    except csv.Error as exc:
        raise MalformedInput(f"Unable to read CSV rows: {exc}") from exc
