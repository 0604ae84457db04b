"""CSV rendering for the admin downloads.

Every field is quoted and embedded quotes are doubled, so titles like
``Title, with "quotes"`` survive a round trip through Excel or Sheets.
Records are separated by a bare ``\\n``, with no trailing newline.
"""

from __future__ import annotations

import csv
import datetime
import io
from collections.abc import Callable, Iterable, Sequence
from typing import Any, TypeVar

from app.services.progress_aggregator import (
    CourseReportRow,
    DetailRow,
    ExecutiveReport,
    LessonReportRow,
    RosterFilters,
)

T = TypeVar("T")
Column = tuple[str, Callable[[T], Any]]

EXECUTIVE_TITLE = "Executive Training Report"


def format_timestamp(value: str | None) -> str:
    """'2026-03-02T10:14:07.311Z' -> 'Mar 2, 2026, 10:14 AM' (raw value if unparseable)."""
    if not value:
        return ""
    try:
        ts = datetime.datetime.fromisoformat(value)
    except ValueError:
        return value
    hour = ts.hour % 12 or 12
    return f"{ts:%b} {ts.day}, {ts.year}, {hour}:{ts:%M} {'AM' if ts.hour < 12 else 'PM'}"


def _cell(value: Any) -> str:
    return "" if value is None else str(value)


def _write(records: Iterable[Sequence[Any]]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for record in records:
        writer.writerow([_cell(v) for v in record])
    return buf.getvalue().removesuffix("\n")


def to_csv(rows: Iterable[T], columns: Sequence[Column]) -> str:
    """Header row from the column names, then one record per row."""
    header = [name for name, _ in columns]
    body = ([getter(row) for _, getter in columns] for row in rows)
    return _write([header, *body])


DETAIL_COLUMNS: list[Column[DetailRow]] = [
    ("User Name", lambda r: r.user_name),
    ("Email", lambda r: r.user_email),
    ("Lesson Title", lambda r: r.lesson_title),
    ("Status", lambda r: r.status_text),
    ("First Clicked", lambda r: format_timestamp(r.clicked_at)),
    ("Completed At", lambda r: format_timestamp(r.completed_at)),
]

COURSE_COLUMNS: list[Column[CourseReportRow]] = [
    ("Course", lambda r: r.course_title),
    ("Lessons", lambda r: r.lesson_count),
    ("Completed", lambda r: r.completed),
    ("In Progress", lambda r: r.in_progress),
    ("Not Started", lambda r: r.not_started),
    ("% Completed", lambda r: r.pct_completed),
    ("% In Progress", lambda r: r.pct_in_progress),
    ("% Not Started", lambda r: r.pct_not_started),
]

LESSON_COLUMNS: list[Column[LessonReportRow]] = [
    ("Lesson", lambda r: r.lesson_title),
    ("Course", lambda r: r.course_id),
    ("Completed", lambda r: r.completed),
    ("In Progress", lambda r: r.in_progress),
    ("Not Started", lambda r: r.not_started),
    ("% Completed", lambda r: r.pct_completed),
    ("% In Progress", lambda r: r.pct_in_progress),
    ("% Not Started", lambda r: r.pct_not_started),
]


def detail_csv(rows: Iterable[DetailRow]) -> str:
    return to_csv(rows, DETAIL_COLUMNS)


def executive_csv(
    report: ExecutiveReport,
    filters: RosterFilters,
    generated_at: datetime.date,
) -> str:
    """Metadata block, blank line, then a titled section per report table."""
    metadata = _write(
        [
            [EXECUTIVE_TITLE],
            ["Generated", generated_at.isoformat()],
            ["Practice Filter", (filters.practice or "").strip() or "All"],
            ["Status Filter", (filters.status or "").strip() or "All"],
            ["Roster Size", report.roster_size],
        ]
    )
    sections = [
        metadata,
        "",
        _write([["By Course"]]),
        to_csv(report.by_course, COURSE_COLUMNS),
        "",
        _write([["By Lesson"]]),
        to_csv(report.by_lesson, LESSON_COLUMNS),
    ]
    return "\n".join(sections)


def export_filename(prefix: str, today: datetime.date) -> str:
    return f"{prefix}-{today.isoformat()}.csv"
