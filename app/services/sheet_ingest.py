"""Sheet rows -> domain models.

Sheets are edited by hand, so cells arrive as whatever a person typed:
numbers as strings, dates as datetime objects, blank trailing cells
missing entirely, links as JSON or as a bare URL.  This module is the
only place that deals with that.  Everything downstream (the
aggregator, the routers) receives well-typed frozen dataclasses.

PARSE OR DEFAULT
------------------
A bad cell never fails the whole read:

  - A row with an empty primary key cell is dropped.
  - A non-numeric (or NaN/infinite) ``order`` becomes the row's 1-based
    position.
  - A ``links`` cell that is not a JSON list, or a list holding no
    usable {title, url} object, becomes a single ``View Resource`` link
    pointing at the raw cell value.

Each substitution is logged at WARNING and counted in
``tracker_ingest_fallbacks_total`` so a broken sheet is visible on a
dashboard without breaking the learner UI.
"""

from __future__ import annotations

import datetime
import json
import logging
import math
from collections.abc import Sequence
from typing import Union

from app.core.metrics import INGEST_FALLBACKS
from app.models.course import Course, Lesson, LessonLink
from app.models.progress import Event
from app.models.roster import RosterEntry
from app.models.user import User

logger = logging.getLogger(__name__)

Cell = Union[str, int, float, bool, datetime.date, datetime.datetime, None]
Row = Sequence[Cell]

FALLBACK_LINK_TITLE = "View Resource"

# Sheet names and their header rows, in column order.
USERS_SHEET = "Users"
EVENTS_SHEET = "Events"
COURSES_SHEET = "Courses"
LESSONS_SHEET = "Lessons"
ROSTER_SHEET = "Roster"

SHEET_HEADERS: dict[str, tuple[str, ...]] = {
    USERS_SHEET: ("user_id", "email", "name", "created_at"),
    EVENTS_SHEET: ("event_id", "user_id", "lesson_id", "event_type", "timestamp"),
    COURSES_SHEET: ("course_id", "title", "description", "order"),
    LESSONS_SHEET: (
        "lesson_id",
        "course_id",
        "title",
        "description",
        "category",
        "order",
        "links",
    ),
    ROSTER_SHEET: ("email", "practice", "status"),
}


class _Columns:
    """Resolve column names against a header row.

    Columns are looked up by header name when the sheet has one, and by
    their standard position otherwise, so a sheet with reordered or
    extra columns still reads correctly.
    """

    def __init__(self, sheet: str, header: Row) -> None:
        names = [str(h).strip().lower() if h is not None else "" for h in header]
        self._index: dict[str, int] = {}
        for pos, name in enumerate(SHEET_HEADERS[sheet]):
            self._index[name] = names.index(name) if name in names else pos

    def get(self, row: Row, name: str) -> Cell:
        idx = self._index[name]
        return row[idx] if idx < len(row) else None

    def text(self, row: Row, name: str) -> str:
        return cell_text(self.get(row, name))


def cell_text(value: Cell) -> str:
    if value is None:
        return ""
    if isinstance(value, (datetime.datetime, datetime.date)):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        # Sheets hand back ids typed as numbers ("7" -> 7.0)
        return str(int(value))
    return str(value).strip()


def parse_order(value: Cell, position: int, *, sheet: str = "", key: str = "") -> float:
    """Numeric sort key, or the row position when the cell isn't a finite number."""
    if isinstance(value, bool):
        value = None
    if isinstance(value, (int, float)):
        number: float | None = value
        text = repr(value)
    else:
        text = cell_text(value)
        if not text:
            return position
        try:
            number = float(text)
        except ValueError:
            number = None

    # NaN compares false against everything and would scramble the sort
    if number is not None and math.isfinite(number):
        return number
    INGEST_FALLBACKS.labels(field="order").inc()
    logger.warning(
        "Non-numeric order %r in %s row %s; using position %d",
        text,
        sheet,
        key,
        position,
    )
    return position


def _fallback_link(raw: str, key: str) -> tuple[LessonLink, ...]:
    INGEST_FALLBACKS.labels(field="links").inc()
    logger.warning("Unparseable links for lesson %s; using raw value", key)
    return (LessonLink(title=FALLBACK_LINK_TITLE, url=raw),)


def parse_links(value: Cell, *, key: str = "") -> tuple[LessonLink, ...]:
    """JSON list of {title, url} objects, or a single best-effort link."""
    raw = cell_text(value)
    if not raw:
        return ()

    try:
        parsed = json.loads(raw)
    except ValueError:
        parsed = None

    if not isinstance(parsed, list):
        return _fallback_link(raw, key)

    links = []
    for item in parsed:
        if not isinstance(item, dict) or not item.get("url"):
            logger.debug("Skipping malformed link entry for lesson %s: %r", key, item)
            continue
        url = str(item["url"])
        links.append(LessonLink(title=str(item.get("title") or url), url=url))
    if parsed and not links:
        return _fallback_link(raw, key)
    return tuple(links)


def _data_rows(rows: Sequence[Row]) -> Sequence[Row]:
    return rows[1:] if rows else ()


def parse_users(rows: Sequence[Row]) -> list[User]:
    if not rows:
        return []
    cols = _Columns(USERS_SHEET, rows[0])
    users = []
    for row in _data_rows(rows):
        user_id = cols.text(row, "user_id")
        if not user_id:
            continue
        users.append(
            User(
                id=user_id,
                email=cols.text(row, "email") or None,
                name=cols.text(row, "name"),
                created_at=cols.text(row, "created_at") or None,
            )
        )
    return users


def parse_events(rows: Sequence[Row]) -> list[Event]:
    if not rows:
        return []
    cols = _Columns(EVENTS_SHEET, rows[0])
    events = []
    for row in _data_rows(rows):
        event_id = cols.text(row, "event_id")
        if not event_id:
            continue
        events.append(
            Event(
                event_id=event_id,
                user_id=cols.text(row, "user_id"),
                lesson_id=cols.text(row, "lesson_id"),
                event_type=cols.text(row, "event_type"),
                timestamp=cols.text(row, "timestamp"),
            )
        )
    return events


def parse_courses(rows: Sequence[Row]) -> list[Course]:
    if not rows:
        return []
    cols = _Columns(COURSES_SHEET, rows[0])
    courses = []
    for position, row in enumerate(_data_rows(rows), start=1):
        course_id = cols.text(row, "course_id")
        if not course_id:
            continue
        courses.append(
            Course(
                id=course_id,
                title=cols.text(row, "title"),
                description=cols.text(row, "description"),
                order=parse_order(
                    cols.get(row, "order"), position, sheet=COURSES_SHEET, key=course_id
                ),
            )
        )
    # sorted() is stable: equal orders keep sheet order
    return sorted(courses, key=lambda c: c.order)


def parse_lessons(rows: Sequence[Row]) -> list[Lesson]:
    if not rows:
        return []
    cols = _Columns(LESSONS_SHEET, rows[0])
    lessons = []
    for position, row in enumerate(_data_rows(rows), start=1):
        lesson_id = cols.text(row, "lesson_id")
        if not lesson_id:
            continue
        lessons.append(
            Lesson(
                id=lesson_id,
                course_id=cols.text(row, "course_id") or None,
                title=cols.text(row, "title"),
                description=cols.text(row, "description"),
                category=cols.text(row, "category"),
                order=parse_order(
                    cols.get(row, "order"), position, sheet=LESSONS_SHEET, key=lesson_id
                ),
                links=parse_links(cols.get(row, "links"), key=lesson_id),
            )
        )
    return sorted(lessons, key=lambda lesson: lesson.order)


def parse_roster(rows: Sequence[Row]) -> list[RosterEntry]:
    if not rows:
        return []
    cols = _Columns(ROSTER_SHEET, rows[0])
    entries = []
    for row in _data_rows(rows):
        email = cols.text(row, "email")
        if not email:
            continue
        entries.append(
            RosterEntry(
                email=email,
                practice=cols.text(row, "practice"),
                status=cols.text(row, "status"),
            )
        )
    return entries
