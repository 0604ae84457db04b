"""Tests for sheet row parsing: parse-or-default at the ingestion boundary."""

from __future__ import annotations

import datetime

from prometheus_client import REGISTRY

from app.models.course import LessonLink
from app.services.sheet_ingest import (
    FALLBACK_LINK_TITLE,
    SHEET_HEADERS,
    cell_text,
    parse_courses,
    parse_events,
    parse_lessons,
    parse_links,
    parse_order,
    parse_roster,
    parse_users,
)

LESSON_HEADER = list(SHEET_HEADERS["Lessons"])
COURSE_HEADER = list(SHEET_HEADERS["Courses"])


def _fallbacks(field: str) -> float:
    value = REGISTRY.get_sample_value("tracker_ingest_fallbacks_total", {"field": field})
    return value if value is not None else 0.0


# ---- cell_text ----


def test_cell_text_normalizes_sheet_values() -> None:
    assert cell_text(None) == ""
    assert cell_text("  padded ") == "padded"
    assert cell_text(7.0) == "7"
    assert cell_text(2.5) == "2.5"
    assert cell_text(datetime.date(2026, 3, 2)) == "2026-03-02"


# ---- parse_order ----


def test_parse_order_keeps_numbers() -> None:
    assert parse_order(3, 1) == 3
    assert parse_order("2.5", 1) == 2.5
    assert parse_order(0, 4) == 0


def test_parse_order_falls_back_to_position() -> None:
    before = _fallbacks("order")
    assert parse_order("first", 4, sheet="Lessons", key="lesson-9") == 4
    assert _fallbacks("order") - before == 1


def test_parse_order_blank_uses_position_without_warning() -> None:
    before = _fallbacks("order")
    assert parse_order("", 2) == 2
    assert parse_order(None, 3) == 3
    assert _fallbacks("order") == before


def test_parse_order_ignores_booleans() -> None:
    assert parse_order(True, 5) == 5


def test_parse_order_non_finite_uses_position() -> None:
    before = _fallbacks("order")
    assert parse_order("NaN", 3, sheet="Lessons", key="lesson-n") == 3
    assert parse_order(float("inf"), 2) == 2
    assert parse_order(float("nan"), 1) == 1
    assert _fallbacks("order") - before == 3


# ---- parse_links ----


def test_parse_links_reads_json_list() -> None:
    raw = '[{"title":"Video","url":"https://v.example.com"},{"url":"https://d.example.com"}]'
    assert parse_links(raw) == (
        LessonLink(title="Video", url="https://v.example.com"),
        LessonLink(title="https://d.example.com", url="https://d.example.com"),
    )


def test_parse_links_skips_entries_without_url() -> None:
    raw = '[{"title":"No url"}, "just a string", {"title":"Ok","url":"https://ok"}]'
    assert parse_links(raw) == (LessonLink(title="Ok", url="https://ok"),)


def test_parse_links_bare_url_becomes_single_link() -> None:
    before = _fallbacks("links")
    links = parse_links("https://docs.example.com/guide", key="lesson-2")
    assert links == (LessonLink(title=FALLBACK_LINK_TITLE, url="https://docs.example.com/guide"),)
    assert _fallbacks("links") - before == 1


def test_parse_links_json_object_is_not_a_list() -> None:
    links = parse_links('{"url": "https://x"}')
    assert links[0].title == "View Resource"


def test_parse_links_empty() -> None:
    assert parse_links("") == ()
    assert parse_links(None) == ()
    assert parse_links("[]") == ()


def test_parse_links_list_without_usable_entries_becomes_single_link() -> None:
    before = _fallbacks("links")
    raw = '["https://a.example"]'
    assert parse_links(raw, key="lesson-4") == (
        LessonLink(title=FALLBACK_LINK_TITLE, url=raw),
    )
    assert _fallbacks("links") - before == 1


# ---- parse_lessons / parse_courses ----


def test_parse_lessons_sorts_by_order_and_drops_blank_ids() -> None:
    rows = [
        LESSON_HEADER,
        ["lesson-b", "course-1", "B", "", "", 2, ""],
        ["", "course-1", "no id", "", "", 0, ""],
        ["lesson-a", "course-1", "A", "", "", 1, ""],
    ]
    lessons = parse_lessons(rows)
    assert [lesson.id for lesson in lessons] == ["lesson-a", "lesson-b"]


def test_parse_lessons_ties_keep_sheet_order() -> None:
    rows = [
        LESSON_HEADER,
        ["x", "c", "X", "", "", 1, ""],
        ["y", "c", "Y", "", "", 1, ""],
        ["z", "c", "Z", "", "", 0, ""],
    ]
    assert [lesson.id for lesson in parse_lessons(rows)] == ["z", "x", "y"]


def test_parse_lessons_bad_order_uses_row_position() -> None:
    rows = [
        LESSON_HEADER,
        ["first", "c", "First", "", "", "oops", ""],
        ["second", "c", "Second", "", "", 1.5, ""],
    ]
    lessons = parse_lessons(rows)
    assert [(lesson.id, lesson.order) for lesson in lessons] == [
        ("first", 1),
        ("second", 1.5),
    ]


def test_parse_lessons_nan_order_does_not_scramble_sort() -> None:
    rows = [
        LESSON_HEADER,
        ["a", "c", "A", "", "", 3, ""],
        ["b", "c", "B", "", "", "nan", ""],
        ["c", "c", "C", "", "", 1, ""],
    ]
    lessons = parse_lessons(rows)
    assert [(lesson.id, lesson.order) for lesson in lessons] == [
        ("c", 1),
        ("b", 2),
        ("a", 3),
    ]


def test_parse_lessons_short_rows_and_missing_course() -> None:
    lessons = parse_lessons([LESSON_HEADER, ["lesson-1", "", "Intro"]])
    lesson = lessons[0]
    assert lesson.course_id is None
    assert lesson.group_key == "Uncategorized"
    assert lesson.links == ()
    assert lesson.order == 1


def test_parse_lessons_reads_columns_by_header_name() -> None:
    header = ["title", "lesson_id", "course_id", "extra"]
    lessons = parse_lessons([header, ["Intro", "lesson-1", "course-1", "ignored"]])
    assert lessons[0].id == "lesson-1"
    assert lessons[0].title == "Intro"
    assert lessons[0].course_id == "course-1"


def test_parse_courses_sorts_by_order() -> None:
    rows = [
        COURSE_HEADER,
        ["course-2", "Advanced", "", 2],
        ["course-1", "Basics", "", "1"],
    ]
    assert [c.id for c in parse_courses(rows)] == ["course-1", "course-2"]


def test_parse_empty_sheets() -> None:
    assert parse_courses([]) == []
    assert parse_lessons([LESSON_HEADER]) == []
    assert parse_users([]) == []
    assert parse_events([]) == []
    assert parse_roster([]) == []


# ---- users / events / roster ----


def test_parse_users_numeric_ids_and_dates() -> None:
    rows = [
        list(SHEET_HEADERS["Users"]),
        [17.0, "ada@example.com", "Ada", datetime.datetime(2026, 1, 5, 9, 0)],
        ["", "nobody@example.com", "No id", ""],
    ]
    users = parse_users(rows)
    assert len(users) == 1
    assert users[0].id == "17"
    assert users[0].created_at == "2026-01-05T09:00:00"


def test_parse_users_blank_email_is_none() -> None:
    users = parse_users([list(SHEET_HEADERS["Users"]), ["u1", "", "Anon", ""]])
    assert users[0].email is None
    assert users[0].created_at is None


def test_parse_events_drops_rows_without_event_id() -> None:
    rows = [
        list(SHEET_HEADERS["Events"]),
        ["evt_1", "u1", "lesson-1", "clicked", "2026-03-01T08:00:00.000Z"],
        ["", "u1", "lesson-1", "completed", "2026-03-01T09:00:00.000Z"],
    ]
    events = parse_events(rows)
    assert [e.event_id for e in events] == ["evt_1"]
    assert events[0].event_type == "clicked"


def test_parse_roster_trims_and_drops_blank_email() -> None:
    rows = [
        list(SHEET_HEADERS["Roster"]),
        [" a@x.com ", " P1", "active "],
        ["", "P1", "active"],
    ]
    entries = parse_roster(rows)
    assert len(entries) == 1
    assert entries[0].email == "a@x.com"
    assert entries[0].practice == "P1"
    assert entries[0].status == "active"
