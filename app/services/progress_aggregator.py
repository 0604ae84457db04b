"""Progress aggregation: raw event rows in, completion views out.

Everything in this module is a pure function over an in-memory snapshot
(users, lessons, courses, events, roster).  Nothing here reads the
store, mutates its inputs, or keeps state between calls, so running any
function twice on the same snapshot yields the same result.

THE FOLD
----------
The Events sheet is an append-only log of (user, lesson, type, time)
rows.  ``build_user_progress`` folds it into one small projection per
(user, lesson) pair:

    {"lesson-1": LessonProgress(clicked="2026-...", completed=None)}

When the log holds several rows for the same (user, lesson, type), the
EARLIEST timestamp wins.  Learners see "first started" and "first
completed", and the write path only appends when no timestamp exists
yet; folding by minimum keeps the projection right even when a
duplicate slipped through (two browser tabs, a replayed request).

Timestamps are compared as plain ISO-8601 strings.  That ordering is
only correct when every timestamp carries the same UTC offset; no
timezone normalization is done here.

ROSTER REPORTS
----------------
The executive report answers "what share of the people we EXPECT to be
trained have done it?"  The denominator is the filtered roster, not the
set of registered users: a roster email with no matching account counts
as not-started for every course and lesson.  Each member lands in
exactly one of three buckets, so the counts always add up to the roster
size.  The percentages are rounded independently and may not.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, replace
from decimal import ROUND_HALF_UP, Decimal

from app.models.course import Course, Lesson
from app.models.progress import EVENT_TYPES, NOT_STARTED, Event, LessonProgress
from app.models.roster import RosterEntry
from app.models.user import User

logger = logging.getLogger(__name__)

ProgressMap = dict[str, LessonProgress]  # lesson_id -> progress


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CompletionStats:
    completed_count: int
    started_count: int
    completion_rate: int


@dataclass(frozen=True, slots=True)
class UserSummary:
    user: User
    lesson_count: int
    stats: CompletionStats


@dataclass(frozen=True, slots=True)
class ProgressOverview:
    total: int
    completed: int
    in_progress: int
    not_started: int
    percent: int


@dataclass(frozen=True, slots=True)
class CourseSummary:
    course_id: str
    title: str
    description: str
    completed: int
    total: int
    percent: int

    @property
    def is_complete(self) -> bool:
        return self.total > 0 and self.completed == self.total


@dataclass(frozen=True, slots=True)
class BucketCounts:
    completed: int = 0
    in_progress: int = 0
    not_started: int = 0

    @property
    def total(self) -> int:
        return self.completed + self.in_progress + self.not_started

    def pct_completed(self, size: int) -> int:
        return round_half_up(self.completed, size)

    def pct_in_progress(self, size: int) -> int:
        return round_half_up(self.in_progress, size)

    def pct_not_started(self, size: int) -> int:
        return round_half_up(self.not_started, size)


@dataclass(frozen=True, slots=True)
class CourseReportRow:
    course_id: str
    course_title: str
    lesson_count: int
    completed: int
    in_progress: int
    not_started: int
    pct_completed: int
    pct_in_progress: int
    pct_not_started: int


@dataclass(frozen=True, slots=True)
class LessonReportRow:
    lesson_id: str
    lesson_title: str
    course_id: str
    completed: int
    in_progress: int
    not_started: int
    pct_completed: int
    pct_in_progress: int
    pct_not_started: int


@dataclass(frozen=True, slots=True)
class ExecutiveReport:
    by_course: list[CourseReportRow]
    by_lesson: list[LessonReportRow]
    roster_size: int


@dataclass(frozen=True, slots=True)
class DetailRow:
    user_id: str
    user_name: str
    user_email: str
    lesson_id: str
    lesson_title: str
    course_id: str
    status: str
    status_text: str
    clicked_at: str | None
    completed_at: str | None


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RosterFilters:
    """Exact, trimmed, case-sensitive match.  Empty means no restriction."""

    practice: str = ""
    status: str = ""

    def matches(self, entry: RosterEntry) -> bool:
        practice = (self.practice or "").strip()
        status = (self.status or "").strip()
        if practice and entry.practice.strip() != practice:
            return False
        if status and entry.status.strip() != status:
            return False
        return True

    @property
    def is_empty(self) -> bool:
        return not (self.practice or "").strip() and not (self.status or "").strip()


@dataclass(frozen=True, slots=True)
class DetailFilters:
    course_id: str = ""
    lesson_id: str = ""
    user_id: str = ""
    status: str = ""  # completed|clicked|not-started
    search: str = ""  # case-insensitive substring of user name/email/lesson title


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def round_half_up(numerator: int, denominator: int) -> int:
    """Integer percent of numerator/denominator, halves rounded up.

    Python's round() rounds halves to even (round(2.5) == 2), which is
    not what a progress bar should show.
    """
    if denominator <= 0:
        return 0
    pct = Decimal(numerator) * 100 / Decimal(denominator)
    return int(pct.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def group_lessons(lessons: Iterable[Lesson]) -> dict[str, list[Lesson]]:
    """Lessons keyed by course id, in the order lessons introduce each course."""
    grouped: dict[str, list[Lesson]] = {}
    for lesson in lessons:
        grouped.setdefault(lesson.group_key, []).append(lesson)
    return grouped


def infer_courses(lessons: Iterable[Lesson]) -> list[Course]:
    """Placeholder courses for a Lessons sheet with no Courses sheet."""
    seen: list[str] = []
    for lesson in lessons:
        if lesson.course_id and lesson.course_id not in seen:
            seen.append(lesson.course_id)
    return [
        Course(id=course_id, title=f"Course {idx}", order=idx)
        for idx, course_id in enumerate(seen, start=1)
    ]


def _is_started(p: LessonProgress) -> bool:
    return bool(p.clicked or p.completed)


# ---------------------------------------------------------------------------
# Per-user progress
# ---------------------------------------------------------------------------


def build_user_progress(
    users: Iterable[User], events: Iterable[Event]
) -> dict[str, ProgressMap]:
    """Fold the event log into one ProgressMap per user.

    Every user gets an entry, possibly empty.  Events for unknown users,
    unknown event types, or with no timestamp are skipped.
    """
    progress: dict[str, ProgressMap] = {user.id: {} for user in users}
    skipped = 0

    for event in events:
        user_map = progress.get(event.user_id)
        if (
            user_map is None
            or not event.lesson_id
            or not event.timestamp
            or event.event_type not in EVENT_TYPES
        ):
            skipped += 1
            continue

        current = user_map.get(event.lesson_id, NOT_STARTED)
        existing = getattr(current, event.event_type)
        if existing is None or event.timestamp < existing:
            user_map[event.lesson_id] = replace(
                current, **{event.event_type: event.timestamp}
            )

    if skipped:
        logger.debug("Skipped %d events during progress fold", skipped)
    return progress


def compute_completion_stats(
    progress: Mapping[str, LessonProgress], lessons: Sequence[Lesson]
) -> CompletionStats:
    """Counts over the full lesson list (not one course)."""
    completed = 0
    started = 0
    for lesson in lessons:
        p = progress.get(lesson.id, NOT_STARTED)
        if p.completed:
            completed += 1
        if p.clicked:
            started += 1
    return CompletionStats(
        completed_count=completed,
        started_count=started,
        completion_rate=round_half_up(completed, len(lessons)),
    )


def summarize_user(
    user: User, progress: Mapping[str, LessonProgress], lessons: Sequence[Lesson]
) -> UserSummary:
    return UserSummary(
        user=user,
        lesson_count=len(lessons),
        stats=compute_completion_stats(progress, lessons),
    )


def summarize_overview(
    progress: Mapping[str, LessonProgress], lessons: Sequence[Lesson]
) -> ProgressOverview:
    completed = 0
    in_progress = 0
    for lesson in lessons:
        status = progress.get(lesson.id, NOT_STARTED).status
        if status == "completed":
            completed += 1
        elif status == "clicked":
            in_progress += 1
    total = len(lessons)
    return ProgressOverview(
        total=total,
        completed=completed,
        in_progress=in_progress,
        not_started=total - completed - in_progress,
        percent=round_half_up(completed, total),
    )


def summarize_courses(
    progress: Mapping[str, LessonProgress],
    lessons: Sequence[Lesson],
    courses: Sequence[Course],
) -> list[CourseSummary]:
    """One learner's completed/total per course, in course order.

    Falls back to courses inferred from the lessons when the Courses
    sheet is empty.
    """
    grouped = group_lessons(lessons)
    summaries = []
    for course in courses or infer_courses(lessons):
        course_lessons = grouped.get(course.id, [])
        completed = sum(
            1 for lesson in course_lessons if progress.get(lesson.id, NOT_STARTED).completed
        )
        summaries.append(
            CourseSummary(
                course_id=course.id,
                title=course.title,
                description=course.description,
                completed=completed,
                total=len(course_lessons),
                percent=round_half_up(completed, len(course_lessons)),
            )
        )
    return summaries


# ---------------------------------------------------------------------------
# Roster-scoped executive report
# ---------------------------------------------------------------------------


def compute_executive_report(
    roster: Iterable[RosterEntry],
    users: Iterable[User],
    lessons: Sequence[Lesson],
    courses: Iterable[Course],
    progress: Mapping[str, ProgressMap],
    filters: RosterFilters | None = None,
) -> ExecutiveReport:
    filters = filters or RosterFilters()
    members = [entry for entry in roster if filters.matches(entry)]
    roster_size = len(members)
    if roster_size == 0:
        logger.debug("Executive report: empty roster after filters %s", filters)
        return ExecutiveReport(by_course=[], by_lesson=[], roster_size=0)

    by_email: dict[str, User] = {}
    for user in users:
        key = user.email_key
        if key and key not in by_email:
            by_email[key] = user

    # Unknown roster emails get an empty map: not-started everywhere.
    member_progress: list[Mapping[str, LessonProgress]] = []
    unmatched = 0
    for entry in members:
        user = by_email.get(entry.email_key)
        if user is None:
            unmatched += 1
            member_progress.append({})
        else:
            member_progress.append(progress.get(user.id, {}))

    titles = {course.id: course.title for course in courses}

    by_course = []
    for course_id, course_lessons in group_lessons(lessons).items():
        counts = _bucket_course(member_progress, course_lessons)
        by_course.append(
            CourseReportRow(
                course_id=course_id,
                course_title=titles.get(course_id, course_id),
                lesson_count=len(course_lessons),
                completed=counts.completed,
                in_progress=counts.in_progress,
                not_started=counts.not_started,
                pct_completed=counts.pct_completed(roster_size),
                pct_in_progress=counts.pct_in_progress(roster_size),
                pct_not_started=counts.pct_not_started(roster_size),
            )
        )

    by_lesson = []
    for lesson in lessons:
        counts = _bucket_lesson(member_progress, lesson)
        by_lesson.append(
            LessonReportRow(
                lesson_id=lesson.id,
                lesson_title=lesson.title,
                course_id=lesson.group_key,
                completed=counts.completed,
                in_progress=counts.in_progress,
                not_started=counts.not_started,
                pct_completed=counts.pct_completed(roster_size),
                pct_in_progress=counts.pct_in_progress(roster_size),
                pct_not_started=counts.pct_not_started(roster_size),
            )
        )

    logger.debug(
        "Executive report: roster=%d unmatched=%d courses=%d lessons=%d",
        roster_size,
        unmatched,
        len(by_course),
        len(by_lesson),
    )
    return ExecutiveReport(by_course=by_course, by_lesson=by_lesson, roster_size=roster_size)


def _bucket_course(
    member_progress: Sequence[Mapping[str, LessonProgress]],
    course_lessons: Sequence[Lesson],
) -> BucketCounts:
    completed = in_progress = not_started = 0
    for pm in member_progress:
        states = [pm.get(lesson.id, NOT_STARTED) for lesson in course_lessons]
        if all(p.completed for p in states):
            completed += 1
        elif any(_is_started(p) for p in states):
            in_progress += 1
        else:
            not_started += 1
    return BucketCounts(completed, in_progress, not_started)


def _bucket_lesson(
    member_progress: Sequence[Mapping[str, LessonProgress]], lesson: Lesson
) -> BucketCounts:
    completed = in_progress = not_started = 0
    for pm in member_progress:
        p = pm.get(lesson.id, NOT_STARTED)
        if p.completed:
            completed += 1
        elif p.clicked:
            in_progress += 1
        else:
            not_started += 1
    return BucketCounts(completed, in_progress, not_started)


# ---------------------------------------------------------------------------
# Detail rows (admin table + CSV export)
# ---------------------------------------------------------------------------


def build_detail_rows(
    users: Sequence[User],
    lessons: Sequence[Lesson],
    progress: Mapping[str, ProgressMap],
    filters: DetailFilters | None = None,
) -> list[DetailRow]:
    """Cross join of users x lessons, filtered, users outer and lessons inner."""
    filters = filters or DetailFilters()
    needle = (filters.search or "").strip().lower()

    selected_users = [u for u in users if not filters.user_id or u.id == filters.user_id]
    selected_lessons = [
        lesson
        for lesson in lessons
        if (not filters.course_id or lesson.group_key == filters.course_id)
        and (not filters.lesson_id or lesson.id == filters.lesson_id)
    ]

    rows = []
    for user in selected_users:
        user_progress = progress.get(user.id, {})
        user_fields = ((user.name or "").lower(), (user.email or "").lower())
        for lesson in selected_lessons:
            p = user_progress.get(lesson.id, NOT_STARTED)
            if filters.status and p.status != filters.status:
                continue
            if needle and not any(
                needle in text for text in (*user_fields, (lesson.title or "").lower())
            ):
                continue
            rows.append(
                DetailRow(
                    user_id=user.id,
                    user_name=user.name,
                    user_email=user.email or "",
                    lesson_id=lesson.id,
                    lesson_title=lesson.title,
                    course_id=lesson.group_key,
                    status=p.status,
                    status_text=p.status_text,
                    clicked_at=p.clicked,
                    completed_at=p.completed,
                )
            )
    return rows
