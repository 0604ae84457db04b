"""Learner progress endpoints.

Two ways to write an event:

  POST /v1/progress/events
    Raw append, always writes a row (integrations, backfills).  202.

  POST /v1/progress/{user_id}/lessons/{lesson_id}/click|complete
    What the learner UI calls.  First write wins: a second click or a
    second complete is a no-op that returns the existing timestamps.
    Completing a never-opened lesson records the click first.

And one read:

  GET /v1/progress/{user_id}
    The learner's dashboard: per-lesson status, overall counters, and
    per-course completed/total, all derived from the Events sheet.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel

from app.api.dependencies import Tracker
from app.core.metrics import REPORTS_GENERATED
from app.models.progress import LessonProgress
from app.services.progress_aggregator import (
    compute_completion_stats,
    summarize_courses,
    summarize_overview,
)
from app.services.tracker_service import EventValidationError, UnknownEntityError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/progress", tags=["progress"])


class ProgressEventIn(BaseModel):
    user_id: str
    lesson_id: str
    event_type: str  # clicked|completed
    timestamp: str | None = None


class ProgressEventOut(BaseModel):
    event_id: str
    user_id: str
    lesson_id: str
    event_type: str
    timestamp: str


class LessonProgressOut(BaseModel):
    lesson_id: str
    status: str
    status_text: str
    clicked: str | None
    completed: str | None

    @classmethod
    def build(cls, lesson_id: str, p: LessonProgress) -> LessonProgressOut:
        return cls(
            lesson_id=lesson_id,
            status=p.status,
            status_text=p.status_text,
            clicked=p.clicked,
            completed=p.completed,
        )


class OverviewOut(BaseModel):
    total: int
    completed: int
    in_progress: int
    not_started: int
    percent: int


class CourseProgressOut(BaseModel):
    course_id: str
    title: str
    description: str
    completed: int
    total: int
    percent: int
    is_complete: bool


class StatsOut(BaseModel):
    completed_count: int
    started_count: int
    completion_rate: int


class LearnerProgressOut(BaseModel):
    user_id: str
    lessons: list[LessonProgressOut]
    overview: OverviewOut
    courses: list[CourseProgressOut]
    stats: StatsOut


# ---------------------------------------------------------------------------
# GET /v1/progress/{user_id}
# ---------------------------------------------------------------------------


@router.get("/{user_id}", response_model=LearnerProgressOut)
async def get_learner_progress(user_id: str, tracker: Tracker) -> LearnerProgressOut:
    user = await tracker.get_user(user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="user not found")

    progress = await tracker.get_user_progress(user)
    lessons = await tracker.get_lessons()
    courses = await tracker.get_courses()

    overview = summarize_overview(progress, lessons)
    stats = compute_completion_stats(progress, lessons)
    REPORTS_GENERATED.labels(report="learner").inc()

    return LearnerProgressOut(
        user_id=user.id,
        # Lessons the learner has touched that are no longer in the sheet are dropped
        lessons=[
            LessonProgressOut.build(lesson.id, progress[lesson.id])
            for lesson in lessons
            if lesson.id in progress
        ],
        overview=OverviewOut(
            total=overview.total,
            completed=overview.completed,
            in_progress=overview.in_progress,
            not_started=overview.not_started,
            percent=overview.percent,
        ),
        courses=[
            CourseProgressOut(
                course_id=c.course_id,
                title=c.title,
                description=c.description,
                completed=c.completed,
                total=c.total,
                percent=c.percent,
                is_complete=c.is_complete,
            )
            for c in summarize_courses(progress, lessons, courses)
        ],
        stats=StatsOut(
            completed_count=stats.completed_count,
            started_count=stats.started_count,
            completion_rate=stats.completion_rate,
        ),
    )


# ---------------------------------------------------------------------------
# POST /v1/progress/events (raw append)
# ---------------------------------------------------------------------------


@router.post(
    "/events",
    response_model=ProgressEventOut,
    status_code=status.HTTP_202_ACCEPTED,
)
async def ingest_progress_event(
    event: ProgressEventIn, tracker: Tracker
) -> ProgressEventOut:
    try:
        recorded = await tracker.track_event(
            event.user_id, event.lesson_id, event.event_type, event.timestamp
        )
    except EventValidationError as e:
        logger.warning("Invalid progress event: %s", e)
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail=str(e),
        ) from None

    return ProgressEventOut(
        event_id=recorded.event_id,
        user_id=recorded.user_id,
        lesson_id=recorded.lesson_id,
        event_type=recorded.event_type,
        timestamp=recorded.timestamp,
    )


# ---------------------------------------------------------------------------
# POST /v1/progress/{user_id}/lessons/{lesson_id}/click|complete
# ---------------------------------------------------------------------------


@router.post(
    "/{user_id}/lessons/{lesson_id}/click", response_model=LessonProgressOut
)
async def click_lesson(
    user_id: str, lesson_id: str, tracker: Tracker
) -> LessonProgressOut:
    try:
        progress = await tracker.mark_clicked(user_id, lesson_id)
    except UnknownEntityError as e:
        logger.warning("Click rejected: %s", e)
        raise HTTPException(status_code=404, detail=str(e)) from None
    return LessonProgressOut.build(lesson_id, progress)


@router.post(
    "/{user_id}/lessons/{lesson_id}/complete", response_model=LessonProgressOut
)
async def complete_lesson(
    user_id: str, lesson_id: str, tracker: Tracker
) -> LessonProgressOut:
    try:
        progress = await tracker.mark_completed(user_id, lesson_id)
    except UnknownEntityError as e:
        logger.warning("Completion rejected: %s", e)
        raise HTTPException(status_code=404, detail=str(e)) from None
    return LessonProgressOut.build(lesson_id, progress)
