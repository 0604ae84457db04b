"""Admin reporting endpoints.

Every request reads a fresh snapshot of all sheets and recomputes from
scratch; there is no cached report.  The dashboard re-requests on
filter change and on the refresh button.

  GET /v1/admin/users            one card per user (completed/total, rate)
  GET /v1/admin/rows[.csv]       user x lesson detail table
  GET /v1/admin/executive[.csv]  roster-scoped completion by course/lesson
  GET /v1/admin/roster/filters   values for the practice/status dropdowns
"""

from __future__ import annotations

import datetime
import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from pydantic import BaseModel

from app.api.dependencies import Tracker, detail_filters, roster_filters
from app.core.metrics import REPORTS_GENERATED
from app.services import csv_export
from app.services.progress_aggregator import (
    DetailFilters,
    DetailRow,
    ExecutiveReport,
    RosterFilters,
    build_detail_rows,
    build_user_progress,
    compute_executive_report,
    summarize_user,
)
from app.services.tracker_service import TrackerService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/admin", tags=["admin"])


class UserSummaryOut(BaseModel):
    id: str
    name: str
    email: str | None
    created_at: str | None
    lesson_count: int
    completed_count: int
    started_count: int
    completion_rate: int


class DetailRowOut(BaseModel):
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


class CourseReportOut(BaseModel):
    course_id: str
    course_title: str
    lesson_count: int
    completed: int
    in_progress: int
    not_started: int
    pct_completed: int
    pct_in_progress: int
    pct_not_started: int


class LessonReportOut(BaseModel):
    lesson_id: str
    lesson_title: str
    course_id: str
    completed: int
    in_progress: int
    not_started: int
    pct_completed: int
    pct_in_progress: int
    pct_not_started: int


class ExecutiveReportOut(BaseModel):
    roster_size: int
    practice: str
    status: str
    by_course: list[CourseReportOut]
    by_lesson: list[LessonReportOut]


class RosterFiltersOut(BaseModel):
    practices: list[str]
    statuses: list[str]


def _csv_response(content: str, prefix: str) -> Response:
    filename = csv_export.export_filename(prefix, datetime.date.today())
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


async def _detail_rows(tracker: TrackerService, filters: DetailFilters) -> list[DetailRow]:
    snapshot = await tracker.load_snapshot()
    progress = build_user_progress(snapshot.users, snapshot.events)
    return build_detail_rows(snapshot.users, snapshot.lessons, progress, filters)


async def _executive_report(
    tracker: TrackerService, filters: RosterFilters
) -> ExecutiveReport:
    snapshot = await tracker.load_snapshot()
    progress = build_user_progress(snapshot.users, snapshot.events)
    report = compute_executive_report(
        snapshot.roster,
        snapshot.users,
        snapshot.lessons,
        snapshot.courses,
        progress,
        filters,
    )
    logger.info(
        "Executive report roster=%d practice=%r status=%r",
        report.roster_size,
        filters.practice,
        filters.status,
        extra={"report": "executive"},
    )
    return report


# ---------------------------------------------------------------------------
# User cards
# ---------------------------------------------------------------------------


@router.get("/users", response_model=list[UserSummaryOut])
async def list_user_summaries(tracker: Tracker) -> list[UserSummaryOut]:
    snapshot = await tracker.load_snapshot()
    progress = build_user_progress(snapshot.users, snapshot.events)
    REPORTS_GENERATED.labels(report="user_summaries").inc()

    out = []
    for user in snapshot.users:
        summary = summarize_user(user, progress[user.id], snapshot.lessons)
        out.append(
            UserSummaryOut(
                id=user.id,
                name=user.name,
                email=user.email,
                created_at=user.created_at,
                lesson_count=summary.lesson_count,
                completed_count=summary.stats.completed_count,
                started_count=summary.stats.started_count,
                completion_rate=summary.stats.completion_rate,
            )
        )
    return out


# ---------------------------------------------------------------------------
# Detail table
# ---------------------------------------------------------------------------


@router.get("/rows", response_model=list[DetailRowOut])
async def list_detail_rows(
    tracker: Tracker,
    filters: Annotated[DetailFilters, Depends(detail_filters)],
) -> list[DetailRowOut]:
    rows = await _detail_rows(tracker, filters)
    REPORTS_GENERATED.labels(report="detail_rows").inc()
    return [
        DetailRowOut(
            user_id=r.user_id,
            user_name=r.user_name,
            user_email=r.user_email,
            lesson_id=r.lesson_id,
            lesson_title=r.lesson_title,
            course_id=r.course_id,
            status=r.status,
            status_text=r.status_text,
            clicked_at=r.clicked_at,
            completed_at=r.completed_at,
        )
        for r in rows
    ]


@router.get("/rows.csv")
async def export_detail_rows(
    tracker: Tracker,
    filters: Annotated[DetailFilters, Depends(detail_filters)],
) -> Response:
    rows = await _detail_rows(tracker, filters)
    REPORTS_GENERATED.labels(report="detail_csv").inc()
    logger.info("Detail CSV export rows=%d", len(rows), extra={"report": "detail_csv"})
    return _csv_response(csv_export.detail_csv(rows), "learning-tracker-report")


# ---------------------------------------------------------------------------
# Executive report
# ---------------------------------------------------------------------------


@router.get("/executive", response_model=ExecutiveReportOut)
async def get_executive_report(
    tracker: Tracker,
    filters: Annotated[RosterFilters, Depends(roster_filters)],
) -> ExecutiveReportOut:
    report = await _executive_report(tracker, filters)
    REPORTS_GENERATED.labels(report="executive").inc()
    return ExecutiveReportOut(
        roster_size=report.roster_size,
        practice=filters.practice,
        status=filters.status,
        by_course=[
            CourseReportOut(
                course_id=r.course_id,
                course_title=r.course_title,
                lesson_count=r.lesson_count,
                completed=r.completed,
                in_progress=r.in_progress,
                not_started=r.not_started,
                pct_completed=r.pct_completed,
                pct_in_progress=r.pct_in_progress,
                pct_not_started=r.pct_not_started,
            )
            for r in report.by_course
        ],
        by_lesson=[
            LessonReportOut(
                lesson_id=r.lesson_id,
                lesson_title=r.lesson_title,
                course_id=r.course_id,
                completed=r.completed,
                in_progress=r.in_progress,
                not_started=r.not_started,
                pct_completed=r.pct_completed,
                pct_in_progress=r.pct_in_progress,
                pct_not_started=r.pct_not_started,
            )
            for r in report.by_lesson
        ],
    )


@router.get("/executive.csv")
async def export_executive_report(
    tracker: Tracker,
    filters: Annotated[RosterFilters, Depends(roster_filters)],
) -> Response:
    report = await _executive_report(tracker, filters)
    REPORTS_GENERATED.labels(report="executive_csv").inc()
    content = csv_export.executive_csv(report, filters, datetime.date.today())
    return _csv_response(content, "executive-training-report")


@router.get("/roster/filters", response_model=RosterFiltersOut)
async def list_roster_filters(tracker: Tracker) -> RosterFiltersOut:
    roster = await tracker.get_roster()
    return RosterFiltersOut(
        practices=sorted({e.practice.strip() for e in roster if e.practice.strip()}),
        statuses=sorted({e.status.strip() for e in roster if e.status.strip()}),
    )
