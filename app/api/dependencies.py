from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, HTTPException, Query, status

from app.db.engine import async_session_factory, session_scope
from app.repos.pg_sheet_store import PgSheetStore
from app.repos.sheet_store import InMemorySheetStore, SheetStore
from app.services.progress_aggregator import DetailFilters, RosterFilters
from app.services.tracker_service import TrackerService

logger = logging.getLogger(__name__)

# Process-wide workbook used when no DATABASE_URL is configured.
memory_store = InMemorySheetStore()


async def get_sheet_store() -> AsyncGenerator[SheetStore, None]:
    """Yield the configured sheet store.

    With a database, each request gets its own session, committed on
    success and rolled back on exception.
    """
    if async_session_factory is None:
        yield memory_store
        return

    async with session_scope() as session:
        yield PgSheetStore(session)


def get_tracker(
    store: Annotated[SheetStore, Depends(get_sheet_store)],
) -> TrackerService:
    return TrackerService(store)


Tracker = Annotated[TrackerService, Depends(get_tracker)]

_DETAIL_STATUSES = ("completed", "clicked", "not-started")
# The dashboard labels the middle state "In Progress".
_STATUS_ALIASES = {"in-progress": "clicked"}


def detail_filters(
    course_id: Annotated[str, Query()] = "",
    lesson_id: Annotated[str, Query()] = "",
    user_id: Annotated[str, Query()] = "",
    status_filter: Annotated[str, Query(alias="status")] = "",
    search: Annotated[str, Query()] = "",
) -> DetailFilters:
    """Query params for the admin detail table and its CSV export."""
    status_filter = _STATUS_ALIASES.get(status_filter, status_filter)
    if status_filter and status_filter not in _DETAIL_STATUSES:
        logger.warning("Rejected detail status filter %r", status_filter)
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail=f"status must be one of {'|'.join((*_DETAIL_STATUSES, *_STATUS_ALIASES))}",
        )
    return DetailFilters(
        course_id=course_id.strip(),
        lesson_id=lesson_id.strip(),
        user_id=user_id.strip(),
        status=status_filter,
        search=search,
    )


def roster_filters(
    practice: Annotated[str, Query()] = "",
    status_filter: Annotated[str, Query(alias="status")] = "",
) -> RosterFilters:
    return RosterFilters(practice=practice, status=status_filter)
