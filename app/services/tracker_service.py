"""Data façade over the sheet store.

Reads go through app.services.sheet_ingest so every caller sees typed
models.  Writes are appends: a registered user is a new Users row, a
lesson click is a new Events row.  Nothing is ever updated in place.

FIRST WRITE WINS
------------------
The learner UI opens a lesson (click) and marks it done (complete).  A
learner can do both many times, but the tracker only cares about the
FIRST time.  ``mark_clicked`` / ``mark_completed`` check the folded
progress and append only when that timestamp is still missing.
``track_event`` is the raw append used by integrations and does no such
check; the aggregator's earliest-timestamp fold covers that path.
"""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass, replace

from app.core.metrics import EVENTS_RECORDED
from app.models.course import Course, Lesson
from app.models.progress import EVENT_TYPES, NOT_STARTED, Event, LessonProgress
from app.models.roster import RosterEntry
from app.models.user import User, normalize_email
from app.repos.sheet_store import SheetStore
from app.services import sheet_ingest
from app.services.progress_aggregator import ProgressMap, build_user_progress

logger = logging.getLogger(__name__)


class UserValidationError(ValueError):
    pass


class EventValidationError(ValueError):
    pass


class UnknownEntityError(LookupError):
    pass


# Timestamps are folded by string comparison, so only ISO-8601 may enter the log.
def _require_iso_timestamp(value: str) -> None:
    try:
        datetime.datetime.fromisoformat(value)
    except ValueError:
        raise EventValidationError(
            f"timestamp must be ISO-8601 (got {value!r})"
        ) from None


@dataclass(frozen=True, slots=True)
class TrackerSnapshot:
    """Every table, read back to back for one aggregation pass."""

    users: list[User]
    lessons: list[Lesson]
    courses: list[Course]
    events: list[Event]
    roster: list[RosterEntry]


class TrackerService:
    def __init__(self, store: SheetStore) -> None:
        self._store = store

    # ---- reads ----

    async def get_courses(self) -> list[Course]:
        return sheet_ingest.parse_courses(
            await self._store.read_sheet(sheet_ingest.COURSES_SHEET)
        )

    async def get_lessons(self) -> list[Lesson]:
        return sheet_ingest.parse_lessons(
            await self._store.read_sheet(sheet_ingest.LESSONS_SHEET)
        )

    async def get_users(self) -> list[User]:
        return sheet_ingest.parse_users(
            await self._store.read_sheet(sheet_ingest.USERS_SHEET)
        )

    async def get_roster(self) -> list[RosterEntry]:
        return sheet_ingest.parse_roster(
            await self._store.read_sheet(sheet_ingest.ROSTER_SHEET)
        )

    async def get_events(self, user_id: str | None = None) -> list[Event]:
        events = sheet_ingest.parse_events(
            await self._store.read_sheet(sheet_ingest.EVENTS_SHEET)
        )
        if user_id is None:
            return events
        return [e for e in events if e.user_id == user_id]

    async def get_user(self, user_id: str) -> User | None:
        for user in await self.get_users():
            if user.id == user_id:
                return user
        return None

    async def find_user_by_email(self, email: str | None) -> User | None:
        key = normalize_email(email)
        if not key:
            return None
        for user in await self.get_users():
            if user.email_key == key:
                return user
        return None

    async def get_user_progress(self, user: User) -> ProgressMap:
        events = await self.get_events(user.id)
        return build_user_progress([user], events)[user.id]

    async def load_snapshot(self) -> TrackerSnapshot:
        return TrackerSnapshot(
            users=await self.get_users(),
            lessons=await self.get_lessons(),
            courses=await self.get_courses(),
            events=await self.get_events(),
            roster=await self.get_roster(),
        )

    # ---- writes ----

    async def register_user(
        self,
        *,
        name: str,
        email: str | None = None,
        user_id: str | None = None,
        created_at: str | None = None,
    ) -> tuple[User, bool]:
        """Append a Users row unless the id or email is already there.

        Returns (user, created).  An existing match is returned as-is.
        """
        key = normalize_email(email)
        for existing in await self.get_users():
            if (user_id and existing.id == user_id) or (key and existing.email_key == key):
                logger.info(
                    "User already exists id=%s",
                    existing.id,
                    extra={"user_id": existing.id},
                )
                return existing, False

        name = (name or "").strip()
        if not name:
            logger.warning("Rejected registration with blank name email=%s", key)
            raise UserValidationError("name must be non-empty")

        user = User.new(name=name, email=key, id=user_id)
        if created_at:
            user = replace(user, created_at=created_at)

        await self._store.append_row(
            sheet_ingest.USERS_SHEET,
            [user.id, user.email or "", user.name, user.created_at],
        )
        logger.info("Registered user id=%s", user.id, extra={"user_id": user.id})
        return user, True

    async def track_event(
        self,
        user_id: str,
        lesson_id: str,
        event_type: str,
        timestamp: str | None = None,
        *,
        source: str = "api",
    ) -> Event:
        if event_type not in EVENT_TYPES:
            raise EventValidationError(
                f"event_type must be one of {'|'.join(EVENT_TYPES)} (got {event_type!r})"
            )
        if not user_id or not lesson_id:
            raise EventValidationError("user_id and lesson_id must be non-empty")
        if timestamp:
            _require_iso_timestamp(timestamp)

        event = Event.new(
            user_id=user_id,
            lesson_id=lesson_id,
            event_type=event_type,
            timestamp=timestamp,
        )
        await self._store.append_row(
            sheet_ingest.EVENTS_SHEET,
            [event.event_id, event.user_id, event.lesson_id, event.event_type, event.timestamp],
        )
        EVENTS_RECORDED.labels(event_type=event_type, source=source).inc()
        logger.info(
            "Recorded %s user=%s lesson=%s",
            event_type,
            user_id,
            lesson_id,
            extra={"user_id": user_id, "lesson_id": lesson_id, "event_type": event_type},
        )
        return event

    async def mark_clicked(self, user_id: str, lesson_id: str) -> LessonProgress:
        user = await self._require_user_and_lesson(user_id, lesson_id)
        current = (await self.get_user_progress(user)).get(lesson_id, NOT_STARTED)
        if current.clicked:
            return current

        event = await self.track_event(user_id, lesson_id, "clicked", source="learner")
        return LessonProgress(clicked=event.timestamp, completed=current.completed)

    async def mark_completed(self, user_id: str, lesson_id: str) -> LessonProgress:
        user = await self._require_user_and_lesson(user_id, lesson_id)
        current = (await self.get_user_progress(user)).get(lesson_id, NOT_STARTED)
        if current.completed:
            return current

        clicked = current.clicked
        if not clicked:
            clicked = (
                await self.track_event(user_id, lesson_id, "clicked", source="learner")
            ).timestamp
        done = await self.track_event(user_id, lesson_id, "completed", source="learner")
        return LessonProgress(clicked=clicked, completed=done.timestamp)

    async def _require_user_and_lesson(self, user_id: str, lesson_id: str) -> User:
        user = await self.get_user(user_id)
        if user is None:
            raise UnknownEntityError(f"user {user_id!r} not found")
        if not any(lesson.id == lesson_id for lesson in await self.get_lessons()):
            raise UnknownEntityError(f"lesson {lesson_id!r} not found")
        return user
