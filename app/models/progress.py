from __future__ import annotations

import datetime
import random
import string
import time
from dataclasses import dataclass
from typing import Literal

EventType = Literal["clicked", "completed"]
EVENT_TYPES: tuple[str, ...] = ("clicked", "completed")

ProgressStatus = Literal["completed", "clicked", "not-started"]

STATUS_TEXT: dict[str, str] = {
    "completed": "Completed",
    "clicked": "In Progress",
    "not-started": "Not Started",
}


def utc_now_iso() -> str:
    """Current UTC time as 2026-01-31T09:15:00.123Z."""
    now = datetime.datetime.now(datetime.UTC)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def new_event_id() -> str:
    """evt_<epoch millis>_<9 random base36 chars>, as the Events sheet uses."""
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"evt_{int(time.time() * 1000)}_{suffix}"


@dataclass(frozen=True, slots=True)
class Event:
    """One row of the append-only Events sheet."""

    event_id: str
    user_id: str
    lesson_id: str
    event_type: str  # clicked|completed
    timestamp: str  # ISO-8601

    @staticmethod
    def new(
        *,
        user_id: str,
        lesson_id: str,
        event_type: str,
        timestamp: str | None = None,
    ) -> Event:
        return Event(
            event_id=new_event_id(),
            user_id=user_id,
            lesson_id=lesson_id,
            event_type=event_type,
            timestamp=timestamp or utc_now_iso(),
        )


@dataclass(frozen=True, slots=True)
class LessonProgress:
    """Projection of the event log for one (user, lesson) pair.

    Holds the first clicked / first completed timestamps.  A completed
    timestamp alone is enough for the pair to count as completed.
    """

    clicked: str | None = None
    completed: str | None = None

    @property
    def status(self) -> ProgressStatus:
        if self.completed:
            return "completed"
        if self.clicked:
            return "clicked"
        return "not-started"

    @property
    def status_text(self) -> str:
        return STATUS_TEXT[self.status]


NOT_STARTED = LessonProgress()
