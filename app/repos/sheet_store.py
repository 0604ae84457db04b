from __future__ import annotations

import asyncio
import csv
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from app.services.sheet_ingest import (
    COURSES_SHEET,
    LESSONS_SHEET,
    ROSTER_SHEET,
    SHEET_HEADERS,
    Cell,
    Row,
)

logger = logging.getLogger(__name__)


class SheetStore(Protocol):
    """A workbook of named tabs, each a header row followed by data rows.

    Reads return the raw cells; parsing happens in app.services.sheet_ingest.
    Rows are only ever appended, never updated in place.
    """

    async def read_sheet(self, name: str) -> list[list[Cell]]: ...
    async def append_row(self, name: str, row: Row) -> None: ...
    async def ensure_sheet(self, name: str, headers: Sequence[str]) -> None: ...


class InMemorySheetStore:
    def __init__(self) -> None:
        self._sheets: dict[str, list[list[Cell]]] = {}

    async def read_sheet(self, name: str) -> list[list[Cell]]:
        # Copy so callers can't mutate the workbook through the result
        return [list(row) for row in self._sheets.get(name, [])]

    async def append_row(self, name: str, row: Row) -> None:
        sheet = self._sheets.get(name)
        if sheet is None:
            sheet = self._sheets[name] = [list(SHEET_HEADERS.get(name, ()))]
        sheet.append(list(row))

    async def ensure_sheet(self, name: str, headers: Sequence[str]) -> None:
        sheet = self._sheets.setdefault(name, [])
        if sheet:
            sheet[0] = list(headers)
        else:
            sheet.append(list(headers))

    def clear(self) -> None:
        self._sheets.clear()


async def initialize_sheets(store: SheetStore) -> None:
    """Write the header row of every tab the tracker uses."""
    for name, headers in SHEET_HEADERS.items():
        await store.ensure_sheet(name, headers)


async def seed_sample_sheets(store: SheetStore) -> None:
    """Two sample courses and three lessons for a fresh workbook."""
    if len(await store.read_sheet(LESSONS_SHEET)) > 1:
        logger.info("Lessons sheet already populated; skipping sample data")
        return

    await initialize_sheets(store)
    for row in (
        [
            "course-1",
            "Getting Started",
            "Begin your learning journey with the fundamentals.",
            1,
        ],
        ["course-2", "Advanced Topics", "Take your skills to the next level.", 2],
    ):
        await store.append_row(COURSES_SHEET, row)

    for row in (
        [
            "lesson-1",
            "course-1",
            "Introduction to Modern Development",
            "Learn the fundamentals of modern software development practices.",
            "Fundamentals",
            1,
            '[{"title":"Video: Getting Started","url":"https://www.youtube.com/watch?v=example1"}]',
        ],
        [
            "lesson-2",
            "course-1",
            "Building Scalable Applications",
            "Discover patterns and techniques for building scalable apps.",
            "Architecture",
            2,
            '[{"title":"Guide: Best Practices","url":"https://docs.example.com/guide"}]',
        ],
        [
            "lesson-3",
            "course-2",
            "Advanced Design Patterns",
            "Deep dive into software design patterns.",
            "Patterns",
            1,
            '[{"title":"Patterns Guide","url":"https://docs.example.com/patterns"}]',
        ],
    ):
        await store.append_row(LESSONS_SHEET, row)
    logger.info("Seeded sample courses and lessons")


def _read_roster_csv(path: str | Path) -> list[list[str]]:
    """(email, practice, status) rows; header names match case-insensitively."""
    rows = []
    with open(path, newline="", encoding="utf-8-sig") as fh:
        for raw in csv.DictReader(fh):
            # Cells past the header land under the None key
            record = {
                key.strip().lower(): (value or "").strip()
                for key, value in raw.items()
                if key is not None
            }
            if record.get("email"):
                rows.append(
                    [record["email"], record.get("practice", ""), record.get("status", "")]
                )
    return rows


async def load_roster_csv(store: SheetStore, path: str | Path) -> int:
    """Append the rows of a roster CSV (email, practice, status) to the Roster tab.

    Rows without an email are skipped.  Returns the number of rows loaded.
    """
    rows = await asyncio.to_thread(_read_roster_csv, path)
    await store.ensure_sheet(ROSTER_SHEET, SHEET_HEADERS[ROSTER_SHEET])
    for row in rows:
        await store.append_row(ROSTER_SHEET, row)
    logger.info("Loaded %d roster rows from %s", len(rows), path)
    return len(rows)
