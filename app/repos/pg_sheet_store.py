"""PostgreSQL implementation of SheetStore."""

from __future__ import annotations

import datetime
from collections.abc import Sequence

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.tables import SheetRow
from app.services.sheet_ingest import Cell, Row


class PgSheetStore:
    """Satisfies the SheetStore Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def read_sheet(self, name: str) -> list[list[Cell]]:
        stmt = (
            select(SheetRow)
            .where(SheetRow.sheet == name)
            .order_by(SheetRow.is_header.desc(), SheetRow.id)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        if not rows:
            return []
        result = [list(row.cells or []) for row in rows]
        if not rows[0].is_header:
            # Data appended before any header was written
            result.insert(0, [])
        return result

    async def append_row(self, name: str, row: Row) -> None:
        self._session.add(SheetRow(sheet=name, is_header=False, cells=_to_json(row)))
        await self._session.flush()

    async def ensure_sheet(self, name: str, headers: Sequence[str]) -> None:
        await self._session.execute(
            delete(SheetRow).where(SheetRow.sheet == name, SheetRow.is_header.is_(True))
        )
        self._session.add(SheetRow(sheet=name, is_header=True, cells=list(headers)))
        await self._session.flush()


def _to_json(row: Row) -> list:
    cells: list = []
    for cell in row:
        if isinstance(cell, (datetime.datetime, datetime.date)):
            cells.append(cell.isoformat())
        else:
            cells.append(cell)
    return cells
