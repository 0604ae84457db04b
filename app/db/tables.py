"""SQLAlchemy table definitions.

The tracker's data model is a workbook of tabs (Users, Events, Courses,
Lessons, Roster).  Rather than one table per tab, every tab is stored in
a single ``sheet_rows`` table: each row keeps its cells as a JSON array,
exactly as the in-memory store keeps them.  That way both stores hand
the same raw rows to app.services.sheet_ingest, and the parse-or-default
rules apply identically whichever backend is configured.
"""

from __future__ import annotations

from sqlalchemy import BigInteger, Boolean, Index, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.db.engine import Base


class SheetRow(Base):
    __tablename__ = "sheet_rows"
    __table_args__ = (Index("ix_sheet_rows_sheet_id", "sheet", "id"),)

    # Monotonic id doubles as the row order within a tab (append-only).
    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    sheet: Mapped[str] = mapped_column(String(64), nullable=False)
    is_header: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    cells: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
