#!/usr/bin/env python3
"""Load a roster CSV (email, practice, status) into the database.

RUN:  DATABASE_URL=postgresql+asyncpg://... python scripts/load_roster.py roster.csv

The in-memory store reads ROSTER_CSV at startup instead; this script is
for a database-backed deployment, where rows persist across restarts.
Rows are appended, so loading the same file twice duplicates it.
"""

from __future__ import annotations

import asyncio
import sys

from app.core.config import SETTINGS
from app.core.logging import setup_logging
from app.db.engine import async_session_factory, engine, session_scope
from app.repos.pg_sheet_store import PgSheetStore
from app.repos.sheet_store import load_roster_csv


async def _load(path: str) -> int:
    async with session_scope() as session:
        loaded = await load_roster_csv(PgSheetStore(session), path)
    if engine is not None:
        await engine.dispose()
    return loaded


def main() -> None:
    setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
    if len(sys.argv) != 2:
        print("usage: python scripts/load_roster.py ROSTER.csv")
        sys.exit(2)
    if async_session_factory is None:
        print("DATABASE_URL is not set; nothing to load into")
        sys.exit(1)
    loaded = asyncio.run(_load(sys.argv[1]))
    print(f"Loaded {loaded} roster rows")


if __name__ == "__main__":
    main()
