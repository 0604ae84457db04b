"""Optional PostgreSQL backing for the sheet store.

Without DATABASE_URL the tracker keeps its workbook in memory and
``engine`` / ``async_session_factory`` stay None; every caller checks
for that instead of catching connection errors.

With DATABASE_URL (postgresql+asyncpg://...), every request gets its
own session through ``session_scope``: one transaction per request, so
a registration that appends a Users row either lands whole or not at
all.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.core.config import SETTINGS

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def _build_engine(url: str) -> AsyncEngine:
    return create_async_engine(
        url,
        echo=SETTINGS.is_dev,
        # Report endpoints hold a connection for a full snapshot read
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
    )


engine: AsyncEngine | None = (
    _build_engine(SETTINGS.database_url) if SETTINGS.database_url else None
)
async_session_factory: async_sessionmaker[AsyncSession] | None = (
    async_sessionmaker(engine, expire_on_commit=False) if engine is not None else None
)


@asynccontextmanager
async def session_scope() -> AsyncGenerator[AsyncSession, None]:
    """One session, committed on clean exit and rolled back on error."""
    if async_session_factory is None:
        raise RuntimeError("DATABASE_URL is not configured; no session available")
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def lifespan_db() -> AsyncGenerator[None, None]:
    if engine is None:
        logger.info("No DATABASE_URL configured, using in-memory sheet store")
        yield
        return

    logger.info("Sheet store backed by %s", engine.url.render_as_string(hide_password=True))
    try:
        yield
    finally:
        await engine.dispose()
        logger.info("Database engine disposed")
