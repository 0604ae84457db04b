"""Health and readiness endpoints.

LIVENESS vs READINESS
-----------------------
  /health (liveness):
    "Is this process alive?"  Always 200 while Python can answer.  The
    body reports per-dependency status so a human can see WHY the
    service is degraded without the orchestrator restarting it.

  /ready (readiness):
    "Can this instance serve the dashboards right now?"  With a
    database configured, that means the database answers a trivial
    query.  503 takes the instance out of rotation without a restart.
    The in-memory store is always ready.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Response
from sqlalchemy import text

from app.db.engine import engine

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


async def _database_status() -> str:
    if engine is None:
        return "not_configured"
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception:
        logger.warning("Database health check failed", exc_info=True)
        return "degraded"
    return "ok"


@router.get("/health")
async def health() -> dict:
    """Liveness probe + dependency status.

    Returns 200 even when degraded; the STATUS field carries the actual
    health.
    """
    checks = {
        "database": await _database_status(),
        "store": "postgres" if engine is not None else "memory",
    }
    overall = "degraded" if checks["database"] == "degraded" else "ok"
    return {"status": overall, "checks": checks}


@router.get("/ready")
async def ready() -> Response:
    if await _database_status() == "degraded":
        return Response(status_code=503)
    return Response(status_code=200)
