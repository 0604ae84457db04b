from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.admin import router as admin_router
from app.api.courses import router as courses_router
from app.api.dependencies import memory_store
from app.api.health import router as health_router
from app.api.metrics_endpoint import router as metrics_router
from app.api.progress import router as progress_router
from app.api.users import router as users_router
from app.core.config import SETTINGS
from app.core.logging import setup_logging
from app.db.engine import engine, lifespan_db
from app.middleware.metrics import MetricsMiddleware
from app.middleware.request_context import (
    RequestContextMiddleware,
    install_request_context_filter,
)
from app.repos.sheet_store import initialize_sheets, load_roster_csv, seed_sample_sheets

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
install_request_context_filter()

logger = logging.getLogger(__name__)


async def bootstrap_memory_store() -> None:
    """Headers, optional sample catalog, optional roster CSV.

    Only for the in-memory store; a database keeps its sheets between
    restarts (load its roster with scripts/load_roster.py).
    """
    await initialize_sheets(memory_store)
    if SETTINGS.seed_sample_data:
        await seed_sample_sheets(memory_store)
    if SETTINGS.roster_csv:
        await load_roster_csv(memory_store, SETTINGS.roster_csv)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    async with lifespan_db():
        if engine is None:
            await bootstrap_memory_store()
        yield


app = FastAPI(
    title="learning-tracker",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Middleware execution order: last-added runs first (outermost layer).
# RequestContext (outermost) → Metrics → CORS → route handler
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

app.include_router(metrics_router)
app.include_router(admin_router)
app.include_router(courses_router)
app.include_router(health_router)
app.include_router(progress_router)
app.include_router(users_router)

logger.info(
    "learning-tracker started  env=%s log_level=%s port=%d store=%s docs=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "postgres" if engine is not None else "memory",
    "on" if SETTINGS.is_dev else "off",
)
