from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from app.api.dependencies import memory_store
from app.main import app
from app.repos.sheet_store import seed_sample_sheets
from app.services.sheet_ingest import ROSTER_SHEET, USERS_SHEET

# Ensure repo root is on sys.path so `import app` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture(autouse=True)
def reset_sheet_store() -> None:
    """Fresh workbook per test: headers plus the sample courses/lessons."""
    memory_store.clear()
    asyncio.run(seed_sample_sheets(memory_store))


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


# ---------------------------------------------------------------------------
# Workbook helpers
# ---------------------------------------------------------------------------


def add_user(user_id: str, name: str, email: str | None = None) -> None:
    """Append a Users row directly, bypassing registration."""
    asyncio.run(
        memory_store.append_row(
            USERS_SHEET, [user_id, email or "", name, "2026-01-05T09:00:00.000Z"]
        )
    )


def add_roster_entry(email: str, practice: str = "", status: str = "") -> None:
    asyncio.run(memory_store.append_row(ROSTER_SHEET, [email, practice, status]))
