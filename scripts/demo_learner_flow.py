"""Demo: one learner signs in, works through lessons, admin pulls reports.

Run with:
    python scripts/demo_learner_flow.py

Uses FastAPI TestClient against the in-memory store, so no server or
database is needed.
"""

from __future__ import annotations

import asyncio

from fastapi.testclient import TestClient

from app.api.dependencies import memory_store
from app.main import app
from app.repos.sheet_store import seed_sample_sheets
from app.services.sheet_ingest import ROSTER_SHEET

LEARNER_EMAIL = "demo@example.com"


def main() -> None:
    client = TestClient(app)

    # ── Seed data ───────────────────────────────────────────────────
    asyncio.run(seed_sample_sheets(memory_store))
    for email, practice in ((LEARNER_EMAIL, "Delivery"), ("absent@example.com", "Delivery")):
        asyncio.run(memory_store.append_row(ROSTER_SHEET, [email, practice, "active"]))

    # ── Step 1: sign in by email ────────────────────────────────────
    r = client.get("/v1/users/lookup", params={"email": LEARNER_EMAIL})
    print(f"1. GET  /v1/users/lookup        → {r.status_code}  user={r.json()['user']}")

    r = client.post("/v1/users", json={"name": "Demo Learner", "email": LEARNER_EMAIL})
    user_id = r.json()["user"]["id"]
    print(f"2. POST /v1/users               → {r.status_code}  id={user_id}")

    # ── Step 2: open and finish lessons ─────────────────────────────
    r = client.post(f"/v1/progress/{user_id}/lessons/lesson-1/click")
    print(f"3. POST .../lesson-1/click      → {r.status_code}  {r.json()['status_text']}")

    for lesson_id in ("lesson-1", "lesson-2"):
        r = client.post(f"/v1/progress/{user_id}/lessons/{lesson_id}/complete")
        print(f"4. POST .../{lesson_id}/complete  → {r.status_code}  {r.json()['status_text']}")

    # ── Step 3: learner dashboard ───────────────────────────────────
    r = client.get(f"/v1/progress/{user_id}")
    overview = r.json()["overview"]
    print(
        f"5. GET  /v1/progress/{{id}}       → {r.status_code}  "
        f"{overview['completed']}/{overview['total']} ({overview['percent']}%)"
    )

    # ── Step 4: admin reports ───────────────────────────────────────
    r = client.get("/v1/admin/executive", params={"practice": "Delivery"})
    for row in r.json()["by_course"]:
        print(
            f"6. {row['course_title']:<16} completed={row['pct_completed']}% "
            f"in_progress={row['pct_in_progress']}% not_started={row['pct_not_started']}%"
        )

    r = client.get("/v1/admin/executive.csv", params={"practice": "Delivery"})
    print(f"7. GET  /v1/admin/executive.csv → {r.status_code}")
    print(r.text)


if __name__ == "__main__":
    main()
