"""Tests for the admin reporting endpoints and CSV downloads."""

from __future__ import annotations

from fastapi.testclient import TestClient
from prometheus_client import REGISTRY

from tests.conftest import add_roster_entry, add_user


def _reports(report: str) -> float:
    value = REGISTRY.get_sample_value("tracker_reports_generated_total", {"report": report})
    return value if value is not None else 0.0


def _complete(client: TestClient, user_id: str, *lesson_ids: str) -> None:
    for lesson_id in lesson_ids:
        resp = client.post(f"/v1/progress/{user_id}/lessons/{lesson_id}/complete")
        assert resp.status_code == 200


def _seed_people(client: TestClient) -> None:
    add_user("u-ada", "Ada Lovelace", "a@x.com")
    add_user("u-grace", "Grace Hopper", "g@x.com")
    _complete(client, "u-ada", "lesson-1", "lesson-2")
    client.post("/v1/progress/u-grace/lessons/lesson-3/click")


# ---- user cards ----


def test_user_summaries(client: TestClient) -> None:
    _seed_people(client)
    before = _reports("user_summaries")

    resp = client.get("/v1/admin/users")

    assert resp.status_code == 200
    cards = {card["id"]: card for card in resp.json()}
    assert cards["u-ada"]["completed_count"] == 2
    assert cards["u-ada"]["started_count"] == 2
    assert cards["u-ada"]["completion_rate"] == 67
    assert cards["u-grace"]["completed_count"] == 0
    assert cards["u-grace"]["started_count"] == 1
    assert cards["u-grace"]["lesson_count"] == 3
    assert _reports("user_summaries") - before == 1


# ---- detail rows ----


def test_detail_rows_cross_join(client: TestClient) -> None:
    _seed_people(client)
    rows = client.get("/v1/admin/rows").json()
    assert len(rows) == 6
    assert [r["user_id"] for r in rows[:3]] == ["u-ada"] * 3


def test_detail_rows_filters(client: TestClient) -> None:
    _seed_people(client)
    resp = client.get(
        "/v1/admin/rows", params={"course_id": "course-1", "status": "completed"}
    )
    assert resp.status_code == 200
    assert [(r["user_id"], r["lesson_id"]) for r in resp.json()] == [
        ("u-ada", "lesson-1"),
        ("u-ada", "lesson-2"),
    ]

    by_search = client.get("/v1/admin/rows", params={"search": "hopper"}).json()
    assert {r["user_id"] for r in by_search} == {"u-grace"}


def test_detail_rows_in_progress_matches_clicked(client: TestClient) -> None:
    _seed_people(client)
    clicked = client.get("/v1/admin/rows", params={"status": "clicked"}).json()
    resp = client.get("/v1/admin/rows", params={"status": "in-progress"})
    assert resp.status_code == 200
    assert resp.json() == clicked
    assert [(r["user_id"], r["lesson_id"]) for r in clicked] == [("u-grace", "lesson-3")]


def test_detail_rows_rejects_unknown_status(client: TestClient) -> None:
    resp = client.get("/v1/admin/rows", params={"status": "done"})
    assert resp.status_code == 422


def test_detail_csv_download(client: TestClient) -> None:
    add_user("u-quote", 'Title, with "quotes"', "q@x.com")
    resp = client.get("/v1/admin/rows.csv", params={"lesson_id": "lesson-1"})
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    disposition = resp.headers["content-disposition"]
    assert disposition.startswith('attachment; filename="learning-tracker-report-')
    assert disposition.endswith('.csv"')

    lines = resp.text.split("\n")
    assert lines[0].startswith('"User Name","Email"')
    assert lines[1].startswith('"Title, with ""quotes""","q@x.com"')
    assert not resp.text.endswith("\n")


# ---- executive report ----


def test_executive_report_counts_roster_without_accounts(client: TestClient) -> None:
    add_user("u-ada", "Ada Lovelace", "a@x.com")
    _complete(client, "u-ada", "lesson-1", "lesson-2")
    add_roster_entry("a@x.com", "P1", "active")
    add_roster_entry("b@x.com", "P1", "active")

    resp = client.get("/v1/admin/executive")

    assert resp.status_code == 200
    body = resp.json()
    assert body["roster_size"] == 2
    course_1 = next(r for r in body["by_course"] if r["course_id"] == "course-1")
    assert course_1["course_title"] == "Getting Started"
    assert (course_1["completed"], course_1["in_progress"], course_1["not_started"]) == (
        1,
        0,
        1,
    )
    assert course_1["pct_completed"] == 50
    assert course_1["pct_not_started"] == 50
    assert [r["lesson_id"] for r in body["by_lesson"]] == ["lesson-1", "lesson-3", "lesson-2"]


def test_executive_report_filters(client: TestClient) -> None:
    add_roster_entry("a@x.com", "P1", "active")
    add_roster_entry("b@x.com", "P2", "active")
    add_roster_entry("c@x.com", "P1", "leave")

    body = client.get(
        "/v1/admin/executive", params={"practice": "P1", "status": "active"}
    ).json()
    assert body["roster_size"] == 1
    assert body["practice"] == "P1"
    assert body["status"] == "active"


def test_executive_report_empty_roster(client: TestClient) -> None:
    body = client.get("/v1/admin/executive").json()
    assert body["roster_size"] == 0
    assert body["by_course"] == []
    assert body["by_lesson"] == []


def test_executive_csv_download(client: TestClient) -> None:
    add_roster_entry("a@x.com", "P1", "active")
    before = _reports("executive_csv")

    resp = client.get("/v1/admin/executive.csv", params={"practice": "P1"})

    assert resp.status_code == 200
    assert 'filename="executive-training-report-' in resp.headers["content-disposition"]
    lines = resp.text.split("\n")
    assert lines[0] == '"Executive Training Report"'
    assert '"Practice Filter","P1"' in lines
    assert '"Status Filter","All"' in lines
    assert '"Roster Size","1"' in lines
    assert '"By Course"' in lines
    assert '"By Lesson"' in lines
    assert _reports("executive_csv") - before == 1


# ---- roster filter values ----


def test_roster_filter_values(client: TestClient) -> None:
    add_roster_entry("a@x.com", "Delivery", "active")
    add_roster_entry("b@x.com", " Advisory ", "active")
    add_roster_entry("c@x.com", "", "leave")

    resp = client.get("/v1/admin/roster/filters")
    assert resp.status_code == 200
    assert resp.json() == {
        "practices": ["Advisory", "Delivery"],
        "statuses": ["active", "leave"],
    }
