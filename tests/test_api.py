from __future__ import annotations

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

APP_DIR = Path(__file__).resolve().parents[1] / "app"
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

import database as db  # noqa: E402
from api import app  # noqa: E402


@pytest.fixture()
def client(monkeypatch):
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    monkeypatch.setattr(db, "rotation_engine", engine)
    monkeypatch.setattr(db, "SessionLocal", sessionmaker(bind=engine, expire_on_commit=False, future=True))
    with TestClient(app) as test_client:
        for name in ("A", "B", "C", "D", "E"):
            test_client.post("/api/v1/workers", json={"name": name, "roles": ["shift"]})
        for name in ("S1", "S2"):
            test_client.post("/api/v1/workers", json={"name": name, "roles": ["Supervisor"]})
        yield test_client
    engine.dispose()


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_worker_listing_and_toggle(client):
    workers = client.get("/api/v1/workers").json()["workers"]
    assert [worker["name"] for worker in workers][:2] == ["A", "B"]
    assert workers[0]["roles"] == ["Shift"]

    toggled = client.post("/api/v1/workers/A/toggle").json()
    assert toggled["status"] == "inactive"
    assert client.post("/api/v1/workers/Nobody/toggle").status_code == 404


def test_worker_requires_known_role(client):
    response = client.post("/api/v1/workers", json={"name": "F", "roles": ["janitor"]})

    assert response.status_code == 400


def test_generate_report_and_validate_month(client):
    summary = client.post("/api/v1/months/1404/10/generate", json={"actor": "tests"}).json()
    assert summary["days_created"] == 30

    days = client.get("/api/v1/months/1404/10").json()["days"]
    assert len(days) == 30
    assert days[0]["date"] == "1404/10/01"

    report = client.get("/api/v1/months/1404/10/report").json()
    assert report["days"] == 30
    assert sum(row["night_shifts"] for row in report["workers"]) == 30
    assert report["night_spread"] <= 1

    audit = client.get("/api/v1/months/1404/10/validate").json()
    assert audit["issues"] == []


def test_invalid_month_is_rejected(client):
    assert client.post("/api/v1/months/1404/13/generate").status_code == 400


def test_generate_without_coverage_workers_conflicts(client):
    for name in ("A", "B", "C", "D", "E"):
        client.post(f"/api/v1/workers/{name}/toggle")

    response = client.post("/api/v1/months/1404/10/generate")

    assert response.status_code == 409


def test_swap_validate_and_apply(client):
    client.post("/api/v1/months/1404/10/generate")
    days = client.get("/api/v1/months/1404/10").json()["days"]
    target = days[3]

    rejected = client.post(
        "/api/v1/swaps/validate",
        json={"date": target["date"], "worker": target["night_worker"], "shift_type": "day"},
    ).json()
    assert rejected == {"valid": False, "code": "double_duty", "reason": rejected["reason"]}

    busy = {target["day_worker"], target["night_worker"], days[2]["night_worker"]}
    candidate = next(name for name in "ABCDE" if name not in busy)
    applied = client.post(
        "/api/v1/swaps/apply",
        json={"date": target["date"], "worker": candidate, "shift_type": "day"},
    )
    assert applied.status_code == 200
    assert applied.json()["original_day_worker"] == target["day_worker"]

    conflict = client.post(
        "/api/v1/swaps/apply",
        json={"date": target["date"], "worker": target["night_worker"], "shift_type": "day"},
    )
    assert conflict.status_code == 409
    missing = client.post(
        "/api/v1/swaps/apply",
        json={"date": "1404/12/01", "worker": candidate, "shift_type": "day"},
    )
    assert missing.status_code == 404


def test_regenerate_endpoint(client):
    client.post("/api/v1/months/1404/10/generate")

    summary = client.post("/api/v1/months/1404/10/regenerate").json()

    assert summary["days_removed"] == 30
    assert summary["days_created"] == 30


def test_swap_fields_accept_non_string_values(client):
    client.post("/api/v1/months/1404/10/generate")

    verdict = client.post("/api/v1/swaps/validate", json={"date": 3, "worker": 5, "shift_type": "day"})
    applied = client.post("/api/v1/swaps/apply", json={"date": 3, "worker": 5, "shift_type": "day"})
    missing = client.post("/api/v1/swaps/validate", json={"date": None, "worker": "A", "shift_type": "day"})

    assert verdict.status_code == 200
    assert verdict.json()["code"] == "date_not_found"
    assert applied.status_code == 404
    assert missing.status_code == 400


def test_worker_payload_with_wrong_types_is_rejected(client):
    assert client.post("/api/v1/workers", json={"name": "F", "roles": 7}).status_code == 400
    assert client.post("/api/v1/workers", json={"name": 42, "roles": ["shift"]}).status_code == 200


def test_move_and_delete_workers(client):
    moved = client.post("/api/v1/workers/B/move", json={"direction": "up", "role": "shift"})
    assert moved.status_code == 200
    assert moved.json()["order"] == ["B", "A", "C", "D", "E"]

    workers = [worker["name"] for worker in client.get("/api/v1/workers").json()["workers"]]
    assert workers[:2] == ["B", "A"]
    assert client.post("/api/v1/workers/B/move", json={"direction": "left", "role": "shift"}).status_code == 400
    assert client.post("/api/v1/workers/Nobody/move", json={"direction": "up", "role": "shift"}).status_code == 404

    assert client.delete("/api/v1/workers/E").status_code == 200
    workers = [worker["name"] for worker in client.get("/api/v1/workers").json()["workers"]]
    assert "E" not in workers
    assert client.delete("/api/v1/workers/E").status_code == 404


def test_month_lock_blocks_generation(client):
    assert client.post("/api/v1/months/1404/10/lock").json() == {"month": "1404/10", "locked": True}

    assert client.post("/api/v1/months/1404/10/generate").status_code == 409
    assert client.get("/api/v1/months/1404/10").json()["locked"] is True

    client.post("/api/v1/months/1404/10/unlock")
    summary = client.post("/api/v1/months/1404/10/generate").json()
    assert summary["days_created"] == 30


def test_day_edits_and_today_status(client):
    client.post("/api/v1/months/1404/10/generate")
    days = client.get("/api/v1/months/1404/10").json()["days"]

    supervisor = client.post("/api/v1/days/supervisor", json={"date": "1404/10/02", "supervisor": "S2"})
    holiday = client.post("/api/v1/days/holiday", json={"date": "1404/10/02"})

    assert supervisor.json()["supervisor"] == "S2"
    assert holiday.json()["is_holiday"] is True
    stored = client.get("/api/v1/months/1404/10").json()["days"][1]
    assert (stored["supervisor"], stored["is_holiday"]) == ("S2", True)
    assert client.post("/api/v1/days/holiday", json={"date": "1404/12/01"}).status_code == 404
    assert client.post("/api/v1/days/supervisor", json={"date": "1404/10/02"}).status_code == 400

    today = client.get("/api/v1/today", params={"date": "1404/10/02"}).json()
    assert today["resting"] == days[0]["night_worker"]
    assert today["supervisor"] == "S2"
    assert client.get("/api/v1/today", params={"date": "1404/12/01"}).status_code == 404


def test_next_month_endpoint(client):
    client.post("/api/v1/months/1404/10/generate")

    summary = client.post("/api/v1/months/1404/10/next").json()

    assert summary["month"] == "1404/11"
    assert summary["days_created"] == 30
