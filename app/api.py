"""Lightweight FastAPI wrapper over the rotation store and engine.

The engine itself only sees plain values; these endpoints load them from the
database, call the engine, and persist accepted results.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

# Ensure legacy absolute imports (e.g., "import database") still resolve.
APP_DIR = Path(__file__).resolve().parent
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

import database  # noqa: E402
from database import (  # noqa: E402
    delete_worker,
    get_month_entries,
    get_roster,
    get_schedule,
    init_database,
    is_month_locked,
    list_workers,
    move_worker,
    record_audit_log,
    set_month_locked,
    set_worker_active,
    update_day_entry,
    upsert_worker,
)
from generator.api import MonthLockedError, generate_month, generate_next_month, regenerate_month  # noqa: E402
from generator.engine import NoEligibleWorkersError  # noqa: E402
from models import DayRecord, coverage_names  # noqa: E402
from months import month_prefix  # noqa: E402
from policy import ensure_default_policy, load_active_policy  # noqa: E402
from reports import period_summary, today_status  # noqa: E402
from roles import clean_roles  # noqa: E402
from swaps import SwapRejected, apply_swap, set_supervisor, toggle_holiday  # noqa: E402
from validation import validate_schedule, validate_swap  # noqa: E402


@asynccontextmanager
async def lifespan(_: FastAPI):
    init_database()
    ensure_default_policy(database.SessionLocal)
    yield


app = FastAPI(title="Shift Rotation API", version="0.1", lifespan=lifespan)


def get_db():
    db = database.SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _session_factory():
    return database.SessionLocal()


def _text(payload: Dict[str, Any], key: str) -> str:
    value = payload.get(key)
    return "" if value is None else str(value).strip()


def _prefix(year: int, month: str) -> str:
    try:
        return month_prefix(year, month)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def _swap_fields(payload: Dict[str, Any]) -> tuple:
    date = _text(payload, "date")
    candidate = _text(payload, "worker")
    shift_type = _text(payload, "shift_type")
    if not date or not candidate or not shift_type:
        raise HTTPException(status_code=400, detail="date, worker and shift_type are required")
    return date, candidate, shift_type


def _find_worker(db, name: str):
    worker = next((worker for worker in list_workers(db) if worker.name == name), None)
    if worker is None:
        raise HTTPException(status_code=404, detail=f"Worker '{name}' not found")
    return worker


def _run_generation(action: Callable, year: int, month: str, payload: Dict[str, Any] | None) -> JSONResponse:
    payload = payload or {}
    _prefix(year, month)
    try:
        summary = action(
            _session_factory,
            year,
            month,
            _text(payload, "actor") or "api",
            leap_year=bool(payload.get("leap_year", False)),
        )
    except (NoEligibleWorkersError, MonthLockedError) as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return JSONResponse(content=jsonable_encoder(summary))


def _edit_day(db, date: str, edit: Callable[[List[DayRecord]], List[DayRecord]], action: str, actor: str, payload: Dict) -> JSONResponse:
    try:
        updated = edit(get_schedule(db))
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=f"No day entry stored for {date}") from exc
    record = next(item for item in updated if item.date == date)
    update_day_entry(db, record)
    record_audit_log(db, user_id=actor or "api", action=action, target_id=record.id, payload=payload)
    return JSONResponse(content=jsonable_encoder(record.to_dict()))


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/api/v1/workers")
def workers(db=Depends(get_db)) -> JSONResponse:
    payload = [
        {"name": worker.name, "roles": worker.role_list, "status": worker.status, "position": worker.position}
        for worker in list_workers(db)
    ]
    return JSONResponse(content=jsonable_encoder({"workers": payload}))


@app.post("/api/v1/workers")
def add_worker(payload: Dict[str, Any], db=Depends(get_db)) -> JSONResponse:
    name = _text(payload, "name")
    raw_roles = payload.get("roles") or []
    roles = clean_roles(str(role) for role in raw_roles) if isinstance(raw_roles, list) else []
    if not name or not roles:
        raise HTTPException(status_code=400, detail="name and at least one known role are required")
    try:
        worker = upsert_worker(db, name, roles, status=_text(payload, "status") or "active")
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    record_audit_log(db, user_id=_text(payload, "actor") or "api", action="WORKER_SAVE", target_type="Worker", target_id=name)
    return JSONResponse(content={"name": worker.name, "roles": worker.role_list, "status": worker.status})


@app.post("/api/v1/workers/{name}/toggle")
def toggle_worker(name: str, db=Depends(get_db)) -> JSONResponse:
    current = _find_worker(db, name)
    worker = set_worker_active(db, name, not current.is_active)
    return JSONResponse(content={"name": worker.name, "status": worker.status})


@app.post("/api/v1/workers/{name}/move")
def move_worker_endpoint(name: str, payload: Dict[str, Any], db=Depends(get_db)) -> JSONResponse:
    _find_worker(db, name)
    try:
        group = move_worker(db, name, _text(payload, "direction"), _text(payload, "role"))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return JSONResponse(content={"order": [worker.name for worker in group]})


@app.delete("/api/v1/workers/{name}")
def remove_worker(name: str, db=Depends(get_db)) -> JSONResponse:
    _find_worker(db, name)
    delete_worker(db, name)
    record_audit_log(db, user_id="api", action="WORKER_DELETE", target_type="Worker", target_id=name)
    return JSONResponse(content={"name": name, "deleted": True})


@app.get("/api/v1/months/{year}/{month}")
def month_schedule(year: int, month: str, db=Depends(get_db)) -> JSONResponse:
    prefix = _prefix(year, month)
    records = get_month_entries(db, prefix)
    return JSONResponse(
        content=jsonable_encoder(
            {"month": prefix, "locked": is_month_locked(db, prefix), "days": [r.to_dict() for r in records]}
        )
    )


@app.post("/api/v1/months/{year}/{month}/generate")
def generate_endpoint(year: int, month: str, payload: Dict[str, Any] | None = None) -> JSONResponse:
    return _run_generation(generate_month, year, month, payload)


@app.post("/api/v1/months/{year}/{month}/regenerate")
def regenerate_endpoint(year: int, month: str, payload: Dict[str, Any] | None = None) -> JSONResponse:
    return _run_generation(regenerate_month, year, month, payload)


@app.post("/api/v1/months/{year}/{month}/next")
def next_month_endpoint(year: int, month: str, payload: Dict[str, Any] | None = None) -> JSONResponse:
    return _run_generation(generate_next_month, year, month, payload)


@app.post("/api/v1/months/{year}/{month}/lock")
def lock_month(year: int, month: str, db=Depends(get_db)) -> JSONResponse:
    prefix = _prefix(year, month)
    set_month_locked(db, prefix, True, actor="api")
    record_audit_log(db, user_id="api", action="MONTH_LOCK", target_type="Month", target_id=prefix)
    return JSONResponse(content={"month": prefix, "locked": True})


@app.post("/api/v1/months/{year}/{month}/unlock")
def unlock_month(year: int, month: str, db=Depends(get_db)) -> JSONResponse:
    prefix = _prefix(year, month)
    set_month_locked(db, prefix, False, actor="api")
    record_audit_log(db, user_id="api", action="MONTH_UNLOCK", target_type="Month", target_id=prefix)
    return JSONResponse(content={"month": prefix, "locked": False})


@app.get("/api/v1/months/{year}/{month}/report")
def month_report(year: int, month: str, db=Depends(get_db)) -> JSONResponse:
    prefix = _prefix(year, month)
    policy = load_active_policy(db)
    records = get_month_entries(db, prefix)
    summary = period_summary(records, coverage_names(get_roster(db)), policy)
    summary["month"] = prefix
    return JSONResponse(content=jsonable_encoder(summary))


@app.get("/api/v1/months/{year}/{month}/validate")
def month_validate(year: int, month: str, db=Depends(get_db)) -> JSONResponse:
    prefix = _prefix(year, month)
    policy = load_active_policy(db)
    report = validate_schedule(get_month_entries(db, prefix), unassigned_label=policy["unassigned_label"])
    report["month"] = prefix
    return JSONResponse(content=jsonable_encoder(report))


@app.get("/api/v1/today")
def today(date: str = Query(...), db=Depends(get_db)) -> JSONResponse:
    status = today_status(get_schedule(db), date.strip())
    if status is None:
        raise HTTPException(status_code=404, detail=f"No day entry stored for {date}")
    return JSONResponse(content=jsonable_encoder(status))


@app.post("/api/v1/days/supervisor")
def day_supervisor(payload: Dict[str, Any], db=Depends(get_db)) -> JSONResponse:
    date = _text(payload, "date")
    supervisor = _text(payload, "supervisor")
    if not date or not supervisor:
        raise HTTPException(status_code=400, detail="date and supervisor are required")
    return _edit_day(
        db,
        date,
        lambda schedule: set_supervisor(schedule, date, supervisor),
        "SUPERVISOR_EDIT",
        _text(payload, "actor"),
        {"date": date, "supervisor": supervisor},
    )


@app.post("/api/v1/days/holiday")
def day_holiday(payload: Dict[str, Any], db=Depends(get_db)) -> JSONResponse:
    date = _text(payload, "date")
    if not date:
        raise HTTPException(status_code=400, detail="date is required")
    return _edit_day(
        db,
        date,
        lambda schedule: toggle_holiday(schedule, date),
        "HOLIDAY_TOGGLE",
        _text(payload, "actor"),
        {"date": date},
    )


@app.post("/api/v1/swaps/validate")
def swap_validate(payload: Dict[str, Any], db=Depends(get_db)) -> JSONResponse:
    date, candidate, shift_type = _swap_fields(payload)
    verdict = validate_swap(get_schedule(db), date, candidate, shift_type)
    return JSONResponse(content=verdict.to_dict())


@app.post("/api/v1/swaps/apply")
def swap_apply(payload: Dict[str, Any], db=Depends(get_db)) -> JSONResponse:
    date, candidate, shift_type = _swap_fields(payload)
    schedule = get_schedule(db)
    try:
        updated = apply_swap(schedule, date, candidate, shift_type)
    except SwapRejected as exc:
        status = {"date_not_found": 404, "unknown_role": 400}.get(exc.verdict.code, 409)
        raise HTTPException(status_code=status, detail=exc.verdict.to_dict()) from exc
    record = next(item for item in updated if item.date == date)
    update_day_entry(db, record)
    record_audit_log(
        db,
        user_id=_text(payload, "actor") or "api",
        action="SHIFT_SWAP",
        target_id=record.id,
        payload={"date": date, "worker": candidate, "shift_type": shift_type},
    )
    return JSONResponse(content=jsonable_encoder(record.to_dict()))
