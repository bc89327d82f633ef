from __future__ import annotations

from typing import Callable, Dict, List

from .engine import RotationGenerator
from database import (
    append_day_records,
    delete_month_entries,
    get_month_entries,
    get_roster,
    get_schedule,
    is_month_locked,
    record_audit_log,
)
from models import DayRecord
from months import days_in_month, month_prefix, next_month, normalize_month_code, start_offset_after
from policy import load_active_policy
from validation import validate_schedule


class MonthLockedError(RuntimeError):
    """The month is locked against generation and regeneration."""


def generate_month(
    session_factory: Callable,
    year: int,
    month_code: str,
    actor: str = "system",
    *,
    leap_year: bool = False,
) -> Dict:
    """Generate and store a month that follows the stored history.

    A month that already has records is left alone and reported with
    ``days_created == 0``.
    """
    code = normalize_month_code(month_code)
    prefix = month_prefix(year, code)
    with session_factory() as session:
        _ensure_unlocked(session, prefix)
        existing = get_month_entries(session, prefix)
        if existing:
            return {
                "month": prefix,
                "days_created": 0,
                "start_offset": None,
                "warnings": [f"{prefix} already has {len(existing)} day(s); nothing generated."],
                "validation": validate_schedule(existing),
            }
        history = get_schedule(session, before=f"{prefix}/")
        engine, records, start_offset = _build_block(session, history, int(year), code, leap_year=leap_year)
        return _store_block(session, engine, history, records, start_offset, actor)


def generate_next_month(
    session_factory: Callable,
    year: int,
    month_code: str,
    actor: str = "system",
    *,
    leap_year: bool = False,
) -> Dict:
    """Generate the month after ``year``/``month_code``, rolling 12 over to 01 of the next year."""
    next_year, next_code = next_month(year, month_code)
    return generate_month(session_factory, next_year, next_code, actor, leap_year=leap_year)


def regenerate_month(
    session_factory: Callable,
    year: int,
    month_code: str,
    actor: str = "system",
    *,
    leap_year: bool = False,
) -> Dict:
    """Replace a month's records, manual edits included, with a block rebuilt from the earlier history.

    The new block is generated before anything is deleted, and the delete and
    insert share one commit, so a failed generation leaves the month intact.
    """
    code = normalize_month_code(month_code)
    prefix = month_prefix(year, code)
    with session_factory() as session:
        _ensure_unlocked(session, prefix)
        history = get_schedule(session, before=f"{prefix}/")
        engine, records, start_offset = _build_block(session, history, int(year), code, leap_year=leap_year)
        removed = delete_month_entries(session, prefix, commit=False)
        summary = _store_block(session, engine, history, records, start_offset, actor)
    summary["days_removed"] = removed
    return summary


def _ensure_unlocked(session, prefix: str) -> None:
    if is_month_locked(session, prefix):
        raise MonthLockedError(f"{prefix} is locked; unlock it before generating.")


def _build_block(session, history: List[DayRecord], year: int, code: str, *, leap_year: bool):
    policy = load_active_policy(session)
    start_offset = start_offset_after(history, policy)
    engine = RotationGenerator(
        history,
        get_roster(session),
        year=year,
        month_code=code,
        start_offset=start_offset,
        day_count=days_in_month(code, leap_year, policy),
        policy=policy,
    )
    records = engine.generate()
    return engine, records, start_offset


def _store_block(session, engine: RotationGenerator, history, records, start_offset: int, actor: str) -> Dict:
    created = append_day_records(session, records)
    prefix = month_prefix(engine.year, engine.month_code)
    record_audit_log(
        session,
        user_id=actor or "system",
        action="MONTH_GENERATE",
        target_type="Month",
        target_id=prefix,
        payload={"days": created, "warnings": len(engine.warnings)},
    )
    return {
        "month": prefix,
        "days_created": created,
        "start_offset": start_offset,
        "warnings": list(engine.warnings),
        "validation": validate_schedule(
            list(history[-1:]) + records,
            unassigned_label=engine.policy["unassigned_label"],
        ),
        "records": [record.to_dict() for record in records],
    }
