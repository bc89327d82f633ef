"""Manual edits to an existing schedule.

All helpers return a new list and leave the input untouched. Only shift swaps
are checked against the adjacency rules; supervisor and holiday edits are
free-form.
"""

from __future__ import annotations

from typing import List, Sequence

from models import DayRecord
from roles import shift_slot
from validation import SwapVerdict, validate_swap


class SwapRejected(ValueError):
    def __init__(self, verdict: SwapVerdict) -> None:
        super().__init__(verdict.reason)
        self.verdict = verdict


def _replace_on_date(schedule: Sequence[DayRecord], date: str, **changes) -> List[DayRecord]:
    updated: List[DayRecord] = []
    found = False
    for record in schedule:
        if record.date == date:
            updated.append(record.copy(**changes))
            found = True
        else:
            updated.append(record)
    if not found:
        raise KeyError(date)
    return updated


def _find(schedule: Sequence[DayRecord], date: str) -> DayRecord:
    for record in schedule:
        if record.date == date:
            return record
    raise KeyError(date)


def apply_swap(schedule: Sequence[DayRecord], date: str, candidate: str, shift_type: str) -> List[DayRecord]:
    verdict = validate_swap(schedule, date, candidate, shift_type)
    if not verdict.valid:
        raise SwapRejected(verdict)
    slot = shift_slot(shift_type)
    record = _find(schedule, date)
    current = getattr(record, slot)
    changes = {slot: candidate}
    original_slot = f"original_{slot}"
    # Only the first overwritten worker is kept.
    if not getattr(record, original_slot) and current != candidate:
        changes[original_slot] = current
    return _replace_on_date(schedule, date, **changes)


def set_supervisor(schedule: Sequence[DayRecord], date: str, supervisor: str) -> List[DayRecord]:
    return _replace_on_date(schedule, date, supervisor=supervisor)


def toggle_holiday(schedule: Sequence[DayRecord], date: str) -> List[DayRecord]:
    record = _find(schedule, date)
    return _replace_on_date(schedule, date, is_holiday=not record.is_holiday)
