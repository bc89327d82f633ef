from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from models import DayRecord
from roles import normalize_role

REASONS: Dict[str, str] = {
    "date_not_found": "Date not found in the schedule.",
    "unknown_role": "Shift type must be 'day' or 'night'.",
    "double_duty": "{name} already works the {other} shift on {date}.",
    "needs_rest": "{name} worked the night shift before {date} and needs rest.",
    "consecutive_nights": "{name} worked the night shift before {date}; nights cannot be back to back.",
    "next_day_conflict": "{name} has the day shift on {next_date} and cannot work the night before.",
}


@dataclass(frozen=True)
class SwapVerdict:
    valid: bool
    code: str = ""
    reason: str = ""

    def __bool__(self) -> bool:
        return self.valid

    def to_dict(self) -> Dict[str, Any]:
        return {"valid": self.valid, "code": self.code, "reason": self.reason}


def _reject(code: str, **context: str) -> SwapVerdict:
    return SwapVerdict(valid=False, code=code, reason=REASONS[code].format(**context))


def _index_of(schedule: Sequence[DayRecord], date: str) -> Optional[int]:
    for index, record in enumerate(schedule):
        if record.date == date:
            return index
    return None


def validate_swap(schedule: Sequence[DayRecord], date: str, candidate: str, shift_type: str) -> SwapVerdict:
    """Check whether ``candidate`` may take the day or night shift on ``date``.

    Neighbours are the records immediately before and after ``date`` in the
    sequence; dates are never parsed. The schedule is only read.
    """
    index = _index_of(schedule, date)
    if index is None:
        return _reject("date_not_found")
    role = normalize_role(shift_type)
    if role not in ("day", "night"):
        return _reject("unknown_role")

    current = schedule[index]
    previous = schedule[index - 1] if index > 0 else None
    following = schedule[index + 1] if index + 1 < len(schedule) else None

    if role == "day":
        if current.night_worker == candidate:
            return _reject("double_duty", name=candidate, other="night", date=date)
        if previous and previous.night_worker == candidate:
            return _reject("needs_rest", name=candidate, date=date)
        return SwapVerdict(valid=True)

    if current.day_worker == candidate:
        return _reject("double_duty", name=candidate, other="day", date=date)
    if previous and previous.night_worker == candidate:
        return _reject("consecutive_nights", name=candidate, date=date)
    if following and following.day_worker == candidate:
        return _reject("next_day_conflict", name=candidate, next_date=following.date)
    return SwapVerdict(valid=True)


def validate_schedule(schedule: Sequence[DayRecord], *, unassigned_label: str = "Unassigned") -> Dict[str, Any]:
    """Return adjacency findings for a whole block of day records."""
    issues: List[Dict[str, Any]] = []
    warnings: List[Dict[str, Any]] = []
    issues.extend(_double_duty_issues(schedule))
    issues.extend(_night_adjacency_issues(schedule))
    warnings.extend(_gap_warnings(schedule))
    warnings.extend(_supervisor_warnings(schedule, unassigned_label))
    return {
        "days": len(schedule),
        "first_date": schedule[0].date if schedule else None,
        "last_date": schedule[-1].date if schedule else None,
        "issues": issues,
        "warnings": warnings,
    }


def _double_duty_issues(schedule: Sequence[DayRecord]) -> List[Dict[str, Any]]:
    issues: List[Dict[str, Any]] = []
    for record in schedule:
        if record.day_worker and record.day_worker == record.night_worker:
            issues.append(
                {
                    "type": "double_duty",
                    "severity": "error",
                    "date": record.date,
                    "worker": record.day_worker,
                    "message": f"{record.day_worker} covers both shifts on {record.date}.",
                }
            )
    return issues


def _night_adjacency_issues(schedule: Sequence[DayRecord]) -> List[Dict[str, Any]]:
    issues: List[Dict[str, Any]] = []
    for previous, current in zip(schedule, schedule[1:]):
        night = previous.night_worker
        if not night:
            continue
        if current.night_worker == night:
            issues.append(
                {
                    "type": "consecutive_nights",
                    "severity": "error",
                    "date": current.date,
                    "worker": night,
                    "message": f"{night} works nights on {previous.date} and {current.date}.",
                }
            )
        if current.day_worker == night:
            issues.append(
                {
                    "type": "needs_rest",
                    "severity": "error",
                    "date": current.date,
                    "worker": night,
                    "message": f"{night} works the day shift on {current.date} right after a night.",
                }
            )
    return issues


def _day_number(date: str) -> Optional[int]:
    try:
        return int(date.rsplit("/", 1)[1])
    except (IndexError, ValueError):
        return None


def _gap_warnings(schedule: Sequence[DayRecord]) -> List[Dict[str, Any]]:
    warnings: List[Dict[str, Any]] = []
    for previous, current in zip(schedule, schedule[1:]):
        if current.date <= previous.date:
            warnings.append(
                {
                    "type": "ordering",
                    "severity": "warning",
                    "date": current.date,
                    "message": f"{current.date} follows {previous.date}; records are out of order.",
                }
            )
            continue
        if previous.month_key != current.month_key:
            continue
        prev_day = _day_number(previous.date)
        day = _day_number(current.date)
        if prev_day is not None and day is not None and day != prev_day + 1:
            warnings.append(
                {
                    "type": "gap",
                    "severity": "warning",
                    "date": current.date,
                    "message": f"Missing days between {previous.date} and {current.date}.",
                }
            )
    return warnings


def _supervisor_warnings(schedule: Sequence[DayRecord], unassigned_label: str) -> List[Dict[str, Any]]:
    warnings: List[Dict[str, Any]] = []
    for record in schedule:
        if not record.supervisor or record.supervisor == unassigned_label:
            warnings.append(
                {
                    "type": "supervisor",
                    "severity": "warning",
                    "date": record.date,
                    "message": f"No supervisor assigned on {record.date}.",
                }
            )
    return warnings
