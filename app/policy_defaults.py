from __future__ import annotations

from typing import Any, Dict, List


SHIFT_WEIGHTS: Dict[str, float] = {
    "day_hours": 11,
    "night_hours": 13,
    "night_multiplier": 1.5,
}

# Fixed cycle order. Index 0 opens the supervisor week, index 6 is the rest day.
WEEKDAY_LABELS: List[str] = [
    "Saturday",
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
]

WEEK_START_INDEX = 0
REST_DAY_INDEX = 6
UNASSIGNED_LABEL = "Unassigned"


def _month_lengths() -> Dict[str, int]:
    lengths: Dict[str, int] = {}
    for month in range(1, 13):
        if month <= 6:
            days = 31
        elif month <= 11:
            days = 30
        else:
            days = 29
        lengths[f"{month:02d}"] = days
    return lengths


MONTH_LENGTHS: Dict[str, int] = _month_lengths()
LEAP_MONTH_CODE = "12"

BASELINE_POLICY: Dict[str, Any] = {
    "name": "Baseline Rotation",
    "shift_weights": SHIFT_WEIGHTS,
    "weekday_labels": WEEKDAY_LABELS,
    "week_start_index": WEEK_START_INDEX,
    "rest_day_index": REST_DAY_INDEX,
    "unassigned_label": UNASSIGNED_LABEL,
    "min_coverage_workers": 1,
    "holidays": [],
    "month_lengths": MONTH_LENGTHS,
}

DEFAULT_ROSTER: List[Dict[str, Any]] = [
    {"name": "Lasani", "roles": ["Shift"]},
    {"name": "Soleiman Fallah", "roles": ["Shift"]},
    {"name": "Saman", "roles": ["Shift"]},
    {"name": "Dehghan", "roles": ["Shift"]},
    {"name": "Salarvand", "roles": ["Shift"]},
    {"name": "Mansouri", "roles": ["Supervisor"]},
    {"name": "Goudarzi", "roles": ["Supervisor"]},
]
