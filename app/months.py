from __future__ import annotations

from typing import Dict, Optional, Sequence, Tuple

from models import DayRecord
from policy import build_default_policy, weekday_labels
from policy_defaults import LEAP_MONTH_CODE, REST_DAY_INDEX

# Offset used when there is no history to continue from.
DEFAULT_START_OFFSET = REST_DAY_INDEX


def normalize_month_code(month_code) -> str:
    try:
        month = int(str(month_code).strip())
    except (TypeError, ValueError):
        raise ValueError(f"Invalid month code '{month_code}'.") from None
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month code '{month_code}'.")
    return f"{month:02d}"


def month_prefix(year: int, month_code) -> str:
    return f"{int(year)}/{normalize_month_code(month_code)}"


def days_in_month(month_code, leap_year: bool = False, policy: Optional[Dict] = None) -> int:
    code = normalize_month_code(month_code)
    lengths = (policy or build_default_policy())["month_lengths"]
    days = int(lengths[code])
    if leap_year and code == LEAP_MONTH_CODE:
        days += 1
    return days


def next_month(year: int, month_code) -> Tuple[int, str]:
    code = normalize_month_code(month_code)
    if code == "12":
        return int(year) + 1, "01"
    return int(year), f"{int(code) + 1:02d}"


def start_offset_after(history: Sequence[DayRecord], policy: Optional[Dict] = None) -> int:
    """Weekday offset for the day that follows the last stored record."""
    if not history:
        return DEFAULT_START_OFFSET
    labels = weekday_labels(policy)
    last_label = history[-1].day_name
    if last_label not in labels:
        return DEFAULT_START_OFFSET
    return (labels.index(last_label) + 1) % 7
