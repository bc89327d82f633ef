from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from models import DayRecord
from policy import day_weight, night_weight, shift_weights


def worker_stats(
    schedule: Sequence[DayRecord],
    workers: Sequence[str],
    policy: Optional[Dict] = None,
) -> List[Dict[str, Any]]:
    """Per-worker counts, hours and weighted score over ``schedule``."""
    weights = shift_weights(policy)
    day_hours = float(weights["day_hours"])
    night_hours = float(weights["night_hours"])
    day_points = day_weight(policy)
    night_points = night_weight(policy)
    rows: List[Dict[str, Any]] = []
    for name in workers:
        day_shifts = sum(1 for record in schedule if record.day_worker == name)
        night_shifts = sum(1 for record in schedule if record.night_worker == name)
        rows.append(
            {
                "name": name,
                "day_shifts": day_shifts,
                "night_shifts": night_shifts,
                "total_hours": day_shifts * day_hours + night_shifts * night_hours,
                "weighted_score": day_shifts * day_points + night_shifts * night_points,
            }
        )
    return rows


def period_summary(
    schedule: Sequence[DayRecord],
    workers: Sequence[str],
    policy: Optional[Dict] = None,
) -> Dict[str, Any]:
    rows = worker_stats(schedule, workers, policy)
    total_hours = sum(row["total_hours"] for row in rows)
    top_workers: List[str] = []
    if rows and total_hours > 0:
        peak = max(row["total_hours"] for row in rows)
        top_workers = [row["name"] for row in rows if row["total_hours"] == peak]
    nights = [row["night_shifts"] for row in rows]
    return {
        "days": len(schedule),
        "holidays": sum(1 for record in schedule if record.is_holiday),
        "swapped_days": sum(
            1 for record in schedule if record.original_day_worker or record.original_night_worker
        ),
        "total_hours": total_hours,
        "top_workers": top_workers,
        "night_spread": (max(nights) - min(nights)) if nights else 0,
        "workers": sorted(rows, key=lambda row: row["total_hours"], reverse=True),
    }


def today_status(schedule: Sequence[DayRecord], date: str) -> Optional[Dict[str, Any]]:
    """Who is on duty on ``date`` and who is resting after last night."""
    for index, record in enumerate(schedule):
        if record.date != date:
            continue
        previous = schedule[index - 1] if index > 0 else None
        return {
            "date": record.date,
            "day_name": record.day_name,
            "day_worker": record.day_worker,
            "night_worker": record.night_worker,
            "supervisor": record.supervisor,
            "is_holiday": record.is_holiday,
            "resting": previous.night_worker if previous else None,
        }
    return None
