"""Plain data structures shared by the rotation engine and its callers."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

from roles import COVERAGE_ROLE, SUPERVISOR_ROLE, normalize_role


def new_record_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class Worker:
    name: str
    roles: tuple = (COVERAGE_ROLE,)
    is_active: bool = True

    @property
    def is_coverage(self) -> bool:
        return any(normalize_role(role) == normalize_role(COVERAGE_ROLE) for role in self.roles)

    @property
    def is_supervisor(self) -> bool:
        return any(normalize_role(role) == normalize_role(SUPERVISOR_ROLE) for role in self.roles)


@dataclass
class DayRecord:
    date: str
    day_name: str
    day_worker: str
    night_worker: str
    supervisor: str
    is_holiday: bool = False
    original_day_worker: Optional[str] = None
    original_night_worker: Optional[str] = None
    id: str = field(default_factory=new_record_id)

    @property
    def month_key(self) -> str:
        return self.date[:7]

    def copy(self, **changes: Any) -> "DayRecord":
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "date": self.date,
            "day_name": self.day_name,
            "day_worker": self.day_worker,
            "night_worker": self.night_worker,
            "supervisor": self.supervisor,
            "is_holiday": self.is_holiday,
            "original_day_worker": self.original_day_worker,
            "original_night_worker": self.original_night_worker,
        }


@dataclass
class WorkerLoadStats:
    name: str
    day_count: int = 0
    night_count: int = 0
    weighted_score: float = 0.0


def coverage_names(roster: List[Worker]) -> List[str]:
    """Active coverage-eligible names in roster order."""
    return [worker.name for worker in roster if worker.is_active and worker.is_coverage]


def supervisor_names(roster: List[Worker]) -> List[str]:
    return [worker.name for worker in roster if worker.is_active and worker.is_supervisor]
