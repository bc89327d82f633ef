from __future__ import annotations

from typing import Dict, Iterable, List


COVERAGE_ROLE = "Shift"
SUPERVISOR_ROLE = "Supervisor"

# Labels accepted from imports and API payloads.
_ROLE_ALIASES: Dict[str, str] = {
    "shift": COVERAGE_ROLE,
    "coverage": COVERAGE_ROLE,
    "day/night": COVERAGE_ROLE,
    "supervisor": SUPERVISOR_ROLE,
    "on-call": SUPERVISOR_ROLE,
    "oncall": SUPERVISOR_ROLE,
}

# Assignment slots on a day record, keyed by the label used in swap requests.
SHIFT_SLOTS: Dict[str, str] = {
    "day": "day_worker",
    "night": "night_worker",
}


def normalize_role(role: str) -> str:
    return (role or "").strip().lower()


def canonical_role(role: str) -> str:
    """Return the canonical role label, or an empty string for unknown labels."""
    return _ROLE_ALIASES.get(normalize_role(role), "")


def clean_roles(roles: Iterable[str]) -> List[str]:
    cleaned: List[str] = []
    for role in roles:
        label = canonical_role(role)
        if label and label not in cleaned:
            cleaned.append(label)
    return cleaned


def shift_slot(shift_type: str) -> str:
    """Map "day"/"night" (any case) to the DayRecord attribute, or "" when unknown."""
    return SHIFT_SLOTS.get(normalize_role(shift_type), "")
