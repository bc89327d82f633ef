from __future__ import annotations

import copy
from typing import Any, Dict, List, Optional, Set

from database import get_active_policy, upsert_policy
from policy_defaults import BASELINE_POLICY, MONTH_LENGTHS, SHIFT_WEIGHTS, WEEKDAY_LABELS


def load_active_policy(conn) -> Dict:
    """Return the active policy payload as a dict."""
    if conn is None:
        return build_default_policy()
    if callable(conn):
        with conn() as session:
            policy = get_active_policy(session)
            return normalize_policy(policy.params_dict() if policy else {})
    policy = get_active_policy(conn)
    return normalize_policy(policy.params_dict() if policy else {})


def _deep_update(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_update(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _coerce_index(value: Any, default: int) -> int:
    try:
        index = int(value)
    except (TypeError, ValueError):
        return default
    return index if 0 <= index <= 6 else default


def normalize_policy(policy: Optional[Dict]) -> Dict:
    """Merge a stored payload over the baseline and repair malformed values."""
    if not isinstance(policy, dict):
        policy = {}
    normalized = _deep_update(BASELINE_POLICY, policy)
    weights = normalized.get("shift_weights")
    if not isinstance(weights, dict):
        weights = {}
    cleaned_weights: Dict[str, float] = {}
    for key, default in SHIFT_WEIGHTS.items():
        try:
            value = float(weights.get(key, default))
        except (TypeError, ValueError):
            value = float(default)
        cleaned_weights[key] = value if value >= 0 else float(default)
    normalized["shift_weights"] = cleaned_weights
    labels = normalized.get("weekday_labels")
    if not isinstance(labels, list) or len(labels) != 7 or len(set(map(str, labels))) != 7:
        labels = list(WEEKDAY_LABELS)
    normalized["weekday_labels"] = [str(label) for label in labels]
    normalized["week_start_index"] = _coerce_index(normalized.get("week_start_index"), 0)
    normalized["rest_day_index"] = _coerce_index(normalized.get("rest_day_index"), 6)
    normalized["unassigned_label"] = str(normalized.get("unassigned_label") or BASELINE_POLICY["unassigned_label"])
    try:
        minimum = int(normalized.get("min_coverage_workers", 1))
    except (TypeError, ValueError):
        minimum = 1
    normalized["min_coverage_workers"] = max(1, minimum)
    holidays = normalized.get("holidays")
    normalized["holidays"] = sorted({str(day) for day in holidays}) if isinstance(holidays, list) else []
    lengths = normalized.get("month_lengths")
    if not isinstance(lengths, dict):
        lengths = {}
    cleaned_lengths: Dict[str, int] = {}
    for code, default in MONTH_LENGTHS.items():
        try:
            days = int(lengths.get(code, default))
        except (TypeError, ValueError):
            days = default
        cleaned_lengths[code] = days if 1 <= days <= 31 else default
    normalized["month_lengths"] = cleaned_lengths
    return normalized


def shift_weights(policy: Optional[Dict]) -> Dict[str, float]:
    if not isinstance(policy, dict) or not isinstance(policy.get("shift_weights"), dict):
        return dict(SHIFT_WEIGHTS)
    return policy["shift_weights"]


def day_weight(policy: Optional[Dict]) -> float:
    return float(shift_weights(policy)["day_hours"])


def night_weight(policy: Optional[Dict]) -> float:
    weights = shift_weights(policy)
    return float(weights["night_hours"]) * float(weights["night_multiplier"])


def weekday_labels(policy: Optional[Dict]) -> List[str]:
    if isinstance(policy, dict) and isinstance(policy.get("weekday_labels"), list):
        return policy["weekday_labels"]
    return list(WEEKDAY_LABELS)


def holiday_dates(policy: Optional[Dict]) -> Set[str]:
    if not isinstance(policy, dict):
        return set()
    return set(policy.get("holidays") or [])


def build_default_policy() -> Dict[str, Any]:
    """Return a deepcopy so callers can mutate the policy safely."""
    return normalize_policy({})


def ensure_default_policy(session_factory) -> None:
    """Seed the baseline policy exactly once so the generator can run end-to-end."""

    with session_factory() as session:
        if get_active_policy(session):
            return
        defaults = build_default_policy()
        name = defaults.get("name", "Baseline Rotation")
        params = {key: value for key, value in defaults.items() if key != "name"}
        upsert_policy(session, name, params, edited_by="system")
