from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from models import DayRecord, Worker, WorkerLoadStats, coverage_names, supervisor_names
from policy import day_weight, holiday_dates, night_weight, normalize_policy, weekday_labels

logger = logging.getLogger(__name__)


class NoEligibleWorkersError(ValueError):
    """The roster has too few active coverage workers to build any day."""


def aggregate_history(
    history: Sequence[DayRecord],
    roster: Sequence[Worker],
    policy: Optional[Dict] = None,
) -> List[WorkerLoadStats]:
    """Replay the whole history into one tally per active coverage worker.

    Names in the history that are not on the active roster are ignored, so a
    departed worker's load is not carried forward.
    """
    day_points = day_weight(policy)
    night_points = night_weight(policy)
    stats = [WorkerLoadStats(name=name) for name in coverage_names(list(roster))]
    by_name = {entry.name: entry for entry in stats}
    for record in history:
        day_entry = by_name.get(record.day_worker)
        if day_entry:
            day_entry.day_count += 1
            day_entry.weighted_score += day_points
        night_entry = by_name.get(record.night_worker)
        if night_entry:
            night_entry.night_count += 1
            night_entry.weighted_score += night_points
    return stats


class RotationGenerator:
    """Greedy day-by-day builder for a block of day/night/supervisor assignments.

    Each day picks the night worker first (fewest nights, then lowest weighted
    score, then roster order), skipping whoever worked last night. The day
    worker is then picked the same way by day count, skipping both last night's
    and tonight's night worker. Counters are updated right after each pick so
    the next day sees them.
    """

    def __init__(
        self,
        history: Sequence[DayRecord],
        roster: Sequence[Worker],
        *,
        year: int,
        month_code: str,
        start_offset: int,
        day_count: int,
        policy: Optional[Dict] = None,
    ) -> None:
        if day_count < 0:
            raise ValueError("day_count must not be negative.")
        if not 0 <= int(start_offset) <= 6:
            raise ValueError("start_offset must be between 0 and 6.")
        self.policy = normalize_policy(policy)
        self.history = history
        self.roster = list(roster)
        self.year = int(year)
        self.month_code = str(month_code)
        self.start_offset = int(start_offset)
        self.day_count = int(day_count)
        self.labels = weekday_labels(self.policy)
        self.day_points = day_weight(self.policy)
        self.night_points = night_weight(self.policy)
        self.warnings: List[str] = []

    def generate(self) -> List[DayRecord]:
        workers = coverage_names(self.roster)
        minimum = self.policy["min_coverage_workers"]
        if len(workers) < minimum:
            raise NoEligibleWorkersError(
                f"Need at least {minimum} active coverage worker(s); roster has {len(workers)}."
            )
        self.warnings = []
        stats = aggregate_history(self.history, self.roster, self.policy)
        order = {entry.name: index for index, entry in enumerate(stats)}
        supervisors = supervisor_names(self.roster)
        holidays = holiday_dates(self.policy)
        week_start = self.labels[self.policy["week_start_index"]]
        rest_day = self.policy["rest_day_index"]
        unassigned = self.policy["unassigned_label"]

        last_record = self.history[-1] if self.history else None
        prev_night = last_record.night_worker if last_record else ""
        supervisor_index = 0
        if last_record and last_record.supervisor in supervisors:
            supervisor_index = supervisors.index(last_record.supervisor)

        records: List[DayRecord] = []
        for offset in range(self.day_count):
            weekday_index = (self.start_offset + offset) % 7
            day_name = self.labels[weekday_index]
            date_label = f"{self.year}/{self.month_code}/{offset + 1:02d}"

            if day_name == week_start and offset > 0 and supervisors:
                supervisor_index = (supervisor_index + 1) % len(supervisors)
            supervisor = supervisors[supervisor_index] if supervisors else unassigned

            night = self._pick_night(stats, order, prev_night, date_label)
            night.night_count += 1
            night.weighted_score += self.night_points

            day = self._pick_day(stats, order, prev_night, night.name, date_label)
            day.day_count += 1
            day.weighted_score += self.day_points

            records.append(
                DayRecord(
                    date=date_label,
                    day_name=day_name,
                    day_worker=day.name,
                    night_worker=night.name,
                    supervisor=supervisor,
                    is_holiday=weekday_index == rest_day or date_label in holidays,
                )
            )
            prev_night = night.name

        logger.info(
            "Generated %d day(s) for %s/%s from %d history record(s) with %d warning(s)",
            len(records),
            self.year,
            self.month_code,
            len(self.history),
            len(self.warnings),
        )
        return records

    def _pick_night(
        self,
        stats: List[WorkerLoadStats],
        order: Dict[str, int],
        prev_night: str,
        date_label: str,
    ) -> WorkerLoadStats:
        candidates = [entry for entry in stats if entry.name != prev_night]
        if not candidates:
            candidates = list(stats)
            self._warn(f"{date_label}: no night candidate besides {prev_night}; assigning back-to-back nights.")
        return min(candidates, key=lambda entry: (entry.night_count, entry.weighted_score, order[entry.name]))

    def _pick_day(
        self,
        stats: List[WorkerLoadStats],
        order: Dict[str, int],
        prev_night: str,
        night_name: str,
        date_label: str,
    ) -> WorkerLoadStats:
        candidates = [entry for entry in stats if entry.name not in (prev_night, night_name)]
        if candidates:
            return min(candidates, key=lambda entry: (entry.day_count, entry.weighted_score, order[entry.name]))
        for entry in stats:
            if entry.name != night_name:
                self._warn(f"{date_label}: {entry.name} takes the day shift without rest after last night.")
                return entry
        self._warn(f"{date_label}: {night_name} covers both day and night shifts.")
        return stats[0]

    def _warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)


def generate_block(
    history: Sequence[DayRecord],
    year: int,
    month_code: str,
    start_offset: int,
    roster: Sequence[Worker],
    day_count: int,
    policy: Optional[Dict] = None,
) -> List[DayRecord]:
    """Generate ``day_count`` consecutive day records continuing from ``history``."""
    engine = RotationGenerator(
        history,
        roster,
        year=year,
        month_code=month_code,
        start_offset=start_offset,
        day_count=day_count,
        policy=policy,
    )
    return engine.generate()
