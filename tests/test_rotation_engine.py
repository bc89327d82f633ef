from __future__ import annotations

import copy
import sys
import unittest
from pathlib import Path

APP_DIR = Path(__file__).resolve().parents[1] / "app"
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

from generator.engine import (  # noqa: E402
    NoEligibleWorkersError,
    RotationGenerator,
    aggregate_history,
    generate_block,
)
from models import DayRecord, Worker  # noqa: E402


def _roster(coverage=("A", "B", "C", "D", "E"), supervisors=("S1", "S2")):
    workers = [Worker(name, ("Shift",)) for name in coverage]
    workers.extend(Worker(name, ("Supervisor",)) for name in supervisors)
    return workers


def _history(rows, supervisor="S1", day_name="Friday"):
    return [
        DayRecord(
            date=f"1404/09/{index + 1:02d}",
            day_name=day_name,
            day_worker=day,
            night_worker=night,
            supervisor=supervisor,
        )
        for index, (day, night) in enumerate(rows)
    ]


class HistoryAggregationTests(unittest.TestCase):
    def test_empty_history_yields_zero_stats_in_roster_order(self) -> None:
        stats = aggregate_history([], _roster())

        self.assertEqual([entry.name for entry in stats], ["A", "B", "C", "D", "E"])
        self.assertTrue(all(entry.day_count == 0 and entry.night_count == 0 for entry in stats))
        self.assertTrue(all(entry.weighted_score == 0 for entry in stats))

    def test_folds_counts_and_weighted_scores(self) -> None:
        history = _history([("A", "B"), ("B", "C"), ("X", "A")])

        stats = {entry.name: entry for entry in aggregate_history(history, _roster())}

        self.assertEqual((stats["A"].day_count, stats["A"].night_count), (1, 1))
        self.assertAlmostEqual(stats["A"].weighted_score, 30.5)
        self.assertEqual((stats["C"].day_count, stats["C"].night_count), (0, 1))
        self.assertAlmostEqual(stats["C"].weighted_score, 19.5)
        self.assertNotIn("X", stats)

    def test_inactive_and_supervisor_only_workers_are_not_tracked(self) -> None:
        roster = [Worker("A", ("Shift",)), Worker("B", ("Shift",), is_active=False), Worker("S1", ("Supervisor",))]

        stats = aggregate_history(_history([("B", "A")]), roster)

        self.assertEqual([entry.name for entry in stats], ["A"])
        self.assertEqual(stats[0].night_count, 1)

    def test_recomputation_is_idempotent(self) -> None:
        history = _history([("A", "B"), ("C", "D"), ("E", "A")])
        first = aggregate_history(history, _roster())
        second = aggregate_history(history, _roster())

        self.assertEqual(first, second)

    def test_policy_weights_override_defaults(self) -> None:
        policy = {"shift_weights": {"day_hours": 10, "night_hours": 12, "night_multiplier": 2}}

        stats = {entry.name: entry for entry in aggregate_history(_history([("A", "B")]), _roster(), policy)}

        self.assertEqual(stats["A"].weighted_score, 10)
        self.assertEqual(stats["B"].weighted_score, 24)


class RotationGeneratorTests(unittest.TestCase):
    """Regression tests for the greedy rotation heuristics."""

    def test_first_week_from_empty_history(self) -> None:
        records = generate_block([], 1404, "10", 0, _roster(), 7)

        self.assertEqual(len(records), 7)
        self.assertEqual([r.night_worker for r in records], ["A", "C", "E", "B", "D", "A", "C"])
        self.assertEqual([r.day_worker for r in records], ["B", "D", "A", "C", "E", "B", "D"])
        self.assertEqual(records[0].date, "1404/10/01")
        self.assertEqual(records[-1].date, "1404/10/07")
        self.assertEqual(records[0].day_name, "Saturday")
        self.assertEqual(records[-1].day_name, "Friday")
        self.assertEqual({r.supervisor for r in records}, {"S1"})
        self.assertEqual([r.is_holiday for r in records], [False] * 6 + [True])
        self.assertEqual(len({r.id for r in records}), 7)

    def test_second_day_excludes_previous_night_worker(self) -> None:
        records = generate_block([], 1404, "10", 0, _roster(), 2)

        first, second = records
        self.assertNotEqual(second.night_worker, first.night_worker)
        self.assertNotIn(second.day_worker, {first.night_worker, second.night_worker})

    def test_adjacency_rules_hold_over_long_block(self) -> None:
        history = _history([("B", "A")], day_name="Friday")
        records = history + generate_block(history, 1404, "10", 0, _roster(), 90)

        for previous, current in zip(records, records[1:]):
            self.assertNotEqual(current.day_worker, current.night_worker)
            self.assertNotEqual(current.night_worker, previous.night_worker)
            self.assertNotEqual(current.day_worker, previous.night_worker)

    def test_history_boundary_is_respected(self) -> None:
        history = _history([("B", "A")])

        first = generate_block(history, 1404, "10", 0, _roster(), 1)[0]

        self.assertNotEqual(first.night_worker, "A")
        self.assertNotEqual(first.day_worker, "A")

    def test_night_spread_never_exceeds_one(self) -> None:
        records = generate_block([], 1404, "01", 3, _roster(), 62)
        nights = {name: 0 for name in "ABCDE"}

        for record in records:
            nights[record.night_worker] += 1
            self.assertLessEqual(max(nights.values()) - min(nights.values()), 1)

    def test_history_skew_is_paid_back(self) -> None:
        history = _history([("B", "A"), ("C", "A"), ("D", "A")])

        records = generate_block(history, 1404, "10", 0, _roster(), 4)

        self.assertNotIn("A", [r.night_worker for r in records])

    def test_supervisor_rotates_on_week_start_but_not_on_first_day(self) -> None:
        records = generate_block([], 1404, "10", 0, _roster(), 15)

        self.assertEqual([r.supervisor for r in records[:7]], ["S1"] * 7)
        self.assertEqual([r.supervisor for r in records[7:14]], ["S2"] * 7)
        self.assertEqual(records[14].supervisor, "S1")

    def test_supervisor_continues_from_history(self) -> None:
        history = _history([("B", "A")], supervisor="S2")

        records = generate_block(history, 1404, "10", 5, _roster(), 4)

        # Offsets 5, 6, 0, 1: the rotation advances on the third generated day.
        self.assertEqual([r.supervisor for r in records], ["S2", "S2", "S1", "S1"])

    def test_unknown_history_supervisor_restarts_rotation(self) -> None:
        history = _history([("B", "A")], supervisor="Retired")

        records = generate_block(history, 1404, "10", 1, _roster(), 1)

        self.assertEqual(records[0].supervisor, "S1")

    def test_no_supervisors_uses_unassigned_label(self) -> None:
        records = generate_block([], 1404, "10", 0, _roster(supervisors=()), 2)

        self.assertEqual({r.supervisor for r in records}, {"Unassigned"})

    def test_configured_holidays_are_marked(self) -> None:
        records = generate_block([], 1404, "10", 0, _roster(), 3, {"holidays": ["1404/10/02"]})

        self.assertEqual([r.is_holiday for r in records], [False, True, False])

    def test_inputs_are_not_mutated(self) -> None:
        history = _history([("B", "A"), ("C", "D")])
        roster = _roster()
        history_before = copy.deepcopy(history)

        generate_block(history, 1404, "10", 0, roster, 10)

        self.assertEqual(history, history_before)
        self.assertEqual(roster, _roster())

    def test_zero_days_returns_empty_block(self) -> None:
        self.assertEqual(generate_block([], 1404, "10", 0, _roster(), 0), [])

    def test_no_coverage_workers_is_an_error(self) -> None:
        with self.assertRaises(NoEligibleWorkersError):
            generate_block([], 1404, "10", 0, _roster(coverage=()), 5)

    def test_inactive_coverage_workers_do_not_count(self) -> None:
        roster = [Worker("A", ("Shift",), is_active=False), Worker("S1", ("Supervisor",))]

        with self.assertRaises(NoEligibleWorkersError):
            generate_block([], 1404, "10", 0, roster, 5)

    def test_minimum_roster_size_is_configurable(self) -> None:
        with self.assertRaises(NoEligibleWorkersError):
            generate_block([], 1404, "10", 0, _roster(coverage=("A", "B")), 5, {"min_coverage_workers": 3})

    def test_invalid_offset_or_day_count_raise(self) -> None:
        with self.assertRaises(ValueError):
            generate_block([], 1404, "10", 7, _roster(), 5)
        with self.assertRaises(ValueError):
            generate_block([], 1404, "10", 0, _roster(), -1)

    def test_two_worker_roster_relaxes_rest_rule_with_warnings(self) -> None:
        engine = RotationGenerator([], _roster(coverage=("A", "B")), year=1404, month_code="10", start_offset=0, day_count=3)

        records = engine.generate()

        self.assertEqual([r.night_worker for r in records], ["A", "B", "A"])
        self.assertEqual([r.day_worker for r in records], ["B", "A", "B"])
        self.assertEqual(len(engine.warnings), 2)
        self.assertTrue(all(r.day_worker != r.night_worker for r in records))

    def test_single_worker_roster_covers_everything_with_warnings(self) -> None:
        engine = RotationGenerator([], _roster(coverage=("A",)), year=1404, month_code="10", start_offset=0, day_count=2)

        with self.assertLogs("generator.engine", level="WARNING"):
            records = engine.generate()

        self.assertEqual([(r.day_worker, r.night_worker) for r in records], [("A", "A"), ("A", "A")])
        self.assertEqual(len(engine.warnings), 3)

    def test_normal_roster_produces_no_warnings(self) -> None:
        engine = RotationGenerator([], _roster(), year=1404, month_code="10", start_offset=0, day_count=31)

        engine.generate()

        self.assertEqual(engine.warnings, [])


if __name__ == "__main__":
    unittest.main()
