"""
Unit tests for the demand model and the best-fit section allocator
"""
import unittest

from section_scheduler.allocator import allocate_sections, best_fit_score
from section_scheduler.config import resolve_settings
from section_scheduler.demand import (
    compute_demand,
    demand_from_mapping,
    index_eligibilities,
    target_capacities,
)
from section_scheduler.timegrid import build_time_grid


def morning_only(slots_per_day=1, days=("Mon",), **overrides):
    raw = {
        "over_provision_factor": 1.0,
        "max_sections_per_course_per_slot": 2,
        "shifts": {"morning": {"slots_per_day": slots_per_day, "days": list(days)}},
    }
    raw.update(overrides)
    settings = resolve_settings(raw)
    grid = build_time_grid({"morning": settings.shifts["morning"]})
    return settings, grid


def rooms(*capacities):
    return [{"id": f"R{i}", "code": f"R{i}", "capacity": c} for i, c in enumerate(capacities)]


def allocate(room_list, demand, settings, grid, course_order=None):
    order = course_order or sorted({cid for cid, _ in demand})
    targets = target_capacities(demand, settings.over_provision_factor)
    return allocate_sections(room_list, order, demand, targets, grid, settings)


class TestDemand(unittest.TestCase):

    def setUp(self):
        self.students = [
            {"id": "S1", "shift": "morning"},
            {"id": "S2", "shift": "morning"},
            {"id": "S3", "shift": "evening"},
            {"id": "S4", "shift": None},
        ]
        self.courses = [{"id": "A", "code": "A"}, {"id": "B", "code": "B"}]

    def test_demand_counts_distinct_students_per_shift(self):
        pairs = [
            {"student_id": "S1", "course_id": "A"},
            {"student_id": "S1", "course_id": "A"},
            {"student_id": "S2", "course_id": "A"},
            {"student_id": "S3", "course_id": "A"},
            {"student_id": "S3", "course_id": "B"},
            {"student_id": "S4", "course_id": "B"},
        ]
        index = index_eligibilities(self.students, self.courses, pairs)
        shifts = {s["id"]: s["shift"] for s in self.students}
        demand = compute_demand(index, shifts)
        self.assertEqual(demand, {("A", "morning"): 2, ("A", "evening"): 1, ("B", "evening"): 1})
        self.assertEqual(index.duplicate_pairs, 1)
        self.assertEqual(index.pairs, 5)

    def test_unknown_references_are_counted_and_skipped(self):
        pairs = [
            {"student_id": "S9", "course_id": "A"},
            {"student_id": "S1", "course_id": "Z"},
            {"student_id": "S1", "course_id": "B"},
        ]
        index = index_eligibilities(self.students, self.courses, pairs)
        self.assertEqual(index.skipped_no_student, 1)
        self.assertEqual(index.skipped_no_course, 1)
        self.assertEqual(index.by_student, {"S1": ["B"]})

    def test_target_rounds_up(self):
        targets = target_capacities({("A", "morning"): 10, ("B", "morning"): 3}, 1.5)
        self.assertEqual(targets, {("A", "morning"): 15, ("B", "morning"): 5})

    def test_demand_from_mapping_drops_zero(self):
        demand = demand_from_mapping({"A": {"morning": 12, "evening": 0}})
        self.assertEqual(demand, {("A", "morning"): 12})


class TestBestFitAllocator(unittest.TestCase):

    def test_score(self):
        self.assertEqual(best_fit_score(30, 40, 0.25), (30, 30))
        self.assertEqual(best_fit_score(40, 10, 0.25), (10 - 7.5, 10))

    def test_single_room_single_slot(self):
        settings, grid = morning_only()
        result = allocate(rooms(30), {("C1", "morning"): 40}, settings, grid)
        self.assertEqual(len(result.groups), 1)
        group = result.groups[0]
        self.assertEqual(group.capacity, 30)
        self.assertEqual(group.remaining, 30)
        self.assertEqual(group.group_index, 1)
        self.assertEqual(group.group_id, "G-C1-morning-Mon-0-1")
        self.assertEqual(result.scheduled_capacity, {("C1", "morning"): 30})

    def test_rooms_go_to_best_fitting_course(self):
        settings, grid = morning_only()
        demand = {("A", "morning"): 35, ("B", "morning"): 8}
        result = allocate(rooms(10, 40), demand, settings, grid)
        placed = {(g.course_id, g.capacity) for g in result.groups}
        self.assertEqual(placed, {("A", 40), ("B", 10)})

    def test_oversized_room_stays_empty(self):
        settings, grid = morning_only()
        result = allocate(rooms(40), {("A", "morning"): 5}, settings, grid)
        self.assertEqual(result.groups, [])

    def test_section_cap_per_course_per_slot(self):
        settings, grid = morning_only(slots_per_day=2)
        result = allocate(rooms(30, 30, 30), {("A", "morning"): 100}, settings, grid)
        per_slot = {}
        for g in result.groups:
            per_slot[g.meeting.key] = per_slot.get(g.meeting.key, 0) + 1
        self.assertTrue(all(n <= 2 for n in per_slot.values()))
        self.assertEqual(len(result.groups), 4)
        self.assertEqual(result.scheduled_capacity[("A", "morning")], 120)
        self.assertEqual(sorted(g.group_index for g in result.groups), [1, 1, 2, 2])

    def test_gap_shrinks_across_slots(self):
        settings, grid = morning_only(slots_per_day=3)
        result = allocate(rooms(20), {("A", "morning"): 25}, settings, grid)
        # second slot still has a 5 seat gap: 5 - 0.25 * 15 > 0
        self.assertEqual(len(result.groups), 2)
        self.assertEqual([g.meeting.slot_index for g in result.groups], [0, 1])

    def test_min_fill_rate_filters_thin_sections(self):
        settings, grid = morning_only(min_fill_rate=0.5)
        result = allocate(rooms(30), {("A", "morning"): 12}, settings, grid)
        self.assertEqual(result.groups, [])

        settings, grid = morning_only()
        result = allocate(rooms(30), {("A", "morning"): 12}, settings, grid)
        self.assertEqual(len(result.groups), 1)

    def test_zero_demand_shift_is_skipped(self):
        settings, grid = morning_only()
        result = allocate(rooms(30), {("A", "evening"): 30}, settings, grid)
        self.assertEqual(result.groups, [])

    def test_ties_keep_catalog_order(self):
        settings, grid = morning_only()
        demand = {("B", "morning"): 30, ("A", "morning"): 30}
        result = allocate(rooms(30), demand, settings, grid, course_order=["B", "A"])
        self.assertEqual(result.groups[0].course_id, "B")

    def test_room_is_not_double_booked_across_shifts(self):
        settings = resolve_settings({
            "over_provision_factor": 1.0,
            "shifts": {
                "morning": {"start": "16:00", "slots_per_day": 1, "days": ["Mon"]},
                "evening": {"start": "16:00", "slots_per_day": 1, "days": ["Mon"]},
            },
        })
        grid = build_time_grid({name: settings.shifts[name] for name in ("morning", "evening")})
        demand = {("A", "morning"): 10, ("B", "evening"): 10}
        result = allocate(rooms(10), demand, settings, grid)
        self.assertEqual([g.group_id for g in result.groups], ["G-A-morning-Mon-0-1"])
        self.assertNotIn(("B", "evening"), result.scheduled_capacity)

    def test_partial_overlap_blocks_the_room(self):
        settings = resolve_settings({
            "over_provision_factor": 1.0,
            "shifts": {
                "morning": {"start": "08:00", "slots_per_day": 2, "days": ["Mon"]},
                "evening": {"start": "09:00", "slots_per_day": 2, "days": ["Mon"]},
            },
        })
        grid = build_time_grid({name: settings.shifts[name] for name in ("morning", "evening")})
        demand = {("A", "morning"): 20, ("B", "evening"): 10}
        result = allocate(rooms(10), demand, settings, grid)
        # morning holds 08:00-11:00, which overlaps both evening slots
        self.assertEqual([g.shift for g in result.groups], ["morning", "morning"])

        demand = {("A", "morning"): 10, ("B", "evening"): 10}
        result = allocate(rooms(10), demand, settings, grid)
        # morning only uses 08:00-09:30, so evening's 10:30 slot is free
        placed = [(g.shift, g.meeting.start_minute) for g in result.groups]
        self.assertEqual(placed, [("morning", 8 * 60), ("evening", 10 * 60 + 30)])

    def test_no_rooms(self):
        settings, grid = morning_only()
        result = allocate([], {("A", "morning"): 30}, settings, grid)
        self.assertEqual(result.groups, [])
        self.assertEqual(result.scheduled_capacity, {})


if __name__ == '__main__':
    unittest.main()
