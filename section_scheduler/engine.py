import logging
import time
from typing import Dict, List, Optional

from section_scheduler.allocator import allocate_sections
from section_scheduler.assignment import build_run_context, run_assignment_passes
from section_scheduler.config import EngineSettings, format_clock, resolve_settings
from section_scheduler.demand import (
    DemandTable,
    EligibilityIndex,
    compute_demand,
    demand_from_mapping,
    index_eligibilities,
    target_capacities,
)
from section_scheduler.metrics import build_metrics
from section_scheduler.models import (
    ProblemDataDict,
    ScheduledGroup,
    SolutionDict,
    StudentDict,
    StudentState,
)
from section_scheduler.timegrid import build_time_grid

logger = logging.getLogger(__name__)


def group_to_dict(group: ScheduledGroup) -> Dict[str, object]:
    slot = group.meeting
    return {
        "group_id": group.group_id,
        "course_id": group.course_id,
        "shift": group.shift,
        "group_index": group.group_index,
        "room_id": group.room_id,
        "room_code": group.room_code,
        "capacity": group.capacity,
        "used": group.used,
        "remaining": group.remaining,
        "meeting": {
            "day": slot.day,
            "start": format_clock(slot.start_minute),
            "end": format_clock(slot.end_minute),
            "shift": slot.shift,
            "slot_index": slot.slot_index,
        },
    }


def student_timetable(
    state: StudentState,
    settings: EngineSettings,
    groups_by_id: Dict[str, ScheduledGroup],
    course_codes: Dict[str, str],
    group_ids: List[str],
) -> Dict[str, List[str]]:
    shift = settings.shifts[state.shift]
    table = {day: ["-"] * max(0, shift.slots_per_day) for day in shift.days}
    for gid in group_ids:
        group = groups_by_id[gid]
        slot = group.meeting
        code = course_codes.get(group.course_id, group.course_id)
        table[slot.day][slot.slot_index] = f"{code}@{group.room_code}"
    return table


def solve_scheduling_problem(
    problem_data: ProblemDataDict,
    *,
    assignment_passes: Optional[int] = None,
    flow_solver: Optional[str] = None,
    assign_students: bool = True,
) -> SolutionDict:
    """Create sections and assign students to them.

    Steps:
      • Build the weekly slot grid of every configured shift.
      • Count demand per (course, shift) from eligibility, or take the
        supplied ``demand_by_course_shift`` table, and over-provision it.
      • Place sections with the best-fit room allocator.
      • Assign students with repeated per-slot max-flow passes.

    Coverage shortfalls (too few rooms, conflicting constraints) come back as
    gaps in ``metrics``; they are not errors.

    Raises:
      ValueError: settings that cannot be interpreted (bad clock time,
        unknown day or flow solver).
    """
    started = time.perf_counter()
    overrides = dict(problem_data.get("settings") or {})
    if assignment_passes is not None:
        overrides["assignment_passes"] = assignment_passes
    if flow_solver is not None:
        overrides["flow_solver"] = flow_solver
    settings = resolve_settings(overrides)

    rooms = list(problem_data.get("rooms") or [])
    courses = list(problem_data.get("courses") or [])
    # repeated ids keep their first record everywhere below
    students: List[StudentDict] = []
    seen_ids = set()
    for student in problem_data.get("students") or []:
        sid = str(student["id"])
        if sid in seen_ids:
            logger.warning("Duplicate student id %s ignored", sid)
            continue
        seen_ids.add(sid)
        students.append(student)

    eligibility: EligibilityIndex = index_eligibilities(
        students, courses, problem_data.get("eligibilities") or []
    )
    student_shift = {str(s["id"]): s.get("shift") for s in students}
    supplied = problem_data.get("demand_by_course_shift")
    demand: DemandTable = (
        demand_from_mapping(supplied) if supplied else compute_demand(eligibility, student_shift)
    )
    targets = target_capacities(demand, settings.over_provision_factor)

    course_order: List[str] = [str(c["id"]) for c in courses]
    for cid, _ in demand:
        if cid not in course_order:
            course_order.append(cid)
    shift_names: List[str] = list(settings.shifts)
    for _, sh in demand:
        if sh not in shift_names:
            shift_names.append(sh)

    grid = build_time_grid(settings.shifts)
    allocation = allocate_sections(rooms, course_order, demand, targets, grid, settings)
    groups = allocation.groups

    context = build_run_context(settings, students, eligibility.by_student, groups)
    if assign_students:
        run_assignment_passes(context)

    without_shift = sum(
        1 for s in students if not s.get("shift") or s.get("shift") not in settings.shifts
    )
    metrics = build_metrics(
        course_order,
        shift_names,
        demand,
        targets,
        allocation.scheduled_capacity,
        groups,
        context.assignments,
        student_count=len(context.students),
        eligibility=eligibility,
        students_without_shift=without_shift,
    )

    solution: SolutionDict = {
        "status": "OK",
        "params": settings.as_params(),
        "scheduled_groups": [group_to_dict(g) for g in groups],
        "assignments": [
            {"student_id": a.student_id, "course_id": a.course_id, "group_id": a.group_id}
            for a in context.assignments
        ],
        "metrics": metrics,
        "student_timetables": {},
        "stats": {},
    }

    if assign_students:
        groups_by_id = {g.group_id: g for g in groups}
        course_codes = {str(c["id"]): str(c.get("code") or c["id"]) for c in courses}
        booked: Dict[str, List[str]] = {}
        for a in context.assignments:
            booked.setdefault(a.student_id, []).append(a.group_id)
        for sid, state in context.students.items():
            solution["student_timetables"][sid] = student_timetable(
                state, settings, groups_by_id, course_codes, booked.get(sid, [])
            )

    solution["stats"] = {
        "wall_time_s": time.perf_counter() - started,
        "passes_run": len(context.pass_additions),
        "pass_additions": list(context.pass_additions),
        "flow_runs": context.flow_runs,
    }
    logger.info(
        "Scheduled %d groups (%d seats), %d assignments in %d passes",
        len(groups), metrics["seats_scheduled_total"], len(context.assignments),
        len(context.pass_additions),
    )
    return solution


def preview_sections(problem_data: ProblemDataDict) -> SolutionDict:
    """Section allocation and coverage metrics without assigning students."""
    return solve_scheduling_problem(problem_data, assign_students=False)
