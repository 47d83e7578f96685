from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from section_scheduler.demand import EligibilityIndex
from section_scheduler.models import Assignment, ScheduledGroup


def group_fill(groups: Iterable[ScheduledGroup]) -> List[Dict[str, object]]:
    rows = []
    for g in groups:
        rows.append({
            "group_id": g.group_id,
            "course_id": g.course_id,
            "shift": g.shift,
            "capacity": g.capacity,
            "used": g.used,
            "remaining": g.remaining,
            "fill_rate": round(g.used / g.capacity, 3) if g.capacity > 0 else 0.0,
        })
    return rows


def build_metrics(
    course_order: Sequence[str],
    shifts: Sequence[str],
    demand: Mapping[Tuple[str, str], int],
    targets: Mapping[Tuple[str, str], int],
    scheduled: Mapping[Tuple[str, str], int],
    groups: Sequence[ScheduledGroup],
    assignments: Sequence[Assignment],
    student_count: int = 0,
    eligibility: Optional[EligibilityIndex] = None,
    students_without_shift: int = 0,
) -> Dict[str, object]:
    """Coverage numbers for one run. Gaps are reported here, never raised."""
    group_shift = {g.group_id: g.shift for g in groups}
    assigned: Dict[Tuple[str, str], int] = {}
    per_student: Dict[str, int] = {}
    for a in assignments:
        key = (a.course_id, group_shift[a.group_id])
        assigned[key] = assigned.get(key, 0) + 1
        per_student[a.student_id] = per_student.get(a.student_id, 0) + 1

    courses = []
    by_shift: Dict[str, Dict[str, int]] = {
        sh: {"demand_total": 0, "target_total": 0, "scheduled_total": 0, "assigned_total": 0}
        for sh in shifts
    }
    for cid in course_order:
        for sh in shifts:
            key = (cid, sh)
            dem = demand.get(key, 0)
            target = targets.get(key, 0)
            sched = scheduled.get(key, 0)
            got = assigned.get(key, 0)
            if not (dem or sched or got):
                continue
            courses.append({
                "course_id": cid,
                "shift": sh,
                "demand": dem,
                "target_capacity": target,
                "scheduled_capacity": sched,
                "gap_remaining": max(0, target - sched),
                "assigned": got,
                "unassigned_demand": max(0, dem - got),
            })
            agg = by_shift[sh]
            agg["demand_total"] += dem
            agg["target_total"] += target
            agg["scheduled_total"] += sched
            agg["assigned_total"] += got

    summary_by_shift = [
        {
            "shift": sh,
            **agg,
            "gap_total": max(0, agg["target_total"] - agg["scheduled_total"]),
        }
        for sh, agg in by_shift.items()
    ]

    metrics: Dict[str, object] = {
        "seats_scheduled_total": sum(g.capacity for g in groups),
        "groups_total": len(groups),
        "assignments_total": len(assignments),
        "students_assigned": len(per_student),
        "students_without_assignment": max(0, student_count - len(per_student)),
        "students_without_shift": students_without_shift,
        "courses": courses,
        "occupancy_by_group": group_fill(groups),
        "summary_by_shift": summary_by_shift,
    }
    if eligibility is not None:
        metrics["eligibility"] = {
            "pairs": eligibility.pairs,
            "duplicate_pairs": eligibility.duplicate_pairs,
            "skipped_no_student": eligibility.skipped_no_student,
            "skipped_no_course": eligibility.skipped_no_course,
        }
    return metrics
