import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from section_scheduler.models import CourseDict, EligibilityDict, StudentDict

# (course_id, shift) -> count
DemandTable = Dict[Tuple[str, str], int]


@dataclass
class EligibilityIndex:
    """Eligibility pairs keyed by student, with hygiene counters."""

    by_student: Dict[str, List[str]] = field(default_factory=dict)
    pairs: int = 0
    skipped_no_student: int = 0
    skipped_no_course: int = 0
    duplicate_pairs: int = 0


def index_eligibilities(
    students: Iterable[StudentDict],
    courses: Iterable[CourseDict],
    eligibilities: Iterable[EligibilityDict],
) -> EligibilityIndex:
    student_ids = {str(s["id"]) for s in students}
    course_ids = {str(c["id"]) for c in courses}
    index = EligibilityIndex()
    seen = set()
    for pair in eligibilities:
        sid, cid = str(pair["student_id"]), str(pair["course_id"])
        if sid not in student_ids:
            index.skipped_no_student += 1
            continue
        if cid not in course_ids:
            index.skipped_no_course += 1
            continue
        if (sid, cid) in seen:
            index.duplicate_pairs += 1
            continue
        seen.add((sid, cid))
        index.by_student.setdefault(sid, []).append(cid)
        index.pairs += 1
    return index


def compute_demand(
    index: EligibilityIndex, student_shift: Mapping[str, Optional[str]]
) -> DemandTable:
    """Count eligible students per (course, shift); students without a shift add nothing."""
    demand: DemandTable = {}
    for sid, course_ids in index.by_student.items():
        shift = student_shift.get(sid)
        if not shift:
            continue
        for cid in course_ids:
            demand[(cid, shift)] = demand.get((cid, shift), 0) + 1
    return demand


def demand_from_mapping(mapping: Mapping[str, Mapping[str, int]]) -> DemandTable:
    """Accept a precomputed {course_id: {shift: demand}} table."""
    demand: DemandTable = {}
    for cid, per_shift in mapping.items():
        for shift, count in per_shift.items():
            if int(count or 0) > 0:
                demand[(str(cid), str(shift))] = int(count)
    return demand


def target_capacities(demand: Mapping[Tuple[str, str], int], factor: float) -> DemandTable:
    return {key: math.ceil(count * factor) for key, count in demand.items()}
