"""Student-to-section assignment by per-slot max flow.

Every time slot gets its own small network:

    source -> student   capacity 1   (one class per student per slot)
    student -> group    capacity 1   (eligible, course not yet taken)
    group -> sink       capacity = seats left in the group

The orchestrator sweeps the slots several times, alternating chronological
direction, against one RunContext that carries all cross-slot state. Nothing
is ever un-assigned, so extra passes can only add students.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from section_scheduler.config import EngineSettings
from section_scheduler.flow import FlowNetwork
from section_scheduler.models import (
    Assignment,
    ScheduledGroup,
    StudentDict,
    StudentState,
    TimeSlot,
)

logger = logging.getLogger(__name__)

SOURCE = 0
SINK = 1


@dataclass
class RunContext:
    """All mutable state of one scheduling run. Never reuse across runs."""

    settings: EngineSettings
    students: Dict[str, StudentState]
    groups: List[ScheduledGroup]
    assignments: List[Assignment] = field(default_factory=list)
    flow_runs: int = 0
    pass_additions: List[int] = field(default_factory=list)
    _by_shift: Dict[str, List[StudentState]] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        for state in self.students.values():
            self._by_shift.setdefault(state.shift, []).append(state)

    def students_in(self, shift: str) -> List[StudentState]:
        return self._by_shift.get(shift, [])

    def slot_groups(self) -> Dict[Tuple[str, str, int], Tuple[TimeSlot, List[ScheduledGroup]]]:
        by_slot: Dict[Tuple[str, str, int], Tuple[TimeSlot, List[ScheduledGroup]]] = {}
        for group in self.groups:
            slot = group.meeting
            by_slot.setdefault(slot.key, (slot, []))[1].append(group)
        return by_slot


def build_run_context(
    settings: EngineSettings,
    students: Iterable[StudentDict],
    eligible_by_student: Mapping[str, List[str]],
    groups: List[ScheduledGroup],
) -> RunContext:
    states: Dict[str, StudentState] = {}
    for student in students:
        sid = str(student["id"])
        shift: Optional[str] = student.get("shift")
        if not shift or shift not in settings.shifts or sid in states:
            continue
        states[sid] = StudentState(
            student_id=sid,
            shift=shift,
            eligible=list(eligible_by_student.get(sid, [])),
        )
    return RunContext(settings=settings, students=states, groups=groups)


def assign_slot(
    context: RunContext, slot: TimeSlot, groups: List[ScheduledGroup]
) -> List[Assignment]:
    """Match students to the groups meeting at ``slot`` and book the result."""
    open_groups = [g for g in groups if g.remaining > 0]
    if not open_groups:
        return []
    present = {g.course_id for g in open_groups}
    settings = context.settings
    allow_breaks = settings.shifts[slot.shift].allow_breaks

    candidates: List[Tuple[StudentState, set]] = []
    for state in context.students_in(slot.shift):
        # quota reached
        if state.assigned >= settings.max_courses_per_student:
            continue
        wanted = state.open_courses() & present
        if not wanted:
            continue
        if not state.fits(slot, allow_breaks):
            continue
        candidates.append((state, wanted))
    if not candidates:
        return []

    # nodes: 0 source, 1 sink, then one per candidate, then one per open group
    network = FlowNetwork(2 + len(candidates) + len(open_groups))
    group_node = {g.group_id: 2 + len(candidates) + i for i, g in enumerate(open_groups)}
    # group -> sink carries the seats still free
    for group in open_groups:
        assert group.remaining <= group.capacity, f"group {group.group_id} over capacity"
        network.add_edge(group_node[group.group_id], SINK, group.remaining)

    edges: List[Tuple[int, StudentState, ScheduledGroup]] = []
    for i, (state, wanted) in enumerate(candidates):
        node = 2 + i
        # capacity 1 from the source: at most one class per student in this slot
        network.add_edge(SOURCE, node, 1)
        for group in open_groups:
            if group.course_id in wanted:
                eid = network.add_edge(node, group_node[group.group_id], 1)
                edges.append((eid, state, group))

    flow = network.solve(SOURCE, SINK, settings.flow_solver)
    context.flow_runs += 1

    # a saturated student->group edge is a booking
    made: List[Assignment] = []
    for eid, state, group in edges:
        if not network.saturated(eid):
            continue
        group.take_seat()
        state.book(group)
        made.append(Assignment(state.student_id, group.course_id, group.group_id))
    assert len(made) == flow, "realized edges do not match flow value"
    context.assignments.extend(made)
    if made:
        logger.debug(
            "%s %s #%d: %d candidates, %d groups, %d assigned",
            slot.shift, slot.day, slot.slot_index, len(candidates), len(open_groups), len(made),
        )
    return made


def run_assignment_passes(context: RunContext, passes: Optional[int] = None) -> List[int]:
    """Sweep every slot ``passes`` times; even passes ascend, odd passes descend.

    Returns the number of assignments each pass added. With
    ``stop_when_stable`` a pass that adds nothing ends the run, since the
    state it leaves is exactly the one it started from.
    """
    passes = context.settings.assignment_passes if passes is None else passes
    by_slot = context.slot_groups()
    ordered = sorted(by_slot.values(), key=lambda item: item[0].sort_key)

    for p in range(passes):
        sequence = ordered if p % 2 == 0 else list(reversed(ordered))
        added = 0
        for slot, groups in sequence:
            added += len(assign_slot(context, slot, groups))
        context.pass_additions.append(added)
        logger.info("Pass %d (%s): %d assignments added", p + 1,
                    "ascending" if p % 2 == 0 else "descending", added)
        if added == 0 and context.settings.stop_when_stable:
            break
    return context.pass_additions
