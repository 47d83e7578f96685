"""Best-fit section allocation.

For each shift and each of its slots (chronological order) the rooms are
visited from largest to smallest and every room is handed to the course whose
unmet seat gap it fits best:

    score = min(capacity, gap) - fill_penalty * max(0, capacity - gap)

A room with no positively scored course stays empty in that slot. The sweep
never revisits a placement.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from section_scheduler.config import EngineSettings
from section_scheduler.demand import DemandTable
from section_scheduler.models import RoomDict, ScheduledGroup, TimeSlot

logger = logging.getLogger(__name__)


@dataclass
class AllocationResult:
    groups: List[ScheduledGroup] = field(default_factory=list)
    # (course_id, shift) -> seats placed so far
    scheduled_capacity: Dict[Tuple[str, str], int] = field(default_factory=dict)


def best_fit_score(capacity: int, gap: int, fill_penalty: float) -> Tuple[float, int]:
    fit = min(capacity, gap)
    over = max(0, capacity - gap)
    return fit - fill_penalty * over, fit


def _pick_course(
    room: RoomDict,
    shift: str,
    course_order: Sequence[str],
    demand: Mapping[Tuple[str, str], int],
    targets: Mapping[Tuple[str, str], int],
    scheduled: Mapping[Tuple[str, str], int],
    used_this_slot: Mapping[str, int],
    settings: EngineSettings,
) -> Optional[str]:
    capacity = int(room["capacity"])
    best_cid: Optional[str] = None
    best_score = float("-inf")
    best_fit = 0
    for cid in course_order:
        key = (cid, shift)
        if demand.get(key, 0) <= 0:
            continue
        if used_this_slot.get(cid, 0) >= settings.max_sections_per_course_per_slot:
            continue
        gap = max(0, targets.get(key, 0) - scheduled.get(key, 0))
        if gap <= 0:
            continue
        score, fit = best_fit_score(capacity, gap, settings.fill_penalty)
        if settings.min_fill_rate is not None:
            ratio = fit / capacity if capacity > 0 else 0.0
            if ratio < settings.min_fill_rate:
                continue
        # strict comparison: ties keep the earlier course
        if score > best_score:
            best_cid, best_score, best_fit = cid, score, fit
    if best_cid is None or best_score <= 0 or best_fit <= 0:
        return None
    return best_cid


def allocate_sections(
    rooms: Sequence[RoomDict],
    course_order: Sequence[str],
    demand: Mapping[Tuple[str, str], int],
    targets: Mapping[Tuple[str, str], int],
    grid: Mapping[str, List[TimeSlot]],
    settings: EngineSettings,
) -> AllocationResult:
    result = AllocationResult()
    # sorted() is stable, so equal capacities keep catalog order
    rooms_by_capacity = sorted(rooms, key=lambda r: -int(r["capacity"]))
    group_counter: Dict[Tuple[str, str, str, int], int] = {}
    # (room_id, day) -> meetings already placed there, shared by every shift
    room_busy: Dict[Tuple[str, str], List[TimeSlot]] = {}

    for shift, slots in grid.items():
        if not any(d > 0 for (_, sh), d in demand.items() if sh == shift):
            continue
        for slot in slots:
            # per-course section count inside this one slot
            used_this_slot: Dict[str, int] = {}
            for room in rooms_by_capacity:
                busy = room_busy.get((str(room["id"]), slot.day), [])
                # another shift already holds this room at an overlapping time
                if any(slot.overlaps(m) for m in busy):
                    continue
                cid = _pick_course(
                    room, shift, course_order, demand, targets,
                    result.scheduled_capacity, used_this_slot, settings,
                )
                if cid is None:
                    continue
                gkey = (cid, shift, slot.day, slot.slot_index)
                group_index = group_counter.get(gkey, 0) + 1
                group_counter[gkey] = group_index
                result.groups.append(
                    ScheduledGroup(
                        group_id=f"G-{cid}-{shift}-{slot.day}-{slot.slot_index}-{group_index}",
                        course_id=cid,
                        shift=shift,
                        group_index=group_index,
                        room_id=str(room["id"]),
                        room_code=str(room.get("code") or room["id"]),
                        capacity=int(room["capacity"]),
                        meeting=slot,
                    )
                )
                room_busy.setdefault((str(room["id"]), slot.day), []).append(slot)
                used_this_slot[cid] = used_this_slot.get(cid, 0) + 1
                # later slots see a smaller gap for this course
                key = (cid, shift)
                result.scheduled_capacity[key] = (
                    result.scheduled_capacity.get(key, 0) + int(room["capacity"])
                )
        logger.debug(
            "Shift %s: %d groups after allocation",
            shift, sum(1 for g in result.groups if g.shift == shift),
        )
    return result
