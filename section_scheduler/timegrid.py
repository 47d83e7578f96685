from typing import Dict, List, Mapping

from section_scheduler.config import ShiftSettings
from section_scheduler.models import DAY_ORDER, TimeSlot


def shift_slots(shift: ShiftSettings) -> List[TimeSlot]:
    """Every (day, slot-index) window of one shift, chronologically ordered.

    A non-positive duration or slot count gives an empty grid.
    """
    if shift.duration_minutes <= 0 or shift.slots_per_day <= 0:
        return []
    slots: List[TimeSlot] = []
    for day in sorted(shift.days, key=DAY_ORDER.__getitem__):
        for index in range(shift.slots_per_day):
            start = shift.start_minute + index * shift.duration_minutes
            slots.append(
                TimeSlot(
                    shift=shift.name,
                    day=day,
                    slot_index=index,
                    start_minute=start,
                    end_minute=start + shift.duration_minutes,
                )
            )
    return slots


def build_time_grid(shifts: Mapping[str, ShiftSettings]) -> Dict[str, List[TimeSlot]]:
    return {name: shift_slots(shift) for name, shift in shifts.items()}
