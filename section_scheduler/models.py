from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, TypedDict

# Day codes in chronological order; index is the sort key.
DAYS: List[str] = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
DAY_ORDER: Dict[str, int] = {d: i for i, d in enumerate(DAYS)}


# Inputs arrive as plain dicts (the API hands over model_dump()).
class RoomDict(TypedDict):
    id: str
    code: str
    capacity: int


class CourseDict(TypedDict, total=False):
    id: str
    code: str
    name: Optional[str]


class StudentDict(TypedDict, total=False):
    id: str
    name: Optional[str]
    shift: Optional[str]


class EligibilityDict(TypedDict):
    student_id: str
    course_id: str


class ShiftDict(TypedDict, total=False):
    start: str  # "HH:MM"
    duration_minutes: int
    slots_per_day: int
    days: List[str]
    allow_breaks: bool


class SettingsDict(TypedDict, total=False):
    max_courses_per_student: int
    max_sections_per_course_per_slot: int
    over_provision_factor: float
    min_fill_rate: Optional[float]
    assignment_passes: int
    fill_penalty: float
    stop_when_stable: bool
    flow_solver: str
    shifts: Dict[str, ShiftDict]


class ProblemDataDict(TypedDict, total=False):
    rooms: List[RoomDict]
    courses: List[CourseDict]
    students: List[StudentDict]
    eligibilities: List[EligibilityDict]
    settings: SettingsDict
    # course id -> shift -> demand; replaces eligibility-derived demand
    demand_by_course_shift: Optional[Dict[str, Dict[str, int]]]


class SolutionDict(TypedDict, total=False):
    status: str
    params: Dict[str, object]
    scheduled_groups: List[Dict[str, object]]
    assignments: List[Dict[str, str]]
    metrics: Dict[str, object]
    # student id -> day -> one cell per slot ("ALG1@R101" or "-")
    student_timetables: Dict[str, Dict[str, List[str]]]
    stats: Dict[str, object]


@dataclass(frozen=True)
class TimeSlot:
    """One weekly meeting window of a shift."""

    shift: str
    day: str
    slot_index: int
    start_minute: int
    end_minute: int

    @property
    def key(self) -> Tuple[str, str, int]:
        return (self.shift, self.day, self.slot_index)

    @property
    def sort_key(self) -> Tuple[int, int, str, int]:
        return (DAY_ORDER[self.day], self.start_minute, self.shift, self.slot_index)

    def overlaps(self, other: "TimeSlot") -> bool:
        return (
            self.day == other.day
            and self.start_minute < other.end_minute
            and other.start_minute < self.end_minute
        )


@dataclass
class ScheduledGroup:
    """A section: one course offered in one room at one time slot."""

    group_id: str
    course_id: str
    shift: str
    group_index: int
    room_id: str
    room_code: str
    capacity: int
    meeting: TimeSlot
    remaining: int = -1

    def __post_init__(self) -> None:
        if self.remaining < 0:
            self.remaining = self.capacity

    @property
    def used(self) -> int:
        return self.capacity - self.remaining

    def take_seat(self) -> None:
        assert self.remaining > 0, f"group {self.group_id} has no seats left"
        self.remaining -= 1


@dataclass(frozen=True)
class Assignment:
    student_id: str
    course_id: str
    group_id: str


@dataclass
class StudentState:
    """Mutable per-run bookkeeping for one student."""

    student_id: str
    shift: str
    eligible: List[str]
    assigned: int = 0
    taken: set = field(default_factory=set)
    # day -> meetings already booked that day
    meetings: Dict[str, List[TimeSlot]] = field(default_factory=dict)

    def open_courses(self) -> set:
        return set(self.eligible) - self.taken

    def fits(self, slot: TimeSlot, allow_breaks: bool) -> bool:
        booked = self.meetings.get(slot.day, [])
        # one class at a time, whatever shift booked it
        if any(m.overlaps(slot) for m in booked):
            return False
        if allow_breaks:
            return True
        indices = [m.slot_index for m in booked if m.shift == slot.shift]
        if not indices:
            return True
        # only extend the block at either end; the overlap check rules out equal indices
        return slot.slot_index == max(indices) + 1 or slot.slot_index == min(indices) - 1

    def book(self, group: ScheduledGroup) -> None:
        self.assigned += 1
        self.taken.add(group.course_id)
        self.meetings.setdefault(group.meeting.day, []).append(group.meeting)
