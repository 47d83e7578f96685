import copy
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

from section_scheduler.models import DAY_ORDER, DAYS, SettingsDict, ShiftDict

WEEKDAYS: List[str] = DAYS[:5]

FLOW_SOLVERS: Tuple[str, ...] = ("dinic", "ortools")

MINUTES_PER_DAY = 24 * 60

DEFAULT_SHIFTS: Dict[str, ShiftDict] = {
    "morning": {
        "start": "07:00",
        "duration_minutes": 90,
        "slots_per_day": 5,
        "days": list(WEEKDAYS),
        "allow_breaks": True,
    },
    "evening": {
        "start": "16:00",
        "duration_minutes": 90,
        "slots_per_day": 4,
        "days": list(WEEKDAYS),
        "allow_breaks": True,
    },
    "saturday": {
        "start": "08:00",
        "duration_minutes": 90,
        "slots_per_day": 4,
        "days": ["Sat"],
        "allow_breaks": True,
    },
    "sunday": {
        "start": "08:00",
        "duration_minutes": 90,
        "slots_per_day": 4,
        "days": ["Sun"],
        "allow_breaks": True,
    },
}

DEFAULT_SETTINGS: SettingsDict = {
    "max_courses_per_student": 5,
    "max_sections_per_course_per_slot": 2,
    "over_provision_factor": 1.15,
    "min_fill_rate": None,
    "assignment_passes": 6,
    # alpha in the best-fit score; penalises seats a room has beyond the gap
    "fill_penalty": 0.25,
    "stop_when_stable": True,
    "flow_solver": "dinic",
    "shifts": DEFAULT_SHIFTS,
}

# Suffixes used by the stored flat settings record.
FLAT_SHIFT_SUFFIXES: Dict[str, str] = {
    "matutino": "morning",
    "vespertino": "evening",
    "sabatino": "saturday",
    "dominical": "sunday",
}


@dataclass(frozen=True)
class ShiftSettings:
    name: str
    start_minute: int
    duration_minutes: int
    slots_per_day: int
    days: Tuple[str, ...]
    allow_breaks: bool


@dataclass(frozen=True)
class EngineSettings:
    max_courses_per_student: int
    max_sections_per_course_per_slot: int
    over_provision_factor: float
    min_fill_rate: Optional[float]
    assignment_passes: int
    fill_penalty: float
    stop_when_stable: bool
    flow_solver: str
    shifts: Dict[str, ShiftSettings]

    def as_params(self) -> Dict[str, Any]:
        return {
            "max_courses_per_student": self.max_courses_per_student,
            "max_sections_per_course_per_slot": self.max_sections_per_course_per_slot,
            "over_provision_factor": self.over_provision_factor,
            "min_fill_rate": self.min_fill_rate,
            "assignment_passes": self.assignment_passes,
            "fill_penalty": self.fill_penalty,
            "stop_when_stable": self.stop_when_stable,
            "flow_solver": self.flow_solver,
        }


def parse_clock(value: str) -> int:
    """Convert "HH:MM" to minutes after midnight."""
    try:
        hours, minutes = value.split(":")
        h, m = int(hours), int(minutes)
    except (AttributeError, ValueError):
        raise ValueError(f"Invalid clock time {value!r}, expected HH:MM")
    if not (0 <= h < 24 and 0 <= m < 60):
        raise ValueError(f"Invalid clock time {value!r}, expected HH:MM")
    return h * 60 + m


def format_clock(minute: int) -> str:
    return f"{minute // 60:02d}:{minute % 60:02d}"


def clamp_fill_rate(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    return max(0.0, min(1.0, float(value)))


def _resolve_shift(name: str, raw: Mapping[str, Any]) -> ShiftSettings:
    days = list(raw.get("days") or [])
    unknown = [d for d in days if d not in DAY_ORDER]
    if unknown:
        raise ValueError(f"Unknown day(s) {unknown} in shift '{name}'")
    shift = ShiftSettings(
        name=name,
        start_minute=parse_clock(raw.get("start", "00:00")),
        duration_minutes=int(raw.get("duration_minutes", 0)),
        slots_per_day=int(raw.get("slots_per_day", 0)),
        days=tuple(sorted(set(days), key=DAY_ORDER.__getitem__)),
        allow_breaks=bool(raw.get("allow_breaks", True)),
    )
    # the last slot of the day has to end by midnight
    if shift.duration_minutes > 0 and shift.slots_per_day > 0:
        day_end = shift.start_minute + shift.slots_per_day * shift.duration_minutes
        if day_end > MINUTES_PER_DAY:
            raise ValueError(
                f"Shift '{name}' runs past midnight ({shift.slots_per_day} x "
                f"{shift.duration_minutes} min from {format_clock(shift.start_minute)})"
            )
    return shift


def merge_settings(overrides: Optional[Mapping[str, Any]] = None) -> SettingsDict:
    """Lay user overrides over DEFAULT_SETTINGS; shifts merge key by key."""
    merged: Dict[str, Any] = copy.deepcopy(dict(DEFAULT_SETTINGS))
    for key, value in (overrides or {}).items():
        if key == "shifts" or (value is None and key != "min_fill_rate"):
            continue
        merged[key] = value
    shifts: Dict[str, Dict[str, Any]] = merged["shifts"]
    for name, shift in ((overrides or {}).get("shifts") or {}).items():
        base = shifts.get(name, {})
        shifts[name] = {**base, **{k: v for k, v in shift.items() if v is not None}}
    return merged  # type: ignore[return-value]


def resolve_settings(overrides: Optional[Mapping[str, Any]] = None) -> EngineSettings:
    merged = merge_settings(overrides)
    flow_solver = str(merged["flow_solver"]).lower()
    if flow_solver not in FLOW_SOLVERS:
        raise ValueError(f"Unknown flow solver '{flow_solver}', expected one of {FLOW_SOLVERS}")
    return EngineSettings(
        max_courses_per_student=int(merged["max_courses_per_student"]),
        max_sections_per_course_per_slot=int(merged["max_sections_per_course_per_slot"]),
        over_provision_factor=float(merged["over_provision_factor"]),
        min_fill_rate=clamp_fill_rate(merged.get("min_fill_rate")),
        assignment_passes=int(merged["assignment_passes"]),
        fill_penalty=float(merged["fill_penalty"]),
        stop_when_stable=bool(merged["stop_when_stable"]),
        flow_solver=flow_solver,
        shifts={name: _resolve_shift(name, raw) for name, raw in merged["shifts"].items()},
    )


def settings_from_flat(record: Mapping[str, Any]) -> SettingsDict:
    """Translate the stored flat record (start_matutino, slots_per_day_sabatino, ...)."""
    settings: Dict[str, Any] = {}
    shifts: Dict[str, Dict[str, Any]] = {}
    for key, value in record.items():
        prefix, _, suffix = key.rpartition("_")
        if suffix in FLAT_SHIFT_SUFFIXES:
            field_name = {"start": "start", "duration": "duration_minutes"}.get(prefix, prefix)
            if field_name in ("start", "duration_minutes", "slots_per_day", "allow_breaks"):
                shifts.setdefault(FLAT_SHIFT_SUFFIXES[suffix], {})[field_name] = value
                continue
        if key.upper() == "MIN_FILL_RATE":
            settings["min_fill_rate"] = value
        else:
            settings[key] = value
    if shifts:
        settings["shifts"] = shifts
    return settings  # type: ignore[return-value]
