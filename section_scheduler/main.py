import json
import os
from typing import Dict, List, Literal, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field

from section_scheduler.config import merge_settings, resolve_settings, settings_from_flat
from section_scheduler.engine import preview_sections, solve_scheduling_problem

app = FastAPI()

# CORS setup (simplified for dev)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # allows all origins in dev
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

Day = Literal["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


# Pydantic models for input data
class Room(BaseModel):
    id: str
    code: str
    capacity: int = Field(gt=0)

class Course(BaseModel):
    id: str
    code: str
    name: Optional[str] = None

class Student(BaseModel):
    id: str
    name: Optional[str] = None
    shift: Optional[str] = None

class Eligibility(BaseModel):
    student_id: str
    course_id: str

class ShiftConfig(BaseModel):
    start: Optional[str] = Field(default=None, pattern=r"^\d{2}:\d{2}$")
    duration_minutes: Optional[int] = Field(default=None, ge=30, le=240)
    slots_per_day: Optional[int] = Field(default=None, ge=1, le=12)
    days: Optional[List[Day]] = None
    allow_breaks: Optional[bool] = None

class Settings(BaseModel):
    max_courses_per_student: Optional[int] = Field(default=None, ge=1, le=20)
    max_sections_per_course_per_slot: Optional[int] = Field(default=None, ge=1)
    over_provision_factor: Optional[float] = Field(default=None, ge=1.0)
    min_fill_rate: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    assignment_passes: Optional[int] = Field(default=None, ge=1, le=50)
    fill_penalty: Optional[float] = Field(default=None, ge=0.0)
    stop_when_stable: Optional[bool] = None
    flow_solver: Optional[Literal["dinic", "ortools"]] = None
    shifts: Optional[Dict[str, ShiftConfig]] = None

# Stored flat settings record, one column per shift field
class FlatSettings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    max_courses_per_student: Optional[int] = Field(default=None, ge=1, le=20)
    max_sections_per_course_per_slot: Optional[int] = Field(default=None, ge=1)
    over_provision_factor: Optional[float] = Field(default=None, ge=1.0)
    min_fill_rate: Optional[float] = Field(default=None, ge=0.0, le=1.0, alias="MIN_FILL_RATE")
    assignment_passes: Optional[int] = Field(default=None, ge=1, le=50)
    flow_solver: Optional[Literal["dinic", "ortools"]] = None

    start_matutino: Optional[str] = Field(default=None, pattern=r"^\d{2}:\d{2}$")
    duration_matutino: Optional[int] = Field(default=None, ge=30, le=240)
    slots_per_day_matutino: Optional[int] = Field(default=None, ge=1, le=12)
    allow_breaks_matutino: Optional[bool] = None

    start_vespertino: Optional[str] = Field(default=None, pattern=r"^\d{2}:\d{2}$")
    duration_vespertino: Optional[int] = Field(default=None, ge=30, le=240)
    slots_per_day_vespertino: Optional[int] = Field(default=None, ge=1, le=12)
    allow_breaks_vespertino: Optional[bool] = None

    start_sabatino: Optional[str] = Field(default=None, pattern=r"^\d{2}:\d{2}$")
    duration_sabatino: Optional[int] = Field(default=None, ge=30, le=240)
    slots_per_day_sabatino: Optional[int] = Field(default=None, ge=1, le=12)
    allow_breaks_sabatino: Optional[bool] = None

    start_dominical: Optional[str] = Field(default=None, pattern=r"^\d{2}:\d{2}$")
    duration_dominical: Optional[int] = Field(default=None, ge=30, le=240)
    slots_per_day_dominical: Optional[int] = Field(default=None, ge=1, le=12)
    allow_breaks_dominical: Optional[bool] = None

class ProblemData(BaseModel):
    rooms: List[Room]
    courses: List[Course]
    students: List[Student] = []
    eligibilities: List[Eligibility] = []
    settings: Optional[Settings] = None
    demand_by_course_shift: Optional[Dict[str, Dict[str, int]]] = None


def _problem_dict(problem_data: ProblemData) -> dict:
    data = problem_data.model_dump()
    if problem_data.settings is not None:
        data["settings"] = problem_data.settings.model_dump(exclude_none=True)
    return data


@app.post("/solve")
async def solve_scheduling(problem_data: ProblemData):
    try:
        return solve_scheduling_problem(_problem_dict(problem_data))
    except ValueError as ve:
        raise HTTPException(status_code=400, detail=f"Solver Error: {ve}")
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Internal Server Error: {e}")

@app.post("/preview")
async def preview(problem_data: ProblemData):
    try:
        return preview_sections(_problem_dict(problem_data))
    except ValueError as ve:
        raise HTTPException(status_code=400, detail=f"Solver Error: {ve}")
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Internal Server Error: {e}")

@app.post("/settings/flat")
async def translate_flat_settings(record: FlatSettings):
    settings = merge_settings(settings_from_flat(record.model_dump(exclude_none=True, by_alias=True)))
    try:
        resolve_settings(settings)
    except ValueError as ve:
        raise HTTPException(status_code=400, detail=f"Settings Error: {ve}")
    return {"settings": settings}

@app.get("/settings/defaults")
async def default_settings():
    return {"settings": merge_settings()}

@app.get("/")
async def read_root():
    return {"message": "Section Scheduling API"}

@app.get("/example")
async def example_problem():
    path = os.path.join(os.path.dirname(__file__), "example.json")
    with open(path, "r") as f:
        return json.load(f)
