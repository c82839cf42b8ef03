from datetime import date
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from recurrence import parse_recurrence_pattern


class Client(BaseModel):
    id: str
    name: str
    is_disabled: bool = False

class ClientCreate(BaseModel):
    name: str

class Project(BaseModel):
    id: str
    name: str
    client_id: str
    color: str = "#3b82f6"
    description: Optional[str] = None
    is_disabled: bool = False

class ProjectCreate(BaseModel):
    name: str
    client_id: str
    color: str = "#3b82f6"
    description: Optional[str] = None

class Task(BaseModel):
    id: str
    name: str
    project_id: str
    description: Optional[str] = None
    is_recurring: bool = False
    recurrence_pattern: Optional[str] = None  # daily | weekly | monthly | monthly:<ordinal>:<weekday>
    recurrence_start: Optional[date] = None
    recurrence_end: Optional[date] = None
    recurrence_duration: float = 0  # Hours stamped on generated placeholders
    is_disabled: bool = False

class TaskCreate(BaseModel):
    name: str
    project_id: str
    description: Optional[str] = None
    is_recurring: bool = False
    recurrence_pattern: Optional[str] = None
    recurrence_start: Optional[date] = None
    recurrence_end: Optional[date] = None
    recurrence_duration: float = Field(default=0, ge=0)

class TaskUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    is_disabled: Optional[bool] = None

class RecurrenceSettings(BaseModel):
    """Body for configuring a task's recurrence."""
    pattern: str
    start: Optional[date] = None  # Defaults to today
    end: Optional[date] = None
    duration: float = Field(default=0, ge=0)

    @field_validator("pattern")
    @classmethod
    def pattern_must_parse(cls, v: str) -> str:
        if parse_recurrence_pattern(v) is None:
            raise ValueError(f"Unrecognized recurrence pattern: {v!r}")
        return v.strip().lower()

class GeneratedEntry(BaseModel):
    """A placeholder entry the engine asks the store to create."""
    date: date
    user_id: str = ""
    client_id: str
    client_name: str
    project_id: str
    project_name: str
    task: str
    duration: float = 0
    hourly_cost: float = 0
    is_placeholder: bool = True

class TimeEntry(BaseModel):
    id: str
    user_id: str = ""
    date: date
    client_id: str
    client_name: str
    project_id: str
    project_name: str
    task: str
    notes: Optional[str] = None
    duration: float = 0
    hourly_cost: float = 0
    is_placeholder: bool = False
    created_at: str  # ISO format datetime string

class TimeEntryCreate(BaseModel):
    date: date
    project_id: str
    task: str
    notes: Optional[str] = None
    duration: float = Field(default=0, ge=0)
    user_id: str = ""
    hourly_cost: float = Field(default=0, ge=0)

class GeneralSettings(BaseModel):
    treat_saturday_as_holiday: bool = True

class GenerateRequest(BaseModel):
    today: Optional[date] = None
    user_id: Optional[str] = None
    hourly_cost: float = Field(default=0, ge=0)

class RecurringTaskSummary(BaseModel):
    task: Task
    client_name: Optional[str] = None
    project_name: Optional[str] = None
    next_due: Optional[date] = None  # None when the rule has no due date left

RecurrenceAction = Literal["stop", "delete_future", "delete_all"]
