from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Dict, List, NamedTuple, Optional, Tuple

from pydantic import BaseModel, Field, field_validator


# One row of the WorkoutLog tab, keyed by the remote header names in header order.
WorkoutRecord = Dict[str, str]

# Exercise name -> video reference.
ExerciseVideoIndex = Dict[str, str]

DATE_COLUMN = "Date"
SECTION_COLUMN = "Section"
EXERCISE_COLUMN = "Exercise"
NOTES_COLUMN = "Notes"


class ViewMode(str, Enum):
    WEEK = "week"
    MONTH = "month"


class CalendarSelection(BaseModel):
    selected_date: date
    view_mode: ViewMode = ViewMode.WEEK
    anchor_month: date

    @field_validator("anchor_month")
    @classmethod
    def anchor_is_first_of_month(cls, v: date) -> date:
        return v.replace(day=1)

    @classmethod
    def starting_at(cls, day: date) -> "CalendarSelection":
        return cls(selected_date=day, anchor_month=day.replace(day=1))


class NoteKey(NamedTuple):
    """Identifies a record for editing.

    The log has no unique id column, so a record is addressed by its date,
    section, exercise and its position within that day's records.
    """

    date: str
    section: str
    exercise: str
    position: int


@dataclass(frozen=True)
class SchemaContract:
    tabs: Tuple[str, ...]
    headers: Dict[str, Tuple[str, ...]] = field(default_factory=dict)

    def required_headers(self, tab: str) -> Tuple[str, ...]:
        return self.headers.get(tab, ())


DEFAULT_CONTRACT = SchemaContract(
    tabs=("Exercises", "WorkoutLog"),
    headers={
        "Exercises": ("Exercise", "VideoLink"),
        "WorkoutLog": ("Date", "Section", "Section Prescription", "Exercise", "Notes"),
    },
)


class ValidationResult(BaseModel):
    valid: bool
    errors: List[str] = Field(default_factory=list)

    @classmethod
    def from_errors(cls, errors: List[str]) -> "ValidationResult":
        return cls(valid=len(errors) == 0, errors=list(errors))


class SheetHistoryEntry(BaseModel):
    first_added: datetime
    last_opened: datetime
    title: Optional[str] = None
