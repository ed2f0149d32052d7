from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, field_serializer

from app.services.time_utils import DAY_LABELS


class ValidationErrorKind(str, Enum):
    IncompleteEntry = "IncompleteEntry"
    NoCompleteSchedule = "NoCompleteSchedule"
    InvalidDay = "InvalidDay"
    InvalidTimeRange = "InvalidTimeRange"
    DuplicateEntry = "DuplicateEntry"
    OverlappingEntry = "OverlappingEntry"


class CandidateEntry(BaseModel):
    """A schedule row as typed into the class form; any field may still be blank."""

    day_of_week: int | str | None = None
    start_time: str | None = None
    end_time: str | None = None
    room: str | None = Field(default=None, max_length=100)


class ScheduleEntry(BaseModel):
    day_of_week: int = Field(ge=1, le=7)
    start_time: str
    end_time: str
    room: str | None = None

    model_config = {"from_attributes": True, "frozen": True}

    @field_serializer("day_of_week")
    def serialize_day(self, value: int) -> str:
        # Transmitted as a string-encoded integer.
        return str(value)

    @property
    def day_label(self) -> str:
        return DAY_LABELS[self.day_of_week]

    @property
    def key(self) -> str:
        return f"{self.day_of_week}|{self.start_time}|{self.end_time}"


class ValidResult(BaseModel):
    valid: bool = True
    entries: list[ScheduleEntry]


class ValidationFailure(BaseModel):
    valid: bool = False
    kind: ValidationErrorKind
    detail: str
    entries: list[int] = Field(default_factory=list)  # row indices in the submitted list
    key: str | None = None

    def as_details(self) -> dict:
        return {"kind": self.kind.value, "detail": self.detail, "entries": self.entries, "key": self.key}
