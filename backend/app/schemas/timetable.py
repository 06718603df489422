from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator

DAYS_OF_WEEK = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

GenerationAdvisory = Literal["overloaded", "failed", "partial"]


class TimetableActivity(BaseModel):
    staff_id: str = Field(alias="staffId", min_length=1, max_length=36)

    model_config = {"populate_by_name": True}


ActivitySlot = TimetableActivity | None
# [dayIndex][periodIndex][activitySlotIndex]
TimetableGrid = list[list[list[ActivitySlot]]]


def day_label(day_index: int) -> str:
    if 0 <= day_index < len(DAYS_OF_WEEK):
        return DAYS_OF_WEEK[day_index]
    return f"Day {day_index + 1}"


class StaffRosterEntry(BaseModel):
    positional_index: int = Field(ge=0)
    qualified_classes: list[str]


class GenerationRequest(BaseModel):
    """Normalized input for the external generator.

    Staff are addressed by ``positional_index`` only; the matching stable ids are
    kept by the caller in the builder's index table.
    """

    staff_roster: list[StaffRosterEntry]
    class_names: list[str]
    periods_per_day: int = Field(ge=1)
    days_per_week: int = Field(ge=1)
    breaks_per_day: int = Field(ge=1)

    @model_validator(mode="after")
    def validate_positions(self) -> "GenerationRequest":
        positions = [entry.positional_index for entry in self.staff_roster]
        if positions != list(range(len(positions))):
            raise ValueError("staff_roster positional indices must be 0..n-1 in order")
        return self

    def to_generator_payload(self) -> dict:
        return {
            "staffDetails": [
                {"id": str(entry.positional_index), "assignedClasses": list(entry.qualified_classes)}
                for entry in self.staff_roster
            ],
            "classNames": list(self.class_names),
            "periodsPerDay": self.periods_per_day,
            "daysPerWeek": self.days_per_week,
            "breakCount": self.breaks_per_day,
        }


class GenerateTimetablesRequest(BaseModel):
    class_names: list[str] | None = Field(default=None, max_length=50)
    periods_per_day: int | None = Field(default=None, ge=1, le=16)
    days_per_week: int | None = Field(default=None, ge=1, le=7)
    break_count: int | None = Field(default=None, ge=1, le=8)


class GenerateTimetablesResponse(BaseModel):
    timetables: dict[str, TimetableGrid]
    fallback_classes: list[str] = Field(default_factory=list)
    discarded_classes: list[str] = Field(default_factory=list)
    advisory: GenerationAdvisory | None = None
    message: str
    persisted: bool = True


class TimetableSetOut(BaseModel):
    timetables: dict[str, TimetableGrid] = Field(default_factory=dict)
    fallback_classes: list[str] = Field(default_factory=list)


class TimetableImportRequest(BaseModel):
    timetables: dict[str, Any]
    periods_per_day: int | None = Field(default=None, ge=1, le=16)
    days_per_week: int | None = Field(default=None, ge=1, le=7)


class SlotEditRequest(BaseModel):
    day_index: int = Field(ge=0, le=13)
    period_index: int = Field(ge=0, le=31)
    activity_index: int = Field(default=0, ge=0, le=7)
    staff_id: str | None = Field(default=None, min_length=1, max_length=36)


class ClassTimetableOut(BaseModel):
    class_name: str
    grid: TimetableGrid


class SlotView(BaseModel):
    reference: str
    staff_member_id: str | None = None
    name: str
    subject: str | None = None
    resolved: bool


class ClassTimetableView(BaseModel):
    class_name: str
    day_labels: list[str]
    staff_filter: str | None = None
    grid: list[list[list[SlotView | None]]]
