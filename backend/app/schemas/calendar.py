from __future__ import annotations

from datetime import date

from pydantic import BaseModel, Field, field_validator, model_validator

from app.core.config import get_settings
from app.services.time_grid import TIME_PATTERN, minutes_to_time, parse_time_to_minutes


def validate_time_value(value: str) -> str:
    if not TIME_PATTERN.match(value):
        raise ValueError("Time must be in HH:MM 24-hour format")
    # Stored zero-padded so schedules sort by start time.
    return minutes_to_time(parse_time_to_minutes(value))


class BreakTimeBase(BaseModel):
    start: str
    end: str


class BreakTimeCreate(BreakTimeBase):
    @field_validator("start", "end")
    @classmethod
    def validate_time_format(cls, value: str) -> str:
        return validate_time_value(value)

    @model_validator(mode="after")
    def validate_order(self) -> "BreakTimeCreate":
        if parse_time_to_minutes(self.end) <= parse_time_to_minutes(self.start):
            raise ValueError("Break end must be after break start")
        return self


class PractitionerCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)


class PractitionerOut(PractitionerCreate):
    id: str

    model_config = {"from_attributes": True}


class BaseScheduleBase(BaseModel):
    practitioner_id: str = Field(min_length=1, max_length=36)
    location_id: str = Field(min_length=1, max_length=36)
    day_of_week: int = Field(ge=0, le=6, description="0 = Sunday ... 6 = Saturday")
    start_time: str
    end_time: str
    break_times: list[BreakTimeBase] = Field(default_factory=list, max_length=20)


class BaseScheduleCreate(BaseScheduleBase):
    break_times: list[BreakTimeCreate] = Field(default_factory=list, max_length=20)

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time_format(cls, value: str) -> str:
        return validate_time_value(value)

    @model_validator(mode="after")
    def validate_window(self) -> "BaseScheduleCreate":
        start = parse_time_to_minutes(self.start_time)
        end = parse_time_to_minutes(self.end_time)
        if start >= end:
            raise ValueError("Start time must be before end time")
        for break_time in self.break_times:
            if parse_time_to_minutes(break_time.start) < start or parse_time_to_minutes(break_time.end) > end:
                raise ValueError(f"Break {break_time.start}-{break_time.end} lies outside working hours")
        return self


class BaseScheduleOut(BaseScheduleBase):
    """Stored schedules are returned as-is, including legacy rows with bad times."""

    id: str

    model_config = {"from_attributes": True}


class ResourceColumn(BaseModel):
    id: str
    title: str


class WorkingPractitioner(BaseModel):
    id: str
    name: str
    start_time: str
    end_time: str
    break_times: list[BreakTimeBase] = Field(default_factory=list)


class ScheduledAppointment(BaseModel):
    id: str
    column: str
    start_slot: int
    start_time: str
    duration: int = Field(ge=0, description="Minutes")
    title: str = ""
    is_simulation: bool = False
    replaces_id: str | None = None
    practitioner_id: str | None = None
    location_id: str | None = None
    patient_id: str | None = None
    appointment_type_id: str | None = None


class BlockedInterval(BaseModel):
    column: str
    slot: int
    is_manual: bool = False
    id: str | None = None
    reason: str | None = None
    duration: int | None = None
    start_slot: int | None = None
    title: str | None = None
    blocked_by_rule_id: str | None = None
    is_simulation: bool = False


class RuleBlockedSlot(BaseModel):
    """One slot reported as blocked by the external rule evaluator."""

    practitioner_id: str = Field(min_length=1, max_length=36)
    time: str
    reason: str | None = None
    blocked_by_rule_id: str | None = None
    blocked_by_blocked_slot_id: str | None = None


class SimulatedPatient(BaseModel):
    is_new: bool


class SimulatedContext(BaseModel):
    appointment_type: str = Field(min_length=1)
    location_id: str | None = None
    patient: SimulatedPatient


class GridOut(BaseModel):
    business_start_hour: int
    business_end_hour: int
    total_slots: int
    slot_duration_minutes: int


class CalendarDayRequest(BaseModel):
    day: date
    location_id: str | None = None
    simulated_context: SimulatedContext | None = None
    rule_blocks: list[RuleBlockedSlot] = Field(default_factory=list)


class CalendarDayOut(BaseModel):
    day: date
    grid: GridOut
    columns: list[ResourceColumn]
    working_practitioners: list[WorkingPractitioner]
    appointments: list[ScheduledAppointment]
    blocked_slots: list[BlockedInterval]
    current_slot: int | None = None
    warnings: list[str] = Field(default_factory=list)


class PlacementRequest(BaseModel):
    day: date
    location_id: str | None = None
    simulated_context: SimulatedContext | None = None
    column: str = Field(min_length=1, max_length=36)
    target_slot: int = Field(ge=0)
    duration: int = Field(
        default_factory=lambda: get_settings().default_appointment_minutes,
        ge=1,
        le=24 * 60,
        description="Minutes",
    )
    appointment_id: str | None = None


class PlacementOut(BaseModel):
    slot: int
    start_time: str
    has_collision: bool
    max_available_duration: int
