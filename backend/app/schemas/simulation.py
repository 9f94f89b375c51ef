from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator, model_validator

from app.core.config import get_settings
from app.schemas.calendar import SimulatedContext
from app.services.time_grid import to_wall_clock


def practice_local(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    return to_wall_clock(value, get_settings().practice_timezone)


class ProjectionContext(BaseModel):
    simulated_context: SimulatedContext | None = None
    practice_id: str | None = Field(default=None, max_length=36)
    location_id: str | None = Field(default=None, max_length=36)


class TimeRangeChanges(BaseModel):
    start: datetime | None = None
    end: datetime | None = None
    title: str | None = Field(default=None, min_length=1, max_length=200)

    @field_validator("start", "end")
    @classmethod
    def normalize_timezone(cls, value: datetime | None) -> datetime | None:
        return practice_local(value)

    @model_validator(mode="after")
    def validate_time_order(self) -> "TimeRangeChanges":
        if self.start is not None and self.end is not None and self.end <= self.start:
            raise ValueError("End time must be after start time")
        return self


class AppointmentChanges(TimeRangeChanges):
    column: str | None = Field(default=None, min_length=1, max_length=36)
    location_id: str | None = Field(default=None, max_length=36)


class AppointmentUpdateRequest(AppointmentChanges):
    context: ProjectionContext = Field(default_factory=ProjectionContext)


class AppointmentCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    start: datetime
    end: datetime
    column: str = Field(min_length=1, max_length=36)
    location_id: str | None = Field(default=None, max_length=36)
    appointment_type_id: str | None = Field(default=None, max_length=36)
    patient_id: str | None = Field(default=None, max_length=36)
    context: ProjectionContext = Field(default_factory=ProjectionContext)

    @field_validator("start", "end")
    @classmethod
    def normalize_timezone(cls, value: datetime) -> datetime:
        return practice_local(value)

    @model_validator(mode="after")
    def validate_time_order(self) -> "AppointmentCreate":
        if self.end <= self.start:
            raise ValueError("End time must be after start time")
        return self


class BlockedSlotChanges(TimeRangeChanges):
    practitioner_id: str | None = Field(default=None, min_length=1, max_length=36)


class BlockedSlotUpdateRequest(BlockedSlotChanges):
    context: ProjectionContext = Field(default_factory=ProjectionContext)


class BlockedSlotCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    start: datetime
    end: datetime
    practitioner_id: str = Field(min_length=1, max_length=36)
    location_id: str | None = Field(default=None, max_length=36)
    context: ProjectionContext = Field(default_factory=ProjectionContext)

    @field_validator("start", "end")
    @classmethod
    def normalize_timezone(cls, value: datetime) -> datetime:
        return practice_local(value)

    @model_validator(mode="after")
    def validate_time_order(self) -> "BlockedSlotCreate":
        if self.end <= self.start:
            raise ValueError("End time must be after start time")
        return self


class WriteResult(BaseModel):
    id: str
    forked: bool = False
    replaces_id: str | None = None

    model_config = {"from_attributes": True}


class SimulationResetOut(BaseModel):
    appointments_deleted: int
    blocked_slots_deleted: int
