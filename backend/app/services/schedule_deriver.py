from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
import logging
import math
from typing import Protocol

from app.core.config import get_settings
from app.core.exceptions import InvalidScheduleRecordError, InvalidTimeFormatError
from app.models.appointment import FixedResource
from app.schemas.calendar import ResourceColumn, WorkingPractitioner
from app.services.resources import fixed_resource_title
from app.services.time_grid import TimeSlotGrid, parse_time_to_minutes

UNKNOWN_PRACTITIONER = "Unknown"

logger = logging.getLogger(__name__)


class ScheduleRecord(Protocol):
    practitioner_id: str
    location_id: str
    day_of_week: int
    start_time: str
    end_time: str
    break_times: list


@dataclass
class DerivedSchedule:
    grid: TimeSlotGrid
    columns: list[ResourceColumn] = field(default_factory=list)
    working_practitioners: list[WorkingPractitioner] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def business_start_hour(self) -> int:
        return self.grid.business_start_hour

    @property
    def business_end_hour(self) -> int:
        return self.grid.business_end_hour

    @property
    def total_slots(self) -> int:
        return self.grid.total_slots


def _working_window(record: ScheduleRecord, practitioner_name: str) -> tuple[int, int]:
    try:
        return parse_time_to_minutes(record.start_time), parse_time_to_minutes(record.end_time)
    except InvalidTimeFormatError as exc:
        raise InvalidScheduleRecordError(practitioner_name, str(record.start_time), str(record.end_time)) from exc


def _break_times(record: ScheduleRecord) -> list[dict]:
    return [
        item
        for item in (record.break_times or [])
        if isinstance(item, dict) and isinstance(item.get("start"), str) and isinstance(item.get("end"), str)
    ]


def derive_schedule(
    schedules: Iterable[ScheduleRecord],
    day_of_week: int,
    *,
    location_id: str | None = None,
    simulated_location_id: str | None = None,
    practitioner_names: Mapping[str, str] | None = None,
) -> DerivedSchedule:
    settings = get_settings()
    names = practitioner_names or {}
    empty = DerivedSchedule(grid=TimeSlotGrid.empty(settings.slot_duration_minutes))

    day_schedules = [schedule for schedule in schedules if schedule.day_of_week == day_of_week]
    location_filter = simulated_location_id or location_id
    if location_filter:
        day_schedules = [schedule for schedule in day_schedules if schedule.location_id == location_filter]
    if not day_schedules:
        return empty

    working: list[WorkingPractitioner] = []
    windows: list[tuple[int, int]] = []
    warnings: list[str] = []
    for schedule in day_schedules:
        name = names.get(schedule.practitioner_id, UNKNOWN_PRACTITIONER)
        try:
            windows.append(_working_window(schedule, name))
        except InvalidScheduleRecordError as exc:
            logger.warning("Dropping base schedule: %s", exc.message)
            warnings.append(exc.message)
            continue
        working.append(
            WorkingPractitioner(
                id=schedule.practitioner_id,
                name=name,
                start_time=schedule.start_time,
                end_time=schedule.end_time,
                break_times=_break_times(schedule),
            )
        )

    dropped = len(day_schedules) - len(working)
    if dropped:
        warnings.append(f"{dropped} schedule{'s' if dropped > 1 else ''} with invalid times skipped")

    if not windows:
        empty.warnings = warnings
        return empty

    grid = TimeSlotGrid(
        business_start_hour=math.floor(min(start for start, _ in windows) / 60),
        business_end_hour=math.ceil(max(end for _, end in windows) / 60),
        slot_duration_minutes=settings.slot_duration_minutes,
    )
    if grid.is_empty:
        empty.warnings = warnings
        return empty

    columns: list[ResourceColumn] = []
    seen: set[str] = set()
    for practitioner in working:
        if practitioner.id in seen:
            continue
        seen.add(practitioner.id)
        columns.append(ResourceColumn(id=practitioner.id, title=practitioner.name))
    columns.extend(
        ResourceColumn(id=resource.value, title=fixed_resource_title(resource))
        for resource in (FixedResource.ekg, FixedResource.labor)
    )

    return DerivedSchedule(grid=grid, columns=columns, working_practitioners=working, warnings=warnings)
