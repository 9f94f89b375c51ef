"""Assembly of one calendar day in slot coordinates.

The day view combines the derived working schedule with the stored
appointments and blocked slots for the selected location. With a simulated
context, simulation records are included and the real records they replace
are hidden.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
import logging
from zoneinfo import ZoneInfo

from app.core.config import get_settings
from app.models.appointment import Appointment
from app.models.blocked_slot import BlockedSlot
from app.schemas.calendar import (
    CalendarDayOut,
    CalendarDayRequest,
    GridOut,
    PlacementOut,
    PlacementRequest,
    ScheduledAppointment,
    SimulatedContext,
)
from app.services.blocked_slots import (
    expand_break_blocks,
    expand_manual_blocks,
    merge_blocked_slots,
    rule_blocks_to_intervals,
)
from app.services.calendar_store import SqlAlchemyCalendarStore
from app.services.collision import has_collision
from app.services.resources import column_id, record_resource_ref
from app.services.schedule_deriver import DerivedSchedule, derive_schedule
from app.services.simulation import combine_for_simulation_scope
from app.services.slot_search import find_nearest_free, max_available_duration
from app.services.time_grid import TimeSlotGrid, current_time_slot, day_of_week, safe_time_to_slot, slot_to_time

logger = logging.getLogger(__name__)


@dataclass
class DayRecords:
    schedule: DerivedSchedule
    appointments: list[Appointment]
    blocked_slots: list[BlockedSlot]


def effective_location_id(location_id: str | None, simulated_context: SimulatedContext | None) -> str | None:
    if simulated_context is not None and simulated_context.location_id:
        return simulated_context.location_id
    return location_id


def load_day(
    store: SqlAlchemyCalendarStore,
    day: date,
    location_id: str | None,
    simulated_context: SimulatedContext | None,
) -> DayRecords:
    schedule = derive_schedule(
        store.list_base_schedules(),
        day_of_week(day),
        location_id=location_id,
        simulated_location_id=simulated_context.location_id if simulated_context else None,
        practitioner_names=store.practitioner_names(),
    )
    location = effective_location_id(location_id, simulated_context)
    in_simulation = simulated_context is not None
    appointments = store.list_appointments(day, location, include_simulation=in_simulation)
    blocked_slots = store.list_blocked_slots(day, location, include_simulation=in_simulation)
    if in_simulation:
        # Forks moved to another day or location still hide their original.
        appointments = combine_for_simulation_scope(
            appointments, "replaces_appointment_id", store.replaced_appointment_ids()
        )
        blocked_slots = combine_for_simulation_scope(
            blocked_slots, "replaces_blocked_slot_id", store.replaced_blocked_slot_ids()
        )
    return DayRecords(schedule=schedule, appointments=appointments, blocked_slots=blocked_slots)


def to_scheduled_appointment(appointment: Appointment, grid: TimeSlotGrid) -> ScheduledAppointment:
    start_time = appointment.start.strftime("%H:%M")
    return ScheduledAppointment(
        id=appointment.id,
        column=column_id(record_resource_ref(appointment.practitioner_id, appointment.resource)),
        start_slot=safe_time_to_slot(start_time, grid),
        start_time=start_time,
        duration=round((appointment.end - appointment.start).total_seconds() / 60),
        title=appointment.title,
        is_simulation=appointment.is_simulation,
        replaces_id=appointment.replaces_appointment_id,
        practitioner_id=appointment.practitioner_id,
        location_id=appointment.location_id,
        patient_id=appointment.patient_id,
        appointment_type_id=appointment.appointment_type_id,
    )


def practice_now() -> datetime:
    return datetime.now(ZoneInfo(get_settings().practice_timezone)).replace(tzinfo=None)


def build_calendar_day(store: SqlAlchemyCalendarStore, request: CalendarDayRequest) -> CalendarDayOut:
    records = load_day(store, request.day, request.location_id, request.simulated_context)
    schedule = records.schedule
    grid = schedule.grid

    appointments = [to_scheduled_appointment(appointment, grid) for appointment in records.appointments]
    blocked = merge_blocked_slots(
        rule_blocks_to_intervals(request.rule_blocks, grid),
        expand_break_blocks(schedule.working_practitioners, grid),
        expand_manual_blocks(records.blocked_slots, grid, schedule.columns),
    )
    logger.debug(
        "Built calendar day %s with %d appointments and %d blocked slots",
        request.day,
        len(appointments),
        len(blocked),
    )

    return CalendarDayOut(
        day=request.day,
        grid=GridOut(
            business_start_hour=grid.business_start_hour,
            business_end_hour=grid.business_end_hour,
            total_slots=grid.total_slots,
            slot_duration_minutes=grid.slot_duration_minutes,
        ),
        columns=schedule.columns,
        working_practitioners=schedule.working_practitioners,
        appointments=appointments,
        blocked_slots=blocked,
        current_slot=current_time_slot(practice_now(), request.day, grid),
        warnings=schedule.warnings,
    )


def resolve_placement(store: SqlAlchemyCalendarStore, request: PlacementRequest) -> PlacementOut:
    records = load_day(store, request.day, request.location_id, request.simulated_context)
    grid = records.schedule.grid
    appointments = [to_scheduled_appointment(appointment, grid) for appointment in records.appointments]
    slot_minutes = grid.slot_duration_minutes

    slot = find_nearest_free(
        request.column,
        request.target_slot,
        request.duration,
        appointments,
        grid.total_slots,
        request.appointment_id,
        slot_minutes=slot_minutes,
    )
    others = [appointment for appointment in appointments if appointment.id != request.appointment_id]
    return PlacementOut(
        slot=slot,
        start_time=slot_to_time(slot, grid),
        has_collision=has_collision(
            request.column, slot, request.duration, others, slot_minutes=slot_minutes
        ),
        max_available_duration=max_available_duration(
            request.column, request.target_slot, others, grid.total_slots, slot_minutes=slot_minutes
        ),
    )
