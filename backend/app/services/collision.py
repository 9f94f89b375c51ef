from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from app.schemas.calendar import ScheduledAppointment
from app.services.time_grid import SLOT_DURATION_MINUTES, duration_to_slots


@dataclass(frozen=True)
class SlotRange:
    start: int
    end: int


def intervals_overlap(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    # Half-open ranges: touching ends do not overlap.
    return not (a_end <= b_start or a_start >= b_end)


def appointment_slot_range(appointment: ScheduledAppointment, slot_minutes: int = SLOT_DURATION_MINUTES) -> SlotRange:
    start = appointment.start_slot
    return SlotRange(start=start, end=start + duration_to_slots(appointment.duration, slot_minutes))


def column_ranges(
    column: str,
    appointments: Iterable[ScheduledAppointment],
    *,
    exclude_id: str | None = None,
    slot_minutes: int = SLOT_DURATION_MINUTES,
) -> list[tuple[ScheduledAppointment, SlotRange]]:
    return [
        (appointment, appointment_slot_range(appointment, slot_minutes))
        for appointment in appointments
        if appointment.column == column and (exclude_id is None or appointment.id != exclude_id)
    ]


def has_collision(
    column: str,
    start_slot: int,
    duration_minutes: int,
    appointments: Iterable[ScheduledAppointment],
    exclude_id: str | None = None,
    *,
    slot_minutes: int = SLOT_DURATION_MINUTES,
) -> bool:
    end_slot = start_slot + duration_to_slots(duration_minutes, slot_minutes)
    return any(
        intervals_overlap(start_slot, end_slot, slot_range.start, slot_range.end)
        for _, slot_range in column_ranges(column, appointments, exclude_id=exclude_id, slot_minutes=slot_minutes)
    )


def has_move_collision(
    appointment: ScheduledAppointment,
    target_column: str,
    target_slot: int,
    appointments: Iterable[ScheduledAppointment],
    *,
    slot_minutes: int = SLOT_DURATION_MINUTES,
) -> bool:
    return has_collision(
        target_column,
        target_slot,
        appointment.duration,
        appointments,
        appointment.id,
        slot_minutes=slot_minutes,
    )


def has_resize_collision(
    appointment: ScheduledAppointment,
    new_duration: int,
    appointments: Iterable[ScheduledAppointment],
    *,
    slot_minutes: int = SLOT_DURATION_MINUTES,
) -> bool:
    return has_collision(
        appointment.column,
        appointment.start_slot,
        new_duration,
        appointments,
        appointment.id,
        slot_minutes=slot_minutes,
    )


def overlapping_appointments(
    column: str,
    start_slot: int,
    end_slot: int,
    appointments: Iterable[ScheduledAppointment],
    *,
    slot_minutes: int = SLOT_DURATION_MINUTES,
) -> list[ScheduledAppointment]:
    return [
        appointment
        for appointment, slot_range in column_ranges(column, appointments, slot_minutes=slot_minutes)
        if intervals_overlap(start_slot, end_slot, slot_range.start, slot_range.end)
    ]


def find_available_slots(
    column: str,
    duration_minutes: int,
    appointments: Iterable[ScheduledAppointment],
    total_slots: int,
    *,
    slot_minutes: int = SLOT_DURATION_MINUTES,
) -> list[int]:
    appointments = list(appointments)
    slots_needed = duration_to_slots(duration_minutes, slot_minutes)
    return [
        slot
        for slot in range(0, total_slots - slots_needed + 1)
        if not has_collision(column, slot, duration_minutes, appointments, slot_minutes=slot_minutes)
    ]


def find_next_available_slot(
    column: str,
    start_slot: int,
    duration_minutes: int,
    appointments: Iterable[ScheduledAppointment],
    total_slots: int,
    *,
    slot_minutes: int = SLOT_DURATION_MINUTES,
) -> int | None:
    appointments = list(appointments)
    slots_needed = duration_to_slots(duration_minutes, slot_minutes)
    for slot in range(max(0, start_slot), total_slots - slots_needed + 1):
        if not has_collision(column, slot, duration_minutes, appointments, slot_minutes=slot_minutes):
            return slot
    return None
