from __future__ import annotations

from collections.abc import Iterable

from app.schemas.calendar import ScheduledAppointment
from app.services.collision import column_ranges, has_collision
from app.services.time_grid import SLOT_DURATION_MINUTES, duration_to_slots


def _clamp_start(slot: int, duration_slots: int, total_slots: int) -> int:
    return max(0, min(total_slots - duration_slots, slot))


def find_nearest_free(
    column: str,
    target_slot: int,
    duration_minutes: int,
    appointments: Iterable[ScheduledAppointment],
    total_slots: int,
    exclude_id: str | None = None,
    *,
    slot_minutes: int = SLOT_DURATION_MINUTES,
) -> int:
    """Snap a drop target to the closest start that does not collide.

    Candidates are probed by growing distance, the earlier slot before the later
    one. When the whole column is taken the clamped target is returned, so the
    caller has to re-check the result if it needs a guaranteed free slot.
    """
    appointments = list(appointments)
    duration_slots = duration_to_slots(duration_minutes, slot_minutes)

    def is_free(slot: int) -> bool:
        return not has_collision(column, slot, duration_minutes, appointments, exclude_id, slot_minutes=slot_minutes)

    if is_free(target_slot):
        return _clamp_start(target_slot, duration_slots, total_slots)

    def in_bounds(slot: int) -> bool:
        return slot >= 0 and slot + duration_slots <= total_slots

    for distance in range(0, total_slots + 1):
        slot_above = target_slot - distance
        if in_bounds(slot_above) and is_free(slot_above):
            return _clamp_start(slot_above, duration_slots, total_slots)
        if distance > 0:
            slot_below = target_slot + distance
            if in_bounds(slot_below) and is_free(slot_below):
                return _clamp_start(slot_below, duration_slots, total_slots)

    return _clamp_start(target_slot, duration_slots, total_slots)


def max_available_duration(
    column: str,
    start_slot: int,
    appointments: Iterable[ScheduledAppointment],
    total_slots: int,
    *,
    slot_minutes: int = SLOT_DURATION_MINUTES,
) -> int:
    ranges = sorted(
        (slot_range for _, slot_range in column_ranges(column, appointments, slot_minutes=slot_minutes)),
        key=lambda slot_range: slot_range.start,
    )
    next_occupied = next((slot_range for slot_range in ranges if slot_range.start > start_slot), None)
    if next_occupied is not None:
        available_slots = next_occupied.start - start_slot
    else:
        available_slots = total_slots - start_slot
    return max(slot_minutes, available_slots * slot_minutes)
