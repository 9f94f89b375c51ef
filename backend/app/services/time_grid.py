"""Conversions between time-of-day strings and slot indices on a day grid.

Slot 0 starts at ``business_start_hour``; every slot is ``slot_duration_minutes``
long. ``time_to_slot`` raises on malformed input, ``safe_time_to_slot`` is the
variant used while building views and falls back to slot 0.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
import logging
import math
import re
from zoneinfo import ZoneInfo

from app.core.exceptions import InvalidTimeFormatError

SLOT_DURATION_MINUTES = 5
MINUTES_PER_DAY = 24 * 60

TIME_PATTERN = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimeSlotGrid:
    business_start_hour: int
    business_end_hour: int
    slot_duration_minutes: int = SLOT_DURATION_MINUTES

    @property
    def is_empty(self) -> bool:
        return self.business_end_hour <= self.business_start_hour

    @property
    def total_slots(self) -> int:
        if self.is_empty:
            return 0
        return (self.business_end_hour - self.business_start_hour) * 60 // self.slot_duration_minutes

    @classmethod
    def empty(cls, slot_duration_minutes: int = SLOT_DURATION_MINUTES) -> "TimeSlotGrid":
        return cls(business_start_hour=0, business_end_hour=0, slot_duration_minutes=slot_duration_minutes)


def parse_time_to_minutes(value: str) -> int:
    if not isinstance(value, str):
        raise InvalidTimeFormatError(value)
    match = TIME_PATTERN.match(value.strip())
    if not match:
        raise InvalidTimeFormatError(value)
    return int(match.group(1)) * 60 + int(match.group(2))


def minutes_to_time(value: int) -> str:
    hours, minutes = divmod(value % MINUTES_PER_DAY, 60)
    return f"{hours:02d}:{minutes:02d}"


def duration_to_slots(duration_minutes: int, slot_minutes: int = SLOT_DURATION_MINUTES) -> int:
    return math.ceil(duration_minutes / slot_minutes)


def time_to_slot(time_of_day: str, grid: TimeSlotGrid) -> int:
    minutes_from_start = parse_time_to_minutes(time_of_day) - grid.business_start_hour * 60
    return minutes_from_start // grid.slot_duration_minutes


def safe_time_to_slot(time_of_day: str, grid: TimeSlotGrid) -> int:
    try:
        return time_to_slot(time_of_day, grid)
    except InvalidTimeFormatError as exc:
        logger.warning("%s; falling back to slot 0", exc.message)
        return 0


def slot_to_time(slot: int, grid: TimeSlotGrid) -> str:
    # No clamping here; values past midnight wrap around the clock.
    return minutes_to_time(grid.business_start_hour * 60 + slot * grid.slot_duration_minutes)


def datetime_to_slot(value: datetime, grid: TimeSlotGrid) -> int:
    return time_to_slot(value.strftime("%H:%M"), grid)


def day_of_week(value: date) -> int:
    """Weekday with Sunday as 0, matching stored base schedules."""
    return value.isoweekday() % 7


def current_time_slot(now: datetime, selected_date: date, grid: TimeSlotGrid) -> int | None:
    if grid.is_empty or now.date() != selected_date:
        return None
    minutes_from_start = now.hour * 60 + now.minute - grid.business_start_hour * 60
    if minutes_from_start < 0 or minutes_from_start >= grid.total_slots * grid.slot_duration_minutes:
        return None
    return minutes_from_start // grid.slot_duration_minutes


def to_wall_clock(value: datetime, timezone: str) -> datetime:
    """Practice-local naive datetime; naive input is taken as already local."""
    if value.tzinfo is None:
        return value
    return value.astimezone(ZoneInfo(timezone)).replace(tzinfo=None)
