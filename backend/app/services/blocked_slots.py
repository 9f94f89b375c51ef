"""Blocked-slot sources and the merge that reconciles them.

Three sources feed the calendar's blocked view: the rule evaluator, recurring
breaks from base schedules, and manual blocks stored by users. Each source is
expanded to one entry per (column, slot); ``merge_blocked_slots`` then keeps a
single entry per key with manual entries taking precedence.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime
import logging

from app.core.config import get_settings
from app.core.exceptions import InvalidTimeFormatError
from app.models.blocked_slot import BlockedSlot
from app.schemas.calendar import BlockedInterval, ResourceColumn, RuleBlockedSlot, WorkingPractitioner
from app.services.time_grid import TimeSlotGrid, datetime_to_slot, duration_to_slots, time_to_slot

logger = logging.getLogger(__name__)


def _in_grid(slot: int, grid: TimeSlotGrid) -> bool:
    return 0 <= slot < grid.total_slots


def merge_blocked_slots(
    rule_blocks: Iterable[BlockedInterval],
    break_blocks: Iterable[BlockedInterval],
    manual_blocks: Iterable[BlockedInterval],
) -> list[BlockedInterval]:
    merged: dict[tuple[str, int], BlockedInterval] = {}
    for source in (rule_blocks, break_blocks, manual_blocks):
        for block in source:
            key = (block.column, block.slot)
            existing = merged.get(key)
            # A manual entry replaces a derived one; otherwise the first entry stays.
            if existing is None or (existing.is_manual is not True and block.is_manual is True):
                merged[key] = block
    return list(merged.values())


def rule_blocks_to_intervals(rule_blocks: Iterable[RuleBlockedSlot], grid: TimeSlotGrid) -> list[BlockedInterval]:
    intervals: list[BlockedInterval] = []
    for rule_block in rule_blocks:
        try:
            slot = time_to_slot(rule_block.time, grid)
        except InvalidTimeFormatError as exc:
            logger.warning("Skipping rule block for %s: %s", rule_block.practitioner_id, exc.message)
            continue
        if not _in_grid(slot, grid):
            continue
        intervals.append(
            BlockedInterval(
                column=rule_block.practitioner_id,
                slot=slot,
                reason=rule_block.reason,
                blocked_by_rule_id=rule_block.blocked_by_rule_id,
                id=rule_block.blocked_by_blocked_slot_id,
            )
        )
    return intervals


def expand_break_blocks(
    working_practitioners: Sequence[WorkingPractitioner],
    grid: TimeSlotGrid,
) -> list[BlockedInterval]:
    reason = get_settings().break_reason
    intervals: list[BlockedInterval] = []
    for practitioner in working_practitioners:
        for break_time in practitioner.break_times:
            try:
                start_slot = time_to_slot(break_time.start, grid)
                end_slot = time_to_slot(break_time.end, grid)
            except InvalidTimeFormatError as exc:
                logger.warning("Skipping break for %s: %s", practitioner.name, exc.message)
                continue
            for slot in range(max(0, start_slot), min(grid.total_slots, end_slot)):
                intervals.append(BlockedInterval(column=practitioner.id, slot=slot, reason=reason))
    return intervals


def _duration_minutes(start: datetime, end: datetime) -> int:
    return round((end - start).total_seconds() / 60)


def expand_manual_blocks(
    records: Iterable[BlockedSlot],
    grid: TimeSlotGrid,
    columns: Sequence[ResourceColumn],
) -> list[BlockedInterval]:
    column_ids = {column.id for column in columns}
    intervals: list[BlockedInterval] = []
    for record in records:
        if record.practitioner_id not in column_ids:
            continue
        start_slot = datetime_to_slot(record.start, grid)
        duration = _duration_minutes(record.start, record.end)
        # Measured from the start so blocks running past midnight keep their slots.
        end_slot = start_slot + duration_to_slots(duration, grid.slot_duration_minutes)
        for slot in range(max(0, start_slot), min(grid.total_slots, end_slot)):
            intervals.append(
                BlockedInterval(
                    column=record.practitioner_id,
                    slot=slot,
                    is_manual=True,
                    id=record.id,
                    reason=record.title,
                    title=record.title,
                    duration=duration,
                    start_slot=start_slot,
                    is_simulation=record.is_simulation,
                )
            )
    return intervals
