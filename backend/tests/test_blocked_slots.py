from datetime import datetime

from app.models.blocked_slot import BlockedSlot
from app.schemas.calendar import BlockedInterval, BreakTimeBase, ResourceColumn, RuleBlockedSlot, WorkingPractitioner
from app.services.blocked_slots import (
    expand_break_blocks,
    expand_manual_blocks,
    merge_blocked_slots,
    rule_blocks_to_intervals,
)
from app.services.time_grid import TimeSlotGrid

GRID = TimeSlotGrid(business_start_hour=8, business_end_hour=17)
COLUMNS = [ResourceColumn(id="p1", title="Dr. Weber"), ResourceColumn(id="ekg", title="EKG")]


def manual_record(record_id="m1", practitioner_id="p1", start=(8, 15), end=(8, 30), is_simulation=False):
    return BlockedSlot(
        id=record_id,
        title="Team meeting",
        start=datetime(2026, 3, 3, *start),
        end=datetime(2026, 3, 3, *end),
        practitioner_id=practitioner_id,
        location_id="loc-1",
        practice_id="practice-1",
        is_simulation=is_simulation,
    )


def test_manual_entry_replaces_rule_entry():
    rule = [BlockedInterval(column="p1", slot=3, reason="R")]
    manual = [BlockedInterval(column="p1", slot=3, is_manual=True, id="m1")]

    merged = merge_blocked_slots(rule, [], manual)

    assert len(merged) == 1
    assert merged[0].id == "m1"
    assert merged[0].is_manual is True


def test_first_non_manual_entry_wins():
    rule = [BlockedInterval(column="p1", slot=3, reason="Rule")]
    breaks = [BlockedInterval(column="p1", slot=3, reason="Pause")]
    merged = merge_blocked_slots(rule, breaks, [])
    assert [block.reason for block in merged] == ["Rule"]


def test_first_manual_entry_wins_over_later_manual_entry():
    manual = [
        BlockedInterval(column="p1", slot=3, is_manual=True, id="m1"),
        BlockedInterval(column="p1", slot=3, is_manual=True, id="m2"),
    ]
    merged = merge_blocked_slots([], [], manual)
    assert [block.id for block in merged] == ["m1"]


def test_merge_keeps_distinct_keys_and_is_repeatable():
    rule = [BlockedInterval(column="p1", slot=1), BlockedInterval(column="p2", slot=1)]
    breaks = [BlockedInterval(column="p1", slot=2, reason="Pause")]
    manual = [BlockedInterval(column="p1", slot=1, is_manual=True, id="m1")]

    first = merge_blocked_slots(rule, breaks, manual)
    second = merge_blocked_slots(rule, breaks, manual)

    assert first == second
    assert {(block.column, block.slot) for block in first} == {("p1", 1), ("p2", 1), ("p1", 2)}
    assert len({(block.column, block.slot) for block in first}) == len(first)


def test_rule_blocks_are_placed_on_the_grid():
    rule_blocks = [
        RuleBlockedSlot(practitioner_id="p1", time="08:15", reason="No new patients", blocked_by_rule_id="r1"),
        RuleBlockedSlot(practitioner_id="p1", time="25:00"),
        RuleBlockedSlot(practitioner_id="p1", time="18:00"),
        RuleBlockedSlot(practitioner_id="p1", time="08:20", blocked_by_blocked_slot_id="m9"),
    ]

    intervals = rule_blocks_to_intervals(rule_blocks, GRID)

    assert [(item.column, item.slot) for item in intervals] == [("p1", 3), ("p1", 4)]
    assert intervals[0].blocked_by_rule_id == "r1"
    assert intervals[0].is_manual is False
    assert intervals[1].id == "m9"


def test_breaks_expand_to_every_slot():
    practitioner = WorkingPractitioner(
        id="p1",
        name="Dr. Weber",
        start_time="08:00",
        end_time="17:00",
        break_times=[BreakTimeBase(start="12:00", end="12:30")],
    )

    intervals = expand_break_blocks([practitioner], GRID)

    assert [item.slot for item in intervals] == [48, 49, 50, 51, 52, 53]
    assert {item.reason for item in intervals} == {"Pause"}


def test_malformed_break_is_skipped(caplog):
    practitioner = WorkingPractitioner(
        id="p1",
        name="Dr. Weber",
        start_time="08:00",
        end_time="17:00",
        break_times=[BreakTimeBase(start="lunch", end="12:30"), BreakTimeBase(start="16:50", end="17:30")],
    )
    with caplog.at_level("WARNING"):
        intervals = expand_break_blocks([practitioner], GRID)
    assert [item.slot for item in intervals] == [106, 107]
    assert "Skipping break for Dr. Weber" in caplog.text


def test_manual_blocks_cover_their_range():
    intervals = expand_manual_blocks([manual_record()], GRID, COLUMNS)

    assert [item.slot for item in intervals] == [3, 4, 5]
    first = intervals[0]
    assert first.is_manual is True
    assert first.id == "m1"
    assert first.title == "Team meeting"
    assert first.duration == 15
    assert first.start_slot == 3


def test_manual_blocks_outside_visible_columns_are_dropped():
    records = [manual_record(practitioner_id="p9"), manual_record(record_id="m2", start=(7, 50), end=(8, 10))]
    intervals = expand_manual_blocks(records, GRID, COLUMNS)
    assert [(item.id, item.slot) for item in intervals] == [("m2", 0), ("m2", 1)]
    assert intervals[0].start_slot == -2


def test_manual_block_running_to_midnight_keeps_its_slots():
    record = BlockedSlot(
        id="m3",
        title="Maintenance",
        start=datetime(2026, 3, 3, 16, 0),
        end=datetime(2026, 3, 4, 0, 0),
        practitioner_id="p1",
        location_id="loc-1",
        practice_id="practice-1",
        is_simulation=False,
    )

    intervals = expand_manual_blocks([record], GRID, COLUMNS)

    assert [item.slot for item in intervals] == list(range(96, 108))
    assert intervals[0].duration == 480
