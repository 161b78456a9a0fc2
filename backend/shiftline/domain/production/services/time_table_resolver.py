"""
Time-Table Resolver

Resolves which slot of a time-table is current and how many units each slot is
expected to produce once its break has been taken out.
"""

from collections.abc import Mapping
from datetime import datetime, time

from ..value_objects.time_table import Break, TimeSlot, TimeTable

BreakDirectory = Mapping[str, Break]


def active_slot(table: TimeTable, now: datetime | time) -> TimeSlot | None:
    """
    First slot, in configured order, whose ``[start, end)`` contains ``now``.

    ``now`` is compared at minute precision. A slot whose end is not after its
    start runs past midnight.
    """
    for slot in table.slots:
        if slot.contains(now):
            return slot
    return None


def target_for_slot(
    slot: TimeSlot, hourly_target: int, break_directory: BreakDirectory
) -> int:
    """
    Break-adjusted target of one slot.

    With a break of ``d`` minutes the target is ``ceil(T / 60 * (60 - d))``,
    computed in integers so no float rounding can shift the result, and never
    below zero. A slot without a break, or whose break id cannot be resolved,
    keeps the full hourly target.
    """
    if not slot.break_id:
        return hourly_target

    slot_break = break_directory.get(slot.break_id)
    if slot_break is None:
        return hourly_target

    working_minutes = 60 - slot_break.duration
    if working_minutes <= 0:
        return 0
    return max(-(-hourly_target * working_minutes // 60), 0)


def slot_targets(
    table: TimeTable, hourly_target: int, break_directory: BreakDirectory
) -> list[int]:
    """Targets of every slot, index-aligned to ``table.slots``."""
    return [
        target_for_slot(slot, hourly_target, break_directory) for slot in table.slots
    ]
