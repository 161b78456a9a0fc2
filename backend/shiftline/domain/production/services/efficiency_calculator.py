"""
Efficiency Calculator

Display metrics of the hourly production board. Percentages are rounded half-up
to two decimals with ``Decimal`` so ``12.345`` shows as ``12.35%``.
"""

from collections.abc import Sequence
from decimal import ROUND_HALF_UP, Decimal

from ...shared.exceptions import ValidationError
from ..value_objects.reports import SlotReportRow
from ..value_objects.time_table import TimeTable

NOT_APPLICABLE = "N/A"
_TWO_PLACES = Decimal("0.01")


def slot_efficiency(output: int, target: int) -> str:
    """Output as a percentage of target, or ``"N/A"`` when there is no target."""
    if target == 0:
        return NOT_APPLICABLE
    percentage = Decimal(output) * 100 / Decimal(target)
    return f"{percentage.quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)}%"


def cumulative_efficiency(
    outputs: Sequence[int], targets: Sequence[int], index: int
) -> str:
    """Efficiency of the shift so far: outputs and targets summed over slots ``0..index``."""
    if len(outputs) != len(targets):
        raise ValidationError(
            "outputs", len(outputs), "Outputs and targets must have the same length"
        )
    if not 0 <= index < len(targets):
        raise ValidationError("index", index, "Slot index out of range")
    return slot_efficiency(sum(outputs[: index + 1]), sum(targets[: index + 1]))


def slot_report(
    table: TimeTable, outputs: Sequence[int], targets: Sequence[int]
) -> list[SlotReportRow]:
    """One board row per slot with hourly and cumulative efficiency."""
    if not len(table.slots) == len(outputs) == len(targets):
        raise ValidationError(
            "outputs", len(outputs), "Outputs and targets must align with the time-table"
        )
    return [
        SlotReportRow(
            slot=slot,
            target=targets[index],
            output=outputs[index],
            efficiency=slot_efficiency(outputs[index], targets[index]),
            cumulative_efficiency=cumulative_efficiency(outputs, targets, index),
        )
        for index, slot in enumerate(table.slots)
    ]
