"""
Downtime Summary

Pure aggregations over downtime records for the shift and factory dashboards.
Open records count up to ``now`` so a running breakdown shows in the totals.
"""

from collections import defaultdict
from collections.abc import Iterable
from datetime import datetime

from ...shared.base import ValueObject
from ..entities.downtime import DowntimeRecord
from ..value_objects.enums import DowntimeCategory


class DowntimeTotals(ValueObject):
    """Minutes lost per category and each category's share of the total."""

    minutes_by_category: dict[DowntimeCategory, float]
    total_minutes: float
    distribution: dict[DowntimeCategory, float]


class ReasonBreakdown(ValueObject):
    """Machine downtime grouped by reported reason."""

    reason: str
    count: int
    total_minutes: float


class MachineResponseStats(ValueObject):
    """How quickly mechanics respond to and repair machine breakdowns."""

    count: int
    total_minutes: float
    average_minutes: float
    average_response_minutes: float
    average_repair_minutes: float
    top_reasons: list[ReasonBreakdown]


def _minutes(start: datetime | None, end: datetime | None) -> float:
    if start is None or end is None:
        return 0.0
    return max((end - start).total_seconds() / 60, 0.0)


def summarize(records: Iterable[DowntimeRecord], now: datetime) -> DowntimeTotals:
    """Total downtime minutes per category, overall and as a percentage split."""
    minutes: dict[DowntimeCategory, float] = {category: 0.0 for category in DowntimeCategory}
    for record in records:
        minutes[record.category] += record.duration_minutes(now)

    total = sum(minutes.values())
    distribution = {
        category: round(value / total * 100, 2) if total else 0.0
        for category, value in minutes.items()
    }
    return DowntimeTotals(
        minutes_by_category=minutes,
        total_minutes=total,
        distribution=distribution,
    )


def machine_response_stats(
    records: Iterable[DowntimeRecord], top: int = 5
) -> MachineResponseStats:
    """
    Response (reported -> acknowledged) and repair (acknowledged -> closed)
    averages over closed machine downtime.

    Records missing either timestamp do not contribute to that average.
    """
    machine = [
        record
        for record in records
        if record.category == DowntimeCategory.MACHINE and not record.is_open
    ]

    responses: list[float] = []
    repairs: list[float] = []
    by_reason: dict[str, list[float]] = defaultdict(list)
    for record in machine:
        response = _minutes(record.start_time, record.acknowledged_at)
        repair = _minutes(record.acknowledged_at, record.end_time)
        if response > 0:
            responses.append(response)
        if repair > 0:
            repairs.append(repair)
        by_reason[record.reason or "Unknown"].append(record.duration_minutes())

    total = sum(sum(durations) for durations in by_reason.values())
    reasons = sorted(
        (
            ReasonBreakdown(reason=reason, count=len(durations), total_minutes=sum(durations))
            for reason, durations in by_reason.items()
        ),
        key=lambda breakdown: breakdown.total_minutes,
        reverse=True,
    )
    return MachineResponseStats(
        count=len(machine),
        total_minutes=total,
        average_minutes=total / len(machine) if machine else 0.0,
        average_response_minutes=sum(responses) / len(responses) if responses else 0.0,
        average_repair_minutes=sum(repairs) / len(repairs) if repairs else 0.0,
        top_reasons=reasons[:top],
    )
