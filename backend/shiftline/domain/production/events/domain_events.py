"""
Domain Events

Events published after a state transition has been written to the store.
Subscribers (UI refresh, dashboards) learn about changes through the event bus
instead of store-level push subscriptions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import UUID, uuid4


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class DomainEvent:
    """Base class for all domain events."""

    event_id: UUID = field(default_factory=uuid4, kw_only=True)
    occurred_at: datetime = field(default_factory=_now, kw_only=True)


@dataclass(frozen=True)
class SessionStarted(DomainEvent):
    """Raised when a shift session opens on a line."""

    session_id: str
    line_id: str
    supervisor_id: str
    style_id: str
    hourly_target: int


@dataclass(frozen=True)
class SessionEnded(DomainEvent):
    """Raised when a shift session closes; lists the downtimes it closed."""

    session_id: str
    line_id: str
    end_time: datetime
    closed_downtime_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class UnitRecorded(DomainEvent):
    """Raised when a unit is posted against a slot."""

    session_id: str
    slot_id: str
    units_produced: int
    balance: int


@dataclass(frozen=True)
class OutputAdjusted(DomainEvent):
    """Raised when a scrapped reject is subtracted from a slot's output."""

    session_id: str
    slot_id: str
    units: int
    reject_id: str


@dataclass(frozen=True)
class DowntimeSubmitted(DomainEvent):
    """Raised when a downtime record is opened."""

    record_id: str
    session_id: str
    category: str


@dataclass(frozen=True)
class DowntimeAcknowledged(DomainEvent):
    """Raised when a mechanic acknowledges a machine downtime."""

    record_id: str
    session_id: str
    mechanic_id: str


@dataclass(frozen=True)
class ChangeoverStepCompleted(DomainEvent):
    """Raised when a style-changeover checklist step is signed off."""

    record_id: str
    session_id: str
    step: str
    completed_by: str


@dataclass(frozen=True)
class DowntimeClosed(DomainEvent):
    """Raised when a downtime record reaches its closed status."""

    record_id: str
    session_id: str
    category: str
    resolution: str
    end_time: datetime


@dataclass(frozen=True)
class QualityEventSubmitted(DomainEvent):
    """Raised when a reject or rework is booked."""

    record_id: str
    session_id: str
    kind: str
    count: int


@dataclass(frozen=True)
class QualityEventDisposed(DomainEvent):
    """Raised when QC disposes of a reject or rework."""

    record_id: str
    session_id: str
    kind: str
    action: str
    new_status: str
    created_reject_id: str | None = None


@dataclass(frozen=True)
class AttendanceEventSubmitted(DomainEvent):
    """Raised when a late or absent record is opened."""

    record_id: str
    session_id: str
    kind: str
    employee_id: str


@dataclass(frozen=True)
class AttendanceEventResolved(DomainEvent):
    """Raised when a late or absent record is resolved."""

    record_id: str
    session_id: str
    kind: str
    new_status: str
    created_absent_id: str | None = None


@dataclass(frozen=True)
class ActiveSlotChanged(DomainEvent):
    """Raised by the slot ticker when the wall clock moves into another slot."""

    time_table_id: str
    previous_slot_id: str | None
    slot_id: str | None


@dataclass(frozen=True)
class MetricsRefreshed(DomainEvent):
    """Raised by the metrics poller after a successful recompute."""

    session_id: str
    rejects: int
    reworks: int
    late: int
    absent: int


@dataclass(frozen=True)
class MetricsRefreshFailed(DomainEvent):
    """Raised by the metrics poller when the store could not be read."""

    session_id: str
    reason: str
