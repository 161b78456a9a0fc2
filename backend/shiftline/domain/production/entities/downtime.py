"""Downtime record entity and the style-changeover checklist."""

from datetime import datetime
from typing import Any

from pydantic import Field

from ...shared.base import Entity, ValueObject
from ..value_objects.enums import (
    ChangeoverStep,
    DowntimeCategory,
    DowntimeResolution,
    DowntimeStatus,
)


def step_fields(step: ChangeoverStep) -> tuple[str, str]:
    """Record field names holding the completing actor and timestamp of ``step``."""
    return f"{step.value}_by", f"{step.value}_at"


class ChecklistEntry(ValueObject):
    """Completion state of one changeover step."""

    step: ChangeoverStep
    completed_by: str | None = None
    completed_at: datetime | None = None

    @property
    def is_complete(self) -> bool:
        return self.completed_at is not None


class ChangeoverChecklist(ValueObject):
    """The four sign-offs a style changeover needs before the line runs the next style."""

    entries: tuple[ChecklistEntry, ...]

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "ChangeoverChecklist":
        entries = []
        for step in ChangeoverStep:
            by_field, at_field = step_fields(step)
            entries.append(
                ChecklistEntry(
                    step=step,
                    completed_by=record.get(by_field),
                    completed_at=record.get(at_field),
                )
            )
        return cls(entries=tuple(entries))

    def entry(self, step: ChangeoverStep) -> ChecklistEntry:
        return next(e for e in self.entries if e.step == step)

    def is_complete(self, step: ChangeoverStep) -> bool:
        return self.entry(step).is_complete

    @property
    def pending_steps(self) -> list[ChangeoverStep]:
        return [e.step for e in self.entries if not e.is_complete]


def all_steps_complete(checklist: ChangeoverChecklist) -> bool:
    """A changeover is finished when every checklist step has been signed off."""
    return all(entry.is_complete for entry in checklist.entries)


class DowntimeRecord(Entity):
    """
    A period during which the line is not producing as planned.

    Category-specific fields are optional: machine downtime carries the machine
    and mechanic acknowledgement, style changeovers carry the style pair, target
    and checklist (stored flat as ``<step>_by`` / ``<step>_at``), supply and
    generic downtime carry only a reason.
    """

    session_id: str
    line_id: str
    category: DowntimeCategory
    reason: str = ""
    comments: str = ""
    status: DowntimeStatus = DowntimeStatus.OPEN
    start_time: datetime
    end_time: datetime | None = None
    reported_by: str | None = None
    resolved_by: str | None = None
    resolution: DowntimeResolution | None = None
    resolution_comments: str | None = None

    # Machine downtime
    machine_id: str | None = None
    mechanic_id: str | None = None
    mechanic_acknowledged: bool = False
    acknowledged_by: str | None = None
    acknowledged_at: datetime | None = None

    # Style changeover
    current_style_id: str | None = None
    next_style_id: str | None = None
    target: int | None = Field(default=None, ge=0)
    machine_setup_by: str | None = None
    machine_setup_at: datetime | None = None
    people_allocated_by: str | None = None
    people_allocated_at: datetime | None = None
    first_unit_off_line_by: str | None = None
    first_unit_off_line_at: datetime | None = None
    qc_approved_by: str | None = None
    qc_approved_at: datetime | None = None

    @property
    def is_open(self) -> bool:
        return self.status == DowntimeStatus.OPEN

    @property
    def checklist(self) -> ChangeoverChecklist:
        return ChangeoverChecklist.from_record(self.model_dump())

    def duration_minutes(self, now: datetime | None = None) -> float:
        """Elapsed downtime; open records run until ``now`` (zero if no ``now`` given)."""
        end = self.end_time or now
        if end is None:
            return 0.0
        return max((end - self.start_time).total_seconds() / 60, 0.0)
