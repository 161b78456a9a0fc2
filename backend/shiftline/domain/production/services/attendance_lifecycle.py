"""
Attendance Lifecycle

Late and absent employees on a session:

- late: ``open -> arrived | absent``; a late employee who never turns up
  produces a new absent record, the late record itself stays a late record
- absent: ``open -> returned`` once the employee is back
"""

import logging
from datetime import date
from typing import Any

from ...shared.clock import Clock
from ...shared.events import EventPublisher
from ...shared.exceptions import (
    AlreadyResolved,
    BusinessRuleError,
    DuplicateKeyError,
    EntityNotFoundError,
    ValidationError,
)
from ..entities.attendance_event import AttendanceEventRecord
from ..entities.session import Session
from ..events.domain_events import AttendanceEventResolved, AttendanceEventSubmitted
from ..repositories.record_store import ATTENDANCE, RecordStore
from ..repositories.reference_registry import ReferenceRegistry
from ..value_objects.enums import AttendanceKind, AttendanceStatus, LateOutcome, Role
from .base import ShiftService
from .verification_gate import VerificationGate

logger = logging.getLogger(__name__)

_OPEN = {"status": AttendanceStatus.OPEN.value}


class AttendanceLifecycle(ShiftService):
    """Supervisor-verified handling of late and absent employees."""

    def __init__(
        self,
        store: RecordStore,
        registry: ReferenceRegistry,
        gate: VerificationGate,
        publisher: EventPublisher | None = None,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(store, publisher, clock)
        self._registry = registry
        self._gate = gate

    async def submit_late(
        self,
        session: Session,
        employee_id: str,
        reason: str,
        comments: str = "",
        reported_by: str | None = None,
    ) -> AttendanceEventRecord:
        """Record an employee who has not arrived for the shift yet."""
        return await self._submit(
            session,
            AttendanceKind.LATE,
            employee_id,
            reason,
            reported_by,
            {"comments": comments, "start_date": self._now().date()},
        )

    async def submit_absent(
        self,
        session: Session,
        employee_id: str,
        reason: str,
        start_date: date,
        end_date: date,
        comments: str = "",
        reported_by: str | None = None,
    ) -> AttendanceEventRecord:
        """
        Record an absence over ``start_date .. end_date``.

        Raises:
            ValidationError: If the end date precedes the start date
        """
        if end_date < start_date:
            raise ValidationError(
                "end_date", end_date.isoformat(), "End date cannot be before start date"
            )
        return await self._submit(
            session,
            AttendanceKind.ABSENT,
            employee_id,
            reason,
            reported_by,
            {"comments": comments, "start_date": start_date, "end_date": end_date},
        )

    async def resolve_late(
        self,
        record_id: str,
        outcome: LateOutcome,
        identifier: str,
        credential: str,
        comments: str | None = None,
    ) -> AttendanceEventRecord:
        """
        Supervisor resolves a late record as arrived or absent.

        An ``absent`` outcome creates one absent record for the same employee
        starting today; the absence can be looked up with ``absence_from``.
        Retrying an ``absent`` resolution whose absence was never written
        creates it.

        Raises:
            VerificationFailed: If the supervisor does not verify
            AlreadyResolved: If the late record was already resolved and
                nothing is left to finish
        """
        supervisor = await self._gate.require(Role.SUPERVISOR, identifier, credential)
        record = await self._get(record_id)
        if record.kind != AttendanceKind.LATE:
            raise BusinessRuleError(
                "Only late records resolve as arrived or absent", {"record_id": record_id}
            )

        status = (
            AttendanceStatus.ARRIVED
            if outcome == LateOutcome.ARRIVED
            else AttendanceStatus.ABSENT
        )
        if record.is_open:
            updated = await self._store.update(
                ATTENDANCE,
                record_id,
                {
                    "status": status.value,
                    "resolved_by": supervisor.id,
                    "resolution_comments": comments,
                    "end_date": self._now().date(),
                },
                expected=_OPEN,
            )
            if updated is None:
                raise AlreadyResolved(record_id)
            result = AttendanceEventRecord.from_record(updated)
        elif (
            record.status == AttendanceStatus.ABSENT
            and outcome == LateOutcome.ABSENT
            and await self.absence_from(record_id) is None
        ):
            # An earlier attempt marked the late record absent but lost the absence
            logger.warning("Completing interrupted absence for late record %s", record_id)
            result = record
        else:
            raise AlreadyResolved(record_id, record.status.value)

        absence: AttendanceEventRecord | None = None
        if outcome == LateOutcome.ABSENT:
            absence = await self._absence_from_late(result, supervisor.id)

        logger.info("Late record %s resolved as %s", record_id, status.value)
        await self._publish(
            AttendanceEventResolved(
                record_id=result.id,
                session_id=result.session_id,
                kind=result.kind.value,
                new_status=status.value,
                created_absent_id=absence.id if absence else None,
            )
        )
        return result

    async def mark_returned(
        self,
        record_id: str,
        return_date: date,
        identifier: str,
        credential: str,
        comments: str | None = None,
    ) -> AttendanceEventRecord:
        """
        Supervisor closes an absence once the employee is back.

        Raises:
            VerificationFailed: If the supervisor does not verify
            ValidationError: If the return date precedes the absence start
            AlreadyResolved: If the absence was already closed
        """
        supervisor = await self._gate.require(Role.SUPERVISOR, identifier, credential)
        record = await self._get(record_id)
        if record.kind != AttendanceKind.ABSENT:
            raise BusinessRuleError(
                "Only absent records can be marked returned", {"record_id": record_id}
            )
        if record.start_date and return_date < record.start_date:
            raise ValidationError(
                "return_date",
                return_date.isoformat(),
                "Return date cannot be before the start date",
            )
        if not record.is_open:
            raise AlreadyResolved(record_id, record.status.value)

        updated = await self._store.update(
            ATTENDANCE,
            record_id,
            {
                "status": AttendanceStatus.RETURNED.value,
                "return_date": return_date,
                "resolved_by": supervisor.id,
                "resolution_comments": comments,
            },
            expected=_OPEN,
        )
        if updated is None:
            raise AlreadyResolved(record_id)

        result = AttendanceEventRecord.from_record(updated)
        logger.info("Absence %s closed, employee returned %s", record_id, return_date)
        await self._publish(
            AttendanceEventResolved(
                record_id=result.id,
                session_id=result.session_id,
                kind=result.kind.value,
                new_status=AttendanceStatus.RETURNED.value,
            )
        )
        return result

    async def open_events(
        self, session: Session, kind: AttendanceKind
    ) -> list[AttendanceEventRecord]:
        """Open late or absent records of a session."""
        records = await self._store.query(
            ATTENDANCE,
            session_id=session.id,
            kind=kind.value,
            status=AttendanceStatus.OPEN.value,
        )
        return [AttendanceEventRecord.from_record(record) for record in records]

    async def absence_from(self, late_id: str) -> AttendanceEventRecord | None:
        """The absence created when a late record was resolved as absent."""
        records = await self._store.query(ATTENDANCE, source_late_id=late_id)
        return AttendanceEventRecord.from_record(records[0]) if records else None

    async def _submit(
        self,
        session: Session,
        kind: AttendanceKind,
        employee_id: str,
        reason: str,
        reported_by: str | None,
        extra: dict[str, Any],
    ) -> AttendanceEventRecord:
        if not reason:
            raise ValidationError("reason", reason, "A reason is required")
        current = await self._require_active(session)
        if not await self._registry.get_personnel(id=employee_id):
            raise EntityNotFoundError("Personnel", employee_id)

        record = await self._store.create(
            ATTENDANCE,
            {
                "kind": kind.value,
                "session_id": current.id,
                "line_id": current.line_id,
                "employee_id": employee_id,
                "reason": reason,
                "status": AttendanceStatus.OPEN.value,
                "reported_by": reported_by or current.supervisor_id,
                "resolved_by": None,
                "source_late_id": None,
                **extra,
            },
        )
        result = AttendanceEventRecord.from_record(record)
        logger.info("Recorded %s employee %s on session %s", kind.value, employee_id, current.id)
        await self._publish(
            AttendanceEventSubmitted(
                record_id=result.id,
                session_id=current.id,
                kind=kind.value,
                employee_id=employee_id,
            )
        )
        return result

    async def _absence_from_late(
        self, late: AttendanceEventRecord, supervisor_id: str
    ) -> AttendanceEventRecord:
        today = self._now().date()
        data: dict[str, Any] = {
            "kind": AttendanceKind.ABSENT.value,
            "session_id": late.session_id,
            "line_id": late.line_id,
            "employee_id": late.employee_id,
            "reason": late.reason,
            "comments": late.comments,
            "status": AttendanceStatus.OPEN.value,
            "reported_by": supervisor_id,
            "resolved_by": None,
            "start_date": today,
            "end_date": today,
            "source_late_id": late.id,
        }
        try:
            record = await self._store.create(
                ATTENDANCE, data, unique_key=f"late:{late.id}"
            )
        except DuplicateKeyError:
            existing = await self.absence_from(late.id)
            if existing is None:
                raise
            return existing
        return AttendanceEventRecord.from_record(record)
