"""
Downtime Lifecycle

State machines for the four downtime categories:

- supply and generic: ``open -> closed`` on a supervisor-verified resolve
- machine: ``open -> open (acknowledged by mechanic) -> closed`` by a supervisor
- style changeover: four checklist sign-offs; the record closes by itself once
  the last one lands

Every transition is a conditional write against the record's current status,
so a stale terminal gets a typed error instead of overwriting a newer state.
"""

import logging
from datetime import datetime
from typing import Any

from ...shared.clock import Clock
from ...shared.events import EventPublisher
from ...shared.exceptions import (
    AlreadyAcknowledged,
    AlreadyResolved,
    BusinessRuleError,
    EntityNotFoundError,
    NotAcknowledgedError,
    StepAlreadyComplete,
    ValidationError,
    VerificationFailed,
)
from ..entities.downtime import DowntimeRecord, all_steps_complete, step_fields
from ..entities.session import Session
from ..events.domain_events import (
    ChangeoverStepCompleted,
    DowntimeAcknowledged,
    DowntimeClosed,
    DowntimeSubmitted,
)
from ..repositories.record_store import DOWNTIME, RecordStore
from ..value_objects.enums import (
    ChangeoverStep,
    DowntimeCategory,
    DowntimeResolution,
    DowntimeStatus,
    Role,
)
from .base import ShiftService
from .verification_gate import VerificationGate

logger = logging.getLogger(__name__)

_OPEN = {"status": DowntimeStatus.OPEN.value}


class DowntimeLifecycle(ShiftService):
    """Submission, acknowledgement and closure of downtime records."""

    def __init__(
        self,
        store: RecordStore,
        gate: VerificationGate,
        publisher: EventPublisher | None = None,
        clock: Clock | None = None,
    ) -> None:
        """
        Initialize the downtime lifecycle.

        Args:
            store: Record store holding downtime records
            gate: Verification gate for mechanic, supervisor and QC sign-offs
            publisher: Optional event publisher
            clock: Wall-clock source
        """
        super().__init__(store, publisher, clock)
        self._gate = gate

    # Submission

    async def submit_machine(
        self,
        session: Session,
        machine_id: str,
        reason: str,
        comments: str = "",
        mechanic_id: str | None = None,
        reported_by: str | None = None,
    ) -> DowntimeRecord:
        """Open a machine downtime, optionally naming the mechanic called out."""
        if not machine_id:
            raise ValidationError("machine_id", machine_id, "A machine must be selected")
        return await self._submit(
            session,
            DowntimeCategory.MACHINE,
            reason,
            comments,
            reported_by,
            {
                "machine_id": machine_id,
                "mechanic_id": mechanic_id,
                "mechanic_acknowledged": False,
            },
        )

    async def submit_style_changeover(
        self,
        session: Session,
        current_style_id: str,
        next_style_id: str,
        target: int,
        comments: str = "",
        reported_by: str | None = None,
    ) -> DowntimeRecord:
        """Open a style changeover with an empty checklist."""
        if not next_style_id:
            raise ValidationError("next_style_id", next_style_id, "Next style is required")
        if current_style_id == next_style_id:
            raise ValidationError(
                "next_style_id", next_style_id, "Next style must differ from the current style"
            )
        if target < 0:
            raise ValidationError("target", target, "Target cannot be negative")

        checklist: dict[str, Any] = {}
        for step in ChangeoverStep:
            by_field, at_field = step_fields(step)
            checklist[by_field] = None
            checklist[at_field] = None

        return await self._submit(
            session,
            DowntimeCategory.STYLE_CHANGEOVER,
            "Style changeover",
            comments,
            reported_by,
            {
                "current_style_id": current_style_id,
                "next_style_id": next_style_id,
                "target": target,
                **checklist,
            },
        )

    async def submit_supply(
        self,
        session: Session,
        reason: str,
        comments: str = "",
        reported_by: str | None = None,
    ) -> DowntimeRecord:
        """Open a supply shortage downtime."""
        return await self._submit(
            session, DowntimeCategory.SUPPLY, reason, comments, reported_by, {}
        )

    async def submit_generic(
        self,
        session: Session,
        reason: str,
        comments: str = "",
        reported_by: str | None = None,
    ) -> DowntimeRecord:
        """Open a downtime that fits no other category."""
        return await self._submit(
            session, DowntimeCategory.GENERIC, reason, comments, reported_by, {}
        )

    # Transitions

    async def acknowledge(
        self, record_id: str, identifier: str, credential: str
    ) -> DowntimeRecord:
        """
        Mechanic acknowledges a machine downtime.

        Raises:
            VerificationFailed: If the mechanic does not verify, or is not the
                mechanic selected on the record
            AlreadyAcknowledged: If the downtime was already acknowledged
            AlreadyResolved: If the downtime is closed
        """
        mechanic = await self._gate.require(Role.MECHANIC, identifier, credential)
        record = await self._get(record_id)

        if record.category != DowntimeCategory.MACHINE:
            raise BusinessRuleError(
                "Only machine downtime is acknowledged by a mechanic",
                {"record_id": record_id, "category": record.category.value},
            )
        if record.mechanic_id and record.mechanic_id != mechanic.id:
            logger.info(
                "Mechanic %s is not the mechanic selected for downtime %s",
                mechanic.id,
                record_id,
            )
            raise VerificationFailed(Role.MECHANIC.value, identifier)
        if not record.is_open:
            raise AlreadyResolved(record_id, record.status.value)
        if record.mechanic_acknowledged:
            raise AlreadyAcknowledged(record_id)

        now = self._now()
        updated = await self._store.update(
            DOWNTIME,
            record_id,
            {
                "mechanic_acknowledged": True,
                "acknowledged_by": mechanic.id,
                "acknowledged_at": now,
                "mechanic_id": record.mechanic_id or mechanic.id,
            },
            expected={**_OPEN, "mechanic_acknowledged": False},
        )
        if updated is None:
            raise await self._stale_acknowledgement(record_id)

        result = DowntimeRecord.from_record(updated)
        logger.info("Downtime %s acknowledged by mechanic %s", record_id, mechanic.id)
        await self._publish(
            DowntimeAcknowledged(
                record_id=result.id, session_id=result.session_id, mechanic_id=mechanic.id
            )
        )
        return result

    async def resolve(
        self,
        record_id: str,
        identifier: str,
        credential: str,
        comments: str | None = None,
    ) -> DowntimeRecord:
        """
        Supervisor closes a machine, supply or generic downtime.

        Raises:
            VerificationFailed: If the supervisor does not verify
            NotAcknowledgedError: If a machine downtime has not been acknowledged
            AlreadyResolved: If the downtime is already closed
            BusinessRuleError: If the record is a style changeover
        """
        supervisor = await self._gate.require(Role.SUPERVISOR, identifier, credential)
        record = await self._get(record_id)

        if not record.category.is_commanded_close:
            raise BusinessRuleError(
                "Style changeovers close when their checklist is complete",
                {"record_id": record_id},
            )
        if not record.is_open:
            raise AlreadyResolved(record_id, record.status.value)
        if record.category.requires_acknowledgement and not record.mechanic_acknowledged:
            raise NotAcknowledgedError(record_id)

        expected: dict[str, Any] = dict(_OPEN)
        if record.category.requires_acknowledgement:
            expected["mechanic_acknowledged"] = True

        now = self._now()
        updated = await self._store.update(
            DOWNTIME,
            record_id,
            {
                "status": DowntimeStatus.CLOSED.value,
                "end_time": now,
                "resolved_by": supervisor.id,
                "resolution": DowntimeResolution.RESOLVED.value,
                "resolution_comments": comments,
            },
            expected=expected,
        )
        if updated is None:
            raise AlreadyResolved(record_id)

        return await self._closed(updated)

    async def complete_step(
        self,
        record_id: str,
        step: ChangeoverStep,
        identifier: str,
        credential: str,
    ) -> DowntimeRecord:
        """
        Sign off one style-changeover checklist step.

        The record closes when the step just written completes the checklist;
        the close is a conditional write, so it happens exactly once even when
        the last two steps are signed off concurrently.

        Raises:
            VerificationFailed: If the actor does not verify for the step's role
            StepAlreadyComplete: If the step was already signed off
            AlreadyResolved: If the changeover is closed
        """
        actor = await self._gate.require(step.required_role, identifier, credential)
        record = await self._get(record_id)

        if record.category != DowntimeCategory.STYLE_CHANGEOVER:
            raise BusinessRuleError(
                "Checklist steps only apply to style changeovers",
                {"record_id": record_id, "category": record.category.value},
            )
        if record.checklist.is_complete(step):
            raise StepAlreadyComplete(record_id, step.value)
        if not record.is_open:
            raise AlreadyResolved(record_id, record.status.value)

        by_field, at_field = step_fields(step)
        now = self._now()
        updated = await self._store.update(
            DOWNTIME,
            record_id,
            {by_field: actor.id, at_field: now},
            expected={**_OPEN, at_field: None},
        )
        if updated is None:
            current = await self._get(record_id)
            if current.checklist.is_complete(step):
                raise StepAlreadyComplete(record_id, step.value)
            raise AlreadyResolved(record_id, current.status.value)

        result = DowntimeRecord.from_record(updated)
        logger.info("Changeover %s step %s completed by %s", record_id, step.value, actor.id)
        await self._publish(
            ChangeoverStepCompleted(
                record_id=result.id,
                session_id=result.session_id,
                step=step.value,
                completed_by=actor.id,
            )
        )

        if all_steps_complete(result.checklist):
            closed = await self._store.update(
                DOWNTIME,
                record_id,
                {
                    "status": DowntimeStatus.CLOSED.value,
                    "end_time": now,
                    "resolved_by": actor.id,
                    "resolution": DowntimeResolution.CHECKLIST_COMPLETE.value,
                },
                expected=_OPEN,
            )
            if closed is not None:
                return await self._closed(closed)
            # Closed by a concurrent sign-off; report the stored state.
            return await self._get(record_id)
        return result

    async def close_for_session(
        self, session: Session, end_time: datetime
    ) -> list[DowntimeRecord]:
        """
        Close every open downtime of a session with the session's end time.

        Records closed concurrently by someone else are skipped, so the call is
        safe to repeat.
        """
        closed: list[DowntimeRecord] = []
        for record in await self._store.query(
            DOWNTIME, session_id=session.id, status=DowntimeStatus.OPEN.value
        ):
            updated = await self._store.update(
                DOWNTIME,
                record["id"],
                {
                    "status": DowntimeStatus.CLOSED.value,
                    "end_time": end_time,
                    "resolution": DowntimeResolution.SESSION_ENDED.value,
                },
                expected=_OPEN,
            )
            if updated is not None:
                closed.append(await self._closed(updated))
        if closed:
            logger.info(
                "Closed %d open downtime record(s) at end of session %s",
                len(closed),
                session.id,
            )
        return closed

    # Queries

    async def open_downtimes(
        self, session: Session, category: DowntimeCategory | None = None
    ) -> list[DowntimeRecord]:
        """Open downtime of a session, optionally limited to one category."""
        filters: dict[str, Any] = {
            "session_id": session.id,
            "status": DowntimeStatus.OPEN.value,
        }
        if category is not None:
            filters["category"] = category.value
        records = await self._store.query(DOWNTIME, **filters)
        return [DowntimeRecord.from_record(record) for record in records]

    async def session_downtimes(self, session: Session) -> list[DowntimeRecord]:
        """All downtime of a session, open and closed."""
        records = await self._store.query(DOWNTIME, session_id=session.id)
        return [DowntimeRecord.from_record(record) for record in records]

    # Helpers

    async def _submit(
        self,
        session: Session,
        category: DowntimeCategory,
        reason: str,
        comments: str,
        reported_by: str | None,
        payload: dict[str, Any],
    ) -> DowntimeRecord:
        if not reason:
            raise ValidationError("reason", reason, "A reason is required")
        current = await self._require_active(session)

        record = await self._store.create(
            DOWNTIME,
            {
                "session_id": current.id,
                "line_id": current.line_id,
                "category": category.value,
                "reason": reason,
                "comments": comments,
                "status": DowntimeStatus.OPEN.value,
                "start_time": self._now(),
                "end_time": None,
                "reported_by": reported_by or current.supervisor_id,
                **payload,
            },
        )
        result = DowntimeRecord.from_record(record)
        logger.info(
            "Opened %s downtime %s on session %s",
            category.value,
            result.id,
            current.id,
        )
        await self._publish(
            DowntimeSubmitted(
                record_id=result.id, session_id=current.id, category=category.value
            )
        )
        return result

    async def _get(self, record_id: str) -> DowntimeRecord:
        record = await self._store.get(DOWNTIME, record_id)
        if record is None:
            raise EntityNotFoundError("DowntimeRecord", record_id)
        return DowntimeRecord.from_record(record)

    async def _stale_acknowledgement(self, record_id: str) -> Exception:
        current = await self._get(record_id)
        if not current.is_open:
            return AlreadyResolved(record_id, current.status.value)
        return AlreadyAcknowledged(record_id)

    async def _closed(self, record: dict[str, Any]) -> DowntimeRecord:
        result = DowntimeRecord.from_record(record)
        logger.info(
            "Downtime %s closed (%s)",
            result.id,
            result.resolution.value if result.resolution else "unknown",
        )
        await self._publish(
            DowntimeClosed(
                record_id=result.id,
                session_id=result.session_id,
                category=result.category.value,
                resolution=result.resolution.value if result.resolution else "",
                end_time=result.end_time or self._now(),
            )
        )
        return result
