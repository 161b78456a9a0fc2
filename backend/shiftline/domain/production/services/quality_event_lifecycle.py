"""
Quality Event Lifecycle

Rejects and reworks are booked by a verified QC and disposed of by a second,
possibly different, verified QC:

- reject: ``open -> perfect | closed``; closing a reject that was already
  counted as produced takes its units back out of the slot's output
- rework: ``open -> perfect | rejected``; converting creates a new open reject
  that waits for its own disposition
"""

import logging
from typing import Any

from ...shared.clock import Clock
from ...shared.events import EventPublisher
from ...shared.exceptions import (
    AlreadyResolved,
    DuplicateKeyError,
    EntityNotFoundError,
    InvalidSlotError,
    ValidationError,
)
from ..entities.quality_event import QualityEventPayload, QualityEventRecord
from ..entities.reference import Personnel
from ..entities.session import Session
from ..events.domain_events import QualityEventDisposed, QualityEventSubmitted
from ..repositories.record_store import QUALITY, RecordStore
from ..repositories.reference_registry import ReferenceRegistry
from ..value_objects.enums import (
    DispositionAction,
    QualityEventKind,
    QualityStatus,
    Role,
)
from .base import ShiftService
from .production_recorder import ProductionRecorder
from .time_table_resolver import active_slot
from .verification_gate import VerificationGate

logger = logging.getLogger(__name__)


def provenance_comment(rework: QualityEventRecord) -> str:
    """Comment linking a converted reject back to the rework it came from."""
    note = f"Converted from rework #{rework.ref_number}"
    if rework.comments:
        return f"{note}: {rework.comments}"
    return note


class QualityEventLifecycle(ShiftService):
    """QC-attested booking and disposition of rejects and reworks."""

    def __init__(
        self,
        store: RecordStore,
        registry: ReferenceRegistry,
        gate: VerificationGate,
        recorder: ProductionRecorder,
        publisher: EventPublisher | None = None,
        clock: Clock | None = None,
    ) -> None:
        """
        Initialize the quality event lifecycle.

        Args:
            store: Record store holding quality events
            registry: Reference registry (time-tables for slot resolution)
            gate: Verification gate for QC sign-offs
            recorder: Production recorder adjusting output for scrapped rejects
            publisher: Optional event publisher
            clock: Wall-clock source
        """
        super().__init__(store, publisher, clock)
        self._registry = registry
        self._gate = gate
        self._recorder = recorder

    async def submit(
        self,
        session: Session,
        kind: QualityEventKind,
        payload: QualityEventPayload,
        qc_identifier: str,
        credential: str,
    ) -> QualityEventRecord:
        """
        Book a reject or rework after the submitting QC has verified.

        A reject recorded as produced is tied to a slot (the active one when
        the payload names none) so that closing it later can correct that
        slot's output.

        Raises:
            VerificationFailed: If the QC does not verify; nothing is written
            SessionNotActiveError: If the session has ended
            InvalidSlotError: If a produced reject cannot be tied to a slot
        """
        qc = await self._gate.require(Role.QC, qc_identifier, credential)
        current = await self._require_active(session)

        recorded_as_produced = (
            payload.recorded_as_produced and kind == QualityEventKind.REJECT
        )
        slot_id = payload.slot_id
        if recorded_as_produced:
            slot_id = await self._resolve_slot(current, slot_id)

        record = await self._store.create(
            QUALITY,
            {
                "kind": kind.value,
                "session_id": current.id,
                "line_id": current.line_id,
                "reason": payload.reason,
                "operation": payload.operation,
                "count": payload.count,
                "comments": payload.comments,
                "status": QualityStatus.OPEN.value,
                "submitted_by": qc.id,
                "disposed_by": None,
                "recorded_as_produced": recorded_as_produced,
                "slot_id": slot_id,
                "source_rework_id": None,
                "closed_at": None,
            },
        )
        result = QualityEventRecord.from_record(record)
        logger.info(
            "Booked %s #%s (%d units) on session %s",
            kind.value,
            result.ref_number,
            result.count,
            current.id,
        )
        await self._publish(
            QualityEventSubmitted(
                record_id=result.id,
                session_id=current.id,
                kind=kind.value,
                count=result.count,
            )
        )
        return result

    async def dispose(
        self,
        record_id: str,
        action: DispositionAction,
        qc_identifier: str,
        credential: str,
        comments: str | None = None,
    ) -> QualityEventRecord:
        """
        Apply a QC disposition to an open reject or rework.

        Retrying the same disposition after a store failure finishes the
        follow-up write (converted reject or output adjustment) that the
        failed attempt left out.

        Returns:
            The disposed record

        Raises:
            VerificationFailed: If the disposing QC does not verify
            ValidationError: If the action does not apply to the record's kind
            AlreadyResolved: If the record was already disposed of and nothing
                is left to finish
        """
        qc = await self._gate.require(Role.QC, qc_identifier, credential)
        record = await self._get(record_id)

        target = action.target_status(record.kind)
        if target is None:
            raise ValidationError(
                "action",
                action.value,
                f"{action.value} does not apply to a {record.kind.value}",
            )

        if record.is_open:
            updated = await self._store.update(
                QUALITY,
                record_id,
                {
                    "status": target.value,
                    "disposed_by": qc.id,
                    "disposition_comments": comments,
                    "closed_at": self._now(),
                },
                expected={"status": QualityStatus.OPEN.value},
            )
            if updated is None:
                raise AlreadyResolved(record_id)
            result = QualityEventRecord.from_record(updated)
        elif record.status == target and await self._disposition_incomplete(record, action):
            # An earlier attempt flipped the status but failed before its follow-up write
            logger.warning(
                "Completing interrupted disposition of %s #%s",
                record.kind.value,
                record.ref_number,
            )
            result = record
        else:
            raise AlreadyResolved(record_id, record.status.value)

        created_reject: QualityEventRecord | None = None
        if action == DispositionAction.CONVERT_TO_REJECT:
            created_reject = await self._convert_to_reject(result, qc)
        elif result.kind == QualityEventKind.REJECT and target == QualityStatus.CLOSED:
            await self._recorder.adjust_for_reject(result)

        logger.info(
            "%s #%s disposed as %s by %s",
            result.kind.value.capitalize(),
            result.ref_number,
            target.value,
            qc.id,
        )
        await self._publish(
            QualityEventDisposed(
                record_id=result.id,
                session_id=result.session_id,
                kind=result.kind.value,
                action=action.value,
                new_status=target.value,
                created_reject_id=created_reject.id if created_reject else None,
            )
        )
        return result

    async def open_events(
        self, session: Session, kind: QualityEventKind
    ) -> list[QualityEventRecord]:
        """Open rejects or reworks of a session, oldest first."""
        records = await self._store.query(
            QUALITY,
            session_id=session.id,
            kind=kind.value,
            status=QualityStatus.OPEN.value,
        )
        return [QualityEventRecord.from_record(record) for record in records]

    async def converted_from(self, rework_id: str) -> QualityEventRecord | None:
        """The reject created from a rework, if it was converted."""
        records = await self._store.query(QUALITY, source_rework_id=rework_id)
        return QualityEventRecord.from_record(records[0]) if records else None

    async def _disposition_incomplete(
        self, record: QualityEventRecord, action: DispositionAction
    ) -> bool:
        if action == DispositionAction.CONVERT_TO_REJECT:
            return await self.converted_from(record.id) is None
        if action == DispositionAction.CLOSE:
            return await self._recorder.adjustment_pending(record)
        return False

    async def _convert_to_reject(
        self, rework: QualityEventRecord, qc: Personnel
    ) -> QualityEventRecord:
        data: dict[str, Any] = {
            "kind": QualityEventKind.REJECT.value,
            "session_id": rework.session_id,
            "line_id": rework.line_id,
            "reason": rework.reason,
            "operation": rework.operation,
            "count": rework.count,
            "comments": provenance_comment(rework),
            "status": QualityStatus.OPEN.value,
            "submitted_by": qc.id,
            "disposed_by": None,
            "recorded_as_produced": False,
            "slot_id": rework.slot_id,
            "source_rework_id": rework.id,
            "closed_at": None,
        }
        try:
            record = await self._store.create(
                QUALITY, data, unique_key=f"rework:{rework.id}"
            )
        except DuplicateKeyError:
            existing = await self.converted_from(rework.id)
            if existing is None:
                raise
            return existing
        return QualityEventRecord.from_record(record)

    async def _resolve_slot(self, session: Session, slot_id: str | None) -> str:
        table = await self._registry.get_time_table(session.time_table_id)
        if table is None:
            raise EntityNotFoundError("TimeTable", session.time_table_id)
        if slot_id is not None:
            if table.index_of(slot_id) is None:
                raise InvalidSlotError(
                    f"Slot {slot_id} is not part of time-table {table.id}", slot_id
                )
            return slot_id
        slot = active_slot(table, self._now())
        if slot is None:
            raise InvalidSlotError("No time slot is active to book the reject against")
        return slot.id

    async def _get(self, record_id: str) -> QualityEventRecord:
        record = await self._store.get(QUALITY, record_id)
        if record is None:
            raise EntityNotFoundError("QualityEventRecord", record_id)
        return QualityEventRecord.from_record(record)
