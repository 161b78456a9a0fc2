"""
Production Recorder

Posts units against the slots of a session's time-table and derives the
per-slot output series and running balance from the append-only records.
"""

import logging
from collections import Counter
from datetime import datetime

from ...shared.clock import Clock
from ...shared.events import EventPublisher
from ...shared.exceptions import (
    DuplicateKeyError,
    EntityNotFoundError,
    InvalidSlotError,
)
from ..entities.production import ProductionAdjustment
from ..entities.quality_event import QualityEventRecord
from ..entities.session import Session
from ..events.domain_events import OutputAdjusted, UnitRecorded
from ..repositories.record_store import ADJUSTMENTS, PRODUCTION, RecordStore
from ..repositories.reference_registry import ReferenceRegistry
from ..value_objects.enums import QualityEventKind
from ..value_objects.reports import ProductionBalance
from ..value_objects.time_table import TimeTable
from .base import ShiftService
from .time_table_resolver import active_slot

logger = logging.getLogger(__name__)


class ProductionRecorder(ShiftService):
    """
    Append-only unit recording for an open session.

    Output per slot is a count over the session's records, so concurrent
    terminals posting to the same slot never lose an increment.
    """

    def __init__(
        self,
        store: RecordStore,
        registry: ReferenceRegistry,
        publisher: EventPublisher | None = None,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(store, publisher, clock)
        self._registry = registry

    async def record_unit(
        self,
        session: Session,
        slot_id: str | None = None,
        now: datetime | None = None,
    ) -> ProductionBalance:
        """
        Record one unit against a slot.

        Args:
            session: Session the unit belongs to
            slot_id: Slot to post against; the slot active at ``now`` when omitted
            now: Wall-clock reading used to find the active slot

        Returns:
            Balance after the unit was recorded

        Raises:
            SessionNotActiveError: If the session has ended
            InvalidSlotError: If the slot is not part of the session's time-table,
                or no slot is active and none was given
        """
        current = await self._require_active(session)
        table = await self._time_table(current)
        recorded_at = now or self._now()

        if slot_id is None:
            slot = active_slot(table, recorded_at)
            if slot is None:
                raise InvalidSlotError("No time slot is active at this time")
            slot_id = slot.id
        elif table.index_of(slot_id) is None:
            raise InvalidSlotError(
                f"Slot {slot_id} is not part of time-table {table.id}", slot_id
            )

        await self._store.create(
            PRODUCTION,
            {
                "session_id": current.id,
                "line_id": current.line_id,
                "slot_id": slot_id,
                "time_table_id": table.id,
                "units": 1,
                "recorded_at": recorded_at,
            },
        )

        balance = await self.balance(current, table)
        logger.debug(
            "Recorded unit for session %s slot %s (%d produced)",
            current.id,
            slot_id,
            balance.units_produced,
        )
        await self._publish(
            UnitRecorded(
                session_id=current.id,
                slot_id=slot_id,
                units_produced=balance.units_produced,
                balance=balance.balance,
            )
        )
        return balance

    async def outputs_by_slot(
        self, session: Session, table: TimeTable | None = None
    ) -> list[int]:
        """
        Units produced per slot, index-aligned to the time-table.

        Only records of this session are counted; adjustments for scrapped
        rejects are subtracted and a slot never drops below zero.
        """
        table = table or await self._time_table(session)

        counts: Counter[str] = Counter()
        for record in await self._store.query(PRODUCTION, session_id=session.id):
            counts[record["slot_id"]] += int(record.get("units", 1))
        for record in await self._store.query(ADJUSTMENTS, session_id=session.id):
            counts[record["slot_id"]] += int(record["units"])

        return [max(counts.get(slot.id, 0), 0) for slot in table.slots]

    async def balance(
        self, session: Session, table: TimeTable | None = None
    ) -> ProductionBalance:
        """Units produced so far against the style's order quantity."""
        outputs = await self.outputs_by_slot(session, table)
        style = await self._registry.get_style(session.style_id)
        return ProductionBalance(
            session_id=session.id,
            units_produced=sum(outputs),
            order_quantity=style.units_in_order if style else 0,
        )

    async def adjust_for_reject(
        self, reject: QualityEventRecord
    ) -> ProductionAdjustment | None:
        """
        Take a scrapped reject's units back out of its slot's output.

        Only rejects recorded as produced against a slot are adjusted. At most
        one adjustment exists per reject, so a retried close does not subtract
        twice.
        """
        if reject.kind != QualityEventKind.REJECT:
            return None
        if not reject.recorded_as_produced or not reject.slot_id:
            return None

        unique_key = f"reject:{reject.id}"
        try:
            record = await self._store.create(
                ADJUSTMENTS,
                {
                    "session_id": reject.session_id,
                    "slot_id": reject.slot_id,
                    "units": -reject.count,
                    "reject_id": reject.id,
                },
                unique_key=unique_key,
            )
        except DuplicateKeyError:
            logger.info("Output already adjusted for reject %s", reject.id)
            return await self.adjustment_for(reject.id)

        adjustment = ProductionAdjustment.from_record(record)
        await self._publish(
            OutputAdjusted(
                session_id=adjustment.session_id,
                slot_id=adjustment.slot_id,
                units=adjustment.units,
                reject_id=reject.id,
            )
        )
        return adjustment

    async def adjustment_for(self, reject_id: str) -> ProductionAdjustment | None:
        """The output adjustment booked for a scrapped reject, if any."""
        records = await self._store.query(ADJUSTMENTS, reject_id=reject_id)
        return ProductionAdjustment.from_record(records[0]) if records else None

    async def adjustment_pending(self, reject: QualityEventRecord) -> bool:
        """Whether a scrapped reject still owes its slot an adjustment."""
        if reject.kind != QualityEventKind.REJECT:
            return False
        if not reject.recorded_as_produced or not reject.slot_id:
            return False
        return await self.adjustment_for(reject.id) is None

    async def _time_table(self, session: Session) -> TimeTable:
        table = await self._registry.get_time_table(session.time_table_id)
        if table is None:
            raise EntityNotFoundError("TimeTable", session.time_table_id)
        return table
