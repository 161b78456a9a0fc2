"""
Metrics Aggregator

Open-event counters and the recent-events feed of a session. Both are pure
reads recomputed on demand; the application layer polls them on an interval.
"""

from ...shared.clock import Clock
from ..entities.attendance_event import AttendanceEventRecord
from ..entities.quality_event import QualityEventRecord
from ..entities.session import Session
from ..repositories.record_store import ATTENDANCE, QUALITY, RecordStore
from ..value_objects.enums import (
    AttendanceKind,
    AttendanceStatus,
    QualityEventKind,
    QualityStatus,
)
from ..value_objects.reports import MetricsSnapshot, RecentEvent
from .base import ShiftService

DEFAULT_RECENT_EVENTS_LIMIT = 50


class MetricsAggregator(ShiftService):
    """Counts and feeds over the quality and attendance stores of a session."""

    def __init__(self, store: RecordStore, clock: Clock | None = None) -> None:
        super().__init__(store, clock=clock)

    async def snapshot(self, session: Session) -> MetricsSnapshot:
        """Number of open rejects, reworks, late and absent records of ``session``."""
        quality = await self._store.query(
            QUALITY, session_id=session.id, status=QualityStatus.OPEN.value
        )
        attendance = await self._store.query(
            ATTENDANCE, session_id=session.id, status=AttendanceStatus.OPEN.value
        )

        def count(records: list[dict], kind: str) -> int:
            return sum(1 for record in records if record["kind"] == kind)

        return MetricsSnapshot(
            session_id=session.id,
            rejects=count(quality, QualityEventKind.REJECT.value),
            reworks=count(quality, QualityEventKind.REWORK.value),
            late=count(attendance, AttendanceKind.LATE.value),
            absent=count(attendance, AttendanceKind.ABSENT.value),
            taken_at=self._now(),
        )

    async def recent_events(
        self, session: Session, limit: int = DEFAULT_RECENT_EVENTS_LIMIT
    ) -> list[RecentEvent]:
        """
        Rejects, open reworks and attendance records of a session, newest first.

        Rejects are listed whatever their status so converted reworks stay
        visible; reworks drop off the feed once disposed of.
        """
        events: list[RecentEvent] = []

        for record in await self._store.query(QUALITY, session_id=session.id):
            quality = QualityEventRecord.from_record(record)
            if quality.kind == QualityEventKind.REWORK and not quality.is_open:
                continue
            events.append(
                RecentEvent(
                    id=quality.id,
                    event_type=quality.kind.value,
                    status=quality.status.value,
                    created_at=quality.created_at,
                    description=quality.comments,
                    reason=quality.reason,
                    count=quality.count,
                )
            )

        for record in await self._store.query(ATTENDANCE, session_id=session.id):
            attendance = AttendanceEventRecord.from_record(record)
            events.append(
                RecentEvent(
                    id=attendance.id,
                    event_type=attendance.kind.value,
                    status=attendance.status.value,
                    created_at=attendance.created_at,
                    description=attendance.comments,
                    reason=attendance.reason,
                )
            )

        events.sort(key=lambda event: event.created_at, reverse=True)
        return events[:limit]
