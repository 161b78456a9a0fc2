"""
Background refreshers.

Two fixed-interval loops replace the store-level push subscriptions a terminal
would otherwise rely on:

- ``SlotTicker`` re-reads the wall clock and announces when the active slot of
  the time-table changes
- ``MetricsPoller`` recomputes a session's open-event counters and announces
  the new snapshot, or the failure to read it

Both publish on the event bus; their cadence and failure handling are explicit
here rather than hidden in a subscription.
"""

import asyncio
import contextlib
from abc import ABC, abstractmethod
from datetime import datetime

from ..core.observability import get_logger
from ..domain.production.entities.session import Session
from ..domain.production.events.domain_events import (
    ActiveSlotChanged,
    MetricsRefreshed,
    MetricsRefreshFailed,
)
from ..domain.production.services.metrics_aggregator import MetricsAggregator
from ..domain.production.services.time_table_resolver import active_slot
from ..domain.production.value_objects.reports import MetricsSnapshot
from ..domain.production.value_objects.time_table import TimeSlot, TimeTable
from ..domain.shared.clock import Clock
from ..domain.shared.events import EventPublisher
from ..domain.shared.exceptions import PersistenceError

logger = get_logger(__name__)


class _PeriodicTask(ABC):
    """Runs ``_run_once`` every ``interval`` seconds until stopped."""

    def __init__(self, interval: float) -> None:
        self._interval = interval
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        if not self.running:
            self._task = asyncio.create_task(self._loop())
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def _loop(self) -> None:
        while True:
            await self._run_once()
            await asyncio.sleep(self._interval)

    @abstractmethod
    async def _run_once(self) -> None:
        """One refresh; failures it does not handle stop the loop."""


class SlotTicker(_PeriodicTask):
    """Tracks the active slot of a time-table against the wall clock."""

    def __init__(
        self,
        time_table: TimeTable,
        clock: Clock,
        publisher: EventPublisher,
        interval: float = 1.0,
    ) -> None:
        super().__init__(interval)
        self._time_table = time_table
        self._clock = clock
        self._publisher = publisher
        self._current: TimeSlot | None = None

    @property
    def current_slot(self) -> TimeSlot | None:
        return self._current

    def tick(self, now: datetime) -> ActiveSlotChanged | None:
        """Re-evaluate the active slot; returns the change, if any. No I/O."""
        slot = active_slot(self._time_table, now)
        previous_id = self._current.id if self._current else None
        slot_id = slot.id if slot else None
        self._current = slot
        if slot_id == previous_id:
            return None
        return ActiveSlotChanged(
            time_table_id=self._time_table.id,
            previous_slot_id=previous_id,
            slot_id=slot_id,
        )

    async def _run_once(self) -> None:
        event = self.tick(self._clock())
        if event is not None:
            logger.info(
                "active_slot_changed",
                time_table_id=event.time_table_id,
                previous_slot_id=event.previous_slot_id,
                slot_id=event.slot_id,
            )
            await self._publisher.publish_async(event)


class MetricsPoller(_PeriodicTask):
    """Recomputes a session's metrics on an interval and on request."""

    def __init__(
        self,
        aggregator: MetricsAggregator,
        session: Session,
        publisher: EventPublisher,
        interval: float = 30.0,
    ) -> None:
        super().__init__(interval)
        self._aggregator = aggregator
        self._session = session
        self._publisher = publisher
        self.latest: MetricsSnapshot | None = None

    async def refresh(self) -> MetricsSnapshot | None:
        """
        Recompute now.

        Returns:
            The new snapshot, or None when the store could not be read (the
            previous snapshot is kept)
        """
        try:
            snapshot = await self._aggregator.snapshot(self._session)
        except PersistenceError as e:
            logger.warning(
                "metrics_refresh_failed", session_id=self._session.id, reason=e.message
            )
            await self._publisher.publish_async(
                MetricsRefreshFailed(session_id=self._session.id, reason=e.message)
            )
            return None

        self.latest = snapshot
        await self._publisher.publish_async(
            MetricsRefreshed(
                session_id=snapshot.session_id,
                rejects=snapshot.rejects,
                reworks=snapshot.reworks,
                late=snapshot.late,
                absent=snapshot.absent,
            )
        )
        return snapshot

    async def _run_once(self) -> None:
        await self.refresh()
