"""Shared plumbing of the store-backed shift services."""

from datetime import datetime

from ...shared.clock import Clock, system_clock
from ...shared.events import EventPublisher
from ...shared.exceptions import EntityNotFoundError, SessionNotActiveError
from ..entities.session import Session
from ..repositories.record_store import SESSIONS, RecordStore


class ShiftService:
    """
    Base class for services that write to the record store.

    Events are published only after the write they describe has landed; a
    service constructed without a publisher simply does not announce changes.
    """

    def __init__(
        self,
        store: RecordStore,
        publisher: EventPublisher | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._publisher = publisher
        self._clock = clock or system_clock()

    def _now(self) -> datetime:
        return self._clock()

    async def _publish(self, event) -> None:
        if self._publisher is not None:
            await self._publisher.publish_async(event)

    async def _require_active(self, session: Session) -> Session:
        """Re-read ``session`` from the store and fail if it has ended since."""
        record = await self._store.get(SESSIONS, session.id)
        if record is None:
            raise EntityNotFoundError("Session", session.id)
        current = Session.from_record(record)
        if not current.is_open:
            raise SessionNotActiveError(session.id)
        return current
