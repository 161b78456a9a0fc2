"""
Record store interface.

Every persistence call is a coroutine. A mutation is a single conditional write:
``update`` only applies when the stored record still matches ``expected``, so
two terminals acting on the same record cannot both win, and a retried call
whose first attempt already landed becomes a no-op for the caller to detect.
"""

from abc import ABC, abstractmethod
from typing import Any

SESSIONS = "sessions"
PRODUCTION = "productionRecords"
ADJUSTMENTS = "productionAdjustments"
DOWNTIME = "downtime"
QUALITY = "qualityEvents"
ATTENDANCE = "attendance"

LINES = "lines"
STYLES = "styles"
PERSONNEL = "personnel"
TIME_TABLES = "timeTables"
BREAKS = "breaks"

Record = dict[str, Any]


class RecordStore(ABC):
    """Document-style store keyed by collection name and record id."""

    @abstractmethod
    async def create(
        self, collection: str, data: Record, unique_key: str | None = None
    ) -> Record:
        """
        Insert a new record and return it with ``id``, ``created_at`` and ``updated_at`` set.

        Args:
            collection: Collection name
            data: Record fields
            unique_key: Optional key that must not be held by another record of
                the collection; raises DuplicateKeyError when it is.
        """
        ...

    @abstractmethod
    async def get(self, collection: str, record_id: str) -> Record | None:
        """Fetch a record by id."""
        ...

    @abstractmethod
    async def update(
        self,
        collection: str,
        record_id: str,
        fields: Record,
        expected: Record | None = None,
        release_unique_key: bool = False,
    ) -> Record | None:
        """
        Apply ``fields`` to a record when every ``expected`` field still holds.

        Returns:
            The updated record, or None when the record is missing or the
            expected values no longer match (nothing is written in that case).
        """
        ...

    @abstractmethod
    async def query(self, collection: str, **filters: Any) -> list[Record]:
        """Records whose fields equal every filter value, oldest first."""
        ...
