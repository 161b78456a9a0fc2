"""
In-memory record store.

Single-process implementation of ``RecordStore`` used by terminals running
without a database and by the domain tests. Conditional writes are trivially
atomic because nothing awaits between the check and the write.
"""

import copy
import logging
from collections import defaultdict
from typing import Any
from uuid import uuid4

from ...domain.production.repositories.record_store import Record, RecordStore
from ...domain.shared.clock import Clock
from ...domain.shared.exceptions import DuplicateKeyError
from .documents import (
    Document,
    MonotonicTimestamps,
    matches,
    to_document,
    to_timestamp,
)

logger = logging.getLogger(__name__)


class InMemoryRecordStore(RecordStore):
    """Collections of documents kept in dictionaries, in creation order."""

    def __init__(self, clock: Clock | None = None) -> None:
        self._collections: dict[str, dict[str, Document]] = defaultdict(dict)
        self._unique_keys: dict[tuple[str, str], str] = {}
        self._timestamps = MonotonicTimestamps(clock)

    async def create(
        self, collection: str, data: Record, unique_key: str | None = None
    ) -> Record:
        documents = self._collections[collection]
        document = to_document(data)
        record_id = document.pop("id", None) or uuid4().hex

        if record_id in documents:
            raise DuplicateKeyError(collection, record_id)
        if unique_key is not None and (collection, unique_key) in self._unique_keys:
            raise DuplicateKeyError(collection, unique_key)

        stamp = to_timestamp(self._timestamps.next())
        document.update(id=record_id, created_at=stamp, updated_at=stamp)
        documents[record_id] = document
        if unique_key is not None:
            self._unique_keys[(collection, unique_key)] = record_id

        logger.debug("Created %s/%s", collection, record_id)
        return copy.deepcopy(document)

    async def get(self, collection: str, record_id: str) -> Record | None:
        document = self._collections[collection].get(record_id)
        return copy.deepcopy(document) if document is not None else None

    async def update(
        self,
        collection: str,
        record_id: str,
        fields: Record,
        expected: Record | None = None,
        release_unique_key: bool = False,
    ) -> Record | None:
        document = self._collections[collection].get(record_id)
        if document is None:
            return None
        if expected and not matches(document, to_document(expected)):
            logger.debug("Conditional write on %s/%s skipped", collection, record_id)
            return None

        document.update(to_document(fields))
        document["updated_at"] = to_timestamp(self._timestamps.next())
        if release_unique_key:
            self._release(collection, record_id)
        return copy.deepcopy(document)

    async def query(self, collection: str, **filters: Any) -> list[Record]:
        conditions = to_document(filters)
        return [
            copy.deepcopy(document)
            for document in self._collections[collection].values()
            if matches(document, conditions)
        ]

    def _release(self, collection: str, record_id: str) -> None:
        held = [
            key
            for key, holder in self._unique_keys.items()
            if key[0] == collection and holder == record_id
        ]
        for key in held:
            del self._unique_keys[key]
