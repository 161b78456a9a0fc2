"""
Reference registry reading lines, styles, personnel, time-tables and breaks
from the record store collections the registry screens maintain.
"""

import logging
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from ...domain.production.entities.reference import Line, Personnel, Style
from ...domain.production.repositories.record_store import (
    BREAKS,
    LINES,
    PERSONNEL,
    STYLES,
    TIME_TABLES,
    RecordStore,
)
from ...domain.production.repositories.reference_registry import ReferenceRegistry
from ...domain.production.value_objects.time_table import Break, TimeTable
from ...domain.shared.base import ValueObject
from ...domain.shared.exceptions import DataIntegrityError

logger = logging.getLogger(__name__)


class StoreBackedRegistry(ReferenceRegistry):
    """Read-only view of the reference collections of a record store."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store

    async def get_line(self, line_id: str) -> Line | None:
        return await self._load(LINES, line_id, Line)

    async def get_style(self, style_id: str) -> Style | None:
        return await self._load(STYLES, style_id, Style)

    async def get_personnel(self, **filters: Any) -> list[Personnel]:
        records = await self._store.query(PERSONNEL, **filters)
        return [self._parse(PERSONNEL, record, Personnel) for record in records]

    async def get_time_table(self, time_table_id: str) -> TimeTable | None:
        return await self._load(TIME_TABLES, time_table_id, TimeTable)

    async def get_break(self, break_id: str) -> Break | None:
        return await self._load(BREAKS, break_id, Break)

    async def _load(self, collection: str, record_id: str, model: type[ValueObject]):
        record = await self._store.get(collection, record_id)
        if record is None:
            return None
        return self._parse(collection, record, model)

    @staticmethod
    def _parse(collection: str, record: dict[str, Any], model: type[ValueObject]):
        try:
            return model.model_validate(record)
        except PydanticValidationError as e:
            logger.error("Malformed %s record %s: %s", collection, record.get("id"), e)
            raise DataIntegrityError(
                f"Malformed {collection} record",
                {"collection": collection, "record_id": record.get("id")},
            ) from e
