"""
Record documents as held by the stores.

Records are stored as JSON-compatible documents: datetimes and dates become
ISO-8601 strings and enums their values. Entities parse them back with
pydantic, so both stores hand out exactly the same shapes.
"""

from datetime import datetime, timedelta, timezone
from typing import Any

from pydantic_core import to_jsonable_python

from ...domain.shared.clock import Clock

Document = dict[str, Any]


def to_document(data: dict[str, Any]) -> Document:
    """JSON-compatible copy of ``data``."""
    return to_jsonable_python(data)


def matches(document: Document, conditions: Document) -> bool:
    """Check every condition field equals the document's value (missing reads as None)."""
    return all(document.get(field) == value for field, value in conditions.items())


class MonotonicTimestamps:
    """
    Timestamp source that never repeats or goes backwards within one store.

    Records created in the same microsecond still get distinct, ordered
    ``created_at`` values.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._last: datetime | None = None

    def next(self) -> datetime:
        now = self._clock()
        if self._last is not None and now <= self._last:
            now = self._last + timedelta(microseconds=1)
        self._last = now
        return now


def to_timestamp(value: datetime) -> str:
    """ISO-8601 form of a store timestamp."""
    return to_jsonable_python(value)
