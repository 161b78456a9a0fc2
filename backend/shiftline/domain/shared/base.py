"""Base classes for domain entities and value objects."""

from datetime import datetime
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict


class ValueObject(BaseModel):
    """Base class for value objects (immutable, defined by their values)."""

    model_config = ConfigDict(frozen=True)


class Entity(BaseModel):
    """
    Base class for stored records.

    Identity and timestamps are assigned by the record store; entities are
    read-only snapshots of a record, so a transition always goes through the
    store and produces a fresh entity.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    created_at: datetime
    updated_at: datetime

    def __eq__(self, other: Any) -> bool:
        """Entities are equal if they have the same ID and type."""
        if not isinstance(other, self.__class__):
            return False
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    @property
    def ref_number(self) -> str:
        """Short reference shown to operators (last four characters of the id)."""
        return self.id[-4:]

    @classmethod
    def from_record(cls: type["EntityT"], record: dict[str, Any]) -> "EntityT":
        return cls.model_validate(record)


EntityT = TypeVar("EntityT", bound=Entity)
