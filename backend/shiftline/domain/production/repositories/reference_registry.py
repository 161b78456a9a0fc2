"""Read-only access to lines, styles, personnel, time-tables and breaks."""

from abc import ABC, abstractmethod
from typing import Any

from ..entities.reference import Line, Personnel, Style
from ..value_objects.time_table import Break, TimeTable


class ReferenceRegistry(ABC):
    """Registry collaborator; the engine never writes reference data."""

    @abstractmethod
    async def get_line(self, line_id: str) -> Line | None: ...

    @abstractmethod
    async def get_style(self, style_id: str) -> Style | None: ...

    @abstractmethod
    async def get_personnel(self, **filters: Any) -> list[Personnel]:
        """Personnel matching every filter (e.g. ``employee_number``, ``role``)."""
        ...

    @abstractmethod
    async def get_time_table(self, time_table_id: str) -> TimeTable | None: ...

    @abstractmethod
    async def get_break(self, break_id: str) -> Break | None: ...

    async def get_breaks(self, break_ids: list[str]) -> dict[str, Break]:
        """Directory of the given breaks keyed by id; unknown ids are left out."""
        directory: dict[str, Break] = {}
        for break_id in dict.fromkeys(break_ids):
            found = await self.get_break(break_id)
            if found is not None:
                directory[break_id] = found
        return directory
