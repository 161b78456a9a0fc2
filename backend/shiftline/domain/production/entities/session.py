"""Shift session entity."""

from datetime import datetime

from pydantic import Field

from ...shared.base import Entity


class Session(Entity):
    """
    One shift on one production line.

    At most one active session exists per line. A session is created by
    ``SessionManager.start`` and only ever mutated by ``SessionManager.end``;
    every other component receives it as an explicit, read-only value.
    """

    line_id: str
    supervisor_id: str
    style_id: str
    hourly_target: int = Field(gt=0)
    time_table_id: str
    start_time: datetime
    end_time: datetime | None = None
    active: bool = True

    @property
    def is_open(self) -> bool:
        return self.active and self.end_time is None
