"""Append-only production records."""

from datetime import datetime

from pydantic import Field

from ...shared.base import Entity


class ProductionRecord(Entity):
    """One unit off the line, posted against a slot of the session's time-table."""

    session_id: str
    line_id: str
    slot_id: str
    time_table_id: str
    units: int = Field(default=1, gt=0)
    recorded_at: datetime


class ProductionAdjustment(Entity):
    """Negative correction to a slot's output, created when a produced unit is scrapped."""

    session_id: str
    slot_id: str
    units: int = Field(lt=0)
    reject_id: str
