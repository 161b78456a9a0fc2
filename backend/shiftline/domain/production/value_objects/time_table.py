"""
Time-table value objects.

A time-table is the ordered list of hourly slots a line works through during a
shift. Slot boundaries are local wall-clock ``"HH:MM"`` strings; a slot may
reference a break, which discounts that slot's target.
"""

from datetime import datetime, time

from pydantic import Field, field_validator

from ...shared.base import ValueObject


def parse_wall_clock(value: str) -> time:
    """Parse an ``"HH:MM"`` string into a ``time``."""
    try:
        hours, minutes = value.split(":")
        return time(hour=int(hours), minute=int(minutes))
    except (ValueError, AttributeError) as e:
        raise ValueError(f"Invalid wall-clock time '{value}', expected HH:MM") from e


def wall_clock_of(now: datetime | time) -> time:
    """Minute-precision wall-clock reading of ``now``."""
    if isinstance(now, datetime):
        now = now.time()
    return time(hour=now.hour, minute=now.minute)


class Break(ValueObject):
    """A break taken inside a slot (e.g. Lunch, Tea)."""

    id: str
    break_type: str = Field(min_length=1)
    duration: int = Field(ge=0, description="Duration in minutes")


class TimeSlot(ValueObject):
    """One slot of a time-table, ``[start_time, end_time)``."""

    id: str
    start_time: str
    end_time: str
    break_id: str | None = None

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_wall_clock(cls, v: str) -> str:
        parse_wall_clock(v)
        return v

    @property
    def start(self) -> time:
        return parse_wall_clock(self.start_time)

    @property
    def end(self) -> time:
        return parse_wall_clock(self.end_time)

    @property
    def spans_midnight(self) -> bool:
        return self.end <= self.start

    def contains(self, now: datetime | time) -> bool:
        """Check if the wall-clock reading of ``now`` falls inside this slot."""
        clock = wall_clock_of(now)
        if self.spans_midnight:
            return clock >= self.start or clock < self.end
        return self.start <= clock < self.end


class TimeTable(ValueObject):
    """Ordered, non-empty sequence of slots assigned to a line."""

    id: str
    name: str = ""
    line_id: str | None = None
    slots: tuple[TimeSlot, ...] = Field(min_length=1)

    def index_of(self, slot_id: str) -> int | None:
        """Position of ``slot_id`` in the table, or None if it does not belong to it."""
        for index, slot in enumerate(self.slots):
            if slot.id == slot_id:
                return index
        return None

    def get_slot(self, slot_id: str) -> TimeSlot | None:
        index = self.index_of(slot_id)
        return None if index is None else self.slots[index]
