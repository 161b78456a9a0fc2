"""Read-side value objects handed to the UI layer."""

from datetime import datetime

from ...shared.base import ValueObject
from ..entities.reference import Personnel
from ..entities.session import Session
from .time_table import TimeSlot, TimeTable


class ProductionBalance(ValueObject):
    """Running balance of a session against the style's order quantity."""

    session_id: str
    units_produced: int
    order_quantity: int

    @property
    def balance(self) -> int:
        # Over-production is surfaced as a negative balance, never rejected.
        return self.order_quantity - self.units_produced


class SessionView(ValueObject):
    """An open session rehydrated with its output series."""

    session: Session
    time_table: TimeTable
    outputs: tuple[int, ...]
    order_quantity: int

    @property
    def id(self) -> str:
        return self.session.id

    @property
    def units_produced(self) -> int:
        return sum(self.outputs)

    @property
    def balance(self) -> int:
        return self.order_quantity - self.units_produced


class SlotReportRow(ValueObject):
    """One row of the hourly production board."""

    slot: TimeSlot
    target: int
    output: int
    efficiency: str
    cumulative_efficiency: str


class MetricsSnapshot(ValueObject):
    """Counts of currently-open quality and attendance events of a session."""

    session_id: str
    rejects: int = 0
    reworks: int = 0
    late: int = 0
    absent: int = 0
    taken_at: datetime | None = None


class RecentEvent(ValueObject):
    """Entry of the combined reject / rework / attendance feed."""

    id: str
    event_type: str
    status: str
    created_at: datetime
    description: str = ""
    reason: str = ""
    count: int | None = None


class SignIn(ValueObject):
    """Verified supervisor and the session already open on the line, if any."""

    supervisor: Personnel
    open_session: Session | None = None

    @property
    def has_open_session(self) -> bool:
        return self.open_session is not None
