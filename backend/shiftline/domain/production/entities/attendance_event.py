"""Attendance event (late / absent) entity."""

from datetime import date

from ...shared.base import Entity
from ..value_objects.enums import AttendanceKind, AttendanceStatus


class AttendanceEventRecord(Entity):
    """
    An employee who did not start the shift on time.

    A late record that ends with the employee not turning up spawns a new
    absent record (``source_late_id``); the late record itself is never turned
    into an absence.
    """

    kind: AttendanceKind
    session_id: str
    line_id: str
    employee_id: str
    reason: str = ""
    comments: str = ""
    status: AttendanceStatus = AttendanceStatus.OPEN
    reported_by: str | None = None
    resolved_by: str | None = None
    resolution_comments: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    return_date: date | None = None
    source_late_id: str | None = None

    @property
    def is_open(self) -> bool:
        return self.status == AttendanceStatus.OPEN
