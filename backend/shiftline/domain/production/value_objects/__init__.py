"""Value objects for shift tracking."""

from .enums import (
    AttendanceKind,
    AttendanceStatus,
    ChangeoverStep,
    DispositionAction,
    DowntimeCategory,
    DowntimeResolution,
    DowntimeStatus,
    LateOutcome,
    QualityEventKind,
    QualityStatus,
    Role,
)
from .time_table import Break, TimeSlot, TimeTable, parse_wall_clock, wall_clock_of

__all__ = [
    "AttendanceKind",
    "AttendanceStatus",
    "ChangeoverStep",
    "DispositionAction",
    "DowntimeCategory",
    "DowntimeResolution",
    "DowntimeStatus",
    "LateOutcome",
    "QualityEventKind",
    "QualityStatus",
    "Role",
    "Break",
    "TimeSlot",
    "TimeTable",
    "parse_wall_clock",
    "wall_clock_of",
]
