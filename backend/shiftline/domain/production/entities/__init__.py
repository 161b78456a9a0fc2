"""Domain entities for shift tracking."""

from .attendance_event import AttendanceEventRecord
from .downtime import (
    ChangeoverChecklist,
    ChecklistEntry,
    DowntimeRecord,
    all_steps_complete,
    step_fields,
)
from .production import ProductionAdjustment, ProductionRecord
from .quality_event import QualityEventPayload, QualityEventRecord
from .reference import Line, Personnel, Style
from .session import Session

__all__ = [
    "AttendanceEventRecord",
    "ChangeoverChecklist",
    "ChecklistEntry",
    "DowntimeRecord",
    "all_steps_complete",
    "step_fields",
    "ProductionAdjustment",
    "ProductionRecord",
    "QualityEventPayload",
    "QualityEventRecord",
    "Line",
    "Personnel",
    "Style",
    "Session",
]
