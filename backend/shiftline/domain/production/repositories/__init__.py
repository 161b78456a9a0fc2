"""
Repository Interfaces

Contracts for the record store and the reference registries. The domain only
depends on these abstractions; implementations live in the infrastructure
layer.
"""

from .record_store import (
    ADJUSTMENTS,
    ATTENDANCE,
    BREAKS,
    DOWNTIME,
    LINES,
    PERSONNEL,
    PRODUCTION,
    QUALITY,
    SESSIONS,
    STYLES,
    TIME_TABLES,
    RecordStore,
)
from .reference_registry import ReferenceRegistry

__all__ = [
    "RecordStore",
    "ReferenceRegistry",
    "SESSIONS",
    "PRODUCTION",
    "ADJUSTMENTS",
    "DOWNTIME",
    "QUALITY",
    "ATTENDANCE",
    "LINES",
    "STYLES",
    "PERSONNEL",
    "TIME_TABLES",
    "BREAKS",
]
