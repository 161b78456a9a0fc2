"""
Domain Services

Shift tracking logic: slot resolution, efficiency, session lifecycle, unit
recording, downtime / quality / attendance state machines, verification and
metrics.
"""

from . import downtime_summary, efficiency_calculator, time_table_resolver
from .attendance_lifecycle import AttendanceLifecycle
from .downtime_lifecycle import DowntimeLifecycle
from .metrics_aggregator import MetricsAggregator
from .production_recorder import ProductionRecorder
from .quality_event_lifecycle import QualityEventLifecycle
from .session_manager import SessionManager
from .verification_gate import (
    CredentialVerifier,
    HashedCredentialVerifier,
    PlaintextCredentialVerifier,
    VerificationGate,
)

__all__ = [
    "downtime_summary",
    "efficiency_calculator",
    "time_table_resolver",
    "AttendanceLifecycle",
    "DowntimeLifecycle",
    "MetricsAggregator",
    "ProductionRecorder",
    "QualityEventLifecycle",
    "SessionManager",
    "CredentialVerifier",
    "HashedCredentialVerifier",
    "PlaintextCredentialVerifier",
    "VerificationGate",
]
