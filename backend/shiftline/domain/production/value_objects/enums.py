"""Domain enums for shift tracking."""

from enum import Enum


class Role(str, Enum):
    """Personnel role enumeration."""

    SUPERVISOR = "Supervisor"
    MECHANIC = "Mechanic"
    QC = "QC"
    OPERATOR = "Operator"


class DowntimeCategory(str, Enum):
    """Downtime category enumeration."""

    MACHINE = "machine"
    STYLE_CHANGEOVER = "style_changeover"
    SUPPLY = "supply"
    GENERIC = "generic"

    @property
    def requires_acknowledgement(self) -> bool:
        """Check if a mechanic must acknowledge before the downtime can be resolved."""
        return self == DowntimeCategory.MACHINE

    @property
    def is_commanded_close(self) -> bool:
        """Check if the downtime is closed by an explicit resolve command."""
        return self != DowntimeCategory.STYLE_CHANGEOVER


class DowntimeStatus(str, Enum):
    """Downtime status enumeration."""

    OPEN = "open"
    CLOSED = "closed"


class DowntimeResolution(str, Enum):
    """How a downtime record reached its closed status."""

    RESOLVED = "resolved"
    CHECKLIST_COMPLETE = "checklist_complete"
    SESSION_ENDED = "session_ended"


class ChangeoverStep(str, Enum):
    """Checklist steps of a style changeover, in display order."""

    MACHINE_SETUP = "machine_setup"
    PEOPLE_ALLOCATED = "people_allocated"
    FIRST_UNIT_OFF_LINE = "first_unit_off_line"
    QC_APPROVED = "qc_approved"

    @property
    def required_role(self) -> Role:
        """Role that must sign off this step."""
        if self == ChangeoverStep.QC_APPROVED:
            return Role.QC
        return Role.SUPERVISOR


class QualityEventKind(str, Enum):
    """Quality event kind enumeration."""

    REJECT = "reject"
    REWORK = "rework"


class QualityStatus(str, Enum):
    """
    Quality event status enumeration.

    Rejects move open -> perfect | closed, reworks move open -> perfect | rejected.
    """

    OPEN = "open"
    PERFECT = "perfect"
    CLOSED = "closed"
    REJECTED = "rejected"


class DispositionAction(str, Enum):
    """QC disposition actions."""

    MARK_PERFECT = "mark_perfect"
    CLOSE = "close"
    CONVERT_TO_REJECT = "convert_to_reject"

    def target_status(self, kind: QualityEventKind) -> QualityStatus | None:
        """Status reached by applying this action to a record of ``kind``, or None if not allowed."""
        transitions = {
            QualityEventKind.REJECT: {
                DispositionAction.MARK_PERFECT: QualityStatus.PERFECT,
                DispositionAction.CLOSE: QualityStatus.CLOSED,
            },
            QualityEventKind.REWORK: {
                DispositionAction.MARK_PERFECT: QualityStatus.PERFECT,
                DispositionAction.CONVERT_TO_REJECT: QualityStatus.REJECTED,
            },
        }
        return transitions[kind].get(self)


class AttendanceKind(str, Enum):
    """Attendance event kind enumeration."""

    LATE = "late"
    ABSENT = "absent"


class AttendanceStatus(str, Enum):
    """
    Attendance status enumeration.

    Late records move open -> arrived | absent, absent records move open -> returned.
    """

    OPEN = "open"
    ARRIVED = "arrived"
    ABSENT = "absent"
    RETURNED = "returned"


class LateOutcome(str, Enum):
    """Outcome chosen by the supervisor when resolving a late record."""

    ARRIVED = "arrived"
    ABSENT = "absent"
