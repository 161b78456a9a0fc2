"""Quality event (reject / rework) entity."""

from datetime import datetime

from pydantic import Field

from ...shared.base import Entity, ValueObject
from ..value_objects.enums import QualityEventKind, QualityStatus


class QualityEventPayload(ValueObject):
    """What the QC reports when submitting a reject or rework."""

    reason: str = Field(min_length=1)
    operation: str = ""
    count: int = Field(gt=0)
    comments: str = ""
    recorded_as_produced: bool = False
    slot_id: str | None = None


class QualityEventRecord(Entity):
    """A batch of defective units, either scrapped (reject) or sent back (rework)."""

    kind: QualityEventKind
    session_id: str
    line_id: str
    reason: str
    operation: str = ""
    count: int = Field(gt=0)
    comments: str = ""
    status: QualityStatus = QualityStatus.OPEN
    submitted_by: str | None = None
    disposed_by: str | None = None
    disposition_comments: str | None = None
    recorded_as_produced: bool = False
    slot_id: str | None = None
    source_rework_id: str | None = None
    closed_at: datetime | None = None

    @property
    def is_open(self) -> bool:
        return self.status == QualityStatus.OPEN
