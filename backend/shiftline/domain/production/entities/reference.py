"""Reference data owned by registry collaborators and consumed read-only."""

from pydantic import Field

from ...shared.base import ValueObject
from ..value_objects.enums import Role


class Line(ValueObject):
    """Production line with its assigned time-table."""

    id: str
    name: str = ""
    active: bool = True
    assigned_time_table_id: str | None = None


class Style(ValueObject):
    """A style (product) being produced against an order."""

    id: str
    style_number: str = ""
    style_name: str = ""
    units_in_order: int = Field(default=0, ge=0)
    hourly_target: int = Field(default=0, ge=0)


class Personnel(ValueObject):
    """Supervisor, mechanic, QC or operator as held by the personnel registry."""

    id: str
    name: str = ""
    surname: str = ""
    employee_number: str
    role: Role
    credential: str | None = Field(default=None, repr=False)
    has_credential: bool = False
    active: bool = True

    @property
    def full_name(self) -> str:
        return f"{self.name} {self.surname}".strip()

    @property
    def can_sign_off(self) -> bool:
        """Only active personnel with a configured credential may pass verification."""
        return self.active and self.has_credential and bool(self.credential)
