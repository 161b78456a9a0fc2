"""
Domain Exceptions

Defines the error taxonomy of the shift engine. Every error carries an
``ErrorType`` discriminator so the UI layer can decide how to surface it:
verification and stale-state errors go back to the operator verbatim, while
persistence errors are offered for a manual retry.
"""

from enum import Enum

Details = dict[str, str | int | bool | None]


class ErrorType(str, Enum):
    """Error type enumeration for discriminated unions."""

    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    CONFLICT = "conflict"
    VERIFICATION = "verification"
    STALE_STATE = "stale_state"
    NOT_FOUND = "not_found"
    DATA_INTEGRITY = "data_integrity"
    PERSISTENCE = "persistence"

    @property
    def is_user_facing(self) -> bool:
        """Errors the operator can fix by correcting input and retrying."""
        return self in {
            ErrorType.VALIDATION,
            ErrorType.BUSINESS_RULE,
            ErrorType.CONFLICT,
            ErrorType.VERIFICATION,
            ErrorType.STALE_STATE,
        }


class DomainError(Exception):
    """Base class for all domain errors with type discrimination."""

    def __init__(
        self,
        message: str,
        error_type: ErrorType,
        details: Details | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_type = error_type
        self.details = details or {}

    def to_dict(self) -> dict[str, str | Details]:
        """Convert error to dictionary for the UI layer."""
        return {
            "type": self.error_type.value,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(DomainError):
    """Raised when input to an operation is malformed."""

    def __init__(
        self,
        field_name: str,
        value: str | int | float | bool | None,
        message: str,
    ) -> None:
        self.field_name = field_name
        self.value = value
        details: Details = {
            "field": field_name,
            "value": str(value) if value is not None else None,
        }
        super().__init__(
            f"Validation failed for field '{field_name}': {message}",
            ErrorType.VALIDATION,
            details,
        )


class BusinessRuleError(DomainError):
    """Raised when business rules are violated."""

    def __init__(self, message: str, details: Details | None = None) -> None:
        super().__init__(message, ErrorType.BUSINESS_RULE, details)


# Session exceptions
class ConflictError(DomainError):
    """Raised when a line already has an open session."""

    def __init__(self, line_id: str, session_id: str | None = None) -> None:
        details: Details = {"line_id": line_id, "session_id": session_id}
        super().__init__(
            f"Line {line_id} already has an open session", ErrorType.CONFLICT, details
        )
        self.line_id = line_id
        self.session_id = session_id


class SessionNotActiveError(BusinessRuleError):
    """Raised when an operation targets a session that has ended."""

    def __init__(self, session_id: str) -> None:
        super().__init__(
            f"Session {session_id} is not active", {"session_id": session_id}
        )
        self.session_id = session_id


class InvalidSlotError(DomainError):
    """Raised when a slot is not part of the session's time-table, or no slot is active."""

    def __init__(self, message: str, slot_id: str | None = None) -> None:
        super().__init__(message, ErrorType.VALIDATION, {"slot_id": slot_id})
        self.slot_id = slot_id


# Verification exceptions
class VerificationFailed(DomainError):
    """Raised when a role or credential check fails. Always user-facing."""

    def __init__(self, role: str, identifier: str) -> None:
        super().__init__(
            "Invalid credentials",
            ErrorType.VERIFICATION,
            {"role": role, "identifier": identifier},
        )
        self.role = role
        self.identifier = identifier


# Stale-state exceptions
class StaleStateError(DomainError):
    """Base class for transitions attempted against an outdated view of a record."""

    def __init__(self, message: str, record_id: str) -> None:
        super().__init__(message, ErrorType.STALE_STATE, {"record_id": record_id})
        self.record_id = record_id


class AlreadyAcknowledged(StaleStateError):
    """Raised when a machine downtime has already been acknowledged."""

    def __init__(self, record_id: str) -> None:
        super().__init__(f"Downtime {record_id} is already acknowledged", record_id)


class AlreadyResolved(StaleStateError):
    """Raised when a record has already reached a terminal status."""

    def __init__(self, record_id: str, status: str | None = None) -> None:
        message = f"Record {record_id} is already resolved"
        if status:
            message += f" ({status})"
        super().__init__(message, record_id)
        self.status = status


class StepAlreadyComplete(StaleStateError):
    """Raised when a style-changeover checklist step is completed twice."""

    def __init__(self, record_id: str, step: str) -> None:
        super().__init__(
            f"Step '{step}' of changeover {record_id} is already complete", record_id
        )
        self.step = step


class NotAcknowledgedError(BusinessRuleError):
    """Raised when a machine downtime is resolved before a mechanic acknowledged it."""

    def __init__(self, record_id: str) -> None:
        super().__init__(
            f"Downtime {record_id} must be acknowledged by a mechanic before it can be resolved",
            {"record_id": record_id},
        )
        self.record_id = record_id


# Repository exceptions
class EntityNotFoundError(DomainError):
    """Raised when an entity is not found in the store or registry."""

    def __init__(self, entity_type: str, entity_id: str) -> None:
        super().__init__(
            f"{entity_type} not found: {entity_id}",
            ErrorType.NOT_FOUND,
            {"entity_type": entity_type, "entity_id": entity_id},
        )
        self.entity_type = entity_type
        self.entity_id = entity_id


class DataIntegrityError(DomainError):
    """Raised when stored data violates an invariant the engine relies on."""

    def __init__(self, message: str, details: Details | None = None) -> None:
        super().__init__(message, ErrorType.DATA_INTEGRITY, details)


class DuplicateKeyError(DomainError):
    """Raised by a record store when a unique key is already held."""

    def __init__(self, collection: str, unique_key: str) -> None:
        super().__init__(
            f"Unique key {unique_key} already held in {collection}",
            ErrorType.CONFLICT,
            {"collection": collection, "unique_key": unique_key},
        )
        self.collection = collection
        self.unique_key = unique_key


class PersistenceError(DomainError):
    """Raised when the backing store fails, transport or otherwise."""

    def __init__(self, operation: str, reason: str) -> None:
        super().__init__(
            f"Persistence failure during {operation}: {reason}",
            ErrorType.PERSISTENCE,
            {"operation": operation, "reason": reason},
        )
        self.operation = operation
        self.reason = reason
