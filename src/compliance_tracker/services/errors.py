"""Service-level exceptions.

Each error carries the HTTP status the API layer answers with and a
machine-readable code.
"""

from __future__ import annotations


class ComplianceError(Exception):
    """Base class for errors raised by the compliance services."""

    status_code: int = 500
    code: str = "COMPLIANCE_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(ComplianceError):
    """Malformed or missing input."""

    status_code = 400
    code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class NotFoundError(ComplianceError):
    """A referenced entity does not exist (or belongs to another company)."""

    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: int):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class AlreadyCompletedError(ComplianceError):
    """Raised when completing an acknowledgement request twice."""

    status_code = 409
    code = "ALREADY_COMPLETED"

    def __init__(self, request_id: int):
        self.request_id = request_id
        super().__init__(f"Acknowledgement request {request_id} is already completed")


class AlreadyResolvedError(ComplianceError):
    """Raised when resolving an escalation twice."""

    status_code = 409
    code = "ALREADY_RESOLVED"

    def __init__(self, escalation_id: int):
        self.escalation_id = escalation_id
        super().__init__(f"Escalation {escalation_id} is already resolved")


class InvalidTransitionError(ComplianceError):
    """Raised when an invalid version status transition is attempted."""

    status_code = 409
    code = "INVALID_TRANSITION"

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class StoreError(ComplianceError):
    """Underlying persistence failure. The transaction was rolled back."""

    status_code = 500
    code = "STORE_ERROR"
