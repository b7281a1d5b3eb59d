"""Policy version state machine with transition validation."""

from __future__ import annotations

from compliance_tracker.models.policy import VersionStatus
from compliance_tracker.services.errors import InvalidTransitionError


def _value(status: str) -> str:
    return status.value if isinstance(status, VersionStatus) else status


class VersionStateMachine:
    """State machine for policy version status transitions.

    Status only moves forward:
    - DRAFT → PENDING (submit for approval)
    - DRAFT → APPROVED (approval does not require a prior submit)
    - PENDING → APPROVED
    - APPROVED → DEPRECATED
    - DEPRECATED is terminal
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        VersionStatus.DRAFT: [VersionStatus.PENDING, VersionStatus.APPROVED],
        VersionStatus.PENDING: [VersionStatus.APPROVED],
        VersionStatus.APPROVED: [VersionStatus.DEPRECATED],
        VersionStatus.DEPRECATED: [],  # Terminal state
    }

    # Statuses a new version may be created in
    INITIAL_STATUSES = {
        VersionStatus.DRAFT,
        VersionStatus.PENDING,
    }

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            reason = None
            if from_status == VersionStatus.DEPRECATED:
                reason = "deprecated versions are final"
            raise InvalidTransitionError(_value(from_status), _value(to_status), reason)

    @classmethod
    def is_valid_initial_status(cls, status: str) -> bool:
        """Check if a version may be created with this status."""
        return status in cls.INITIAL_STATUSES

    @classmethod
    def get_next_statuses(cls, current_status: str) -> list[str]:
        """Get list of valid next statuses from current status."""
        return cls.VALID_TRANSITIONS.get(current_status, [])

    @classmethod
    def is_terminal(cls, status: str) -> bool:
        """Check if no further transitions are possible."""
        return not cls.get_next_statuses(status)
