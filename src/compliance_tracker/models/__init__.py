"""ORM models for the compliance tracker."""

from compliance_tracker.models.acknowledgement import (
    AcknowledgementEvent,
    AcknowledgementRequest,
    AlertEscalation,
    TriggerType,
)
from compliance_tracker.models.base import Base, TimestampMixin, UTCDateTime, utc_now
from compliance_tracker.models.company import Company, TemplateUpgrade
from compliance_tracker.models.employee import Employee, EmployeeRole, Role, RolePolicyAssignment
from compliance_tracker.models.policy import Policy, PolicyType, PolicyVersion, VersionStatus

__all__ = [
    "AcknowledgementEvent",
    "AcknowledgementRequest",
    "AlertEscalation",
    "Base",
    "Company",
    "Employee",
    "EmployeeRole",
    "Policy",
    "PolicyType",
    "PolicyVersion",
    "Role",
    "RolePolicyAssignment",
    "TemplateUpgrade",
    "TimestampMixin",
    "TriggerType",
    "UTCDateTime",
    "VersionStatus",
    "utc_now",
]
