"""Compliance tracker services."""

from compliance_tracker.services.acknowledgement_service import AcknowledgementService
from compliance_tracker.services.assignment_service import AssignmentService
from compliance_tracker.services.company_service import CompanyService
from compliance_tracker.services.errors import (
    AlreadyCompletedError,
    AlreadyResolvedError,
    ComplianceError,
    InvalidTransitionError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from compliance_tracker.services.metrics_service import DashboardMetrics, MetricsService
from compliance_tracker.services.policy_service import PolicyService
from compliance_tracker.services.state_machine import VersionStateMachine
from compliance_tracker.services.triage import Severity, classify_severity, is_overdue

__all__ = [
    "AcknowledgementService",
    "AlreadyCompletedError",
    "AlreadyResolvedError",
    "AssignmentService",
    "CompanyService",
    "ComplianceError",
    "DashboardMetrics",
    "InvalidTransitionError",
    "MetricsService",
    "NotFoundError",
    "PolicyService",
    "Severity",
    "StoreError",
    "ValidationError",
    "VersionStateMachine",
    "classify_severity",
    "is_overdue",
]
