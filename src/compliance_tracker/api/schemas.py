"""Pydantic schemas for API request/response models.

JSON uses camelCase keys; snake_case is accepted on input as well.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from compliance_tracker.models import PolicyType, TriggerType, VersionStatus
from compliance_tracker.services.triage import Severity


class ApiModel(BaseModel):
    """Base schema with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ============================================================================
# Errors
# ============================================================================


class ErrorResponse(ApiModel):
    """Error response body."""

    detail: str
    code: str
    field: str | None = None
    errors: list[dict[str, Any]] | None = None


# ============================================================================
# Companies
# ============================================================================


class CompanyCreate(ApiModel):
    """Schema for creating a company."""

    name: str = Field(min_length=1)


class CompanyResponse(ApiModel):
    """Schema for company response."""

    id: int
    name: str
    created_at: datetime
    updated_at: datetime


# ============================================================================
# Policies and versions
# ============================================================================


class PolicyCreate(ApiModel):
    """Schema for creating a policy."""

    title: str = Field(min_length=1)
    type: PolicyType
    description: str | None = None
    is_template: bool = False
    template_source: str | None = None


class PolicyUpdate(ApiModel):
    """Partial policy update; only fields present in the body are applied."""

    title: str | None = Field(default=None, min_length=1)
    type: PolicyType | None = None
    description: str | None = None
    is_template: bool | None = None
    template_source: str | None = None


class PolicyVersionCreate(ApiModel):
    """Schema for creating a policy version."""

    version: str = Field(min_length=1)
    content: str
    status: VersionStatus = VersionStatus.DRAFT
    created_by: int
    config_data: dict[str, Any] | None = None


class ApproveVersionRequest(ApiModel):
    """Schema for approving a policy version."""

    approved_by: int


class PolicyVersionResponse(ApiModel):
    """Schema for policy version response."""

    id: int
    policy_id: int
    version: str
    content: str
    status: VersionStatus
    config_data: dict[str, Any] | None = None
    approved_by: int | None = None
    approved_at: datetime | None = None
    created_by: int
    created_at: datetime
    updated_at: datetime


class PolicyResponse(ApiModel):
    """Policy with all its versions and the latest one."""

    id: int
    company_id: int
    title: str
    description: str | None = None
    type: PolicyType
    is_template: bool
    template_source: str | None = None
    created_at: datetime
    updated_at: datetime
    versions: list[PolicyVersionResponse] = []
    latest_version: PolicyVersionResponse | None = None


class PolicySummary(ApiModel):
    """Policy without versions, embedded in other responses."""

    id: int
    company_id: int
    title: str
    type: PolicyType


class PolicyVersionWithPolicy(PolicyVersionResponse):
    """Policy version with its parent policy."""

    policy: PolicySummary


# ============================================================================
# Roles and employees
# ============================================================================


class RoleCreate(ApiModel):
    """Schema for creating a role."""

    name: str = Field(min_length=1)
    description: str | None = None


class RoleResponse(ApiModel):
    """Schema for role response."""

    id: int
    company_id: int
    name: str
    description: str | None = None
    created_at: datetime


class RoleAssignmentCreate(ApiModel):
    """Schema for assigning a policy version to a role."""

    policy_version_id: int


class RolePolicyAssignmentResponse(ApiModel):
    """Schema for role to policy version assignment."""

    id: int
    role_id: int
    policy_version_id: int
    assigned_at: datetime


class EmployeeCreate(ApiModel):
    """Schema for creating an employee."""

    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    email: EmailStr
    start_date: datetime
    is_active: bool = True


class EmployeeUpdate(ApiModel):
    """Schema for toggling an employee's active flag."""

    is_active: bool


class EmployeeRoleCreate(ApiModel):
    """Schema for giving an employee a role."""

    role_id: int


class EmployeeRoleResponse(ApiModel):
    """Schema for employee to role link."""

    id: int
    employee_id: int
    role_id: int
    assigned_at: datetime


class EmployeeRoleWithRole(EmployeeRoleResponse):
    """Employee role link with the role itself."""

    role: RoleResponse


class EmployeeResponse(ApiModel):
    """Schema for employee response."""

    id: int
    company_id: int
    email: str
    first_name: str
    last_name: str
    is_active: bool
    start_date: datetime
    created_at: datetime


class EmployeeWithRoles(EmployeeResponse):
    """Employee with role links."""

    roles: list[EmployeeRoleWithRole] = []


# ============================================================================
# Acknowledgements
# ============================================================================


class AcknowledgementRequestCreate(ApiModel):
    """Schema for issuing an acknowledgement request."""

    employee_id: int
    policy_version_id: int
    trigger_type: TriggerType
    due_date: datetime


class RoleRequestsCreate(ApiModel):
    """Schema for issuing requests to every holder of a role."""

    trigger_type: TriggerType = TriggerType.MANUAL
    due_date: datetime | None = None


class CompleteRequest(ApiModel):
    """Schema for completing an acknowledgement request."""

    employee_id: int
    ip_address: str | None = None
    user_agent: str | None = None


class AcknowledgementRequestResponse(ApiModel):
    """Schema for acknowledgement request response."""

    id: int
    employee_id: int
    policy_version_id: int
    trigger_type: TriggerType
    due_date: datetime
    completed_at: datetime | None = None
    escalated_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class AcknowledgementRequestWithDetails(AcknowledgementRequestResponse):
    """Request with employee, version, policy and derived state."""

    employee: EmployeeResponse
    policy_version: PolicyVersionWithPolicy
    state: str
    days_overdue: int | None = None
    severity: Severity | None = None


class AcknowledgementEventResponse(ApiModel):
    """Schema for acknowledgement audit event."""

    id: int
    request_id: int
    employee_id: int
    policy_version_id: int
    acknowledged_at: datetime
    ip_address: str | None = None
    user_agent: str | None = None


class CompleteResponse(ApiModel):
    """Schema for completion result."""

    message: str
    event: AcknowledgementEventResponse


# ============================================================================
# Escalations
# ============================================================================


class EscalationCreate(ApiModel):
    """Schema for escalating a request."""

    request_id: int
    escalated_to: str = Field(min_length=1)


class AlertEscalationResponse(ApiModel):
    """Schema for escalation response."""

    id: int
    request_id: int
    escalated_to: str
    escalated_at: datetime
    resolved_at: datetime | None = None


# ============================================================================
# Dashboard and templates
# ============================================================================


class DashboardMetricsResponse(ApiModel):
    """Company-level compliance summary."""

    total_policies: int
    pending_approvals: int
    compliance_rate: float
    overdue_acknowledgements: int
    total_employees: int
    acknowledgements_this_month: int


class TemplateUpgradeResponse(ApiModel):
    """Schema for available template upgrade."""

    id: int
    company_id: int
    policy_type: str
    current_version: str
    available_version: str
    notified_at: datetime
    upgrade_completed_at: datetime | None = None
