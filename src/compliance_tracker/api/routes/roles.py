"""Role and role assignment endpoints."""

from datetime import timedelta
from typing import Annotated

from fastapi import APIRouter, Path, status

from compliance_tracker.api.dependencies import CompanyId, DbSession
from compliance_tracker.api.routes.acknowledgements import with_details
from compliance_tracker.api.schemas import (
    AcknowledgementRequestWithDetails,
    ErrorResponse,
    RoleAssignmentCreate,
    RoleCreate,
    RolePolicyAssignmentResponse,
    RoleRequestsCreate,
    RoleResponse,
)
from compliance_tracker.config import get_settings
from compliance_tracker.database import commit
from compliance_tracker.models import utc_now
from compliance_tracker.services.acknowledgement_service import AcknowledgementService
from compliance_tracker.services.assignment_service import AssignmentService

router = APIRouter(prefix="/roles", tags=["roles"])


@router.get("", response_model=list[RoleResponse])
async def list_roles(db: DbSession, company_id: CompanyId) -> list[RoleResponse]:
    """List roles."""
    roles = await AssignmentService(db).list_roles(company_id)
    return [RoleResponse.model_validate(r) for r in roles]


@router.post(
    "",
    response_model=RoleResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
async def create_role(
    db: DbSession,
    company_id: CompanyId,
    payload: RoleCreate,
) -> RoleResponse:
    """Create a role."""
    role = await AssignmentService(db).create_role(
        company_id, payload.name, payload.description
    )
    await commit(db)
    return RoleResponse.model_validate(role)


@router.get(
    "/{role_id}/assignments",
    response_model=list[RolePolicyAssignmentResponse],
    responses={404: {"model": ErrorResponse}},
)
async def list_role_assignments(
    db: DbSession,
    company_id: CompanyId,
    role_id: Annotated[int, Path()],
) -> list[RolePolicyAssignmentResponse]:
    """List policy versions assigned to a role."""
    assignments = await AssignmentService(db).list_role_assignments(company_id, role_id)
    return [RolePolicyAssignmentResponse.model_validate(a) for a in assignments]


@router.post(
    "/{role_id}/assignments",
    response_model=RolePolicyAssignmentResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def assign_policy_to_role(
    db: DbSession,
    company_id: CompanyId,
    role_id: Annotated[int, Path()],
    payload: RoleAssignmentCreate,
) -> RolePolicyAssignmentResponse:
    """Assign a policy version to a role. Re-assigning returns the existing link."""
    assignment = await AssignmentService(db).assign_policy_to_role(
        company_id, role_id, payload.policy_version_id
    )
    await commit(db)
    return RolePolicyAssignmentResponse.model_validate(assignment)


@router.post(
    "/{role_id}/acknowledgement-requests",
    response_model=list[AcknowledgementRequestWithDetails],
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def issue_role_requests(
    db: DbSession,
    company_id: CompanyId,
    role_id: Annotated[int, Path()],
    payload: RoleRequestsCreate,
) -> list[AcknowledgementRequestWithDetails]:
    """Issue acknowledgement requests to every active holder of a role."""
    now = utc_now()
    due_date = payload.due_date or now + timedelta(days=get_settings().default_ack_due_days)
    requests = await AcknowledgementService(db).issue_role_requests(
        company_id, role_id, payload.trigger_type, due_date
    )
    await commit(db)
    return [with_details(r, now) for r in requests]
