"""Employee and employee role endpoints."""

from typing import Annotated

from fastapi import APIRouter, Path, status

from compliance_tracker.api.dependencies import CompanyId, DbSession
from compliance_tracker.api.routes.acknowledgements import with_details
from compliance_tracker.api.schemas import (
    AcknowledgementRequestWithDetails,
    EmployeeCreate,
    EmployeeRoleCreate,
    EmployeeRoleResponse,
    EmployeeUpdate,
    EmployeeWithRoles,
    ErrorResponse,
)
from compliance_tracker.database import commit
from compliance_tracker.models import utc_now
from compliance_tracker.services.acknowledgement_service import AcknowledgementService
from compliance_tracker.services.assignment_service import AssignmentService

router = APIRouter(prefix="/employees", tags=["employees"])


@router.get("", response_model=list[EmployeeWithRoles])
async def list_employees(db: DbSession, company_id: CompanyId) -> list[EmployeeWithRoles]:
    """List employees with their roles."""
    employees = await AssignmentService(db).list_employees(company_id)
    return [EmployeeWithRoles.model_validate(e) for e in employees]


@router.post(
    "",
    response_model=EmployeeWithRoles,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
async def create_employee(
    db: DbSession,
    company_id: CompanyId,
    payload: EmployeeCreate,
) -> EmployeeWithRoles:
    """Create an employee."""
    employee = await AssignmentService(db).create_employee(
        company_id,
        first_name=payload.first_name,
        last_name=payload.last_name,
        email=str(payload.email),
        start_date=payload.start_date,
        is_active=payload.is_active,
    )
    await commit(db)
    return EmployeeWithRoles.model_validate(employee)


@router.get(
    "/{employee_id}",
    response_model=EmployeeWithRoles,
    responses={404: {"model": ErrorResponse}},
)
async def get_employee(
    db: DbSession,
    company_id: CompanyId,
    employee_id: Annotated[int, Path()],
) -> EmployeeWithRoles:
    """Get an employee with roles."""
    employee = await AssignmentService(db).get_employee(company_id, employee_id)
    return EmployeeWithRoles.model_validate(employee)


@router.patch(
    "/{employee_id}",
    response_model=EmployeeWithRoles,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_employee(
    db: DbSession,
    company_id: CompanyId,
    employee_id: Annotated[int, Path()],
    payload: EmployeeUpdate,
) -> EmployeeWithRoles:
    """Activate or deactivate an employee."""
    employee = await AssignmentService(db).set_employee_active(
        company_id, employee_id, payload.is_active
    )
    await commit(db)
    return EmployeeWithRoles.model_validate(employee)


@router.post(
    "/{employee_id}/roles",
    response_model=EmployeeRoleResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def assign_role(
    db: DbSession,
    company_id: CompanyId,
    employee_id: Annotated[int, Path()],
    payload: EmployeeRoleCreate,
) -> EmployeeRoleResponse:
    """Give an employee a role. Re-assigning returns the existing link."""
    link = await AssignmentService(db).assign_role_to_employee(
        company_id, employee_id, payload.role_id
    )
    await commit(db)
    return EmployeeRoleResponse.model_validate(link)


@router.get(
    "/{employee_id}/acknowledgements",
    response_model=list[AcknowledgementRequestWithDetails],
    responses={404: {"model": ErrorResponse}},
)
async def list_employee_acknowledgements(
    db: DbSession,
    company_id: CompanyId,
    employee_id: Annotated[int, Path()],
) -> list[AcknowledgementRequestWithDetails]:
    """Acknowledgement requests issued to one employee."""
    now = utc_now()
    requests = await AcknowledgementService(db).list_employee_requests(company_id, employee_id)
    return [with_details(r, now) for r in requests]
