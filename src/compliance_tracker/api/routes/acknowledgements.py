"""Acknowledgement request endpoints."""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Path, status

from compliance_tracker.api.dependencies import CompanyId, DbSession
from compliance_tracker.api.schemas import (
    AcknowledgementEventResponse,
    AcknowledgementRequestCreate,
    AcknowledgementRequestResponse,
    AcknowledgementRequestWithDetails,
    CompleteRequest,
    CompleteResponse,
    EmployeeResponse,
    ErrorResponse,
    PolicyVersionWithPolicy,
)
from compliance_tracker.database import commit
from compliance_tracker.models import AcknowledgementRequest, utc_now
from compliance_tracker.services.acknowledgement_service import AcknowledgementService
from compliance_tracker.services.triage import request_state

router = APIRouter(prefix="/acknowledgement-requests", tags=["acknowledgements"])


def with_details(request: AcknowledgementRequest, now: datetime) -> AcknowledgementRequestWithDetails:
    """Build the detailed view of a request including its derived state."""
    derived = request_state(request.due_date, request.completed_at, request.escalated_at, now)
    base = AcknowledgementRequestResponse.model_validate(request).model_dump()
    return AcknowledgementRequestWithDetails(
        **base,
        employee=EmployeeResponse.model_validate(request.employee),
        policy_version=PolicyVersionWithPolicy.model_validate(request.policy_version),
        state=derived.state.value,
        days_overdue=derived.days_overdue,
        severity=derived.severity,
    )


@router.get("", response_model=list[AcknowledgementRequestWithDetails])
async def list_requests(
    db: DbSession,
    company_id: CompanyId,
) -> list[AcknowledgementRequestWithDetails]:
    """List all acknowledgement requests, newest first."""
    now = utc_now()
    requests = await AcknowledgementService(db).list_requests(company_id)
    return [with_details(r, now) for r in requests]


@router.get("/overdue", response_model=list[AcknowledgementRequestWithDetails])
async def list_overdue(
    db: DbSession,
    company_id: CompanyId,
) -> list[AcknowledgementRequestWithDetails]:
    """List overdue requests, longest overdue first."""
    now = utc_now()
    requests = await AcknowledgementService(db).list_overdue(company_id, now=now)
    return [with_details(r, now) for r in requests]


@router.post(
    "",
    response_model=AcknowledgementRequestResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def create_request(
    db: DbSession,
    company_id: CompanyId,
    payload: AcknowledgementRequestCreate,
) -> AcknowledgementRequestResponse:
    """Issue an acknowledgement request to one employee."""
    request = await AcknowledgementService(db).create_request(
        company_id,
        employee_id=payload.employee_id,
        policy_version_id=payload.policy_version_id,
        trigger_type=payload.trigger_type,
        due_date=payload.due_date,
    )
    await commit(db)
    return AcknowledgementRequestResponse.model_validate(request)


@router.post(
    "/{request_id}/complete",
    response_model=CompleteResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def complete_request(
    db: DbSession,
    company_id: CompanyId,
    request_id: Annotated[int, Path()],
    payload: CompleteRequest,
) -> CompleteResponse:
    """Complete an acknowledgement request and record the audit event."""
    event = await AcknowledgementService(db).complete_request(
        company_id,
        request_id,
        employee_id=payload.employee_id,
        ip_address=payload.ip_address,
        user_agent=payload.user_agent,
    )
    await commit(db)
    return CompleteResponse(
        message="Acknowledgement completed successfully",
        event=AcknowledgementEventResponse.model_validate(event),
    )


@router.get(
    "/{request_id}/events",
    response_model=list[AcknowledgementEventResponse],
    responses={404: {"model": ErrorResponse}},
)
async def list_events(
    db: DbSession,
    company_id: CompanyId,
    request_id: Annotated[int, Path()],
) -> list[AcknowledgementEventResponse]:
    """Audit events recorded for a request."""
    events = await AcknowledgementService(db).list_events(company_id, request_id)
    return [AcknowledgementEventResponse.model_validate(e) for e in events]
