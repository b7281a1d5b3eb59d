"""Alert escalation endpoints."""

from typing import Annotated

from fastapi import APIRouter, Path, status

from compliance_tracker.api.dependencies import CompanyId, DbSession
from compliance_tracker.api.schemas import AlertEscalationResponse, ErrorResponse, EscalationCreate
from compliance_tracker.database import commit
from compliance_tracker.services.acknowledgement_service import AcknowledgementService

router = APIRouter(prefix="/alert-escalations", tags=["escalations"])


@router.get("", response_model=list[AlertEscalationResponse])
async def list_escalations(
    db: DbSession,
    company_id: CompanyId,
) -> list[AlertEscalationResponse]:
    """List escalations, newest first."""
    escalations = await AcknowledgementService(db).list_escalations(company_id)
    return [AlertEscalationResponse.model_validate(e) for e in escalations]


@router.post(
    "",
    response_model=AlertEscalationResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def create_escalation(
    db: DbSession,
    company_id: CompanyId,
    payload: EscalationCreate,
) -> AlertEscalationResponse:
    """Escalate an acknowledgement request to a responsible party."""
    escalation = await AcknowledgementService(db).escalate(
        company_id, payload.request_id, payload.escalated_to
    )
    await commit(db)
    return AlertEscalationResponse.model_validate(escalation)


@router.post(
    "/{escalation_id}/resolve",
    response_model=AlertEscalationResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def resolve_escalation(
    db: DbSession,
    company_id: CompanyId,
    escalation_id: Annotated[int, Path()],
) -> AlertEscalationResponse:
    """Mark an escalation as resolved."""
    escalation = await AcknowledgementService(db).resolve_escalation(company_id, escalation_id)
    await commit(db)
    return AlertEscalationResponse.model_validate(escalation)
