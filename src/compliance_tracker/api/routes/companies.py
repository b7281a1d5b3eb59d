"""Company endpoints."""

from typing import Annotated

from fastapi import APIRouter, Path, status

from compliance_tracker.api.dependencies import DbSession
from compliance_tracker.api.schemas import CompanyCreate, CompanyResponse, ErrorResponse
from compliance_tracker.database import commit
from compliance_tracker.services.company_service import CompanyService

router = APIRouter(prefix="/companies", tags=["companies"])


@router.get("", response_model=list[CompanyResponse])
async def list_companies(db: DbSession) -> list[CompanyResponse]:
    """List all companies."""
    companies = await CompanyService(db).list_companies()
    return [CompanyResponse.model_validate(c) for c in companies]


@router.post(
    "",
    response_model=CompanyResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
async def create_company(db: DbSession, payload: CompanyCreate) -> CompanyResponse:
    """Create a company."""
    company = await CompanyService(db).create_company(payload.name)
    await commit(db)
    return CompanyResponse.model_validate(company)


@router.get(
    "/{company_id}",
    response_model=CompanyResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_company(
    db: DbSession,
    company_id: Annotated[int, Path()],
) -> CompanyResponse:
    """Get a company by ID."""
    company = await CompanyService(db).get_company(company_id)
    return CompanyResponse.model_validate(company)
