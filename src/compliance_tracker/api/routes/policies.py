"""Policy and policy version endpoints."""

from typing import Annotated

from fastapi import APIRouter, Path, status

from compliance_tracker.api.dependencies import CompanyId, DbSession
from compliance_tracker.api.schemas import (
    ApproveVersionRequest,
    ErrorResponse,
    PolicyCreate,
    PolicyResponse,
    PolicyUpdate,
    PolicyVersionCreate,
    PolicyVersionResponse,
)
from compliance_tracker.database import commit
from compliance_tracker.services.policy_service import PolicyService

router = APIRouter(tags=["policies"])


# ============================================================================
# Policies
# ============================================================================


@router.get("/policies", response_model=list[PolicyResponse])
async def list_policies(db: DbSession, company_id: CompanyId) -> list[PolicyResponse]:
    """List policies with versions and latest version."""
    policies = await PolicyService(db).list_policies(company_id)
    return [PolicyResponse.model_validate(p) for p in policies]


@router.post(
    "/policies",
    response_model=PolicyResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def create_policy(
    db: DbSession,
    company_id: CompanyId,
    payload: PolicyCreate,
) -> PolicyResponse:
    """Create a policy with no versions."""
    policy = await PolicyService(db).create_policy(
        company_id,
        title=payload.title,
        type=payload.type,
        description=payload.description,
        is_template=payload.is_template,
        template_source=payload.template_source,
    )
    await commit(db)
    return PolicyResponse.model_validate(policy)


@router.get(
    "/policies/{policy_id}",
    response_model=PolicyResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_policy(
    db: DbSession,
    company_id: CompanyId,
    policy_id: Annotated[int, Path()],
) -> PolicyResponse:
    """Get a policy with all versions and the latest one."""
    policy, versions, latest = await PolicyService(db).get_policy_with_latest_version(
        company_id, policy_id
    )
    response = PolicyResponse.model_validate(policy)
    response.versions = [PolicyVersionResponse.model_validate(v) for v in versions]
    response.latest_version = PolicyVersionResponse.model_validate(latest) if latest else None
    return response


@router.put(
    "/policies/{policy_id}",
    response_model=PolicyResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_policy(
    db: DbSession,
    company_id: CompanyId,
    policy_id: Annotated[int, Path()],
    payload: PolicyUpdate,
) -> PolicyResponse:
    """Update mutable policy fields present in the body."""
    fields = payload.model_dump(exclude_unset=True)
    policy = await PolicyService(db).update_policy(company_id, policy_id, **fields)
    await commit(db)
    return PolicyResponse.model_validate(policy)


# ============================================================================
# Versions
# ============================================================================


@router.get(
    "/policies/{policy_id}/versions",
    response_model=list[PolicyVersionResponse],
    responses={404: {"model": ErrorResponse}},
)
async def list_versions(
    db: DbSession,
    company_id: CompanyId,
    policy_id: Annotated[int, Path()],
) -> list[PolicyVersionResponse]:
    """List versions of a policy, newest first."""
    versions = await PolicyService(db).list_versions(company_id, policy_id)
    return [PolicyVersionResponse.model_validate(v) for v in versions]


@router.post(
    "/policies/{policy_id}/versions",
    response_model=PolicyVersionResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def create_version(
    db: DbSession,
    company_id: CompanyId,
    policy_id: Annotated[int, Path()],
    payload: PolicyVersionCreate,
) -> PolicyVersionResponse:
    """Create a DRAFT or PENDING version of a policy."""
    version = await PolicyService(db).create_version(
        company_id,
        policy_id,
        version=payload.version,
        content=payload.content,
        created_by=payload.created_by,
        status=payload.status,
        config_data=payload.config_data,
    )
    await commit(db)
    return PolicyVersionResponse.model_validate(version)


@router.post(
    "/versions/{version_id}/submit",
    response_model=PolicyVersionResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def submit_version(
    db: DbSession,
    company_id: CompanyId,
    version_id: Annotated[int, Path()],
) -> PolicyVersionResponse:
    """Submit a draft version for approval."""
    version = await PolicyService(db).submit_version(company_id, version_id)
    await commit(db)
    return PolicyVersionResponse.model_validate(version)


@router.post(
    "/versions/{version_id}/approve",
    response_model=PolicyVersionResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def approve_version(
    db: DbSession,
    company_id: CompanyId,
    version_id: Annotated[int, Path()],
    payload: ApproveVersionRequest,
) -> PolicyVersionResponse:
    """Approve a policy version."""
    version = await PolicyService(db).approve_version(
        company_id, version_id, approved_by=payload.approved_by
    )
    await commit(db)
    return PolicyVersionResponse.model_validate(version)


@router.post(
    "/versions/{version_id}/deprecate",
    response_model=PolicyVersionResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def deprecate_version(
    db: DbSession,
    company_id: CompanyId,
    version_id: Annotated[int, Path()],
) -> PolicyVersionResponse:
    """Retire an approved version."""
    version = await PolicyService(db).deprecate_version(company_id, version_id)
    await commit(db)
    return PolicyVersionResponse.model_validate(version)
