"""Policy and policy version lifecycle service."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from compliance_tracker.models import Company, Policy, PolicyType, PolicyVersion, VersionStatus, utc_now
from compliance_tracker.services.errors import NotFoundError, ValidationError
from compliance_tracker.services.state_machine import VersionStateMachine

logger = logging.getLogger(__name__)

UPDATABLE_POLICY_FIELDS = frozenset(
    {"title", "description", "type", "is_template", "template_source"}
)


def _require_text(value: str | None, field: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"{field} is required", field=field)
    return value.strip()


def _require_policy_type(value: str | None) -> str:
    if value is None:
        raise ValidationError("type is required", field="type")
    try:
        return PolicyType(value).value
    except ValueError:
        allowed = ", ".join(t.value for t in PolicyType)
        raise ValidationError(f"type must be one of: {allowed}", field="type") from None


class PolicyService:
    """Service for policies and their versions.

    Operations:
    - create_policy / update_policy / list_policies / get_policy_with_latest_version
    - create_version / list_versions
    - submit_version: DRAFT → PENDING
    - approve_version: → APPROVED with approver and timestamp
    - deprecate_version: APPROVED → DEPRECATED
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _get_company(self, company_id: int) -> Company:
        company = await self.session.get(Company, company_id)
        if company is None:
            raise NotFoundError("Company", company_id)
        return company

    async def _get_policy(self, company_id: int, policy_id: int) -> Policy:
        policy = await self.session.get(Policy, policy_id)
        if policy is None or policy.company_id != company_id:
            raise NotFoundError("Policy", policy_id)
        return policy

    async def get_version(self, company_id: int, version_id: int) -> PolicyVersion:
        """Load a version, scoped to the company that owns its policy."""
        version = await self.session.get(PolicyVersion, version_id)
        if version is None or version.policy.company_id != company_id:
            raise NotFoundError("PolicyVersion", version_id)
        return version

    # ------------------------------------------------------------------
    # Policies
    # ------------------------------------------------------------------

    async def create_policy(
        self,
        company_id: int,
        title: str | None,
        type: str | None,
        description: str | None = None,
        is_template: bool = False,
        template_source: str | None = None,
    ) -> Policy:
        """Create a policy with no versions."""
        title = _require_text(title, "title")
        policy_type = _require_policy_type(type)
        await self._get_company(company_id)

        policy = Policy(
            company_id=company_id,
            title=title,
            type=policy_type,
            description=description,
            is_template=is_template,
            template_source=template_source,
            versions=[],
        )
        self.session.add(policy)
        await self.session.flush()
        logger.info("Created policy %s (%s) for company %s", policy.id, policy_type, company_id)
        return policy

    async def update_policy(self, company_id: int, policy_id: int, **fields: Any) -> Policy:
        """Update mutable policy fields. Unknown fields are rejected."""
        unknown = set(fields) - UPDATABLE_POLICY_FIELDS
        if unknown:
            raise ValidationError(
                f"Cannot update field(s): {', '.join(sorted(unknown))}",
                field=sorted(unknown)[0],
            )

        policy = await self._get_policy(company_id, policy_id)
        if "title" in fields:
            fields["title"] = _require_text(fields["title"], "title")
        if "type" in fields:
            fields["type"] = _require_policy_type(fields["type"])
        if "is_template" in fields and fields["is_template"] is None:
            raise ValidationError("is_template cannot be null", field="is_template")

        for name, value in fields.items():
            setattr(policy, name, value)
        policy.updated_at = utc_now()
        await self.session.flush()
        return policy

    async def list_policies(self, company_id: int) -> list[Policy]:
        """List a company's policies, newest first, with versions loaded."""
        result = await self.session.execute(
            select(Policy)
            .where(Policy.company_id == company_id)
            .order_by(Policy.created_at.desc(), Policy.id.desc())
        )
        return list(result.scalars().all())

    async def get_policy_with_latest_version(
        self, company_id: int, policy_id: int
    ) -> tuple[Policy, list[PolicyVersion], PolicyVersion | None]:
        """Return the policy, all its versions (newest first) and the latest one."""
        policy = await self._get_policy(company_id, policy_id)
        versions = await self.list_versions(company_id, policy_id)
        return policy, versions, policy.latest_version

    # ------------------------------------------------------------------
    # Versions
    # ------------------------------------------------------------------

    async def list_versions(self, company_id: int, policy_id: int) -> list[PolicyVersion]:
        """List versions of a policy, newest first."""
        await self._get_policy(company_id, policy_id)
        result = await self.session.execute(
            select(PolicyVersion)
            .where(PolicyVersion.policy_id == policy_id)
            .order_by(PolicyVersion.created_at.desc(), PolicyVersion.id.desc())
        )
        return list(result.scalars().all())

    async def create_version(
        self,
        company_id: int,
        policy_id: int,
        version: str | None,
        content: str | None,
        created_by: int | None,
        status: str = VersionStatus.DRAFT,
        config_data: dict[str, Any] | None = None,
    ) -> PolicyVersion:
        """Create a new version under a policy in DRAFT or PENDING status."""
        label = _require_text(version, "version")
        if content is None:
            raise ValidationError("content is required", field="content")
        if created_by is None:
            raise ValidationError("createdBy is required", field="createdBy")
        if not VersionStateMachine.is_valid_initial_status(status):
            raise ValidationError(
                "status must be DRAFT or PENDING for a new version", field="status"
            )

        policy = await self._get_policy(company_id, policy_id)
        policy_version = PolicyVersion(
            policy=policy,
            version=label,
            content=content,
            status=VersionStatus(status).value,
            config_data=config_data,
            created_by=created_by,
        )
        self.session.add(policy_version)
        await self.session.flush()
        logger.info(
            "Created version %s (%s) of policy %s", policy_version.id, label, policy_id
        )
        return policy_version

    async def _transition(
        self, version: PolicyVersion, to_status: VersionStatus
    ) -> PolicyVersion:
        VersionStateMachine.validate_transition(version.status, to_status)
        old_status = version.status
        version.status = to_status.value
        version.updated_at = utc_now()
        logger.info(
            "Policy version %s status change %s -> %s", version.id, old_status, to_status.value
        )
        return version

    async def submit_version(self, company_id: int, version_id: int) -> PolicyVersion:
        """Submit a draft version for approval."""
        version = await self.get_version(company_id, version_id)
        await self._transition(version, VersionStatus.PENDING)
        await self.session.flush()
        return version

    async def approve_version(
        self,
        company_id: int,
        version_id: int,
        approved_by: int | None,
        now: datetime | None = None,
    ) -> PolicyVersion:
        """Approve a version, recording approver and approval time.

        Raises InvalidTransitionError for APPROVED or DEPRECATED versions.
        """
        if approved_by is None:
            raise ValidationError("approvedBy is required", field="approvedBy")

        version = await self.get_version(company_id, version_id)
        await self._transition(version, VersionStatus.APPROVED)
        version.approved_by = approved_by
        version.approved_at = now or utc_now()
        await self.session.flush()
        return version

    async def deprecate_version(self, company_id: int, version_id: int) -> PolicyVersion:
        """Retire an approved version."""
        version = await self.get_version(company_id, version_id)
        await self._transition(version, VersionStatus.DEPRECATED)
        await self.session.flush()
        return version
