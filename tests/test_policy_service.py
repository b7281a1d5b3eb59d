"""Tests for the policy and version lifecycle service."""

from datetime import timedelta

import pytest

from compliance_tracker.models import PolicyVersion, VersionStatus, utc_now
from compliance_tracker.services.errors import InvalidTransitionError, NotFoundError, ValidationError
from compliance_tracker.services.policy_service import PolicyService

pytestmark = pytest.mark.asyncio


class TestCreatePolicy:
    async def test_create_policy_has_no_versions(self, session, company):
        policy = await PolicyService(session).create_policy(
            company.id, title="Acceptable Use", type="ACCEPTABLE_USE"
        )

        assert policy.id is not None
        assert policy.versions == []
        assert policy.latest_version is None
        assert policy.is_template is False

    async def test_unknown_type_rejected(self, session, company):
        with pytest.raises(ValidationError) as exc_info:
            await PolicyService(session).create_policy(company.id, title="X", type="SECRET")
        assert exc_info.value.field == "type"

    async def test_blank_title_rejected(self, session, company):
        with pytest.raises(ValidationError) as exc_info:
            await PolicyService(session).create_policy(company.id, title="  ", type="CUSTOM")
        assert exc_info.value.field == "title"

    async def test_unknown_company(self, session):
        with pytest.raises(NotFoundError):
            await PolicyService(session).create_policy(999, title="X", type="CUSTOM")

    async def test_update_policy(self, session, company):
        service = PolicyService(session)
        policy = await service.create_policy(company.id, title="Crypto", type="CRYPTO")

        updated = await service.update_policy(
            company.id, policy.id, title="Cryptography", is_template=True
        )

        assert updated.title == "Cryptography"
        assert updated.is_template is True
        assert updated.type == "CRYPTO"

    async def test_update_rejects_unknown_fields(self, session, company):
        service = PolicyService(session)
        policy = await service.create_policy(company.id, title="Crypto", type="CRYPTO")

        with pytest.raises(ValidationError) as exc_info:
            await service.update_policy(company.id, policy.id, id=2, created_by=3)

        assert exc_info.value.field == "created_by"
        assert "id" in exc_info.value.message
        assert policy.title == "Crypto"

    async def test_policies_are_company_scoped(self, session, company, other_company):
        service = PolicyService(session)
        policy = await service.create_policy(company.id, title="Crypto", type="CRYPTO")

        with pytest.raises(NotFoundError):
            await service.get_policy_with_latest_version(other_company.id, policy.id)
        assert await service.list_policies(other_company.id) == []


class TestVersions:
    async def test_new_version_defaults_to_draft(self, session, company):
        service = PolicyService(session)
        policy = await service.create_policy(company.id, title="Crypto", type="CRYPTO")

        version = await service.create_version(
            company.id, policy.id, version="1.0", content="body", created_by=7
        )

        assert version.status == VersionStatus.DRAFT.value
        assert version.approved_by is None
        assert version.approved_at is None

    async def test_version_cannot_start_approved(self, session, company):
        service = PolicyService(session)
        policy = await service.create_policy(company.id, title="Crypto", type="CRYPTO")

        with pytest.raises(ValidationError) as exc_info:
            await service.create_version(
                company.id,
                policy.id,
                version="1.0",
                content="body",
                created_by=7,
                status=VersionStatus.APPROVED,
            )
        assert exc_info.value.field == "status"

    async def test_latest_version_uses_created_at(self, session, company):
        service = PolicyService(session)
        policy = await service.create_policy(company.id, title="Crypto", type="CRYPTO")
        now = utc_now()

        newer = PolicyVersion(
            policy=policy, version="2.0", content="b", created_by=1, created_at=now
        )
        older = PolicyVersion(
            policy=policy,
            version="1.0",
            content="a",
            created_by=1,
            created_at=now - timedelta(days=1),
        )
        session.add_all([newer, older])
        await session.flush()

        _, versions, latest = await service.get_policy_with_latest_version(company.id, policy.id)

        assert latest.id == newer.id
        assert [v.version for v in versions] == ["2.0", "1.0"]

    async def test_latest_version_tie_breaks_on_id(self, session, company):
        service = PolicyService(session)
        policy = await service.create_policy(company.id, title="Crypto", type="CRYPTO")
        now = utc_now()

        first = PolicyVersion(policy=policy, version="1.0", content="a", created_by=1, created_at=now)
        second = PolicyVersion(policy=policy, version="1.1", content="b", created_by=1, created_at=now)
        session.add(first)
        await session.flush()
        session.add(second)
        await session.flush()

        assert policy.latest_version.id == second.id


class TestApproval:
    async def test_approve_pending_version(self, session, company):
        service = PolicyService(session)
        policy = await service.create_policy(company.id, title="DP", type="DATA_PROTECTION")
        version = await service.create_version(
            company.id, policy.id, version="1.0", content="body", created_by=1,
            status=VersionStatus.PENDING,
        )

        approved = await service.approve_version(company.id, version.id, approved_by=42)

        assert approved.status == VersionStatus.APPROVED.value
        assert approved.approved_by == 42
        assert approved.approved_at is not None

    async def test_approve_draft_directly(self, session, company):
        service = PolicyService(session)
        policy = await service.create_policy(company.id, title="DP", type="DATA_PROTECTION")
        version = await service.create_version(
            company.id, policy.id, version="1.0", content="body", created_by=1
        )

        approved = await service.approve_version(company.id, version.id, approved_by=3)

        assert approved.status == VersionStatus.APPROVED.value

    async def test_approve_twice_rejected(self, session, company, approved_version):
        with pytest.raises(InvalidTransitionError):
            await PolicyService(session).approve_version(
                company.id, approved_version.id, approved_by=43
            )
        assert approved_version.approved_by == 42

    async def test_deprecated_never_reverted(self, session, company, approved_version):
        service = PolicyService(session)
        await service.deprecate_version(company.id, approved_version.id)

        with pytest.raises(InvalidTransitionError) as exc_info:
            await service.approve_version(company.id, approved_version.id, approved_by=42)

        assert exc_info.value.reason == "deprecated versions are final"
        assert approved_version.status == VersionStatus.DEPRECATED.value

    async def test_submit_then_approve(self, session, company):
        service = PolicyService(session)
        policy = await service.create_policy(company.id, title="IR", type="INCIDENT_RESPONSE")
        version = await service.create_version(
            company.id, policy.id, version="1.0", content="body", created_by=1
        )

        submitted = await service.submit_version(company.id, version.id)
        assert submitted.status == VersionStatus.PENDING.value

        with pytest.raises(InvalidTransitionError):
            await service.submit_version(company.id, version.id)

    async def test_approve_unknown_version(self, session, company):
        with pytest.raises(NotFoundError):
            await PolicyService(session).approve_version(company.id, 12345, approved_by=1)

    async def test_approve_other_company_version(self, session, other_company, approved_version):
        with pytest.raises(NotFoundError):
            await PolicyService(session).deprecate_version(other_company.id, approved_version.id)
