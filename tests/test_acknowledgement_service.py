"""Tests for acknowledgement issuing, completion, overdue detection and escalation."""

from datetime import timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from compliance_tracker.database import get_session
from compliance_tracker.models import (
    AcknowledgementEvent,
    AcknowledgementRequest,
    Company,
    VersionStatus,
    utc_now,
)
from compliance_tracker.services.acknowledgement_service import AcknowledgementService
from compliance_tracker.services.assignment_service import AssignmentService
from compliance_tracker.services.errors import (
    AlreadyCompletedError,
    AlreadyResolvedError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from compliance_tracker.services.policy_service import PolicyService

pytestmark = pytest.mark.asyncio


async def _event_count(session, request_id: int) -> int:
    return await session.scalar(
        select(func.count(AcknowledgementEvent.id)).where(
            AcknowledgementEvent.request_id == request_id
        )
    )


class TestAcknowledgementFlow:
    """End-to-end lifecycle at the service layer."""

    async def test_full_acknowledgement_flow(self, session, company):
        policies = PolicyService(session)
        assignments = AssignmentService(session)
        acks = AcknowledgementService(session)

        policy = await policies.create_policy(company.id, title="DP", type="DATA_PROTECTION")
        v1 = await policies.create_version(
            company.id, policy.id, version="1.0", content="body", created_by=1,
            status=VersionStatus.PENDING,
        )
        v1 = await policies.approve_version(company.id, v1.id, approved_by=42)
        assert v1.status == VersionStatus.APPROVED.value
        assert v1.approved_by == 42

        role = await assignments.create_role(company.id, "Clinicians")
        await assignments.assign_policy_to_role(company.id, role.id, v1.id)
        employee = await assignments.create_employee(
            company.id, "Sam", "Lee", "sam@example.com", utc_now() - timedelta(days=10)
        )
        await assignments.assign_role_to_employee(company.id, employee.id, role.id)

        now = utc_now()
        request = await acks.create_request(
            company.id, employee.id, v1.id, "MANUAL", due_date=now - timedelta(days=1)
        )

        overdue = await acks.list_overdue(company.id, now=now)
        assert [r.id for r in overdue] == [request.id]

        event = await acks.complete_request(company.id, request.id, employee_id=employee.id)

        assert event.request_id == request.id
        assert event.policy_version_id == v1.id
        refreshed = await acks.get_request(company.id, request.id)
        assert refreshed.completed_at is not None
        assert await _event_count(session, request.id) == 1
        assert await acks.list_overdue(company.id, now=now) == []


class TestCreateRequest:
    async def test_past_due_date_is_immediately_overdue(self, session, company, employee, approved_version):
        acks = AcknowledgementService(session)
        now = utc_now()

        request = await acks.create_request(
            company.id, employee.id, approved_version.id, "ONBOARD", due_date=now - timedelta(hours=1)
        )

        assert request.completed_at is None
        assert [r.id for r in await acks.list_overdue(company.id, now=now)] == [request.id]

    async def test_unknown_trigger_type(self, session, company, employee, approved_version):
        with pytest.raises(ValidationError) as exc_info:
            await AcknowledgementService(session).create_request(
                company.id, employee.id, approved_version.id, "YEARLY", due_date=utc_now()
            )
        assert exc_info.value.field == "triggerType"

    async def test_unknown_employee(self, session, company, approved_version):
        with pytest.raises(NotFoundError):
            await AcknowledgementService(session).create_request(
                company.id, 999, approved_version.id, "MANUAL", due_date=utc_now()
            )

    async def test_unknown_version(self, session, company, employee):
        with pytest.raises(NotFoundError):
            await AcknowledgementService(session).create_request(
                company.id, employee.id, 999, "MANUAL", due_date=utc_now()
            )


class TestCompleteRequest:
    async def test_double_completion(self, session, company, employee, approved_version):
        acks = AcknowledgementService(session)
        request = await acks.create_request(
            company.id, employee.id, approved_version.id, "MANUAL", due_date=utc_now()
        )
        await acks.complete_request(company.id, request.id, employee_id=employee.id)
        first_completed_at = (await acks.get_request(company.id, request.id)).completed_at

        with pytest.raises(AlreadyCompletedError):
            await acks.complete_request(company.id, request.id, employee_id=employee.id)

        assert await _event_count(session, request.id) == 1
        assert (await acks.get_request(company.id, request.id)).completed_at == first_completed_at

    async def test_concurrent_completion_loses_on_update(
        self, session, company, employee, approved_version, monkeypatch
    ):
        winner = AcknowledgementService(session)
        request = await winner.create_request(
            company.id, employee.id, approved_version.id, "MANUAL", due_date=utc_now()
        )
        won_at = utc_now() - timedelta(minutes=5)
        await winner.complete_request(company.id, request.id, employee_id=employee.id, now=won_at)

        # The loser read the row before the winner's update landed
        set_committed_value(request, "completed_at", None)
        loser = AcknowledgementService(session)

        async def stale_get_request(company_id, request_id):
            return request

        monkeypatch.setattr(loser, "get_request", stale_get_request)

        with pytest.raises(AlreadyCompletedError):
            await loser.complete_request(company.id, request.id, employee_id=employee.id)

        assert await _event_count(session, request.id) == 1
        stored = await session.scalar(
            select(AcknowledgementRequest.completed_at).where(
                AcknowledgementRequest.id == request.id
            )
        )
        assert stored == won_at

    async def test_failed_event_write_rolls_back_completion(self, bound_db, monkeypatch):
        async with get_session() as setup:
            company = Company(name="Acme Dental")
            setup.add(company)
            await setup.flush()
            employee = await AssignmentService(setup).create_employee(
                company.id, "Jane", "Doe", "jane.doe@example.com", utc_now()
            )
            policies = PolicyService(setup)
            policy = await policies.create_policy(company.id, title="DP", type="DATA_PROTECTION")
            version = await policies.create_version(
                company.id, policy.id, version="1.0", content="body", created_by=1
            )
            await policies.approve_version(company.id, version.id, approved_by=42)
            request = await AcknowledgementService(setup).create_request(
                company.id, employee.id, version.id, "MANUAL", due_date=utc_now()
            )

        async def failing_flush(self, objects=None):
            raise OperationalError("INSERT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(AsyncSession, "flush", failing_flush)
        with pytest.raises(StoreError):
            async with get_session() as db:
                await AcknowledgementService(db).complete_request(
                    company.id, request.id, employee_id=employee.id
                )
        monkeypatch.undo()

        async with get_session() as db:
            stored = await AcknowledgementService(db).get_request(company.id, request.id)
            assert stored.completed_at is None
            assert await _event_count(db, request.id) == 0

    async def test_wrong_employee(self, session, company, employee, approved_version):
        acks = AcknowledgementService(session)
        other = await AssignmentService(session).create_employee(
            company.id, "Max", "Roe", "max@example.com", utc_now()
        )
        request = await acks.create_request(
            company.id, employee.id, approved_version.id, "MANUAL", due_date=utc_now()
        )

        with pytest.raises(ValidationError) as exc_info:
            await acks.complete_request(company.id, request.id, employee_id=other.id)

        assert exc_info.value.field == "employeeId"
        assert await _event_count(session, request.id) == 0

    async def test_unknown_request(self, session, company, employee):
        with pytest.raises(NotFoundError):
            await AcknowledgementService(session).complete_request(
                company.id, 999, employee_id=employee.id
            )

    async def test_event_records_client_details(self, session, company, employee, approved_version):
        acks = AcknowledgementService(session)
        request = await acks.create_request(
            company.id, employee.id, approved_version.id, "PERIODIC", due_date=utc_now()
        )

        event = await acks.complete_request(
            company.id,
            request.id,
            employee_id=employee.id,
            ip_address="10.0.0.5",
            user_agent="pytest",
        )

        events = await acks.list_events(company.id, request.id)
        assert [e.id for e in events] == [event.id]
        assert events[0].ip_address == "10.0.0.5"
        assert events[0].user_agent == "pytest"


class TestListOverdue:
    async def test_longest_overdue_first(self, session, company, employee, approved_version):
        acks = AcknowledgementService(session)
        now = utc_now()
        recent = await acks.create_request(
            company.id, employee.id, approved_version.id, "MANUAL", due_date=now - timedelta(days=2)
        )
        oldest = await acks.create_request(
            company.id, employee.id, approved_version.id, "MANUAL", due_date=now - timedelta(days=20)
        )
        await acks.create_request(
            company.id, employee.id, approved_version.id, "MANUAL", due_date=now + timedelta(days=5)
        )

        overdue = await acks.list_overdue(company.id, now=now)

        assert [r.id for r in overdue] == [oldest.id, recent.id]

    async def test_other_company_not_listed(self, session, company, other_company, employee, approved_version):
        acks = AcknowledgementService(session)
        now = utc_now()
        await acks.create_request(
            company.id, employee.id, approved_version.id, "MANUAL", due_date=now - timedelta(days=1)
        )

        assert await acks.list_overdue(other_company.id, now=now) == []


class TestEscalation:
    async def test_repeated_escalation(self, session, company, employee, approved_version):
        acks = AcknowledgementService(session)
        now = utc_now()
        request = await acks.create_request(
            company.id, employee.id, approved_version.id, "MANUAL", due_date=now - timedelta(days=9)
        )

        first = await acks.escalate(company.id, request.id, "manager@example.com", now=now)
        second = await acks.escalate(
            company.id, request.id, "director@example.com", now=now + timedelta(hours=1)
        )

        assert first.id != second.id
        refreshed = await acks.get_request(company.id, request.id)
        assert refreshed.escalated_at == now + timedelta(hours=1)
        assert refreshed.completed_at is None
        escalations = await acks.list_escalations(company.id)
        assert [e.escalated_to for e in escalations] == [
            "director@example.com",
            "manager@example.com",
        ]

    async def test_escalation_does_not_block_completion(self, session, company, employee, approved_version):
        acks = AcknowledgementService(session)
        request = await acks.create_request(
            company.id, employee.id, approved_version.id, "MANUAL", due_date=utc_now() - timedelta(days=3)
        )
        await acks.escalate(company.id, request.id, "manager@example.com")

        await acks.complete_request(company.id, request.id, employee_id=employee.id)

        refreshed = await acks.get_request(company.id, request.id)
        assert refreshed.completed_at is not None
        assert refreshed.escalated_at is not None

    async def test_escalate_requires_target(self, session, company, employee, approved_version):
        acks = AcknowledgementService(session)
        request = await acks.create_request(
            company.id, employee.id, approved_version.id, "MANUAL", due_date=utc_now()
        )

        with pytest.raises(ValidationError):
            await acks.escalate(company.id, request.id, " ")

    async def test_resolve_once(self, session, company, employee, approved_version):
        acks = AcknowledgementService(session)
        request = await acks.create_request(
            company.id, employee.id, approved_version.id, "MANUAL", due_date=utc_now()
        )
        escalation = await acks.escalate(company.id, request.id, "manager@example.com")

        resolved = await acks.resolve_escalation(company.id, escalation.id)
        assert resolved.resolved_at is not None

        with pytest.raises(AlreadyResolvedError):
            await acks.resolve_escalation(company.id, escalation.id)

    async def test_resolve_other_company(self, session, company, other_company, employee, approved_version):
        acks = AcknowledgementService(session)
        request = await acks.create_request(
            company.id, employee.id, approved_version.id, "MANUAL", due_date=utc_now()
        )
        escalation = await acks.escalate(company.id, request.id, "manager@example.com")

        with pytest.raises(NotFoundError):
            await acks.resolve_escalation(other_company.id, escalation.id)


class TestRoleFanOut:
    async def test_issue_role_requests(self, session, company, approved_version):
        assignments = AssignmentService(session)
        acks = AcknowledgementService(session)
        role = await assignments.create_role(company.id, "Front desk")
        await assignments.assign_policy_to_role(company.id, role.id, approved_version.id)

        active = await assignments.create_employee(
            company.id, "Ann", "Active", "ann@example.com", utc_now()
        )
        inactive = await assignments.create_employee(
            company.id, "Ian", "Inactive", "ian@example.com", utc_now(), is_active=False
        )
        for member in (active, inactive):
            await assignments.assign_role_to_employee(company.id, member.id, role.id)

        due = utc_now() + timedelta(days=30)
        created = await acks.issue_role_requests(company.id, role.id, "PERIODIC", due)

        assert [(r.employee_id, r.policy_version_id) for r in created] == [
            (active.id, approved_version.id)
        ]

        # Open requests are not duplicated
        assert await acks.issue_role_requests(company.id, role.id, "PERIODIC", due) == []

    async def test_assignments_are_idempotent(self, session, company, employee, approved_version):
        assignments = AssignmentService(session)
        role = await assignments.create_role(company.id, "Clinicians")

        first = await assignments.assign_policy_to_role(company.id, role.id, approved_version.id)
        again = await assignments.assign_policy_to_role(company.id, role.id, approved_version.id)
        link = await assignments.assign_role_to_employee(company.id, employee.id, role.id)
        link_again = await assignments.assign_role_to_employee(company.id, employee.id, role.id)

        assert first.id == again.id
        assert link.id == link_again.id
        assert len(await assignments.list_role_assignments(company.id, role.id)) == 1

    async def test_duplicate_email_rejected(self, session, company, employee):
        with pytest.raises(ValidationError) as exc_info:
            await AssignmentService(session).create_employee(
                company.id, "Janet", "Doe", "Jane.Doe@example.com", utc_now()
            )
        assert exc_info.value.field == "email"
