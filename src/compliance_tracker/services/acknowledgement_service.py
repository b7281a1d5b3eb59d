"""Acknowledgement request lifecycle: issue, complete, detect overdue, escalate."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from compliance_tracker.models import (
    AcknowledgementEvent,
    AcknowledgementRequest,
    AlertEscalation,
    Employee,
    EmployeeRole,
    PolicyVersion,
    RolePolicyAssignment,
    TriggerType,
    utc_now,
)
from compliance_tracker.services.assignment_service import AssignmentService
from compliance_tracker.services.errors import (
    AlreadyCompletedError,
    AlreadyResolvedError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def _require_trigger_type(value: str | None) -> str:
    if value is None:
        raise ValidationError("triggerType is required", field="triggerType")
    try:
        return TriggerType(value).value
    except ValueError:
        allowed = ", ".join(t.value for t in TriggerType)
        raise ValidationError(
            f"triggerType must be one of: {allowed}", field="triggerType"
        ) from None


def overdue_filter(now: datetime) -> tuple:
    """SQL criteria matching overdue requests at ``now``."""
    return (
        AcknowledgementRequest.completed_at.is_(None),
        AcknowledgementRequest.due_date < now,
    )


class AcknowledgementService:
    """Service for the acknowledgement request state machine.

    Key invariants:
    1. Overdue is derived (completed_at IS NULL AND due_date < now), never stored
    2. completed_at and escalated_at are never cleared
    3. A completed request has exactly one AcknowledgementEvent; completion uses
       a conditional update so only one concurrent caller can win
    4. Escalation may repeat; each one is a separate audit row
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.assignments = AssignmentService(session)

    async def get_request(self, company_id: int, request_id: int) -> AcknowledgementRequest:
        """Load a request scoped to the company of its employee."""
        result = await self.session.execute(
            select(AcknowledgementRequest)
            .where(AcknowledgementRequest.id == request_id)
            .execution_options(populate_existing=True)
        )
        request = result.scalar_one_or_none()
        if request is None or request.employee.company_id != company_id:
            raise NotFoundError("AcknowledgementRequest", request_id)
        return request

    def _company_requests(self, company_id: int):
        return (
            select(AcknowledgementRequest)
            .join(Employee, AcknowledgementRequest.employee_id == Employee.id)
            .where(Employee.company_id == company_id)
        )

    # ------------------------------------------------------------------
    # Issuing
    # ------------------------------------------------------------------

    async def create_request(
        self,
        company_id: int,
        employee_id: int,
        policy_version_id: int,
        trigger_type: str | None,
        due_date: datetime | None,
    ) -> AcknowledgementRequest:
        """Issue one acknowledgement request.

        A due date in the past is accepted and yields an immediately overdue item.
        """
        trigger = _require_trigger_type(trigger_type)
        if due_date is None:
            raise ValidationError("dueDate is required", field="dueDate")

        await self.assignments.get_employee(company_id, employee_id)
        version = await self.session.get(PolicyVersion, policy_version_id)
        if version is None or version.policy.company_id != company_id:
            raise NotFoundError("PolicyVersion", policy_version_id)

        request = AcknowledgementRequest(
            employee_id=employee_id,
            policy_version_id=policy_version_id,
            trigger_type=trigger,
            due_date=due_date,
        )
        self.session.add(request)
        await self.session.flush()
        await self.session.refresh(request)
        logger.info(
            "Issued %s acknowledgement request %s: employee %s, policy version %s, due %s",
            trigger,
            request.id,
            employee_id,
            policy_version_id,
            due_date.isoformat(),
        )
        return request

    async def issue_role_requests(
        self,
        company_id: int,
        role_id: int,
        trigger_type: str | None,
        due_date: datetime,
    ) -> list[AcknowledgementRequest]:
        """Fan out requests to every active holder of a role.

        One request per (employee, assigned policy version) pair, skipped when
        the employee already has an open request for that version.
        """
        trigger = _require_trigger_type(trigger_type)
        await self.assignments.get_role(company_id, role_id)

        members = await self.session.execute(
            select(Employee.id)
            .join(EmployeeRole, EmployeeRole.employee_id == Employee.id)
            .where(EmployeeRole.role_id == role_id, Employee.is_active.is_(True))
            .order_by(Employee.id)
        )
        employee_ids = list(members.scalars().all())

        assigned = await self.session.execute(
            select(RolePolicyAssignment.policy_version_id)
            .where(RolePolicyAssignment.role_id == role_id)
            .order_by(RolePolicyAssignment.policy_version_id)
        )
        version_ids = list(assigned.scalars().all())
        if not employee_ids or not version_ids:
            return []

        open_rows = await self.session.execute(
            select(
                AcknowledgementRequest.employee_id,
                AcknowledgementRequest.policy_version_id,
            ).where(
                AcknowledgementRequest.employee_id.in_(employee_ids),
                AcknowledgementRequest.policy_version_id.in_(version_ids),
                AcknowledgementRequest.completed_at.is_(None),
            )
        )
        open_pairs = {(row.employee_id, row.policy_version_id) for row in open_rows}

        created = []
        for employee_id in employee_ids:
            for version_id in version_ids:
                if (employee_id, version_id) in open_pairs:
                    continue
                request = AcknowledgementRequest(
                    employee_id=employee_id,
                    policy_version_id=version_id,
                    trigger_type=trigger,
                    due_date=due_date,
                )
                self.session.add(request)
                created.append(request)

        await self.session.flush()
        for request in created:
            await self.session.refresh(request)
        logger.info(
            "Issued %d %s acknowledgement request(s) for role %s",
            len(created),
            trigger,
            role_id,
        )
        return created

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------

    async def complete_request(
        self,
        company_id: int,
        request_id: int,
        employee_id: int | None,
        ip_address: str | None = None,
        user_agent: str | None = None,
        now: datetime | None = None,
    ) -> AcknowledgementEvent:
        """Complete a request and record its audit event in one transaction.

        Raises:
            NotFoundError: unknown request
            ValidationError: employee_id does not own the request
            AlreadyCompletedError: the request was already completed
        """
        if employee_id is None:
            raise ValidationError("employeeId is required", field="employeeId")

        request = await self.get_request(company_id, request_id)
        if request.employee_id != employee_id:
            raise ValidationError(
                f"Acknowledgement request {request_id} does not belong to employee {employee_id}",
                field="employeeId",
            )
        if request.completed_at is not None:
            raise AlreadyCompletedError(request_id)

        completed_at = now or utc_now()

        # Conditional update: only the caller that flips completed_at wins
        result = await self.session.execute(
            update(AcknowledgementRequest)
            .where(
                AcknowledgementRequest.id == request_id,
                AcknowledgementRequest.completed_at.is_(None),
            )
            .values(completed_at=completed_at, updated_at=completed_at)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise AlreadyCompletedError(request_id)

        event = AcknowledgementEvent(
            request_id=request_id,
            employee_id=employee_id,
            policy_version_id=request.policy_version_id,
            acknowledged_at=completed_at,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        self.session.add(event)
        await self.session.flush()
        await self.session.refresh(request)
        logger.info("Acknowledgement request %s completed by employee %s", request_id, employee_id)
        return event

    async def list_events(self, company_id: int, request_id: int) -> list[AcknowledgementEvent]:
        """Audit events recorded for a request."""
        await self.get_request(company_id, request_id)
        result = await self.session.execute(
            select(AcknowledgementEvent)
            .where(AcknowledgementEvent.request_id == request_id)
            .order_by(AcknowledgementEvent.id)
        )
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def list_requests(self, company_id: int) -> list[AcknowledgementRequest]:
        """All requests of a company, newest first."""
        result = await self.session.execute(
            self._company_requests(company_id).order_by(
                AcknowledgementRequest.created_at.desc(), AcknowledgementRequest.id.desc()
            )
        )
        return list(result.scalars().all())

    async def list_employee_requests(
        self, company_id: int, employee_id: int
    ) -> list[AcknowledgementRequest]:
        """Requests issued to one employee, newest first."""
        await self.assignments.get_employee(company_id, employee_id)
        result = await self.session.execute(
            select(AcknowledgementRequest)
            .where(AcknowledgementRequest.employee_id == employee_id)
            .order_by(
                AcknowledgementRequest.created_at.desc(), AcknowledgementRequest.id.desc()
            )
        )
        return list(result.scalars().all())

    async def list_overdue(
        self, company_id: int, now: datetime | None = None
    ) -> list[AcknowledgementRequest]:
        """Uncompleted requests past their due date.

        Ordered by due date ascending so the longest-overdue item comes first.
        """
        now = now or utc_now()
        result = await self.session.execute(
            self._company_requests(company_id)
            .where(*overdue_filter(now))
            .order_by(AcknowledgementRequest.due_date.asc(), AcknowledgementRequest.id.asc())
        )
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Escalation
    # ------------------------------------------------------------------

    async def escalate(
        self,
        company_id: int,
        request_id: int,
        escalated_to: str | None,
        now: datetime | None = None,
    ) -> AlertEscalation:
        """Raise a request to a responsible party. Repeat escalations are allowed."""
        if escalated_to is None or not escalated_to.strip():
            raise ValidationError("escalatedTo is required", field="escalatedTo")

        request = await self.get_request(company_id, request_id)
        escalated_at = now or utc_now()

        escalation = AlertEscalation(
            request_id=request.id,
            escalated_to=escalated_to.strip(),
            escalated_at=escalated_at,
        )
        self.session.add(escalation)
        request.escalated_at = escalated_at
        request.updated_at = escalated_at
        await self.session.flush()
        logger.warning(
            "Acknowledgement request %s escalated to %s", request_id, escalation.escalated_to
        )
        return escalation

    async def list_escalations(self, company_id: int) -> list[AlertEscalation]:
        """Escalations of a company, newest first."""
        result = await self.session.execute(
            select(AlertEscalation)
            .join(AcknowledgementRequest, AlertEscalation.request_id == AcknowledgementRequest.id)
            .join(Employee, AcknowledgementRequest.employee_id == Employee.id)
            .where(Employee.company_id == company_id)
            .order_by(AlertEscalation.escalated_at.desc(), AlertEscalation.id.desc())
        )
        return list(result.scalars().all())

    async def resolve_escalation(
        self, company_id: int, escalation_id: int, now: datetime | None = None
    ) -> AlertEscalation:
        """Mark an escalation as resolved. Resolution is final."""
        escalation = await self.session.get(AlertEscalation, escalation_id)
        request = None
        if escalation is not None:
            request = await self.session.get(AcknowledgementRequest, escalation.request_id)
        if request is None or request.employee.company_id != company_id:
            raise NotFoundError("AlertEscalation", escalation_id)
        if escalation.resolved_at is not None:
            raise AlreadyResolvedError(escalation_id)

        escalation.resolved_at = now or utc_now()
        await self.session.flush()
        logger.info("Escalation %s resolved", escalation_id)
        return escalation

