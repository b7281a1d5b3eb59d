"""Compliance aggregation for the dashboard."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from compliance_tracker.models import (
    AcknowledgementRequest,
    Employee,
    Policy,
    PolicyVersion,
    TemplateUpgrade,
    VersionStatus,
    utc_now,
)
from compliance_tracker.services.acknowledgement_service import overdue_filter


@dataclass(frozen=True)
class DashboardMetrics:
    """Company-level compliance summary."""

    total_policies: int
    pending_approvals: int
    total_employees: int
    overdue_acknowledgements: int
    acknowledgements_this_month: int
    compliance_rate: float


def month_bounds(now: datetime) -> tuple[datetime, datetime]:
    """Start of the UTC calendar month containing ``now`` and start of the next."""
    now = now.astimezone(timezone.utc)
    start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if start.month == 12:
        end = start.replace(year=start.year + 1, month=1)
    else:
        end = start.replace(month=start.month + 1)
    return start, end


def compliance_rate(completed: int, issued: int) -> float:
    """Percentage of issued acknowledgements that are completed.

    Nothing issued means nothing outstanding, which counts as fully compliant.
    """
    if issued <= 0:
        return 100.0
    return round(100.0 * completed / issued, 1)


class MetricsService:
    """Read-side aggregation scoped to one company."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _count(self, query) -> int:
        return await self.session.scalar(query) or 0

    def _company_requests(self, company_id: int):
        return (
            select(func.count(AcknowledgementRequest.id))
            .join(Employee, AcknowledgementRequest.employee_id == Employee.id)
            .where(Employee.company_id == company_id)
        )

    async def get_dashboard_metrics(
        self, company_id: int, now: datetime | None = None
    ) -> DashboardMetrics:
        """Compute the dashboard counts at instant ``now``."""
        now = now or utc_now()
        month_start, month_end = month_bounds(now)

        total_policies = await self._count(
            select(func.count(Policy.id)).where(Policy.company_id == company_id)
        )
        pending_approvals = await self._count(
            select(func.count(PolicyVersion.id))
            .join(Policy, PolicyVersion.policy_id == Policy.id)
            .where(
                Policy.company_id == company_id,
                PolicyVersion.status == VersionStatus.PENDING.value,
            )
        )
        total_employees = await self._count(
            select(func.count(Employee.id)).where(Employee.company_id == company_id)
        )
        overdue = await self._count(
            self._company_requests(company_id).where(*overdue_filter(now))
        )
        this_month = await self._count(
            self._company_requests(company_id).where(
                AcknowledgementRequest.completed_at.is_not(None),
                AcknowledgementRequest.completed_at >= month_start,
                AcknowledgementRequest.completed_at < month_end,
            )
        )

        approved_requests = (
            self._company_requests(company_id)
            .join(PolicyVersion, AcknowledgementRequest.policy_version_id == PolicyVersion.id)
            .where(PolicyVersion.status == VersionStatus.APPROVED.value)
        )
        issued = await self._count(approved_requests)
        completed = await self._count(
            approved_requests.where(AcknowledgementRequest.completed_at.is_not(None))
        )

        return DashboardMetrics(
            total_policies=total_policies,
            pending_approvals=pending_approvals,
            total_employees=total_employees,
            overdue_acknowledgements=overdue,
            acknowledgements_this_month=this_month,
            compliance_rate=compliance_rate(completed, issued),
        )

    async def list_template_upgrades(self, company_id: int) -> list[TemplateUpgrade]:
        """Template upgrades published for the company, newest first."""
        result = await self.session.execute(
            select(TemplateUpgrade)
            .where(TemplateUpgrade.company_id == company_id)
            .order_by(TemplateUpgrade.notified_at.desc(), TemplateUpgrade.id.desc())
        )
        return list(result.scalars().all())
