"""Tests for dashboard aggregation."""

from datetime import datetime, timedelta, timezone

from compliance_tracker.models import TemplateUpgrade, VersionStatus, utc_now
from compliance_tracker.services.acknowledgement_service import AcknowledgementService
from compliance_tracker.services.assignment_service import AssignmentService
from compliance_tracker.services.metrics_service import MetricsService, compliance_rate, month_bounds
from compliance_tracker.services.policy_service import PolicyService


class TestHelpers:
    def test_compliance_rate(self):
        assert compliance_rate(0, 0) == 100.0
        assert compliance_rate(1, 3) == 33.3
        assert compliance_rate(2, 3) == 66.7
        assert compliance_rate(4, 4) == 100.0

    def test_month_bounds(self):
        start, end = month_bounds(datetime(2026, 12, 31, 23, 59, tzinfo=timezone.utc))
        assert start == datetime(2026, 12, 1, tzinfo=timezone.utc)
        assert end == datetime(2027, 1, 1, tzinfo=timezone.utc)


class TestDashboardMetrics:
    async def test_empty_company(self, session, company):
        metrics = await MetricsService(session).get_dashboard_metrics(company.id)

        assert metrics.total_policies == 0
        assert metrics.pending_approvals == 0
        assert metrics.total_employees == 0
        assert metrics.overdue_acknowledgements == 0
        assert metrics.acknowledgements_this_month == 0
        assert metrics.compliance_rate == 100.0

    async def test_dashboard_scenario(self, session, company, other_company):
        policies = PolicyService(session)
        assignments = AssignmentService(session)
        acks = AcknowledgementService(session)
        now = utc_now()

        # 3 policies: one with a pending version, two approved
        pending_policy = await policies.create_policy(company.id, title="IR", type="INCIDENT_RESPONSE")
        await policies.create_version(
            company.id, pending_policy.id, version="0.1", content="draft", created_by=1,
            status=VersionStatus.PENDING,
        )
        approved = []
        for title, policy_type in (("DP", "DATA_PROTECTION"), ("AUP", "ACCEPTABLE_USE")):
            policy = await policies.create_policy(company.id, title=title, type=policy_type)
            version = await policies.create_version(
                company.id, policy.id, version="1.0", content="body", created_by=1
            )
            approved.append(await policies.approve_version(company.id, version.id, approved_by=42))

        employees = [
            await assignments.create_employee(
                company.id, f"E{i}", "Staff", f"e{i}@example.com", now - timedelta(days=100)
            )
            for i in range(5)
        ]

        # 2 overdue, 1 completed this month, 1 not yet due
        for emp in employees[:2]:
            await acks.create_request(
                company.id, emp.id, approved[0].id, "MANUAL", due_date=now - timedelta(days=3)
            )
        done = await acks.create_request(
            company.id, employees[2].id, approved[1].id, "MANUAL", due_date=now + timedelta(days=3)
        )
        await acks.complete_request(company.id, done.id, employee_id=employees[2].id, now=now)
        await acks.create_request(
            company.id, employees[3].id, approved[1].id, "PERIODIC", due_date=now + timedelta(days=3)
        )

        # Noise in another tenant
        await policies.create_policy(other_company.id, title="Other", type="CUSTOM")

        metrics = await MetricsService(session).get_dashboard_metrics(company.id, now=now)

        assert metrics.total_policies == 3
        assert metrics.pending_approvals == 1
        assert metrics.total_employees == 5
        assert metrics.overdue_acknowledgements == 2
        assert metrics.acknowledgements_this_month == 1
        assert metrics.compliance_rate == 25.0

    async def test_completion_last_month_not_counted(self, session, company, employee, approved_version):
        acks = AcknowledgementService(session)
        now = datetime(2026, 5, 10, 9, 0, tzinfo=timezone.utc)
        request = await acks.create_request(
            company.id, employee.id, approved_version.id, "MANUAL", due_date=now
        )
        await acks.complete_request(
            company.id, request.id, employee_id=employee.id, now=datetime(2026, 4, 30, 23, 59, tzinfo=timezone.utc)
        )

        metrics = await MetricsService(session).get_dashboard_metrics(company.id, now=now)

        assert metrics.acknowledgements_this_month == 0
        assert metrics.compliance_rate == 100.0


class TestTemplateUpgrades:
    async def test_list_template_upgrades(self, session, company, other_company):
        now = utc_now()
        session.add_all(
            [
                TemplateUpgrade(
                    company_id=company.id,
                    policy_type="CRYPTO",
                    current_version="1.0",
                    available_version="1.1",
                    notified_at=now - timedelta(days=2),
                ),
                TemplateUpgrade(
                    company_id=company.id,
                    policy_type="DATA_PROTECTION",
                    current_version="2.0",
                    available_version="3.0",
                    notified_at=now,
                ),
                TemplateUpgrade(
                    company_id=other_company.id,
                    policy_type="CRYPTO",
                    current_version="1.0",
                    available_version="1.1",
                ),
            ]
        )
        await session.flush()

        upgrades = await MetricsService(session).list_template_upgrades(company.id)

        assert [u.policy_type for u in upgrades] == ["DATA_PROTECTION", "CRYPTO"]
