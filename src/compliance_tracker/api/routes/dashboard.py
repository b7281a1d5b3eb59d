"""Dashboard and template upgrade endpoints."""

from fastapi import APIRouter

from compliance_tracker.api.dependencies import CompanyId, DbSession
from compliance_tracker.api.schemas import DashboardMetricsResponse, TemplateUpgradeResponse
from compliance_tracker.services.metrics_service import MetricsService

router = APIRouter(tags=["dashboard"])


@router.get("/dashboard/metrics", response_model=DashboardMetricsResponse)
async def get_dashboard_metrics(
    db: DbSession,
    company_id: CompanyId,
) -> DashboardMetricsResponse:
    """Compliance summary for the company."""
    metrics = await MetricsService(db).get_dashboard_metrics(company_id)
    return DashboardMetricsResponse.model_validate(metrics)


@router.get("/template-upgrades", response_model=list[TemplateUpgradeResponse])
async def list_template_upgrades(
    db: DbSession,
    company_id: CompanyId,
) -> list[TemplateUpgradeResponse]:
    """Template upgrades available to the company."""
    upgrades = await MetricsService(db).list_template_upgrades(company_id)
    return [TemplateUpgradeResponse.model_validate(u) for u in upgrades]
