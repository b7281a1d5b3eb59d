"""API routes."""

from compliance_tracker.api.routes.acknowledgements import router as acknowledgements_router
from compliance_tracker.api.routes.companies import router as companies_router
from compliance_tracker.api.routes.dashboard import router as dashboard_router
from compliance_tracker.api.routes.employees import router as employees_router
from compliance_tracker.api.routes.escalations import router as escalations_router
from compliance_tracker.api.routes.health import router as health_router
from compliance_tracker.api.routes.policies import router as policies_router
from compliance_tracker.api.routes.roles import router as roles_router

__all__ = [
    "acknowledgements_router",
    "companies_router",
    "dashboard_router",
    "employees_router",
    "escalations_router",
    "health_router",
    "policies_router",
    "roles_router",
]
