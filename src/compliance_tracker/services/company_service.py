"""Company (tenant) records."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from compliance_tracker.models import Company
from compliance_tracker.services.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class CompanyService:
    """Create and look up companies. Companies are never deleted."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_company(self, name: str | None) -> Company:
        if name is None or not name.strip():
            raise ValidationError("name is required", field="name")
        company = Company(name=name.strip())
        self.session.add(company)
        await self.session.flush()
        logger.info("Created company %s (%s)", company.id, company.name)
        return company

    async def get_company(self, company_id: int) -> Company:
        company = await self.session.get(Company, company_id)
        if company is None:
            raise NotFoundError("Company", company_id)
        return company

    async def list_companies(self) -> list[Company]:
        result = await self.session.execute(select(Company).order_by(Company.id))
        return list(result.scalars().all())
