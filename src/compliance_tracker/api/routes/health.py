"""Liveness, readiness and database health endpoints."""

import logging
from datetime import datetime

from fastapi import APIRouter, Response, status
from pydantic import BaseModel
from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from compliance_tracker import __version__
from compliance_tracker.api.dependencies import DbSession
from compliance_tracker.models import Company, utc_now

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Service and database health."""

    status: str
    version: str
    timestamp: datetime
    database: str
    dialect: str


async def _probe(db: AsyncSession, statement) -> bool:
    try:
        await db.execute(statement)
    except SQLAlchemyError:
        logger.warning("Database check failed", exc_info=True)
        await db.rollback()
        return False
    return True


@router.get("/health", response_model=HealthResponse)
async def health_check(db: DbSession) -> HealthResponse:
    """Report whether the database answers; degraded when it does not."""
    healthy = await _probe(db, text("SELECT 1"))
    return HealthResponse(
        status="healthy" if healthy else "degraded",
        version=__version__,
        timestamp=utc_now(),
        database="healthy" if healthy else "unhealthy",
        dialect=db.get_bind().dialect.name,
    )


@router.get("/ready")
async def readiness_check(db: DbSession, response: Response) -> dict[str, str]:
    """Ready once the schema exists and can be queried; 503 otherwise."""
    if await _probe(db, select(Company.id).limit(1)):
        return {"status": "ready"}
    response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return {"status": "schema unavailable"}


@router.get("/live")
async def liveness_check() -> dict[str, str]:
    """The process is up; no dependencies are checked."""
    return {"status": "alive"}
