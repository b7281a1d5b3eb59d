"""Pytest fixtures for compliance tracker tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import timedelta

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from compliance_tracker.api.app import create_app
from compliance_tracker.database import dispose_db, init_db
from compliance_tracker.models import Base, Company, utc_now
from compliance_tracker.services.assignment_service import AssignmentService
from compliance_tracker.services.policy_service import PolicyService

# In-memory SQLite shared by every connection of one engine
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def company(session: AsyncSession) -> Company:
    """Create a test company."""
    company = Company(name="Acme Dental")
    session.add(company)
    await session.flush()
    return company


@pytest_asyncio.fixture
async def other_company(session: AsyncSession) -> Company:
    """A second tenant, used to check isolation."""
    company = Company(name="Globex")
    session.add(company)
    await session.flush()
    return company


@pytest_asyncio.fixture
async def employee(session: AsyncSession, company: Company):
    """Create an active test employee."""
    return await AssignmentService(session).create_employee(
        company.id,
        first_name="Jane",
        last_name="Doe",
        email="jane.doe@example.com",
        start_date=utc_now() - timedelta(days=90),
    )


@pytest_asyncio.fixture
async def approved_version(session: AsyncSession, company: Company):
    """An APPROVED version of a DATA_PROTECTION policy."""
    service = PolicyService(session)
    policy = await service.create_policy(company.id, title="Data Protection", type="DATA_PROTECTION")
    version = await service.create_version(
        company.id, policy.id, version="1.0", content="Handle data with care.", created_by=1
    )
    return await service.approve_version(company.id, version.id, approved_by=42)


@pytest_asyncio.fixture
async def client(engine: AsyncEngine) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the app, sharing the test engine."""
    init_db(engine)
    transport = ASGITransport(app=create_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    await dispose_db()


@pytest_asyncio.fixture
async def bound_db(engine: AsyncEngine) -> AsyncGenerator[AsyncEngine, None]:
    """Bind the application's session factory to the test engine."""
    init_db(engine)
    yield engine
    await dispose_db()
