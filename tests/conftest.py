"""
Configuration for pytest.

This module provides fixtures and configuration for running tests. Every test
gets a fresh in-memory SQLite database.
"""

import os

os.environ.setdefault("ENVIRONMENT", "testing")

from decimal import Decimal
from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db.session import build_engine, get_db, init_models
from app.main import app
from app.models.user import User, UserRole
from app.schemas.budget_item import BudgetItemCreate
from app.schemas.project import ProjectCreate
from app.services.budget_item import BudgetItemService
from app.services.project import ProjectService

# Test database URL
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def test_engine():
    """Create an engine over a private in-memory database with all tables."""
    engine = build_engine(TEST_DATABASE_URL)
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    session_factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
async def async_client(db_session):
    """Create an async test client sharing the test session."""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def _make_user(db: AsyncSession, email: str, full_name: str, role: UserRole) -> User:
    user = User(email=email, full_name=full_name, role=role.value, department_name="Provincial Planning Office")
    db.add(user)
    await db.commit()
    return user


@pytest.fixture
async def staff_user(db_session) -> User:
    return await _make_user(db_session, "staff@example.gov", "Maria Santos", UserRole.USER)


@pytest.fixture
async def admin_user(db_session) -> User:
    return await _make_user(db_session, "admin@example.gov", "Jose Reyes", UserRole.ADMIN)


@pytest.fixture
async def budget_item(db_session, staff_user):
    return await BudgetItemService.create(
        db_session,
        BudgetItemCreate(particulars="20% Development Fund", total_budget_allocated=Decimal("100000.00"), year=2024),
        staff_user.id,
    )


@pytest.fixture
async def project(db_session, staff_user, budget_item):
    return await ProjectService.create(
        db_session,
        ProjectCreate(
            particulars="Farm-to-Market Road",
            budget_item_id=budget_item.id,
            implementing_office="Provincial Engineering Office",
            total_budget_allocated=Decimal("50000.00"),
            obligated_budget=Decimal("40000.00"),
            total_budget_utilized=Decimal("25000.00"),
            year=2024,
        ),
        staff_user.id,
    )
