"""
Pytest configuration and fixtures.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import datetime, timedelta
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from contactbook.config import Settings
from contactbook.contacts.import_export import ImportExportService
from contactbook.contacts.models import Contact  # noqa: F401  (registers the table)
from contactbook.contacts.schemas import ContactData
from contactbook.contacts.service import ContactService
from contactbook.shared.database import Base


class StepClock:
    """Deterministic clock: every call is one second after the previous one."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2024, 1, 1, 12, 0, 0)

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings."""
    return Settings(
        debug=False,
        log_level="WARNING",
        database_url="sqlite+aiosqlite:///:memory:",
    )


@pytest_asyncio.fixture
async def db_engine(test_settings: Settings) -> AsyncGenerator[Any, None]:
    """Create test database engine."""
    engine = create_async_engine(
        test_settings.database_url,
        echo=False,
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine: Any) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    session_factory = async_sessionmaker(
        bind=db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with session_factory() as session:
        yield session


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def contact_service(db_session: AsyncSession, clock: StepClock) -> ContactService:
    """Create contact service over the test session."""
    return ContactService(session=db_session, clock=clock)


@pytest.fixture
def import_export_service(contact_service: ContactService) -> ImportExportService:
    return ImportExportService(contact_service, encoding="utf-8")


@pytest.fixture
def make_contact():
    """Factory for candidate contacts with sensible defaults."""

    def _make(first_name: str = "John", **fields: Any) -> ContactData:
        return ContactData(first_name=first_name, **fields)

    return _make
