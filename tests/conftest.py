"""Test configuration and fixtures.

This file contains fixtures used across all tests.
Integration test fixtures (db_session, client) are only loaded when needed.
"""

from collections.abc import AsyncGenerator
from datetime import date

import pytest

from chiprace.api.schemas.event import EventDetail, PlayerResult
from chiprace.api.schemas.ranking import RankingDetail
from chiprace.api.schemas.scoring import ScoringSchemaDetail
from chiprace.db.models.event import EventStatus
from chiprace.services.scoring_service import DEFAULT_SCHEMAS, SchemaRegistry


def pytest_configure(config):
    """Register integration test marker."""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test requiring database"
    )


@pytest.fixture
def registry() -> SchemaRegistry:
    """Registry holding the three default schemas."""
    return SchemaRegistry(ScoringSchemaDetail.model_validate(s) for s in DEFAULT_SCHEMAS)


@pytest.fixture
def rankings() -> list[RankingDetail]:
    return [
        RankingDetail(id="annual", label="Anual"),
        RankingDetail(id="quarterly", label="Trimestral"),
        RankingDetail(id="legacy", label="Legacy"),
    ]


@pytest.fixture
def make_event():
    """Factory for closed events with a list of result rows."""

    def _make(
        event_id: str = "event-1",
        results: list[PlayerResult] | None = None,
        **overrides,
    ) -> EventDetail:
        data = {
            "id": event_id,
            "title": f"Torneio {event_id}",
            "event_date": date(2024, 3, 1),
            "buyin": "R$ 150",
            "status": EventStatus.CLOSED,
            "ranking_type": "weekly",
            "included_rankings": ["annual"],
            "results": results or [],
        }
        data.update(overrides)
        return EventDetail(**data)

    return _make


# Integration test fixtures - only used by tests in tests/integration/
@pytest.fixture(scope="function")
async def db_session(tmp_path) -> AsyncGenerator:
    """Create a fresh sqlite database session for each integration test."""
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

    from chiprace.db.models import Base

    test_engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    test_session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with test_session_maker() as session:
        yield session

    await test_engine.dispose()


@pytest.fixture(scope="function")
async def client(db_session) -> AsyncGenerator:
    """Create a test client with overridden database dependency."""
    from httpx import ASGITransport, AsyncClient
    from sqlalchemy.ext.asyncio import AsyncSession

    from chiprace.api.app import create_app
    from chiprace.db import get_db

    app = create_app()

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
