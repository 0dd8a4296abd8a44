"""
Pytest Configuration and Fixtures

Provides reusable fixtures for testing the Learnlytics backend.
"""

import itertools
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from learnlytics.schemas.session import SessionCreate, SessionRecord
from learnlytics.services.session_store import InMemorySessionStore, SQLAlchemySessionStore


BASE_TIME = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)


# ==================== Session Fixtures ====================

@pytest.fixture
def make_session():
    """
    Factory fixture for valid SessionCreate payloads.
    
    Each call gets a fresh watch ID and a start time one minute after
    the previous one.
    
    Usage:
        data = make_session(video_id="video-2", pause_count=3)
    """
    counter = itertools.count(1)

    def _create(**overrides) -> SessionCreate:
        n = next(counter)
        payload = {
            "session_id": f"WTEST{n:08d}",
            "user_id": "user-1",
            "user_role_id": "1L00ABC",
            "video_id": "video-1",
            "session_start_time": BASE_TIME + timedelta(minutes=n),
            "video_duration": 600.0,
        }
        payload.update(overrides)
        return SessionCreate(**payload)

    return _create


@pytest.fixture
def make_record(make_session):
    """Factory fixture for stored-session records (no store involved)."""
    def _create(**overrides) -> SessionRecord:
        return SessionRecord(**make_session(**overrides).model_dump())
    return _create


# ==================== Store Fixtures ====================

@pytest.fixture
def store() -> InMemorySessionStore:
    """Empty in-memory session store."""
    return InMemorySessionStore()


@pytest_asyncio.fixture
async def sql_store() -> AsyncGenerator[SQLAlchemySessionStore, None]:
    """
    SQLAlchemy store over a fresh in-memory SQLite database.
    
    StaticPool keeps the single in-memory connection alive across sessions.
    """
    import learnlytics.models  # noqa: F401
    from learnlytics.core.database import Base

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield SQLAlchemySessionStore(async_sessionmaker(engine, expire_on_commit=False))

    await engine.dispose()


# ==================== HTTP Client Fixtures ====================

@pytest_asyncio.fixture
async def client(store) -> AsyncGenerator[httpx.AsyncClient, None]:
    """
    HTTP client bound to the app, with the store dependency replaced by
    the in-memory store fixture.
    """
    from learnlytics.api.deps import get_session_store
    from learnlytics.main import app

    app.dependency_overrides[get_session_store] = lambda: store
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client
    app.dependency_overrides.clear()
