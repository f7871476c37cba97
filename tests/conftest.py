"""
Pytest configuration and fixtures.
"""
import os

# Settings are read at import time
os.environ.setdefault("FIREFLIES_API_KEY", "test-fireflies-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ["OPENAI_API_KEY"] = ""

import pytest
from unittest.mock import AsyncMock
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base
from app.config import Settings
from app.services.fireflies_client import FirefliesClient
from app.services.meeting_store import MeetingStore


# ============================================
# TEST CONFIGURATION
# ============================================

@pytest.fixture(scope="session")
def test_settings():
    """Create test settings."""
    return Settings(
        fireflies_api_key="test-fireflies-key",
        database_url="sqlite+aiosqlite:///:memory:",
        openai_api_key=None,
        debug=True,
    )


# ============================================
# DATABASE FIXTURES
# ============================================

@pytest.fixture(scope="function")
async def test_engine():
    """Create a test database engine using in-memory SQLite."""
    # One shared connection so every session sees the same in-memory database
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture(scope="function")
def test_session_maker(test_engine):
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest.fixture(scope="function")
def store(test_session_maker):
    """MeetingStore backed by the in-memory database."""
    return MeetingStore(test_session_maker)


# ============================================
# MOCK DATA FIXTURES
# ============================================

@pytest.fixture
def fireflies_transcript():
    """Transcript as returned by the Fireflies `transcript` query."""
    return {
        "id": "abc",
        "title": "Standup",
        "date": 1700000000000,
        "duration": 930.4,
        "sentences": [
            {"index": 0, "text": "Morning all.", "start_time": 0.0, "end_time": 1.4, "speaker_name": "Ana"},
            {"index": 1, "text": "Deploy is green.", "start_time": 1.6, "end_time": 3.1, "speaker_name": "Raj"},
        ],
        "summary": {
            "overview": "Team confirmed the deploy is green.",
            "short_summary": "Deploy green.",
            "bullet_gist": "- deploy green",
        },
    }


@pytest.fixture
def mock_fireflies_client(fireflies_transcript):
    """Fireflies client double returning `fireflies_transcript`."""
    client = AsyncMock(spec=FirefliesClient)
    client.fetch_one.return_value = fireflies_transcript
    client.fetch_list.return_value = [
        {"id": "abc", "title": "Standup", "date": 1700000000000, "duration": 930.4, "summary": {}}
    ]
    return client


@pytest.fixture
def mock_store():
    """MeetingStore double with every method awaitable."""
    return AsyncMock(spec=MeetingStore)


# ============================================
# TEST CLIENT FIXTURES
# ============================================

@pytest.fixture(scope="function")
def test_client():
    """Create a test client; tests install their own dependency overrides."""
    from main import app

    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()
