"""
Database configuration and session management using SQLAlchemy async.
"""
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.types import TypeDecorator
from sqlalchemy import Column, String, Integer, Text, DateTime
from datetime import datetime, timezone
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from app.config import settings
from app.logging_config import get_logger

logger = get_logger(__name__)


def _engine_kwargs() -> dict:
    if settings.is_sqlite:
        return {}
    return {
        "pool_size": 10,
        "max_overflow": 20,
        "pool_pre_ping": True,  # Verify connections before using
        "pool_recycle": 3600,   # Recycle connections after 1 hour
    }


# Create async engine
engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    **_engine_kwargs(),
)

# Create async session factory
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

# Base class for models
Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """Timezone-aware DateTime that always reads back as UTC.

    SQLite drops tzinfo on storage; values are normalized to UTC on the way
    in and re-tagged on the way out.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        value = value.astimezone(timezone.utc)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class MeetingRecord(Base):
    """Cached meeting, keyed by the Fireflies transcript id."""

    __tablename__ = 'meetings'

    id = Column(Integer, primary_key=True, autoincrement=True)
    external_id = Column(String(255), nullable=False, unique=True, index=True)
    title = Column(String(500), nullable=False, default="")
    meeting_date = Column(UTCDateTime, nullable=True)
    duration_seconds = Column(Integer, nullable=False, default=0)
    transcript_json = Column(Text, nullable=False, default="[]")
    summary = Column(Text, nullable=False, default="")
    functional_doc = Column(Text, nullable=True)
    mockups = Column(Text, nullable=True)
    markdown = Column(Text, nullable=True)
    artifacts_json = Column(Text, nullable=True)  # snapshot of the last saved file set
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<MeetingRecord(id={self.id}, external_id='{self.external_id}')>"


@asynccontextmanager
async def get_db_session(
    session_maker: Optional[async_sessionmaker] = None,
) -> AsyncGenerator[AsyncSession, None]:
    """
    Async context manager for database sessions.

    Usage:
        async with get_db_session() as session:
            result = await session.execute(query)
    """
    async with (session_maker or async_session_maker)() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db():
    """Initialize database tables."""
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("database_initialized", url=engine.url.render_as_string(hide_password=True))
    except Exception as e:
        # Don't raise - allow app to start without DB; cached reads fall back to upstream
        logger.warning("database_init_failed", error=str(e))


async def drop_tables():
    """Drop all tables from the database."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def create_tables():
    """Create all tables in the database."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db():
    """Close database connections."""
    await engine.dispose()
    logger.info("database_connections_closed")
