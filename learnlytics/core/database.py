"""
Database Configuration

Async SQLAlchemy 2.0 setup. PostgreSQL via asyncpg in production,
SQLite via aiosqlite for local development and tests.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.
    
    All models should inherit from this class.
    """
    pass


# Module-level engine instance (lazily initialized)
_engine: Optional[AsyncEngine] = None
_async_session_maker: Optional[async_sessionmaker[AsyncSession]] = None


def get_engine() -> AsyncEngine:
    """
    Get or create the async engine.
    
    Lazy initialization to avoid import-time database connection issues.
    Pool sizing only applies to server databases; SQLite gets the defaults.
    """
    global _engine
    if _engine is None:
        from learnlytics.core.config import settings

        db_url = settings.DATABASE_URL
        if settings.is_sqlite:
            _engine = create_async_engine(
                db_url,
                echo=settings.SQL_ECHO,
                connect_args={"check_same_thread": False},
            )
        else:
            # asyncpg doesn't accept sslmode/channel_binding params in URL
            if "?" in db_url:
                db_url = db_url.split("?")[0]
            _engine = create_async_engine(
                db_url,
                echo=settings.SQL_ECHO,
                pool_pre_ping=True,
                pool_size=5,
                max_overflow=10,
            )
    return _engine


def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """Get or create the session maker."""
    global _async_session_maker
    if _async_session_maker is None:
        _async_session_maker = async_sessionmaker(
            bind=get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autocommit=False,
            autoflush=False,
        )
    return _async_session_maker


async def init_db() -> None:
    """
    Create all tables.
    
    Schema migrations are owned by the deployment; this is for local
    development and tests.
    """
    import learnlytics.models  # noqa: F401  (register tables on Base.metadata)

    engine = get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close database connections."""
    global _engine, _async_session_maker
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _async_session_maker = None
