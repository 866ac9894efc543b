from __future__ import annotations

from collections.abc import AsyncGenerator, Generator
from contextlib import asynccontextmanager, contextmanager

from loguru import logger
from sqlalchemy import create_engine, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import Session, sessionmaker

from config import get_settings
from practice_engine.db.models.base import Base

settings = get_settings()

# Sync engine/session (schema management and CLI)
engine = create_engine(settings.database_url, echo=settings.log_level == "DEBUG", pool_pre_ping=True)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


def _get_async_url(url: str) -> str:
    """Convert sync postgres URL to asyncpg URL when needed."""
    if url.startswith("postgresql+asyncpg://"):
        return url
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


def init_db() -> None:
    """Create all practice engine tables."""
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables initialized")


def drop_db() -> None:
    """Drop all practice engine tables."""
    Base.metadata.drop_all(bind=engine)
    logger.warning("Database tables dropped")


def check_connection() -> bool:
    """Return True when the database answers a trivial query."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as exc:  # Intentionally broad - any driver error means unavailable
        logger.debug(f"Database unavailable: {exc}")
        return False
    return True


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """Provide a transactional scope around a series of operations."""
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:  # Intentionally broad - rollback on any error before re-raising
        session.rollback()
        raise
    finally:
        session.close()


# ========================================
# Async Support
# ========================================

_async_engine = None
_AsyncSessionLocal = None


def _get_async_engine():
    """Get or create async engine (lazy initialization)."""
    global _async_engine
    if _async_engine is None:
        async_url = _get_async_url(settings.database_url)
        _async_engine = create_async_engine(
            async_url,
            echo=settings.log_level == "DEBUG",
            pool_pre_ping=True,
        )
    return _async_engine


def get_async_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get or create async session factory."""
    global _AsyncSessionLocal
    if _AsyncSessionLocal is None:
        _AsyncSessionLocal = async_sessionmaker(
            bind=_get_async_engine(),
            class_=AsyncSession,
            autoflush=False,
            autocommit=False,
            expire_on_commit=False,
        )
    return _AsyncSessionLocal


async def dispose_async_engine() -> None:
    """Close pooled async connections (application shutdown)."""
    global _async_engine, _AsyncSessionLocal
    if _async_engine is not None:
        await _async_engine.dispose()
    _async_engine = None
    _AsyncSessionLocal = None


@asynccontextmanager
async def async_session_scope(
    factory: async_sessionmaker[AsyncSession] | None = None,
) -> AsyncGenerator[AsyncSession, None]:
    """Provide an async transactional scope around a series of operations."""
    factory = factory or get_async_session_factory()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:  # Intentionally broad - rollback on any error before re-raising
            await session.rollback()
            raise
