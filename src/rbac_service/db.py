from datetime import datetime, timezone
from typing import Any, AsyncGenerator, Dict

from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from rbac_service.config import settings
from rbac_service.logging_config import logger


def build_engine(database_url: str, **overrides: Any) -> AsyncEngine:
    """
    Create the process-wide async engine for the entity store.

    Pool and driver settings only apply to server databases; SQLite (used for
    tests and local development) gets SQLAlchemy's defaults.
    """
    url = make_url(database_url)
    engine_kwargs: Dict[str, Any] = {
        # Log SQL statements in DEBUG mode only.
        "echo": settings.LOGGING_LEVEL.upper() == "DEBUG",
    }
    if url.get_backend_name() == "postgresql":
        engine_kwargs.update(
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=30,
            pool_recycle=1800,
            # Discard dead connections on checkout instead of failing the request.
            pool_pre_ping=True,
            connect_args={
                "application_name": "rbac_service",
                "options": "-c timezone=UTC"
                + ("" if settings.is_testing() else " -c statement_timeout=5000"),
            },
        )
    engine_kwargs.update(overrides)
    return create_async_engine(url, **engine_kwargs)


engine: AsyncEngine = build_engine(settings.DATABASE_URL)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
)

# All SQLAlchemy models inherit from this Base.
Base = declarative_base()


def utcnow() -> datetime:
    """Client-side timestamp default, so values are available right after flush."""
    return datetime.now(timezone.utc)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a transactional, auto-closing database session.

    One session per request: commit when the handler returns, roll back on a
    database error and re-raise so the boundary handler can report it.
    """
    session = AsyncSessionLocal()
    try:
        yield session
        await session.commit()
    except SQLAlchemyError as e:
        logger.error(f"Database transaction failed: {e}", exc_info=True)
        await session.rollback()
        raise
    finally:
        await session.close()


async def create_schema(bind: AsyncEngine = engine) -> None:
    """Create all tables known to the model metadata (idempotent)."""
    # Models must be imported so their tables are registered on Base.metadata
    from rbac_service import models  # noqa: F401

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine(bind: AsyncEngine = engine) -> None:
    await bind.dispose()
    logger.info("Database engine disposed")
