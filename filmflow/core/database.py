"""
Async engine and per-call sessions for the SQL store.

Every SqlStore call opens its own session through get_db_session() and
commits on exit; there is no request-wide transaction to lean on.
"""
from contextlib import asynccontextmanager
from typing import Any, Dict

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base

from filmflow.core.config import settings


def engine_options(environment: str) -> Dict[str, Any]:
    """Pool sizing: configured limits in production, a small pool elsewhere."""
    if environment == "production":
        return {
            "pool_size": settings.DB_POOL_SIZE,
            "max_overflow": settings.DB_MAX_OVERFLOW,
            "pool_recycle": settings.DB_POOL_RECYCLE,
            "pool_pre_ping": True,
        }
    return {"pool_size": 2, "max_overflow": 5, "pool_pre_ping": True}


engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    **engine_options(settings.ENVIRONMENT),
)

SessionFactory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

Base = declarative_base()


@asynccontextmanager
async def get_db_session():
    """
    One unit of work: commit on success, roll back and re-raise on error.

    Usage:
        async with get_db_session() as db:
            result = await db.execute(...)
    """
    async with SessionFactory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_models():
    """Create all tables (local development only; production uses migrations)."""
    from filmflow import models  # noqa: F401  register mappers

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
