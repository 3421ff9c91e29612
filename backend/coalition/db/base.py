"""
Engine, session factory and declarative base.

``DATABASE_URL`` is PostgreSQL (asyncpg) in deployment; a ``sqlite+aiosqlite``
URL works for local runs and tests.
"""
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import MetaData
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from coalition.core.config import settings
from coalition.services import cache

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=NAMING_CONVENTION)


def _engine_options(url: str) -> dict:
    options = {"echo": settings.DEBUG and settings.LOG_LEVEL.upper() == "DEBUG"}
    if url.startswith("sqlite"):
        options["connect_args"] = {"check_same_thread": False}
    else:
        options.update(pool_pre_ping=True, pool_size=10, max_overflow=20)
    return options


engine = create_async_engine(settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL))

async_session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """
    One unit of work: commit on success, roll back and re-raise on error.

    Cache invalidations queued during the unit run only after the commit.
    """
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            cache.discard_invalidations(session)
            await session.rollback()
            raise
        await cache.apply_invalidations(session)


async def get_db() -> AsyncIterator[AsyncSession]:
    """Request-scoped session dependency."""
    async with session_scope() as session:
        yield session


async def init_db() -> None:
    """Create missing tables. Deployments run ``alembic upgrade head`` instead."""
    # Importing the package registers every model on Base.metadata
    import coalition.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
