"""Async SQLAlchemy engine and session factories."""

import logging

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from catalog_core.db.tables import Base
from catalog_core.settings import DatabaseSettings

logger = logging.getLogger(__name__)


def create_async_engine_factory(settings: DatabaseSettings | None = None) -> AsyncEngine:
    """Create an async SQLAlchemy engine with connection pooling.

    Store round trips are bounded by ``command_timeout`` on asyncpg so a hung
    statement surfaces as an error instead of holding the request open.
    """
    if settings is None:
        settings = DatabaseSettings()

    connect_args: dict[str, object] = {}
    if settings.url.startswith("postgresql+asyncpg"):
        connect_args["command_timeout"] = settings.command_timeout

    return create_async_engine(
        settings.url,
        pool_size=settings.pool_size,
        max_overflow=settings.max_overflow,
        pool_timeout=settings.pool_timeout,
        pool_pre_ping=True,
        echo=settings.echo,
        connect_args=connect_args,
    )


def get_async_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to the given engine."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def create_schema(engine: AsyncEngine) -> None:
    """Create any missing catalog tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Catalog schema ensured on %s", engine.url.render_as_string(hide_password=True))
