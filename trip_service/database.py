"""
Async SQLAlchemy storage handle.

A ``Database`` is opened in the application lifespan, kept on ``app.state``
and disposed at shutdown. Request handlers get a session through ``get_db``.
"""
import logging
from collections.abc import AsyncIterator

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class Database:
    def __init__(self, url: str, echo: bool = False):
        engine_kwargs: dict = {"echo": echo}
        if url.startswith("sqlite") and (":memory:" in url or url.endswith("://")):
            # In-memory SQLite only lives as long as its single connection.
            engine_kwargs["poolclass"] = StaticPool
            engine_kwargs["connect_args"] = {"check_same_thread": False}
        elif not url.startswith("sqlite"):
            engine_kwargs["pool_pre_ping"] = True

        self.url = url
        self.engine: AsyncEngine = create_async_engine(url, **engine_kwargs)
        self.sessionmaker = async_sessionmaker(self.engine, expire_on_commit=False)

    async def create_schema(self) -> None:
        """Create missing tables (``CREATE TABLE IF NOT EXISTS`` semantics)."""
        # Register the mapped tables on Base.metadata.
        from trip_service import models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Trips table ready")

    def session(self) -> AsyncSession:
        return self.sessionmaker()

    async def close(self) -> None:
        await self.engine.dispose()


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    database: Database = request.app.state.database
    async with database.session() as session:
        yield session
