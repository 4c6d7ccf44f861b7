from collections.abc import AsyncIterator

import structlog
from fastapi import Request
from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from devcamper.config import Settings
from devcamper.errors import StoreConnectionError

log = structlog.get_logger()


class Base(DeclarativeBase):
    pass


class Database:
    """Owns the engine and session factory for the lifetime of the process."""

    def __init__(self, engine: AsyncEngine) -> None:
        self.engine = engine
        self.session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    def session(self) -> AsyncSession:
        return self.session_factory()

    async def create_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()


async def connect_database(settings: Settings) -> Database:
    """Open the store and prove it answers. Any failure is fatal to startup."""
    try:
        url = make_url(settings.database_url)
        engine = create_async_engine(url)
    except Exception as e:
        log.error("database_url_invalid", error=str(e))
        raise StoreConnectionError(f"Invalid store connection target: {e}") from e

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        await engine.dispose()
        log.error("database_connection_failed", driver=url.drivername, error=str(e))
        raise StoreConnectionError(f"Could not connect to {url.drivername} store: {e}") from e

    log.info("database_connected", host=url.host or url.database)
    return Database(engine)


async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    database: Database = request.app.state.database
    async with database.session() as session:
        yield session
