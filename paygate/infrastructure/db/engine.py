from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from paygate.config import Settings
from paygate.infrastructure.db.tables import metadata


def build_engine(settings: Settings) -> AsyncEngine:
    if not settings.database_url:
        raise RuntimeError("DATABASE_URL is required for SQL mode")
    if settings.database_url.startswith("sqlite"):
        return build_sqlite_engine(settings.database_url)
    return create_async_engine(
        settings.database_url,
        pool_pre_ping=True,
        pool_recycle=3600,
    )


def build_sqlite_engine(url: str) -> AsyncEngine:
    """
    SQLite engine with SAVEPOINT support.

    The sqlite3 driver manages BEGIN itself and breaks nested
    transactions; hand BEGIN back to SQLAlchemy.
    """
    engine = create_async_engine(url)

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def create_schema(engine: AsyncEngine) -> None:
    """Create missing tables. Production schemas are managed outside the app."""
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)


@asynccontextmanager
async def session_scope(session_maker) -> AsyncIterator[AsyncSession]:
    async with session_maker() as session:
        async with session.begin():
            yield session
