"""Database base configuration: engine, session and metadata."""
from __future__ import annotations

from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from callsift.core.settings import get_settings


class Base(DeclarativeBase):
    pass


_engine: AsyncEngine | None = None
_SessionFactory: async_sessionmaker[AsyncSession] | None = None


def build_engine(url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine.

    SQLite connections enforce foreign keys and emit an explicit BEGIN so that
    SAVEPOINTs nest inside the surrounding transaction.
    """
    engine = create_async_engine(url, echo=echo, future=True)
    if engine.dialect.name == "sqlite":

        @event.listens_for(engine.sync_engine, "connect")
        def _configure_connection(dbapi_connection: Any, _: Any) -> None:
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(engine.sync_engine, "begin")
        def _emit_begin(conn: Any) -> None:
            conn.exec_driver_sql("BEGIN")

    return engine


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)


def get_engine() -> AsyncEngine:
    global _engine, _SessionFactory
    if _engine is None:
        settings = get_settings()
        _engine = build_engine(settings.database_url, echo=settings.sql_echo)
        _SessionFactory = make_session_factory(_engine)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    if _SessionFactory is None:
        get_engine()
    assert _SessionFactory is not None
    return _SessionFactory


async def init_models(drop: bool = False) -> None:
    """Create database tables (optionally dropping first)."""
    # Register all mapped classes on Base.metadata
    from callsift.db import models  # noqa: F401

    engine = get_engine()
    async with engine.begin() as conn:
        if drop:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


async def reset_engine() -> None:
    """Dispose the cached engine so the next call rebuilds it from settings."""
    global _engine, _SessionFactory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _SessionFactory = None
