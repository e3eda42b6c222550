"""
Database engine and transaction scope for the task table.

Routes open one transaction per request through ``get_session()``; the
change feed is only published after that block exits, so subscribers
never see a row that was rolled back.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from speakcasually.core.config import get_settings


class Base(DeclarativeBase):
    """Declarative base for the ORM models."""


# Process-wide handles; tests inject their own engine and call reset_engine()
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _is_file_sqlite(db_url: str) -> bool:
    url = make_url(db_url)
    return url.get_backend_name() == "sqlite" and bool(url.database) and url.database != ":memory:"


def _enable_wal(engine: AsyncEngine) -> None:
    """Let readers proceed while an upload's task update is being written."""

    @event.listens_for(engine.sync_engine, "connect")
    def _set_pragmas(dbapi_conn, _record) -> None:  # noqa: ANN001
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()


def get_engine(url: str | None = None) -> AsyncEngine:
    """Return the shared engine, creating it from settings on first use.

    A file-backed SQLite URL gets its parent directory created.
    """
    global _engine
    if _engine is None:
        db_url = url or get_settings().database_url
        if _is_file_sqlite(db_url):
            Path(make_url(db_url).database).parent.mkdir(parents=True, exist_ok=True)
            _engine = create_async_engine(db_url, echo=False)
            _enable_wal(_engine)
        else:
            _engine = create_async_engine(db_url, echo=False)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(get_engine(), expire_on_commit=False)
    return _session_factory


@asynccontextmanager
async def get_session() -> AsyncIterator[AsyncSession]:
    """One transaction: committed on clean exit, rolled back on any error."""
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create the task table if it does not exist yet."""
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Dispose the shared engine (server shutdown)."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None


def reset_engine() -> None:
    """Forget the shared engine without disposing it."""
    global _engine, _session_factory
    _engine = None
    _session_factory = None
