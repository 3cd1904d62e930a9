"""Database engine and session factory creation."""

import logging
import os
from pathlib import Path
from typing import Any

from sqlalchemy import event
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from archivist.config import DatabaseConfig
from archivist.domain.shared.error import StorageUnavailableError
from archivist.infrastructure.persistence.tables import metadata

logger = logging.getLogger(__name__)


def _expand_sqlite_path(url: str) -> str:
    """Expand ~ in SQLite file URLs and ensure parent directory exists."""
    if not url.startswith("sqlite") or "///" not in url:
        return url  # in-memory (sqlite+aiosqlite://) or non-SQLite

    prefix_end = url.index("///") + 3
    prefix = url[:prefix_end]
    path = url[prefix_end:]
    if not path or path == ":memory:":
        return url

    abs_path = os.path.abspath(os.path.expanduser(path))
    Path(abs_path).parent.mkdir(parents=True, exist_ok=True)
    return f"{prefix}{abs_path}"


def _is_in_memory(url: str) -> bool:
    return "///" not in url or url.endswith(":memory:")


def _on_sqlite_connect(dbapi_connection: Any, connection_record: Any) -> None:
    # SQLite ignores ON DELETE CASCADE unless enabled per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
    # Let SQLAlchemy emit BEGIN itself so SAVEPOINTs nest inside it
    dbapi_connection.isolation_level = None


def _on_sqlite_begin(conn: Any) -> None:
    conn.exec_driver_sql("BEGIN")


def create_db_engine(config: DatabaseConfig) -> AsyncEngine:
    """Create async database engine.

    Handles SQLite and PostgreSQL with appropriate settings. File-backed
    SQLite gets a regular connection pool, one connection per session;
    only in-memory databases share a single connection.
    """
    url = _expand_sqlite_path(config.url)
    is_sqlite = url.startswith("sqlite")

    if is_sqlite:
        engine_kwargs: dict[str, Any] = {
            "echo": config.echo,
            "connect_args": {"check_same_thread": False},
        }
        if _is_in_memory(url):
            # An in-memory database lives and dies with its connection
            engine_kwargs["poolclass"] = StaticPool
    else:
        engine_kwargs = {
            "echo": config.echo,
            "pool_pre_ping": True,
            "pool_size": 5,
            "max_overflow": 10,
        }

    engine = create_async_engine(url, **engine_kwargs)
    if is_sqlite:
        event.listen(engine.sync_engine, "connect", _on_sqlite_connect)
        event.listen(engine.sync_engine, "begin", _on_sqlite_begin)
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create session factory for dependency injection."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
        autocommit=False,
    )


async def create_tables(engine: AsyncEngine) -> None:
    """Create any missing tables. Idempotent."""
    try:
        async with engine.begin() as conn:
            await conn.run_sync(metadata.create_all)
    except (OperationalError, InterfaceError) as e:
        raise StorageUnavailableError(f"Cannot create tables: {e.orig}") from e
    logger.info("Database tables ensured")
