"""Database commands."""

import asyncio
import sys

from archivist.cli.console import get_console
from archivist.config import Config
from archivist.domain.shared.error import StorageUnavailableError
from archivist.infrastructure.persistence.database import create_db_engine, create_tables


async def _init_db(config: Config) -> None:
    engine = create_db_engine(config.database)
    try:
        await create_tables(engine)
    finally:
        await engine.dispose()


def init_db() -> None:
    """Create any missing tables in the configured database."""
    console = get_console()
    config = Config()  # type: ignore[call-arg]
    try:
        asyncio.run(_init_db(config))
    except StorageUnavailableError as e:
        console.error(e.message)
        sys.exit(1)
    console.success(f"Database ready: {config.database.url}")
