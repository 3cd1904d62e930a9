"""Global test fixtures."""

import os
from datetime import UTC, datetime, timedelta

# Set JWT secret before any test modules import Config
# This must happen at module load time, not in a fixture
os.environ.setdefault("ARCHIVIST_AUTH__JWT__SECRET", "test-secret-for-unit-tests-min-32")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402

from archivist.config import DatabaseConfig  # noqa: E402
from archivist.domain.auth.model.identity import Principal  # noqa: E402
from archivist.domain.auth.model.value import UserId  # noqa: E402
from archivist.infrastructure.persistence.database import (  # noqa: E402
    create_db_engine,
    create_session_factory,
    create_tables,
)
from archivist.infrastructure.persistence.repository.user import (  # noqa: E402
    SqlUserRepository,
)

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


class FakeClock:
    """Settable clock. Call it to read the time."""

    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def tick(self, delta: timedelta) -> None:
        self.now += delta


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest_asyncio.fixture
async def engine():
    """Fresh in-memory SQLite database per test."""
    engine = create_db_engine(DatabaseConfig(url="sqlite+aiosqlite://"))
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session(engine):
    async with create_session_factory(engine)() as session:
        yield session
        await session.rollback()


async def _registered_user(session) -> Principal:
    user_id = UserId.generate()
    await SqlUserRepository(session).ensure(user_id)
    await session.commit()
    return Principal(user_id=user_id)


@pytest_asyncio.fixture
async def alice(session) -> Principal:
    return await _registered_user(session)


@pytest_asyncio.fixture
async def bob(session) -> Principal:
    return await _registered_user(session)
