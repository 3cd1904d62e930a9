from datetime import UTC, datetime

from sqlalchemy import delete, insert, select
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from archivist.domain.auth.model.value import UserId
from archivist.domain.auth.port.repository import UserRepository
from archivist.domain.shared.error import StorageUnavailableError
from archivist.infrastructure.persistence.tables import users_table


class SqlUserRepository(UserRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def ensure(self, user_id: UserId) -> None:
        try:
            existing = await self.session.execute(
                select(users_table.c.id).where(users_table.c.id == str(user_id))
            )
            if existing.first() is None:
                await self.session.execute(
                    insert(users_table).values(id=str(user_id), created_at=datetime.now(UTC))
                )
                await self.session.flush()
        except (OperationalError, InterfaceError) as e:
            raise StorageUnavailableError(f"User storage unavailable: {e.orig}") from e

    async def delete(self, user_id: UserId) -> bool:
        # Owned records go with the user (ON DELETE CASCADE)
        try:
            result = await self.session.execute(
                delete(users_table).where(users_table.c.id == str(user_id))
            )
            await self.session.flush()
        except (OperationalError, InterfaceError) as e:
            raise StorageUnavailableError(f"User storage unavailable: {e.orig}") from e
        return result.rowcount > 0
