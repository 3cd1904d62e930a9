from typing import AsyncIterable

from dishka import Provider, Scope, provide
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from archivist.config import Config
from archivist.domain.attachment.port.storage import BlobStore
from archivist.domain.auth.port.repository import UserRepository
from archivist.infrastructure.persistence.adapter.storage import LocalBlobStore
from archivist.infrastructure.persistence.database import (
    create_db_engine,
    create_session_factory,
)
from archivist.infrastructure.persistence.repository.user import SqlUserRepository


class PersistenceProvider(Provider):
    # APP-scoped factories
    @provide(scope=Scope.APP)
    def get_engine(self, config: Config) -> AsyncEngine:
        return create_db_engine(config.database)

    @provide(scope=Scope.APP)
    def get_session_factory(self, engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
        return create_session_factory(engine)

    # REQUEST-scoped session (one per unit of work: HTTP request or schedule tick)
    @provide(scope=Scope.REQUEST)
    async def get_session(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> AsyncIterable[AsyncSession]:
        async with session_factory() as session:
            yield session
            await session.commit()

    user_repo = provide(SqlUserRepository, scope=Scope.REQUEST, provides=UserRepository)

    # Attachment storage
    @provide(scope=Scope.APP)
    def get_blob_store(self, config: Config) -> BlobStore:
        return LocalBlobStore(
            base_path=config.attachments.base_path,
            namespace=config.attachments.namespace,
        )
