from dishka import Provider, Scope, provide
from sqlalchemy.ext.asyncio import AsyncSession

from archivist.domain.auth.model.identity import Identity, System
from archivist.domain.record.port.repository import RecordRepository
from archivist.domain.record.schedule.archive_expired import ArchiveExpiredRecords
from archivist.domain.record.service.record import RecordService
from archivist.infrastructure.persistence.repository.record import SqlRecordRepository


class RecordProvider(Provider):
    @provide(scope=Scope.REQUEST)
    def get_record_repo(self, session: AsyncSession, identity: Identity) -> RecordRepository:
        return SqlRecordRepository(session, identity)

    @provide(scope=Scope.REQUEST)
    def get_record_service(
        self,
        record_repo: RecordRepository,
        identity: Identity,
    ) -> RecordService:
        return RecordService(record_repo=record_repo, identity=identity)

    @provide(scope=Scope.REQUEST)
    def get_archive_expired(self, session: AsyncSession) -> ArchiveExpiredRecords:
        """Schedules run outside any request, on the System repository."""
        return ArchiveExpiredRecords(record_repo=SqlRecordRepository(session, System()))
