"""ArchiveExpiredRecords - hourly transition of expired records to archived."""

import logging
from dataclasses import dataclass, field
from typing import Any

from archivist.domain.record.port.repository import RecordRepository
from archivist.domain.shared.clock import Clock, utcnow
from archivist.domain.shared.error import ConflictError
from archivist.domain.shared.schedule import Schedule

logger = logging.getLogger(__name__)


@dataclass
class ArchiveExpiredRecords(Schedule):
    """Archive every record whose ``expires_at`` has passed.

    The repository is bound to the System identity, so ownership checks are
    skipped, but each record still goes through ``Record.archive`` and the
    repository's conditional update. Re-running a tick archives nothing new.
    A record that lost a race against a concurrent user write is left for
    the next tick.
    """

    record_repo: RecordRepository
    clock: Clock = field(default=utcnow)

    async def run(self, **params: Any) -> int:
        now = self.clock()
        expired = await self.record_repo.list_expired(now)

        archived = 0
        for record in expired:
            try:
                await self.record_repo.update(
                    record.archive(now),
                    expected_updated_at=record.updated_at,
                )
            except ConflictError:
                logger.info("Record %s changed during archival, retrying next tick", record.id)
                continue
            archived += 1

        logger.info("Archived %d of %d expired record(s)", archived, len(expired))
        return archived
