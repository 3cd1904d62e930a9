from __future__ import annotations

from abc import abstractmethod
from datetime import datetime
from typing import List, Protocol

from archivist.domain.auth.model.value import UserId
from archivist.domain.record.model.aggregate import Record
from archivist.domain.record.model.value import ExternalRef, RecordId
from archivist.domain.shared.port import Port


class RecordRepository(Port, Protocol):
    @abstractmethod
    async def get(self, record_id: RecordId) -> Record | None: ...

    @abstractmethod
    async def get_by_external_ref(self, ref: ExternalRef) -> Record | None: ...

    @abstractmethod
    async def list_visible(
        self,
        owner_id: UserId | None,
        *,
        limit: int | None = None,
        offset: int | None = None,
    ) -> List[Record]:
        """Records owned by ``owner_id`` plus all published records, newest first."""
        ...

    @abstractmethod
    async def list_expired(self, now: datetime) -> List[Record]:
        """Records with ``expires_at < now`` that are not archived yet."""
        ...

    @abstractmethod
    async def insert(self, record: Record) -> None:
        """Insert a new record. Uniqueness failures raise ConstraintViolationError."""
        ...

    @abstractmethod
    async def update(self, record: Record, *, expected_updated_at: datetime) -> None:
        """Atomically replace a record if its stored ``updated_at`` still matches.

        Raises ConflictError when another write got there first.
        """
        ...

    @abstractmethod
    async def delete(self, record: Record) -> None: ...
