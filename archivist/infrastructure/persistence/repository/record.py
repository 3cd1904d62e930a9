from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from typing import List

from sqlalchemy import delete, insert, or_, select, update
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from archivist.domain.auth.model.identity import Identity
from archivist.domain.auth.model.value import UserId
from archivist.domain.record.model.aggregate import Record
from archivist.domain.record.model.value import ExternalRef, RecordId, RecordStatus
from archivist.domain.record.port.repository import RecordRepository
from archivist.domain.shared.authorization.action import Action
from archivist.domain.shared.authorization.decorators import reads, writes
from archivist.domain.shared.authorization.policy_set import POLICY_SET, PolicySet
from archivist.domain.shared.error import (
    ConflictError,
    ConstraintViolationError,
    NotFoundError,
    StorageUnavailableError,
)
from archivist.infrastructure.persistence.mappers.record import (
    record_to_dict,
    row_to_record,
    utc,
)
from archivist.infrastructure.persistence.tables import records_table

# Columns fixed at creation; never part of an UPDATE
_IMMUTABLE = ("id", "external_ref", "created_at")


class SqlRecordRepository(RecordRepository):
    """SQLAlchemy implementation of RecordRepository (SQLite and PostgreSQL).

    Bound to the identity of the unit of work. Bound to System, it is the
    privileged path used by background schedules.
    """

    def __init__(
        self,
        session: AsyncSession,
        identity: Identity,
        policy_set: PolicySet = POLICY_SET,
    ) -> None:
        self.session = session
        self._identity = identity
        self._policy_set = policy_set

    @reads(Action.RECORD_READ)
    async def get(self, record_id: RecordId) -> Record | None:
        stmt = select(records_table).where(records_table.c.id == str(record_id))
        return await self._fetch_one(stmt)

    @reads(Action.RECORD_READ)
    async def get_by_external_ref(self, ref: ExternalRef) -> Record | None:
        stmt = select(records_table).where(records_table.c.external_ref == str(ref))
        return await self._fetch_one(stmt)

    async def list_visible(
        self,
        owner_id: UserId | None,
        *,
        limit: int | None = None,
        offset: int | None = None,
    ) -> List[Record]:
        visible = records_table.c.is_published.is_(True)
        if owner_id is not None:
            visible = or_(records_table.c.owner_id == str(owner_id), visible)

        stmt = (
            select(records_table)
            .where(visible)
            .order_by(records_table.c.created_at.desc(), records_table.c.id)
        )
        if offset is not None:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        return await self._fetch_all(stmt)

    async def list_expired(self, now: datetime) -> List[Record]:
        stmt = (
            select(records_table)
            .where(
                records_table.c.expires_at.is_not(None),
                records_table.c.expires_at < utc(now),
                records_table.c.status != RecordStatus.ARCHIVED.value,
            )
            .order_by(records_table.c.expires_at)
        )
        return await self._fetch_all(stmt)

    @writes(Action.RECORD_CREATE)
    async def insert(self, record: Record) -> None:
        stmt = insert(records_table).values(**record_to_dict(record))
        async with self._storage_errors(), self.session.begin_nested():
            await self.session.execute(stmt)

    @writes(Action.RECORD_UPDATE)
    async def update(self, record: Record, *, expected_updated_at: datetime) -> None:
        values = record_to_dict(record)
        for column in _IMMUTABLE:
            values.pop(column)

        stmt = (
            update(records_table)
            .where(
                records_table.c.id == str(record.id),
                records_table.c.updated_at == utc(expected_updated_at),
            )
            .values(**values)
        )
        async with self._storage_errors(), self.session.begin_nested():
            result = await self.session.execute(stmt)

        if result.rowcount == 0:
            if await self._exists(record.id):
                raise ConflictError(f"Record {record.id} was modified concurrently")
            raise NotFoundError(f"Record not found: {record.id}")

    @writes(Action.RECORD_DELETE)
    async def delete(self, record: Record) -> None:
        stmt = delete(records_table).where(records_table.c.id == str(record.id))
        async with self._storage_errors():
            result = await self.session.execute(stmt)
            await self.session.flush()
        if result.rowcount == 0:
            raise NotFoundError(f"Record not found: {record.id}")

    async def _exists(self, record_id: RecordId) -> bool:
        stmt = select(records_table.c.id).where(records_table.c.id == str(record_id))
        async with self._storage_errors():
            result = await self.session.execute(stmt)
        return result.first() is not None

    async def _fetch_one(self, stmt) -> Record | None:  # noqa: ANN001
        async with self._storage_errors():
            result = await self.session.execute(stmt)
        row = result.mappings().first()
        return row_to_record(dict(row)) if row else None

    async def _fetch_all(self, stmt) -> List[Record]:  # noqa: ANN001
        async with self._storage_errors():
            result = await self.session.execute(stmt)
        return [row_to_record(dict(r)) for r in result.mappings().all()]

    @asynccontextmanager
    async def _storage_errors(self) -> AsyncIterator[None]:
        """Map driver errors onto the domain error taxonomy."""
        try:
            yield
        except IntegrityError as e:
            field = _violated_field(str(e.orig))
            raise ConstraintViolationError(
                f"Record violates a {field or 'table'} constraint",
                field=field,
            ) from e
        except (OperationalError, InterfaceError) as e:
            raise StorageUnavailableError(f"Record storage unavailable: {e.orig}") from e


def _violated_field(detail: str) -> str | None:
    detail = detail.lower()
    for field in ("slug", "external_ref", "owner_id", "score", "amount", "counter", "expires_at"):
        if field in detail:
            return field
    if "foreign key" in detail:
        return "owner_id"
    if "published" in detail:
        return "is_published"
    return None
