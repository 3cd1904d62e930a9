"""SqlRecordRepository against in-memory SQLite."""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.pool import StaticPool

from archivist.config import DatabaseConfig

from archivist.domain.auth.model.identity import Principal, System
from archivist.domain.auth.model.value import UserId
from archivist.domain.record.model.aggregate import Record
from archivist.domain.record.model.value import (
    ExternalRef,
    IntRange,
    RecordId,
    RecordStatus,
    TimeRange,
    slugify,
)
from archivist.domain.shared.error import (
    AccessDeniedError,
    ConstraintViolationError,
    NotFoundError,
    StorageUnavailableError,
)
from archivist.infrastructure.persistence.database import (
    create_db_engine,
    create_session_factory,
    create_tables,
)
from archivist.infrastructure.persistence.repository.record import SqlRecordRepository
from archivist.infrastructure.persistence.repository.user import SqlUserRepository
from archivist.infrastructure.persistence.tables import records_table


def make_record(owner: Principal, now, title: str = "A Record", **fields) -> Record:
    return Record(
        id=RecordId.generate(),
        external_ref=ExternalRef.generate(),
        title=title,
        slug=slugify(title),
        created_at=now,
        updated_at=now,
        owner_id=owner.user_id,
        **fields,
    )


class TestMapping:
    @pytest.mark.asyncio
    async def test_all_fields_survive_storage(self, session, alice: Principal, clock) -> None:
        record = make_record(
            alice,
            clock.now,
            title="Everything Set",
            status=RecordStatus.ACTIVE,
            is_published=True,
            score="12.50",
            amount="99.99",
            counter=3,
            tags=["a", "b"],
            score_history=["1.10", "2.20"],
            related_ids=[RecordId.generate().root],
            metadata={"k": {"nested": [1, 2]}},
            config={"flag": True},
            valid_range=IntRange(lower=1, upper=10),
            active_period=TimeRange(start=clock.now, end=clock.now + timedelta(days=7)),
            published_at=clock.now,
            expires_at=clock.now + timedelta(days=30),
        )
        repo = SqlRecordRepository(session, alice)

        await repo.insert(record)
        loaded = await repo.get(record.id)

        assert loaded == record

    @pytest.mark.asyncio
    async def test_unbounded_ranges_round_trip_as_none(
        self, session, alice: Principal, clock
    ) -> None:
        record = make_record(alice, clock.now)
        repo = SqlRecordRepository(session, alice)

        await repo.insert(record)
        loaded = await repo.get(record.id)

        assert loaded.valid_range is None
        assert loaded.active_period is None


class TestAuthorization:
    @pytest.mark.asyncio
    async def test_insert_for_another_owner_denied(
        self, session, alice: Principal, bob: Principal, clock
    ) -> None:
        repo = SqlRecordRepository(session, bob)

        with pytest.raises(AccessDeniedError):
            await repo.insert(make_record(alice, clock.now))

    @pytest.mark.asyncio
    async def test_get_private_record_of_another_owner_denied(
        self, session, alice: Principal, bob: Principal, clock
    ) -> None:
        record = make_record(alice, clock.now)
        await SqlRecordRepository(session, alice).insert(record)

        with pytest.raises(AccessDeniedError):
            await SqlRecordRepository(session, bob).get(record.id)

    @pytest.mark.asyncio
    async def test_system_reads_everything(self, session, alice: Principal, clock) -> None:
        record = make_record(alice, clock.now)
        await SqlRecordRepository(session, alice).insert(record)

        assert await SqlRecordRepository(session, System()).get(record.id) == record


class TestQueries:
    @pytest.mark.asyncio
    async def test_list_expired_skips_archived_and_future(
        self, session, alice: Principal, clock
    ) -> None:
        repo = SqlRecordRepository(session, alice)
        due = make_record(alice, clock.now, "Due", expires_at=clock.now + timedelta(minutes=1))
        later = make_record(alice, clock.now, "Later", expires_at=clock.now + timedelta(days=1))
        done = make_record(
            alice,
            clock.now,
            "Done",
            status=RecordStatus.ARCHIVED,
            expires_at=clock.now + timedelta(minutes=1),
        )
        for record in (due, later, done):
            await repo.insert(record)

        expired = await repo.list_expired(clock.now + timedelta(hours=1))

        assert [r.id for r in expired] == [due.id]

    @pytest.mark.asyncio
    async def test_delete_missing_record_is_not_found(
        self, session, alice: Principal, clock
    ) -> None:
        with pytest.raises(NotFoundError):
            await SqlRecordRepository(session, alice).delete(make_record(alice, clock.now))

    @pytest.mark.asyncio
    async def test_update_missing_record_is_not_found(
        self, session, alice: Principal, clock
    ) -> None:
        record = make_record(alice, clock.now)

        with pytest.raises(NotFoundError):
            await SqlRecordRepository(session, alice).update(
                record, expected_updated_at=record.updated_at
            )


class TestConstraints:
    @pytest.mark.asyncio
    async def test_unknown_owner_violates_foreign_key(self, session, clock) -> None:
        stranger = Principal(user_id=UserId.generate())
        record = make_record(stranger, clock.now)

        with pytest.raises(ConstraintViolationError):
            await SqlRecordRepository(session, System()).insert(record)

    @pytest.mark.asyncio
    async def test_owner_deletion_cascades_to_records(
        self, session, alice: Principal, bob: Principal, clock
    ) -> None:
        await SqlRecordRepository(session, alice).insert(make_record(alice, clock.now, "Hers"))
        await SqlRecordRepository(session, bob).insert(make_record(bob, clock.now, "His"))

        assert await SqlUserRepository(session).delete(alice.user_id) is True

        rows = (await session.execute(select(records_table.c.title))).scalars().all()
        assert rows == ["His"]

    @pytest.mark.asyncio
    async def test_deleting_unknown_user_reports_false(self, session, alice: Principal) -> None:
        await SqlUserRepository(session).delete(alice.user_id)

        assert await SqlUserRepository(session).delete(alice.user_id) is False


class TestStorageErrors:
    @pytest.mark.asyncio
    async def test_operational_error_becomes_storage_unavailable(self, alice: Principal) -> None:
        session = AsyncMock(spec=AsyncSession)
        session.execute.side_effect = OperationalError("SELECT 1", {}, Exception("disk I/O error"))

        with pytest.raises(StorageUnavailableError):
            await SqlRecordRepository(session, alice).get(RecordId.generate())


@pytest_asyncio.fixture
async def file_engine(tmp_path):
    engine = create_db_engine(DatabaseConfig(url=f"sqlite+aiosqlite:///{tmp_path}/archivist.db"))
    await create_tables(engine)
    yield engine
    await engine.dispose()


class TestIsolation:
    @pytest.mark.asyncio
    async def test_only_in_memory_databases_share_one_connection(
        self, engine, file_engine
    ) -> None:
        assert isinstance(engine.pool, StaticPool)
        assert not isinstance(file_engine.pool, StaticPool)

    @pytest.mark.asyncio
    async def test_failed_write_keeps_earlier_writes_of_same_session(
        self, session, alice: Principal, clock
    ) -> None:
        repo = SqlRecordRepository(session, alice)
        await repo.insert(make_record(alice, clock.now, "First"))
        await repo.insert(make_record(alice, clock.now, "Taken"))

        with pytest.raises(ConstraintViolationError) as exc_info:
            await repo.insert(make_record(alice, clock.now, "taken!"))
        await session.commit()

        assert exc_info.value.field == "slug"
        rows = (await session.execute(select(records_table.c.title))).scalars().all()
        assert sorted(rows) == ["First", "Taken"]

    @pytest.mark.asyncio
    async def test_rollback_in_one_session_keeps_pending_writes_of_another(
        self, file_engine, clock
    ) -> None:
        factory = create_session_factory(file_engine)
        owner = Principal(user_id=UserId.generate())
        async with factory() as setup:
            await SqlUserRepository(setup).ensure(owner.user_id)
            await setup.commit()

        async with factory() as writer, factory() as reader:
            record = make_record(owner, clock.now, "Pending Work")
            await SqlRecordRepository(writer, owner).insert(record)

            await SqlRecordRepository(reader, System()).list_expired(clock.now)
            await reader.rollback()
            await writer.commit()

        async with factory() as check:
            assert await SqlRecordRepository(check, System()).get(record.id) == record

    @pytest.mark.asyncio
    async def test_constraint_violation_in_one_session_keeps_other_commits(
        self, file_engine, clock
    ) -> None:
        factory = create_session_factory(file_engine)
        owner = Principal(user_id=UserId.generate())
        async with factory() as setup:
            await SqlUserRepository(setup).ensure(owner.user_id)
            await SqlRecordRepository(setup, owner).insert(make_record(owner, clock.now, "Taken"))
            await setup.commit()

        async with factory() as failing:
            with pytest.raises(ConstraintViolationError):
                await SqlRecordRepository(failing, owner).insert(
                    make_record(owner, clock.now, "taken!")
                )
            await failing.rollback()

        async with factory() as writer:
            await SqlRecordRepository(writer, owner).insert(
                make_record(owner, clock.now, "Bob work")
            )
            await writer.commit()

        async with factory() as check:
            rows = (await check.execute(select(records_table.c.title))).scalars().all()
        assert sorted(rows) == ["Bob work", "Taken"]
