import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, List, TypeVar

from pydantic import ValidationError

from archivist.domain.auth.model.identity import Identity
from archivist.domain.record.model.aggregate import Record
from archivist.domain.record.model.payload import (
    RecordDraft,
    RecordPatch,
    parse_payload,
    to_constraint_violation,
)
from archivist.domain.record.model.value import ExternalRef, RecordId, slugify
from archivist.domain.record.port.repository import RecordRepository
from archivist.domain.shared.authorization.action import Action
from archivist.domain.shared.authorization.policy_set import POLICY_SET, PolicySet, Transition
from archivist.domain.shared.clock import Clock, utcnow
from archivist.domain.shared.error import AccessDeniedError, NotFoundError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RecordService:
    """Record CRUD on behalf of one identity, checked against the policy set.

    Records the caller may not read are reported as missing, so a caller
    cannot discover another owner's private records.
    """

    record_repo: RecordRepository
    identity: Identity
    policy_set: PolicySet = POLICY_SET
    clock: Clock = utcnow

    async def create(self, fields: dict[str, Any]) -> Record:
        draft = parse_payload(RecordDraft, fields)
        if draft.owner_id is None:
            draft = draft.model_copy(update={"owner_id": self.identity.id})
        self.policy_set.guard(self.identity, Action.RECORD_CREATE, draft)

        now = self.clock()
        data = draft.model_dump()
        data.update(
            id=RecordId.generate(),
            external_ref=ExternalRef.generate(),
            slug=slugify(draft.title),
            created_at=now,
            updated_at=now,
        )
        record = _validated(Record.model_validate, data)

        await self.record_repo.insert(record)
        logger.info(
            "Record created: id=%s owner=%s slug=%s", record.id, record.owner_id, record.slug
        )
        return record

    async def read(self, record_id: RecordId) -> Record:
        return await self._load_visible(self.record_repo.get, record_id)

    async def read_by_external_ref(self, ref: ExternalRef) -> Record:
        return await self._load_visible(self.record_repo.get_by_external_ref, ref)

    async def update(self, record_id: RecordId, fields: dict[str, Any]) -> Record:
        patch = parse_payload(RecordPatch, fields)
        current = await self._load_visible(self.record_repo.get, record_id)
        self.policy_set.guard(self.identity, Action.RECORD_UPDATE, current)

        revised = _validated(current.revise, patch.changes(), self.clock())
        self.policy_set.guard(self.identity, Action.RECORD_UPDATE, Transition(current, revised))

        await self.record_repo.update(revised, expected_updated_at=current.updated_at)
        logger.info("Record updated: id=%s fields=%s", record_id, sorted(patch.changes()))
        return revised

    async def delete(self, record_id: RecordId) -> None:
        record = await self._load_visible(self.record_repo.get, record_id)
        self.policy_set.guard(self.identity, Action.RECORD_DELETE, record)
        await self.record_repo.delete(record)
        logger.info("Record deleted: id=%s", record_id)

    async def list(
        self,
        *,
        limit: int | None = None,
        offset: int | None = None,
    ) -> List[Record]:
        """The caller's own records plus every published record."""
        records = await self.record_repo.list_visible(self.identity.id, limit=limit, offset=offset)
        return [r for r in records if self.policy_set.permits(self.identity, Action.RECORD_READ, r)]

    async def _load_visible(self, load: Callable[[Any], Any], key: Any) -> Record:
        try:
            record = await load(key)
        except AccessDeniedError:
            record = None
        if record is None or not self.policy_set.permits(self.identity, Action.RECORD_READ, record):
            raise NotFoundError(f"Record not found: {key}")
        return record


def _validated(build: Callable[..., T], *args: Any) -> T:
    try:
        return build(*args)
    except ValidationError as e:
        raise to_constraint_violation(e) from e
