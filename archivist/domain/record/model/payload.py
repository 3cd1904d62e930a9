"""Caller-supplied payloads for record writes.

Server-assigned fields (id, external_ref, slug, created_at, updated_at) are
not part of either payload, so supplying them is rejected as an extra input.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, ValidationError

from archivist.domain.auth.model.value import UserId
from archivist.domain.record.model.value import (
    Category,
    IntRange,
    Priority,
    RecordStatus,
    TimeRange,
)
from archivist.domain.shared.error import ConstraintViolationError

P = TypeVar("P", bound=BaseModel)


class RecordDraft(BaseModel):
    """Fields accepted when creating a record."""

    model_config = ConfigDict(extra="forbid")

    title: str
    status: RecordStatus = RecordStatus.DRAFT
    priority: Priority = Priority.MEDIUM
    category: Category = Category.GENERAL
    score: Decimal = Decimal("0")
    amount: Decimal | None = None
    counter: int = 0
    is_published: bool = False
    is_featured: bool = False
    tags: list[str] = []
    score_history: list[Decimal] = []
    related_ids: list[UUID] = []
    metadata: dict[str, Any] = {}
    config: dict[str, Any] | None = None
    valid_range: IntRange | None = None
    active_period: TimeRange | None = None
    published_at: datetime | None = None
    expires_at: datetime | None = None
    owner_id: UserId | None = None


class RecordPatch(BaseModel):
    """Fields accepted when updating a record. Only fields that are set apply."""

    model_config = ConfigDict(extra="forbid")

    title: str | None = None
    status: RecordStatus | None = None
    priority: Priority | None = None
    category: Category | None = None
    score: Decimal | None = None
    amount: Decimal | None = None
    counter: int | None = None
    is_published: bool | None = None
    is_featured: bool | None = None
    tags: list[str] | None = None
    score_history: list[Decimal] | None = None
    related_ids: list[UUID] | None = None
    metadata: dict[str, Any] | None = None
    config: dict[str, Any] | None = None
    valid_range: IntRange | None = None
    active_period: TimeRange | None = None
    published_at: datetime | None = None
    expires_at: datetime | None = None
    owner_id: UserId | None = None

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


def parse_payload(model: type[P], fields: dict[str, Any]) -> P:
    """Validate caller input into ``model``, raising ConstraintViolationError."""
    try:
        return model.model_validate(fields)
    except ValidationError as e:
        raise to_constraint_violation(e) from e


def to_constraint_violation(error: ValidationError) -> ConstraintViolationError:
    """Translate the first pydantic error into a ConstraintViolationError."""
    first = error.errors()[0]
    field = ".".join(str(part) for part in first["loc"]) or None
    message = first["msg"]
    if field:
        message = f"{field}: {message}"
    return ConstraintViolationError(message, field=field)
