from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, model_validator
from typing_extensions import Self

from archivist.domain.auth.model.value import UserId
from archivist.domain.record.model.value import (
    TITLE_MAX_LENGTH,
    Category,
    ExternalRef,
    IntRange,
    Money,
    Priority,
    RecordId,
    RecordStatus,
    TimeRange,
    slugify,
)
from archivist.domain.shared.clock import advance


class Record(BaseModel):
    """A typed record owned by a single identity.

    Every instance satisfies the record invariants: building one is the
    validation step of every write. Mutations return a new instance.
    """

    model_config = ConfigDict(frozen=True)

    id: RecordId
    external_ref: ExternalRef
    title: str = Field(min_length=1, max_length=TITLE_MAX_LENGTH)
    slug: str = Field(min_length=1)
    status: RecordStatus = RecordStatus.DRAFT
    priority: Priority = Priority.MEDIUM
    category: Category = Category.GENERAL
    score: Money = Decimal("0")
    amount: Money | None = None
    counter: int = Field(default=0, ge=0)
    is_published: bool = False
    is_featured: bool = False
    tags: list[str] = []
    score_history: list[Decimal] = []
    related_ids: list[UUID] = []
    metadata: dict[str, Any] = {}
    config: dict[str, Any] | None = None
    valid_range: IntRange | None = None
    active_period: TimeRange | None = None
    created_at: AwareDatetime
    updated_at: AwareDatetime
    published_at: AwareDatetime | None = None
    expires_at: AwareDatetime | None = None
    owner_id: UserId

    @model_validator(mode="after")
    def _check_invariants(self) -> Self:
        if self.slug != slugify(self.title):
            raise ValueError("slug must be derived from title")
        if self.expires_at is not None and self.expires_at <= self.created_at:
            raise ValueError("expires_at must be after created_at")
        if self.is_published and self.status != RecordStatus.ACTIVE:
            raise ValueError("a record can only be published while active")
        return self

    def revise(self, changes: dict[str, Any], now: datetime) -> "Record":
        """Return the post-image of applying ``changes`` at ``now``.

        The slug follows the title and ``updated_at`` always moves forward;
        neither can be set through ``changes``.
        """
        data = self.model_dump()
        data.update(changes)
        if isinstance(data["title"], str):
            data["slug"] = slugify(data["title"])
        data["updated_at"] = advance(self.updated_at, now)
        return Record.model_validate(data)

    def archive(self, now: datetime) -> "Record":
        """Return the archived post-image. Archived records are not published."""
        match self.status:
            case RecordStatus.ARCHIVED:
                return self
            case (
                RecordStatus.DRAFT
                | RecordStatus.PENDING
                | RecordStatus.ACTIVE
                | RecordStatus.SUSPENDED
            ):
                return self.revise({"status": RecordStatus.ARCHIVED, "is_published": False}, now)

    def is_expired(self, now: datetime) -> bool:
        return (
            self.expires_at is not None
            and self.expires_at < now
            and self.status != RecordStatus.ARCHIVED
        )
