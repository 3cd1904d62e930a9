from datetime import UTC, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from archivist.domain.auth.model.value import UserId
from archivist.domain.record.model.aggregate import Record
from archivist.domain.record.model.value import (
    Category,
    ExternalRef,
    IntRange,
    Priority,
    RecordId,
    RecordStatus,
    TimeRange,
)


def _aware(value: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; everything is stored in UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


def utc(value: datetime | None) -> datetime | None:
    """Normalize to UTC before binding; SQLite compares datetimes as text."""
    if value is None:
        return None
    return value.astimezone(UTC)


def _int_range(lower: int | None, upper: int | None) -> IntRange | None:
    if lower is None and upper is None:
        return None
    return IntRange(lower=lower, upper=upper)


def _time_range(start: datetime | None, end: datetime | None) -> TimeRange | None:
    if start is None and end is None:
        return None
    return TimeRange(start=_aware(start), end=_aware(end))


def row_to_record(row: dict[str, Any]) -> Record:
    """Convert database row to Record aggregate."""
    return Record(
        id=RecordId.parse(row["id"]),
        external_ref=ExternalRef.parse(row["external_ref"]),
        title=row["title"],
        slug=row["slug"],
        status=RecordStatus(row["status"]),
        priority=Priority(row["priority"]),
        category=Category(row["category"]),
        score=Decimal(row["score"]),
        amount=Decimal(row["amount"]) if row["amount"] is not None else None,
        counter=row["counter"],
        is_published=bool(row["is_published"]),
        is_featured=bool(row["is_featured"]),
        tags=row.get("tags") or [],
        score_history=[Decimal(v) for v in row.get("score_history") or []],
        related_ids=[UUID(v) for v in row.get("related_ids") or []],
        metadata=row.get("metadata") or {},
        config=row.get("config"),
        valid_range=_int_range(row["valid_range_lower"], row["valid_range_upper"]),
        active_period=_time_range(row["active_period_start"], row["active_period_end"]),
        created_at=_aware(row["created_at"]),
        updated_at=_aware(row["updated_at"]),
        published_at=_aware(row["published_at"]),
        expires_at=_aware(row["expires_at"]),
        owner_id=UserId.parse(row["owner_id"]),
    )


def record_to_dict(record: Record) -> dict[str, Any]:
    """Convert Record aggregate to database dict."""
    valid_range = record.valid_range or IntRange()
    active_period = record.active_period or TimeRange()
    return {
        "id": str(record.id),
        "external_ref": str(record.external_ref),
        "title": record.title,
        "slug": record.slug,
        "status": record.status.value,
        "priority": record.priority.value,
        "category": record.category.value,
        "score": record.score,
        "amount": record.amount,
        "counter": record.counter,
        "is_published": record.is_published,
        "is_featured": record.is_featured,
        "tags": list(record.tags),
        "score_history": [str(v) for v in record.score_history],
        "related_ids": [str(v) for v in record.related_ids],
        "metadata": record.metadata,
        "config": record.config,
        "valid_range_lower": valid_range.lower,
        "valid_range_upper": valid_range.upper,
        "active_period_start": utc(active_period.start),
        "active_period_end": utc(active_period.end),
        "created_at": utc(record.created_at),
        "updated_at": utc(record.updated_at),
        "published_at": utc(record.published_at),
        "expires_at": utc(record.expires_at),
        "owner_id": str(record.owner_id),
    }
