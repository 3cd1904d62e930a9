"""Record REST routes.

Records are addressed by their external reference; the internal id never
leaves the service.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from dishka.integrations.fastapi import DishkaRoute, FromDishka
from fastapi import APIRouter, Body, Query, Response
from pydantic import BaseModel

from archivist.domain.record.model.aggregate import Record
from archivist.domain.record.model.value import (
    Category,
    ExternalRef,
    IntRange,
    Priority,
    RecordStatus,
    TimeRange,
)
from archivist.domain.record.service.record import RecordService
from archivist.domain.shared.error import NotFoundError

router = APIRouter(prefix="/records", tags=["records"], route_class=DishkaRoute)


class RecordResponse(BaseModel):
    """Public view of a record."""

    external_ref: UUID
    title: str
    slug: str
    status: RecordStatus
    priority: Priority
    category: Category
    score: Decimal
    amount: Decimal | None
    counter: int
    is_published: bool
    is_featured: bool
    tags: list[str]
    score_history: list[Decimal]
    related_ids: list[UUID]
    metadata: dict[str, Any]
    config: dict[str, Any] | None
    valid_range: IntRange | None
    active_period: TimeRange | None
    created_at: datetime
    updated_at: datetime
    published_at: datetime | None
    expires_at: datetime | None
    owner_id: UUID

    @classmethod
    def from_record(cls, record: Record) -> "RecordResponse":
        return cls.model_validate(record.model_dump(exclude={"id"}))


def _external_ref(value: str) -> ExternalRef:
    try:
        return ExternalRef.parse(value)
    except ValueError as e:
        raise NotFoundError(f"Record not found: {value}") from e


async def _resolve(service: RecordService, ref: str) -> Record:
    return await service.read_by_external_ref(_external_ref(ref))


@router.post("", response_model=RecordResponse, status_code=201)
async def create_record(
    service: FromDishka[RecordService],
    body: dict[str, Any] = Body(...),
) -> RecordResponse:
    return RecordResponse.from_record(await service.create(body))


@router.get("", response_model=list[RecordResponse])
async def list_records(
    service: FromDishka[RecordService],
    limit: int | None = Query(default=None, ge=1, le=1000),
    offset: int | None = Query(default=None, ge=0),
) -> list[RecordResponse]:
    records = await service.list(limit=limit, offset=offset)
    return [RecordResponse.from_record(r) for r in records]


@router.get("/{ref}", response_model=RecordResponse)
async def get_record(
    ref: str,
    service: FromDishka[RecordService],
) -> RecordResponse:
    return RecordResponse.from_record(await _resolve(service, ref))


@router.patch("/{ref}", response_model=RecordResponse)
async def update_record(
    ref: str,
    service: FromDishka[RecordService],
    body: dict[str, Any] = Body(...),
) -> RecordResponse:
    record = await _resolve(service, ref)
    return RecordResponse.from_record(await service.update(record.id, body))


@router.delete("/{ref}", status_code=204)
async def delete_record(
    ref: str,
    service: FromDishka[RecordService],
) -> Response:
    record = await _resolve(service, ref)
    await service.delete(record.id)
    return Response(status_code=204)
