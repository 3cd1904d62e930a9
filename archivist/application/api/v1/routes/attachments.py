"""Attachment REST routes."""

from dishka.integrations.fastapi import DishkaRoute, FromDishka
from fastapi import APIRouter, Response, UploadFile
from fastapi.responses import StreamingResponse

from archivist.domain.attachment.model.value import StoredAttachment
from archivist.domain.attachment.service.attachment import AttachmentService

router = APIRouter(prefix="/attachments", tags=["attachments"], route_class=DishkaRoute)


@router.put("/{path:path}", response_model=StoredAttachment, status_code=201)
async def upload_attachment(
    path: str,
    file: UploadFile,
    service: FromDishka[AttachmentService],
) -> StoredAttachment:
    # One byte past the limit is enough for the service to reject it
    content = await file.read(service.max_size + 1)
    return await service.upload(path, content, file.content_type or "application/octet-stream")


@router.get("/{path:path}")
async def download_attachment(
    path: str,
    service: FromDishka[AttachmentService],
) -> StreamingResponse:
    stream, meta = await service.download(path)
    filename = path.rsplit("/", 1)[-1]
    return StreamingResponse(
        stream,
        media_type=meta.content_type or "application/octet-stream",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "Content-Length": str(meta.size),
        },
    )


@router.delete("/{path:path}", status_code=204)
async def delete_attachment(
    path: str,
    service: FromDishka[AttachmentService],
) -> Response:
    await service.delete(path)
    return Response(status_code=204)
