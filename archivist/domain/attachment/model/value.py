from datetime import UTC, datetime

from pydantic import Field
from typing_extensions import Self

from archivist.domain.shared.error import ConstraintViolationError
from archivist.domain.shared.model.value import ValueObject

ATTACHMENT_NAMESPACE = "test-record-attachments"
MAX_ATTACHMENT_SIZE = 10 * 1024 * 1024  # 10 MiB
ALLOWED_CONTENT_TYPES = frozenset(
    {
        "image/png",
        "image/jpeg",
        "image/webp",
        "application/pdf",
    }
)


class AttachmentPath(ValueObject):
    """Blob path of the form ``{owner_id}/{record_id}/{filename}``.

    ``owner_id`` is whatever the first segment says; the attachment is owned
    by the identity with that id.
    """

    owner_id: str
    record_id: str
    filename: str

    @classmethod
    def parse(cls, path: str) -> Self:
        segments = path.split("/")
        if len(segments) != 3 or any(s in ("", ".", "..") for s in segments):
            raise ConstraintViolationError(
                f"Invalid attachment path: {path!r} (expected owner/record/filename)",
                field="path",
            )
        owner_id, record_id, filename = segments
        return cls(owner_id=owner_id, record_id=record_id, filename=filename)

    def __str__(self) -> str:
        return f"{self.owner_id}/{self.record_id}/{self.filename}"


class StoredAttachment(ValueObject):
    path: str
    size: int
    checksum: str
    content_type: str | None = None
    uploaded_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
