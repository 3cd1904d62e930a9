import hashlib
import tempfile
from collections.abc import AsyncIterator
from datetime import UTC, datetime
from pathlib import Path

from archivist.domain.attachment.model.value import (
    ATTACHMENT_NAMESPACE,
    AttachmentPath,
    StoredAttachment,
)
from archivist.domain.attachment.port.storage import BlobStore
from archivist.domain.shared.error import (
    ConstraintViolationError,
    NotFoundError,
    StorageUnavailableError,
)

CHUNK_SIZE = 8192


class LocalBlobStore(BlobStore):
    """Local filesystem implementation of BlobStore.

    Layout under ``base_path/namespace``::

        objects/{owner_id}/{record_id}/{filename}
        meta/{owner_id}/{record_id}/{filename}.json
    """

    def __init__(self, base_path: str, namespace: str = ATTACHMENT_NAMESPACE) -> None:
        self.root = Path(base_path).expanduser() / namespace
        self.root.mkdir(parents=True, exist_ok=True)

    def _safe_path(self, area: str, path: AttachmentPath, suffix: str = "") -> Path:
        """Resolve path within root/area, rejecting path traversal attempts."""
        base_dir = self.root / area
        target = base_dir / path.owner_id / path.record_id / f"{path.filename}{suffix}"
        if not target.resolve().is_relative_to(base_dir.resolve()):
            raise ConstraintViolationError(f"Invalid attachment path: {path}", field="path")
        return target

    async def put(
        self,
        path: AttachmentPath,
        content: bytes,
        content_type: str,
    ) -> StoredAttachment:
        target = self._safe_path("objects", path)
        meta_file = self._safe_path("meta", path, ".json")

        stored = StoredAttachment(
            path=str(path),
            size=len(content),
            checksum=f"sha256:{hashlib.sha256(content).hexdigest()}",
            content_type=content_type,
            uploaded_at=datetime.now(UTC),
        )
        try:
            _atomic_write(target, content)
            _atomic_write(meta_file, stored.model_dump_json().encode())
        except OSError as e:
            raise StorageUnavailableError(f"Attachment storage unavailable: {e}") from e
        return stored

    async def stat(self, path: AttachmentPath) -> StoredAttachment | None:
        target = self._safe_path("objects", path)
        if not target.is_file():
            return None

        meta_file = self._safe_path("meta", path, ".json")
        try:
            if meta_file.is_file():
                return StoredAttachment.model_validate_json(meta_file.read_bytes())
            # Object written without a sidecar: describe it from the bytes
            content = target.read_bytes()
        except OSError as e:
            raise StorageUnavailableError(f"Attachment storage unavailable: {e}") from e
        return StoredAttachment(
            path=str(path),
            size=len(content),
            checksum=f"sha256:{hashlib.sha256(content).hexdigest()}",
        )

    async def get(self, path: AttachmentPath) -> AsyncIterator[bytes]:
        target = self._safe_path("objects", path)
        if not target.is_file():
            raise NotFoundError(f"Attachment not found: {path}")

        async def _stream() -> AsyncIterator[bytes]:
            with open(target, "rb") as f:
                while chunk := f.read(CHUNK_SIZE):
                    yield chunk

        return _stream()

    async def delete(self, path: AttachmentPath) -> bool:
        target = self._safe_path("objects", path)
        if not target.is_file():
            return False
        try:
            target.unlink()
            self._safe_path("meta", path, ".json").unlink(missing_ok=True)
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageUnavailableError(f"Attachment storage unavailable: {e}") from e
        return True


def _atomic_write(target: Path, content: bytes) -> None:
    """Write to a temp file in the target directory, then rename over target."""
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=target.parent)
    try:
        with open(fd, "wb") as f:
            f.write(content)
        Path(tmp_path).replace(target)
    except Exception:
        Path(tmp_path).unlink(missing_ok=True)
        raise
