from abc import abstractmethod
from collections.abc import AsyncIterator
from typing import Protocol

from archivist.domain.attachment.model.value import AttachmentPath, StoredAttachment
from archivist.domain.shared.port import Port


class BlobStore(Port, Protocol):
    """Private object storage for attachments, partitioned by owner-prefixed path."""

    @abstractmethod
    async def put(
        self,
        path: AttachmentPath,
        content: bytes,
        content_type: str,
    ) -> StoredAttachment:
        """Write (or overwrite) an object atomically."""
        ...

    @abstractmethod
    async def stat(self, path: AttachmentPath) -> StoredAttachment | None:
        """Return stored metadata, or None if the object is absent."""
        ...

    @abstractmethod
    async def get(self, path: AttachmentPath) -> AsyncIterator[bytes]:
        """Stream an object. Raises NotFoundError if absent."""
        ...

    @abstractmethod
    async def delete(self, path: AttachmentPath) -> bool:
        """Delete an object. Returns False if it was absent."""
        ...
