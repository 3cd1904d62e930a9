import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field

from archivist.domain.attachment.model.value import (
    ALLOWED_CONTENT_TYPES,
    MAX_ATTACHMENT_SIZE,
    AttachmentPath,
    StoredAttachment,
)
from archivist.domain.attachment.port.storage import BlobStore
from archivist.domain.auth.model.identity import Identity
from archivist.domain.shared.authorization.action import Action
from archivist.domain.shared.authorization.policy_set import POLICY_SET, PolicySet
from archivist.domain.shared.error import NotFoundError, PayloadRejectedError

logger = logging.getLogger(__name__)


def authorize_attachment(
    identity: Identity,
    action: Action,
    path: str | AttachmentPath,
    policy_set: PolicySet = POLICY_SET,
) -> AttachmentPath:
    """Apply the owner rule to an attachment path and return the parsed path.

    Only the identity named by the first path segment passes; attachments
    have no public-read exception.
    """
    parsed = path if isinstance(path, AttachmentPath) else AttachmentPath.parse(path)
    policy_set.guard(identity, action, parsed)
    return parsed


@dataclass
class AttachmentService:
    blob_store: BlobStore
    identity: Identity
    policy_set: PolicySet = POLICY_SET
    max_size: int = MAX_ATTACHMENT_SIZE
    allowed_content_types: frozenset[str] = field(default=ALLOWED_CONTENT_TYPES)

    def authorize(self, action: Action, path: str | AttachmentPath) -> AttachmentPath:
        return authorize_attachment(self.identity, action, path, self.policy_set)

    async def upload(self, path: str, content: bytes, content_type: str) -> StoredAttachment:
        """Store an attachment, overwriting any previous object at the same path."""
        target = self.authorize(Action.ATTACHMENT_CREATE, path)
        self._check_payload(content, content_type)

        if await self.blob_store.stat(target) is not None:
            self.authorize(Action.ATTACHMENT_UPDATE, target)

        stored = await self.blob_store.put(target, content, _normalize(content_type))
        logger.info("Attachment stored: path=%s size=%d", target, stored.size)
        return stored

    async def download(self, path: str) -> tuple[AsyncIterator[bytes], StoredAttachment]:
        """Fetch stream and metadata for an attachment."""
        target = self.authorize(Action.ATTACHMENT_READ, path)
        meta = await self.blob_store.stat(target)
        if meta is None:
            raise NotFoundError(f"Attachment not found: {target}")
        return await self.blob_store.get(target), meta

    async def delete(self, path: str) -> None:
        target = self.authorize(Action.ATTACHMENT_DELETE, path)
        if not await self.blob_store.delete(target):
            raise NotFoundError(f"Attachment not found: {target}")
        logger.info("Attachment deleted: path=%s", target)

    def _check_payload(self, content: bytes, content_type: str) -> None:
        if len(content) > self.max_size:
            raise PayloadRejectedError(
                f"Attachment exceeds maximum size of {self.max_size} bytes",
                reason="too_large",
            )
        if _normalize(content_type) not in self.allowed_content_types:
            raise PayloadRejectedError(
                f"Content type '{content_type}' not accepted. "
                f"Allowed: {sorted(self.allowed_content_types)}",
                reason="unsupported_type",
            )


def _normalize(content_type: str) -> str:
    """Strip parameters and case: 'Image/PNG; q=1' -> 'image/png'."""
    return content_type.split(";", 1)[0].strip().lower()
