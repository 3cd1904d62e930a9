from dishka import Provider, Scope, provide

from archivist.config import Config
from archivist.domain.attachment.port.storage import BlobStore
from archivist.domain.attachment.service.attachment import AttachmentService
from archivist.domain.auth.model.identity import Identity


class AttachmentProvider(Provider):
    @provide(scope=Scope.REQUEST)
    def get_attachment_service(
        self,
        blob_store: BlobStore,
        identity: Identity,
        config: Config,
    ) -> AttachmentService:
        return AttachmentService(
            blob_store=blob_store,
            identity=identity,
            max_size=config.attachments.max_size,
            allowed_content_types=frozenset(config.attachments.allowed_content_types),
        )
