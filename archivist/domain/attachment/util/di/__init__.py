from archivist.domain.attachment.util.di.provider import AttachmentProvider

__all__ = ["AttachmentProvider"]
