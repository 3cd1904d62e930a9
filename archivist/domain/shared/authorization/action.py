"""Authorization actions: all operations subject to access control."""

from enum import StrEnum


class Action(StrEnum):
    """Structured enum of all authorization-relevant operations."""

    # Records
    RECORD_CREATE = "record:create"
    RECORD_READ = "record:read"
    RECORD_UPDATE = "record:update"
    RECORD_DELETE = "record:delete"

    # Attachments (never public)
    ATTACHMENT_CREATE = "attachment:create"
    ATTACHMENT_READ = "attachment:read"
    ATTACHMENT_UPDATE = "attachment:update"
    ATTACHMENT_DELETE = "attachment:delete"
