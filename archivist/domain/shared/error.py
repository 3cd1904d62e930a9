"""Error hierarchy for Archivist.

Error layers:
- ArchivistError: Base class for all Archivist errors
- DomainError: Policy denials and rule violations the caller can act on (4xx responses)
- InfrastructureError: Storage/configuration failures (503 responses)

These errors are mapped to HTTP responses by the global exception handler in app.py.
"""

from typing import Literal


class ArchivistError(Exception):
    """Base class for all Archivist errors."""

    def __init__(self, message: str, code: str | None = None) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        super().__init__(message)


# =============================================================================
# Domain Errors (surfaced to the caller verbatim - typically 4xx)
# =============================================================================


class DomainError(ArchivistError):
    """Base class for domain errors."""


class AccessDeniedError(DomainError):
    """No policy rule permitted the operation."""

    def __init__(self, message: str, code: str = "access_denied") -> None:
        super().__init__(message, code=code)


class ConstraintViolationError(DomainError):
    """A field, composite or uniqueness constraint failed."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message, code="constraint_violation")
        self.field = field


class NotFoundError(DomainError):
    """Referenced record or object is absent (or not visible to the caller)."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="not_found")


class ConflictError(DomainError):
    """A concurrent write won the race. Callers decide whether to retry."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="conflict")


PayloadRejection = Literal["too_large", "unsupported_type"]


class PayloadRejectedError(DomainError):
    """Attachment payload failed the size or content-type check."""

    def __init__(self, message: str, reason: PayloadRejection) -> None:
        super().__init__(message, code="payload_rejected")
        self.reason = reason


# =============================================================================
# Infrastructure Errors (system-level failures - typically 503)
# =============================================================================


class InfrastructureError(ArchivistError):
    """Base class for infrastructure/system errors."""


class StorageUnavailableError(InfrastructureError):
    """Record repository or blob store is unavailable."""


class ConfigurationError(InfrastructureError):
    """System misconfiguration detected."""
