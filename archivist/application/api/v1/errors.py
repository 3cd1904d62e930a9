"""Centralized error transformation for API routes.

Maps Archivist errors (domain and infrastructure) to HTTPException responses.
"""

from typing import Any

from fastapi import HTTPException

from archivist.domain.shared.error import (
    AccessDeniedError,
    ArchivistError,
    ConflictError,
    ConstraintViolationError,
    DomainError,
    InfrastructureError,
    NotFoundError,
    PayloadRejectedError,
)

DOMAIN_ERROR_STATUS_MAP: dict[type[DomainError], int] = {
    NotFoundError: 404,
    ConstraintViolationError: 422,
    ConflictError: 409,
    AccessDeniedError: 403,
}

PAYLOAD_REJECTION_STATUS_MAP: dict[str, int] = {
    "too_large": 413,
    "unsupported_type": 415,
}


def map_archivist_error(error: ArchivistError) -> HTTPException:
    """Map an Archivist error to an HTTPException.

    Args:
        error: The Archivist error to map.

    Returns:
        HTTPException with appropriate status code and detail.
    """
    detail: dict[str, Any] = {
        "code": error.code,
        "message": error.message,
    }

    if isinstance(error, InfrastructureError):
        return HTTPException(status_code=503, detail=detail)

    if isinstance(error, DomainError):
        if isinstance(error, PayloadRejectedError):
            detail["reason"] = error.reason
            return HTTPException(
                status_code=PAYLOAD_REJECTION_STATUS_MAP[error.reason], detail=detail
            )
        if isinstance(error, ConstraintViolationError) and error.field is not None:
            detail["field"] = error.field
        # Distinguish 401 (unauthenticated) from 403 (unauthorized)
        if isinstance(error, AccessDeniedError) and error.code == "missing_token":
            return HTTPException(
                status_code=401,
                detail=detail,
                headers={"WWW-Authenticate": "Bearer"},
            )
        status_code = DOMAIN_ERROR_STATUS_MAP.get(type(error), 400)
        return HTTPException(status_code=status_code, detail=detail)

    # Fallback for unknown ArchivistError subclasses
    return HTTPException(status_code=500, detail=detail)
