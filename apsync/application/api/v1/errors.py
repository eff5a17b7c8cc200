"""Centralized error transformation for API routes.

Responses carry only a static ``code`` and ``message``. Infrastructure errors
can wrap upstream text, so they are rendered with a fixed public message.
"""

from typing import Any

from fastapi import HTTPException

from apsync.domain.shared.error import (
    ApsyncError,
    ConflictError,
    DomainError,
    ExternalServiceError,
    InfrastructureError,
    InvalidStateError,
    NoAudienceError,
    NotFoundError,
    SessionExpiredError,
    StorageError,
    UpstreamAuthError,
    ValidationError,
)

# Looked up along the error's MRO, so the most specific class wins
ERROR_STATUS_MAP: dict[type[ApsyncError], int] = {
    SessionExpiredError: 400,
    NoAudienceError: 400,
    ValidationError: 422,
    NotFoundError: 404,
    InvalidStateError: 409,
    ConflictError: 409,
    ExternalServiceError: 502,
    InfrastructureError: 503,
}

PUBLIC_MESSAGES: dict[type[InfrastructureError], str] = {
    ExternalServiceError: "Mailchimp request failed. Please try again later.",
    StorageError: "Could not save changes. Please try again.",
    InfrastructureError: "Service temporarily unavailable.",
}


def _lookup(error: ApsyncError, table: dict) -> Any:
    for cls in type(error).__mro__:
        if cls in table:
            return table[cls]
    return None


def status_for(error: ApsyncError) -> int:
    status = _lookup(error, ERROR_STATUS_MAP)
    if status is not None:
        return status
    return 400 if isinstance(error, DomainError) else 500


def map_error(error: ApsyncError) -> HTTPException:
    message = error.message
    if isinstance(error, InfrastructureError) and not isinstance(error, UpstreamAuthError):
        message = _lookup(error, PUBLIC_MESSAGES)

    detail: dict[str, Any] = {
        "code": error.code,
        "message": message,
    }
    if isinstance(error, ValidationError) and error.field is not None:
        detail["field"] = error.field
    return HTTPException(status_code=status_for(error), detail=detail)
