"""
This file contains custom, application-specific exceptions.

Every error is an HTTPException so services can raise them and the
existing `except HTTPException: raise` blocks pass them through untouched.
The `kind` attribute is the typed error name rendered in response bodies.
"""
from typing import Any, Optional

from fastapi import HTTPException, status


class ETuitionError(HTTPException):
    """Base class for typed application errors."""
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    kind: str = "Internal"
    default_message: str = "An internal error occurred."

    def __init__(self, message: Optional[str] = None, headers: Optional[dict[str, Any]] = None):
        super().__init__(
            status_code=self.__class__.status_code,
            detail=message or self.default_message,
            headers=headers,
        )

    @property
    def message(self) -> str:
        return self.detail


class NotFoundError(ETuitionError):
    """Raised when a referenced entity does not exist."""
    status_code = status.HTTP_404_NOT_FOUND
    kind = "NotFound"
    default_message = "Resource not found."


class ForbiddenError(ETuitionError):
    """Raised on a failed role check or an attempt to change an immutable record."""
    status_code = status.HTTP_403_FORBIDDEN
    kind = "Forbidden"
    default_message = "You do not have permission to perform this action."


class ConflictError(ETuitionError):
    """Raised when a state-transition precondition is violated."""
    status_code = status.HTTP_409_CONFLICT
    kind = "Conflict"
    default_message = "The resource is not in a state that allows this action."


class BadRequestError(ETuitionError):
    """Raised when required fields are missing or malformed."""
    status_code = status.HTTP_400_BAD_REQUEST
    kind = "BadRequest"
    default_message = "Bad request."


class UnauthorizedError(ETuitionError):
    """Raised when the caller's credentials cannot be verified."""
    status_code = status.HTTP_401_UNAUTHORIZED
    kind = "Unauthorized"
    default_message = "Could not validate credentials"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class UpstreamFailureError(ETuitionError):
    """Raised when the payment gateway call fails."""
    status_code = status.HTTP_502_BAD_GATEWAY
    kind = "UpstreamFailure"
    default_message = "The payment provider is currently unavailable."


class InternalError(ETuitionError):
    """Raised on store failures."""


# status code -> kind, for plain HTTPExceptions raised by FastAPI itself
ERROR_KINDS_BY_STATUS = {
    status.HTTP_400_BAD_REQUEST: BadRequestError.kind,
    status.HTTP_401_UNAUTHORIZED: UnauthorizedError.kind,
    status.HTTP_403_FORBIDDEN: ForbiddenError.kind,
    status.HTTP_404_NOT_FOUND: NotFoundError.kind,
    status.HTTP_405_METHOD_NOT_ALLOWED: BadRequestError.kind,
    status.HTTP_409_CONFLICT: ConflictError.kind,
    422: BadRequestError.kind,
    status.HTTP_502_BAD_GATEWAY: UpstreamFailureError.kind,
}


def error_kind_for(exc: HTTPException) -> str:
    if isinstance(exc, ETuitionError):
        return exc.kind
    return ERROR_KINDS_BY_STATUS.get(exc.status_code, InternalError.kind)
