'''
testing the typed error taxonomy
'''
import pytest
from fastapi import HTTPException

from etuition_backend.common.exceptions import (
    BadRequestError,
    ConflictError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    UnauthorizedError,
    UpstreamFailureError,
    error_kind_for,
)


@pytest.mark.parametrize("exc_cls, status_code, kind", [
    (NotFoundError, 404, "NotFound"),
    (ForbiddenError, 403, "Forbidden"),
    (ConflictError, 409, "Conflict"),
    (BadRequestError, 400, "BadRequest"),
    (UnauthorizedError, 401, "Unauthorized"),
    (UpstreamFailureError, 502, "UpstreamFailure"),
    (InternalError, 500, "Internal"),
])
def test_error_kinds(exc_cls, status_code, kind):
    exc = exc_cls()
    assert isinstance(exc, HTTPException)
    assert exc.status_code == status_code
    assert exc.kind == kind
    assert error_kind_for(exc) == kind
    assert exc.message == exc_cls.default_message


def test_custom_message():
    exc = ConflictError("This tuition has already been assigned.")
    assert exc.detail == "This tuition has already been assigned."


def test_unauthorized_carries_bearer_challenge():
    assert UnauthorizedError().headers == {"WWW-Authenticate": "Bearer"}


def test_plain_http_exceptions_map_by_status():
    assert error_kind_for(HTTPException(status_code=404)) == "NotFound"
    assert error_kind_for(HTTPException(status_code=422)) == "BadRequest"
    assert error_kind_for(HTTPException(status_code=418)) == "Internal"
