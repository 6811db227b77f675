"""HTTP status code mapping for exceptions."""

from typing import Dict, Type

from .domain import (
    ConflictError,
    ExpiredError,
    InvalidArgumentError,
    NotFoundError,
    StorageError,
    TransportError,
    UnauthorizedError,
)


HTTP_STATUS_MAP: Dict[Type[Exception], int] = {
    InvalidArgumentError: 400,
    UnauthorizedError: 403,
    NotFoundError: 404,
    ConflictError: 409,
    ExpiredError: 410,
    TransportError: 502,
    StorageError: 503,
}


def get_http_status_code(exception: Exception) -> int:
    """Get HTTP status code for exception, walking the class hierarchy.

    Unmapped exceptions are reported as 500.
    """
    for exception_type in type(exception).__mro__:
        if exception_type in HTTP_STATUS_MAP:
            return HTTP_STATUS_MAP[exception_type]
    return 500
