"""Exception hierarchy for neo-sharing."""

from .base import SharingError, get_http_status_code, create_error_response
from .domain import (
    InvalidArgumentError,
    UnauthorizedError,
    NotFoundError,
    ConflictError,
    ExpiredError,
    TransportError,
    StorageError,
)
from .http_mapping import HTTP_STATUS_MAP

__all__ = [
    "SharingError",
    "InvalidArgumentError",
    "UnauthorizedError",
    "NotFoundError",
    "ConflictError",
    "ExpiredError",
    "TransportError",
    "StorageError",
    "HTTP_STATUS_MAP",
    "get_http_status_code",
    "create_error_response",
]
