"""Root of the neo-sharing exception hierarchy.

Services raise these and leave translation to the caller. ``details`` holds
the identifiers involved (user, resource, request, token) so an API layer can
report them without parsing the message.
"""

from typing import Any, Dict, Optional


class SharingError(Exception):
    """Base exception for all neo-sharing errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or type(self).__name__
        self.details = details or {}

    @property
    def status_code(self) -> int:
        """HTTP status an API layer should answer with."""
        return get_http_status_code(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.error_code,
            "message": self.message,
            "details": self.details,
            "type": type(self).__name__,
        }


def get_http_status_code(exception: Exception) -> int:
    """HTTP status for any exception, 500 when it is not a mapped error."""
    from .http_mapping import get_http_status_code as _lookup
    return _lookup(exception)


def create_error_response(exception: SharingError) -> Dict[str, Any]:
    """Error body in the ``{"error": {...}}`` envelope."""
    return {"error": exception.to_dict()}
