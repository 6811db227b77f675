"""Domain exceptions for sharing operations.

Every failure a sharing operation can report maps to exactly one of these
classes so callers can branch on the condition.
"""

from .base import SharingError


class InvalidArgumentError(SharingError):
    """Raised for malformed resource references, unknown permission levels
    and empty or oversized required fields."""
    pass


class UnauthorizedError(SharingError):
    """Raised when the caller lacks ownership, Admin or Contributor rights
    on the target resource."""
    pass


class NotFoundError(SharingError):
    """Raised when a resource, user, access request or share token does not exist."""
    pass


class ConflictError(SharingError):
    """Raised for duplicate pending requests, already processed requests
    and already satisfied permissions."""
    pass


class ExpiredError(SharingError):
    """Raised when a public share is past its validity window."""
    pass


class TransportError(SharingError):
    """Raised when publishing an event or sending a notification fails."""
    pass


class StorageError(SharingError):
    """Raised when the resource store fails to read or write."""
    pass
