"""
neo-sharing: access permissions, access requests, public shares and
notifications over a folder/file tree.
"""

from .__version__ import __version__
from .config import setup_logging

from .core.exceptions import (
    SharingError,
    InvalidArgumentError,
    UnauthorizedError,
    NotFoundError,
    ConflictError,
    ExpiredError,
    TransportError,
    StorageError,
)
from .core.value_objects import (
    PermissionType,
    ResourceKind,
    FolderRef,
    FileRef,
    resource_ref,
    AccessRequestStatus,
)
from .permissions import PermissionEngine, PublicShareIssuer
from .access_requests import AccessRequestWorkflow
from .notifications import EventPublisher, EventConsumer, NotificationHandlers

setup_logging()

__all__ = [
    "__version__",
    "SharingError",
    "InvalidArgumentError",
    "UnauthorizedError",
    "NotFoundError",
    "ConflictError",
    "ExpiredError",
    "TransportError",
    "StorageError",
    "PermissionType",
    "ResourceKind",
    "FolderRef",
    "FileRef",
    "resource_ref",
    "AccessRequestStatus",
    "PermissionEngine",
    "PublicShareIssuer",
    "AccessRequestWorkflow",
    "EventPublisher",
    "EventConsumer",
    "NotificationHandlers",
]
