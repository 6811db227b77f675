"""Value objects for neo-sharing."""

from .permission_type import PermissionType
from .resource_reference import (
    ResourceKind,
    FolderRef,
    FileRef,
    ResourceRef,
    resource_ref,
    ensure_resource_ref,
)
from .access_request_status import AccessRequestStatus

__all__ = [
    "PermissionType",
    "ResourceKind",
    "FolderRef",
    "FileRef",
    "ResourceRef",
    "resource_ref",
    "ensure_resource_ref",
    "AccessRequestStatus",
]
