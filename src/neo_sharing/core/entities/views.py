"""Read models returned by sharing operations.

These are projections assembled from entities; they are never persisted.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..value_objects import AccessRequestStatus, PermissionType, ResourceKind


@dataclass(frozen=True)
class PermissionView:
    """Effective permission of a user on one resource.

    Implicit ownership entries have ``id == 0`` and ``is_owner`` set.
    """

    id: int
    user_id: int
    resource_type: ResourceKind
    resource_id: int
    resource_name: str
    permission_type: PermissionType
    created_at: datetime
    is_owner: bool = False


@dataclass(frozen=True)
class GrantResult:
    """Outcome of a grant: the root grant and whether its notification went out."""

    permission: PermissionView
    notification_sent: bool
    resource_type: ResourceKind


@dataclass(frozen=True)
class SharedUserView:
    """A user a folder is explicitly shared with."""

    user_id: int
    username: str
    email: str
    permission_type: PermissionType


@dataclass
class AccessRequestView:
    """Access request enriched with resource and participant details."""

    id: int
    requester_id: int
    owner_id: int
    folder_id: Optional[int]
    file_id: Optional[int]
    requested_permission_type: PermissionType
    message: str
    status: AccessRequestStatus
    denial_reason: Optional[str]
    created_at: datetime
    updated_at: Optional[datetime]
    resource_type: str = ""
    resource_name: str = ""
    requester_email: str = ""
    requester_username: str = ""
    owner_email: str = ""
    notification_sent: bool = False
