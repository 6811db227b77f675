"""Domain entities for neo-sharing."""

from .user import User
from .resource import Folder, File, Resource
from .permission_grant import PermissionGrant
from .access_request import AccessRequest
from .public_share import PublicShare, generate_share_token
from .views import PermissionView, GrantResult, SharedUserView, AccessRequestView

__all__ = [
    "User",
    "Folder",
    "File",
    "Resource",
    "PermissionGrant",
    "AccessRequest",
    "PublicShare",
    "generate_share_token",
    "PermissionView",
    "GrantResult",
    "SharedUserView",
    "AccessRequestView",
]
