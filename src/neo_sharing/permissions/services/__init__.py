"""Permission services."""

from .permission_engine import PermissionEngine
from .public_share_issuer import PublicShareIssuer

__all__ = ["PermissionEngine", "PublicShareIssuer"]
