"""Permission resolution, propagation and public sharing."""

from .services import PermissionEngine, PublicShareIssuer

__all__ = ["PermissionEngine", "PublicShareIssuer"]
