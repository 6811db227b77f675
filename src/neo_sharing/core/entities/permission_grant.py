"""Permission grant entity."""

from dataclasses import dataclass, field
from datetime import datetime

from ...utils import utc_now
from ..value_objects import FileRef, PermissionType, ResourceKind, ResourceRef


@dataclass
class PermissionGrant:
    """A (user, resource, level) permission record.

    File and folder grants are stored separately; at most one grant exists
    per (user, resource) pair and re-granting overwrites the level.
    """

    id: int
    user_id: int
    resource: ResourceRef
    permission_type: PermissionType
    created_at: datetime = field(default_factory=utc_now)

    @property
    def is_file_scoped(self) -> bool:
        return isinstance(self.resource, FileRef)

    @property
    def resource_kind(self) -> ResourceKind:
        return self.resource.kind

    @property
    def resource_id(self) -> int:
        return self.resource.resource_id
