"""Domain events published after committed sharing state transitions.

Events travel as JSON objects with PascalCase field names and an
``EventType`` tag. The same models validate incoming payloads on the
consumer side, so a payload that does not parse into its model is malformed.
"""

from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Dict, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_pascal

from ...utils import utc_now
from ..value_objects import PermissionType, ResourceKind, ResourceRef


class EventType(str, Enum):
    """Tag carried in the ``EventType`` field of every payload."""

    RESOURCE_SHARED = "ResourceShared"
    PUBLIC_LINK_GENERATED = "PublicLinkGenerated"
    ACCESS_REQUESTED = "AccessRequested"
    ACCESS_REQUEST_APPROVED = "AccessRequestApproved"
    ACCESS_REQUEST_DENIED = "AccessRequestDenied"

    def __str__(self) -> str:
        return self.value


class SharingEvent(BaseModel):
    """Base class for sharing events."""

    model_config = ConfigDict(
        alias_generator=to_pascal,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    event_type: ClassVar[EventType]

    event_id: str = Field(default_factory=lambda: uuid4().hex)
    timestamp: datetime = Field(default_factory=utc_now)

    def to_payload(self) -> Dict[str, Any]:
        """Serialize to the JSON-compatible wire shape."""
        payload = {"EventType": self.event_type.value}
        payload.update(self.model_dump(mode="json", by_alias=True))
        return payload


class ResourceEvent(SharingEvent):
    """Events that point at a folder or a file."""

    folder_id: Optional[int] = None
    file_id: Optional[int] = None

    @staticmethod
    def resource_ids(resource: ResourceRef) -> Dict[str, Optional[int]]:
        return {
            "folder_id": resource.folder_id_or_none,
            "file_id": resource.file_id_or_none,
        }


class ResourceShared(ResourceEvent):
    """A user was granted a permission on a resource."""

    event_type: ClassVar[EventType] = EventType.RESOURCE_SHARED

    sharer_user_id: int
    permission_type: PermissionType
    recipient_email: str = Field(min_length=1)
    resource_type: ResourceKind
    resource_name: str


class PublicLinkGenerated(ResourceEvent):
    """An owner created a public share link."""

    event_type: ClassVar[EventType] = EventType.PUBLIC_LINK_GENERATED

    sharer_user_id: int
    permission_type: PermissionType
    share_token: str = Field(min_length=1)
    expires_at: datetime
    resource_type: ResourceKind
    resource_name: str
    owner_email: str = Field(min_length=1)


class AccessRequested(SharingEvent):
    """A user asked the owner for access to a resource."""

    event_type: ClassVar[EventType] = EventType.ACCESS_REQUESTED

    request_id: int
    requester_id: int
    requester_email: str
    requester_username: str
    owner_id: int
    owner_email: str = Field(min_length=1)
    resource_id: int
    resource_type: ResourceKind
    resource_name: str
    requested_permission_type: PermissionType
    message: str = ""


class AccessRequestApproved(SharingEvent):
    """The owner approved an access request."""

    event_type: ClassVar[EventType] = EventType.ACCESS_REQUEST_APPROVED

    request_id: int
    requester_id: int
    requester_email: str = Field(min_length=1)
    owner_id: int
    resource_id: int
    resource_type: ResourceKind
    resource_name: str
    granted_permission_type: PermissionType


class AccessRequestDenied(SharingEvent):
    """The owner denied an access request."""

    event_type: ClassVar[EventType] = EventType.ACCESS_REQUEST_DENIED

    request_id: int
    requester_id: int
    requester_email: str = Field(min_length=1)
    owner_id: int
    resource_type: ResourceKind
    resource_name: str
    requested_permission_type: PermissionType
    denial_reason: Optional[str] = None


EVENT_MODELS: Dict[EventType, type] = {
    EventType.RESOURCE_SHARED: ResourceShared,
    EventType.PUBLIC_LINK_GENERATED: PublicLinkGenerated,
    EventType.ACCESS_REQUESTED: AccessRequested,
    EventType.ACCESS_REQUEST_APPROVED: AccessRequestApproved,
    EventType.ACCESS_REQUEST_DENIED: AccessRequestDenied,
}
