"""Access request entity.

An access request is created Pending by a requester and moves exactly once
to Approved or Denied, performed by the resource owner. Terminal states are
immutable.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ...utils import utc_now
from ..exceptions import ConflictError
from ..value_objects import AccessRequestStatus, PermissionType, ResourceRef


@dataclass
class AccessRequest:
    """Request from one user for access to another user's resource."""

    id: Optional[int]
    requester_id: int
    owner_id: int
    resource: ResourceRef
    requested_permission_type: PermissionType
    message: str = ""
    status: AccessRequestStatus = AccessRequestStatus.PENDING
    denial_reason: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: Optional[datetime] = None

    @property
    def is_pending(self) -> bool:
        return self.status is AccessRequestStatus.PENDING

    def approve(self) -> None:
        """Move the request to Approved."""
        self.ensure_pending()
        self.status = AccessRequestStatus.APPROVED
        self.updated_at = utc_now()

    def deny(self, reason: Optional[str]) -> None:
        """Move the request to Denied, keeping the reviewer's reason."""
        self.ensure_pending()
        self.status = AccessRequestStatus.DENIED
        self.denial_reason = reason
        self.updated_at = utc_now()

    def ensure_pending(self) -> None:
        """Raise ConflictError unless the request is still Pending."""
        if not self.is_pending:
            raise ConflictError(
                f"This request has already been {self.status.value.lower()}",
                details={"request_id": self.id, "status": self.status.value}
            )
