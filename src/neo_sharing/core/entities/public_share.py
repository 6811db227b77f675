"""Public share entity.

A public share is a bearer token that grants a fixed permission level on one
resource to whoever redeems it before ``expires_at``.
"""

import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

from ...config.constants import SHARE_TOKEN_BYTES, SHARE_VALIDITY_DAYS
from ...utils import ensure_utc, utc_now
from ..value_objects import PermissionType, ResourceRef


@dataclass
class PublicShare:
    """Time-limited public share link."""

    id: Optional[int]
    token: str
    owner_id: int
    resource: ResourceRef
    permission_type: PermissionType
    created_at: datetime = field(default_factory=utc_now)
    expires_at: Optional[datetime] = None

    def __post_init__(self):
        if self.expires_at is None:
            self.expires_at = self.created_at + timedelta(days=SHARE_VALIDITY_DAYS)

    @classmethod
    def issue(
        cls,
        owner_id: int,
        resource: ResourceRef,
        permission_type: PermissionType,
        validity_days: int = SHARE_VALIDITY_DAYS,
        now: Optional[datetime] = None
    ) -> "PublicShare":
        """Create a new share with a fresh random token."""
        created_at = now or utc_now()
        return cls(
            id=None,
            token=generate_share_token(),
            owner_id=owner_id,
            resource=resource,
            permission_type=permission_type,
            created_at=created_at,
            expires_at=created_at + timedelta(days=validity_days),
        )

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Check whether the share is past its validity window."""
        return ensure_utc(self.expires_at) < (now or utc_now())


def generate_share_token() -> str:
    """Generate a 128-bit random token as 32 hex characters."""
    return secrets.token_hex(SHARE_TOKEN_BYTES)
