"""User entity."""

from dataclasses import dataclass, field
from datetime import datetime

from ...utils import utc_now


@dataclass(frozen=True)
class User:
    """A user who can own, share, request and receive access to resources."""

    id: int
    username: str
    email: str
    created_at: datetime = field(default_factory=utc_now)
