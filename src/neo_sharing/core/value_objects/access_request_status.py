"""Access request status value object."""

from enum import Enum


class AccessRequestStatus(str, Enum):
    """Lifecycle state of an access request.

    Pending moves exactly once, to Approved or to Denied.
    """

    PENDING = "Pending"
    APPROVED = "Approved"
    DENIED = "Denied"

    @property
    def is_terminal(self) -> bool:
        return self is not AccessRequestStatus.PENDING

    def __str__(self) -> str:
        return self.value
