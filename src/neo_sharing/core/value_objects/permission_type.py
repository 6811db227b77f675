"""Permission type value object.

Three privilege levels, most to least privileged: Admin, Contributor, Reader.
The stored ordinal keeps Admin at 0, so sufficiency is decided by rank and
never by comparing raw ordinals.
"""

from enum import Enum
from typing import Union

from ..exceptions import InvalidArgumentError


class PermissionType(str, Enum):
    """Permission level granted on a file or folder."""

    ADMIN = "Admin"
    CONTRIBUTOR = "Contributor"
    READER = "Reader"

    @property
    def ordinal(self) -> int:
        """Persisted ordinal (Admin=0, Contributor=1, Reader=2)."""
        return _ORDINALS[self]

    @property
    def rank(self) -> int:
        """Privilege rank, higher is more powerful."""
        return len(_ORDINALS) - _ORDINALS[self]

    @property
    def can_modify(self) -> bool:
        """Whether this level may change sharing on the resource."""
        return self in (PermissionType.ADMIN, PermissionType.CONTRIBUTOR)

    def satisfies(self, required: "PermissionType") -> bool:
        """Check whether a grant at this level covers ``required``."""
        return self.rank >= required.rank

    @classmethod
    def parse(cls, value: Union["PermissionType", str, int]) -> "PermissionType":
        """Parse a level from its name (case-insensitive) or its ordinal.

        Raises:
            InvalidArgumentError: If the value is not a known level
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            for member, ordinal in _ORDINALS.items():
                if ordinal == value:
                    return member
        elif isinstance(value, str):
            normalized = value.strip().lower()
            for member in cls:
                if member.value.lower() == normalized:
                    return member
        raise InvalidArgumentError(
            f"Invalid permission type: {value}",
            details={"permission_type": str(value)}
        )

    def __str__(self) -> str:
        return self.value


_ORDINALS = {
    PermissionType.ADMIN: 0,
    PermissionType.CONTRIBUTOR: 1,
    PermissionType.READER: 2,
}
