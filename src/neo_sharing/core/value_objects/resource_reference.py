"""Resource reference value objects.

A reference points at exactly one folder or exactly one file. The two cases
are separate types so an invalid "both" or "neither" reference cannot exist
once constructed; ``resource_ref`` is the single place that validates raw ids.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from ..exceptions import InvalidArgumentError


class ResourceKind(str, Enum):
    """Kind of resource a reference points at."""

    FOLDER = "Folder"
    FILE = "File"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class FolderRef:
    """Reference to a folder."""

    folder_id: int

    kind = ResourceKind.FOLDER

    def __post_init__(self):
        _validate_id(self.folder_id, "folder_id")

    @property
    def resource_id(self) -> int:
        return self.folder_id

    @property
    def folder_id_or_none(self) -> Optional[int]:
        return self.folder_id

    @property
    def file_id_or_none(self) -> Optional[int]:
        return None

    def __str__(self) -> str:
        return f"Folder:{self.folder_id}"


@dataclass(frozen=True)
class FileRef:
    """Reference to a file."""

    file_id: int

    kind = ResourceKind.FILE

    def __post_init__(self):
        _validate_id(self.file_id, "file_id")

    @property
    def resource_id(self) -> int:
        return self.file_id

    @property
    def folder_id_or_none(self) -> Optional[int]:
        return None

    @property
    def file_id_or_none(self) -> Optional[int]:
        return self.file_id

    def __str__(self) -> str:
        return f"File:{self.file_id}"


ResourceRef = Union[FolderRef, FileRef]


def resource_ref(folder_id: Optional[int] = None, file_id: Optional[int] = None) -> ResourceRef:
    """Build a reference from a folder id or a file id.

    Raises:
        InvalidArgumentError: If both or neither id is given
    """
    if folder_id is None and file_id is None:
        raise InvalidArgumentError("Either folder ID or file ID must be provided")
    if folder_id is not None and file_id is not None:
        raise InvalidArgumentError(
            "Cannot specify both folder ID and file ID",
            details={"folder_id": folder_id, "file_id": file_id}
        )
    if folder_id is not None:
        return FolderRef(folder_id)
    return FileRef(file_id)


def ensure_resource_ref(value) -> ResourceRef:
    """Check that ``value`` is a FolderRef or FileRef."""
    if isinstance(value, (FolderRef, FileRef)):
        return value
    raise InvalidArgumentError(
        f"Invalid resource reference: {value!r}",
        details={"resource": repr(value)}
    )


def _validate_id(value, field_name: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidArgumentError(
            f"{field_name} must be a positive integer",
            details={field_name: value}
        )
