"""Resource tree entities.

Folders nest through ``parent_folder_id``; files live in exactly one folder.
Every resource has exactly one owner.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Union

from ...utils import utc_now
from ..value_objects import FileRef, FolderRef, ResourceKind


@dataclass
class Folder:
    """Folder in the resource tree."""

    id: int
    name: str
    owner_id: int
    parent_folder_id: Optional[int] = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    kind = ResourceKind.FOLDER

    @property
    def ref(self) -> FolderRef:
        return FolderRef(self.id)

    @property
    def is_root(self) -> bool:
        return self.parent_folder_id is None

    def is_owned_by(self, user_id: int) -> bool:
        return self.owner_id == user_id


@dataclass
class File:
    """File stored in a folder."""

    id: int
    name: str
    owner_id: int
    folder_id: int
    path: str = ""
    size: int = 0
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    kind = ResourceKind.FILE

    @property
    def ref(self) -> FileRef:
        return FileRef(self.id)

    def is_owned_by(self, user_id: int) -> bool:
        return self.owner_id == user_id


Resource = Union[Folder, File]
