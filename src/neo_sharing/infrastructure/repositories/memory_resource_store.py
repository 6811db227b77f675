"""In-memory resource store for development and testing.

Data lives in plain dictionaries keyed by id. Grants are additionally indexed
by (user, resource) so the upsert keeps one row per pair.
"""

import itertools
from dataclasses import replace
from typing import Dict, List, Optional, Tuple

from ...core.entities import AccessRequest, File, Folder, PermissionGrant, PublicShare, User
from ...core.exceptions import ConflictError
from ...core.protocols import ResourceStore
from ...core.value_objects import PermissionType, ResourceKind, ResourceRef
from ...utils import utc_now


class MemoryResourceStore(ResourceStore):
    """Resource store backed by process memory."""

    def __init__(self):
        self._users: Dict[int, User] = {}
        self._folders: Dict[int, Folder] = {}
        self._files: Dict[int, File] = {}
        self._grants: Dict[ResourceKind, Dict[int, PermissionGrant]] = {
            ResourceKind.FOLDER: {},
            ResourceKind.FILE: {},
        }
        self._grant_index: Dict[Tuple[int, ResourceRef], int] = {}
        self._requests: Dict[int, AccessRequest] = {}
        self._shares: Dict[int, PublicShare] = {}
        self._ids = {
            name: itertools.count(1)
            for name in ("user", "folder", "file", "grant", "request", "share")
        }

    # ===========================================
    # Seeding
    # ===========================================

    def add_user(self, username: str, email: str, user_id: Optional[int] = None) -> User:
        if any(u.email.lower() == email.lower() for u in self._users.values()):
            raise ConflictError(f"A user with email {email} already exists", details={"email": email})
        user = User(id=user_id or next(self._ids["user"]), username=username, email=email)
        self._users[user.id] = user
        return user

    def add_folder(
        self,
        name: str,
        owner_id: int,
        parent_folder_id: Optional[int] = None,
        folder_id: Optional[int] = None
    ) -> Folder:
        folder = Folder(
            id=folder_id or next(self._ids["folder"]),
            name=name,
            owner_id=owner_id,
            parent_folder_id=parent_folder_id,
        )
        self._folders[folder.id] = folder
        return folder

    def add_file(
        self,
        name: str,
        owner_id: int,
        folder_id: int,
        size: int = 0,
        file_id: Optional[int] = None
    ) -> File:
        file = File(
            id=file_id or next(self._ids["file"]),
            name=name,
            owner_id=owner_id,
            folder_id=folder_id,
            path=f"/{folder_id}/{name}",
            size=size,
        )
        self._files[file.id] = file
        return file

    # ===========================================
    # Users
    # ===========================================

    async def get_user(self, user_id: int) -> Optional[User]:
        return self._users.get(user_id)

    async def find_user_by_email(self, email: str) -> Optional[User]:
        wanted = email.lower()
        for user in self._users.values():
            if user.email.lower() == wanted:
                return user
        return None

    # ===========================================
    # Resource tree
    # ===========================================

    async def get_folder(self, folder_id: int) -> Optional[Folder]:
        return self._folders.get(folder_id)

    async def get_file(self, file_id: int) -> Optional[File]:
        return self._files.get(file_id)

    async def list_child_folders(self, folder_id: int) -> List[Folder]:
        return [f for f in self._folders.values() if f.parent_folder_id == folder_id]

    async def list_folder_files(self, folder_id: int) -> List[File]:
        return [f for f in self._files.values() if f.folder_id == folder_id]

    async def list_owned_folders(self, user_id: int) -> List[Folder]:
        return [f for f in self._folders.values() if f.owner_id == user_id]

    async def list_owned_files(self, user_id: int) -> List[File]:
        return [f for f in self._files.values() if f.owner_id == user_id]

    # ===========================================
    # Permission grants
    # ===========================================

    async def list_grants_for_user(self, user_id: int, kind: ResourceKind) -> List[PermissionGrant]:
        return [g for g in self._grants[kind].values() if g.user_id == user_id]

    async def find_grant(self, user_id: int, resource: ResourceRef) -> Optional[PermissionGrant]:
        grant_id = self._grant_index.get((user_id, resource))
        if grant_id is None:
            return None
        return self._grants[resource.kind].get(grant_id)

    async def list_grants_for_resource(self, resource: ResourceRef) -> List[PermissionGrant]:
        return [g for g in self._grants[resource.kind].values() if g.resource == resource]

    async def upsert_grant(
        self,
        user_id: int,
        resource: ResourceRef,
        permission_type: PermissionType
    ) -> PermissionGrant:
        existing = await self.find_grant(user_id, resource)
        if existing is not None:
            existing.permission_type = permission_type
            return existing

        grant = PermissionGrant(
            id=next(self._ids["grant"]),
            user_id=user_id,
            resource=resource,
            permission_type=permission_type,
            created_at=utc_now(),
        )
        self._grants[resource.kind][grant.id] = grant
        self._grant_index[(user_id, resource)] = grant.id
        return grant

    async def delete_grant(self, grant_id: int, kind: ResourceKind) -> bool:
        grant = self._grants[kind].pop(grant_id, None)
        if grant is None:
            return False
        self._grant_index.pop((grant.user_id, grant.resource), None)
        return True

    # ===========================================
    # Access requests
    # ===========================================

    async def save_access_request(self, request: AccessRequest) -> AccessRequest:
        if request.id is None:
            request = replace(request, id=next(self._ids["request"]))
        else:
            stored = self._requests.get(request.id)
            if stored is not None and not stored.is_pending:
                raise ConflictError(
                    "This request has already been reviewed",
                    details={"request_id": request.id}
                )
        self._requests[request.id] = replace(request)
        return replace(request)

    async def get_access_request(self, request_id: int) -> Optional[AccessRequest]:
        request = self._requests.get(request_id)
        return replace(request) if request else None

    async def find_pending_request(
        self,
        requester_id: int,
        resource: ResourceRef
    ) -> Optional[AccessRequest]:
        for request in self._requests.values():
            if (
                request.requester_id == requester_id
                and request.resource == resource
                and request.is_pending
            ):
                return replace(request)
        return None

    async def list_access_requests(
        self,
        requester_id: Optional[int] = None,
        owner_id: Optional[int] = None
    ) -> List[AccessRequest]:
        matches = [
            replace(request)
            for request in self._requests.values()
            if (requester_id is None or request.requester_id == requester_id)
            and (owner_id is None or request.owner_id == owner_id)
        ]
        matches.sort(key=lambda r: (r.created_at, r.id), reverse=True)
        return matches

    # ===========================================
    # Public shares
    # ===========================================

    async def save_public_share(self, share: PublicShare) -> PublicShare:
        if share.id is None:
            share = replace(share, id=next(self._ids["share"]))
        self._shares[share.id] = share
        return share

    async def find_public_share(self, token: str) -> Optional[PublicShare]:
        for share in self._shares.values():
            if share.token == token:
                return share
        return None

    async def delete_public_share(self, share_id: int) -> bool:
        return self._shares.pop(share_id, None) is not None
