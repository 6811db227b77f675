"""Resource store protocol.

Persistence contract for users, resources, permission grants, access
requests and public shares. Implementations must make ``upsert_grant`` a
single atomic statement so concurrent grants resolve as last write wins.
"""

from abc import abstractmethod
from typing import List, Optional, Protocol, runtime_checkable

from ..entities import AccessRequest, File, Folder, PermissionGrant, PublicShare, User
from ..value_objects import PermissionType, ResourceKind, ResourceRef


@runtime_checkable
class ResourceStore(Protocol):
    """Storage operations used by the sharing services."""

    # ===========================================
    # Users
    # ===========================================

    @abstractmethod
    async def get_user(self, user_id: int) -> Optional[User]:
        ...

    @abstractmethod
    async def find_user_by_email(self, email: str) -> Optional[User]:
        ...

    # ===========================================
    # Resource tree
    # ===========================================

    @abstractmethod
    async def get_folder(self, folder_id: int) -> Optional[Folder]:
        ...

    @abstractmethod
    async def get_file(self, file_id: int) -> Optional[File]:
        ...

    @abstractmethod
    async def list_child_folders(self, folder_id: int) -> List[Folder]:
        """Direct subfolders of a folder."""
        ...

    @abstractmethod
    async def list_folder_files(self, folder_id: int) -> List[File]:
        """Files directly inside a folder."""
        ...

    @abstractmethod
    async def list_owned_folders(self, user_id: int) -> List[Folder]:
        ...

    @abstractmethod
    async def list_owned_files(self, user_id: int) -> List[File]:
        ...

    # ===========================================
    # Permission grants
    # ===========================================

    @abstractmethod
    async def list_grants_for_user(self, user_id: int, kind: ResourceKind) -> List[PermissionGrant]:
        """Explicit grants held by a user on resources of one kind."""
        ...

    @abstractmethod
    async def find_grant(self, user_id: int, resource: ResourceRef) -> Optional[PermissionGrant]:
        ...

    @abstractmethod
    async def list_grants_for_resource(self, resource: ResourceRef) -> List[PermissionGrant]:
        ...

    @abstractmethod
    async def upsert_grant(
        self,
        user_id: int,
        resource: ResourceRef,
        permission_type: PermissionType
    ) -> PermissionGrant:
        """Insert the (user, resource) grant or overwrite its level.

        Returns:
            The stored grant
        """
        ...

    @abstractmethod
    async def delete_grant(self, grant_id: int, kind: ResourceKind) -> bool:
        """Delete a grant by id.

        Returns:
            True if a row was deleted, False if none existed
        """
        ...

    # ===========================================
    # Access requests
    # ===========================================

    @abstractmethod
    async def save_access_request(self, request: AccessRequest) -> AccessRequest:
        """Insert a new request (``id is None``) or record a review of a Pending one.

        The update only applies while the stored request is still Pending, so
        two concurrent reviews cannot both succeed.

        Raises:
            ConflictError: If the stored request was already reviewed
        """
        ...

    @abstractmethod
    async def get_access_request(self, request_id: int) -> Optional[AccessRequest]:
        ...

    @abstractmethod
    async def find_pending_request(
        self,
        requester_id: int,
        resource: ResourceRef
    ) -> Optional[AccessRequest]:
        ...

    @abstractmethod
    async def list_access_requests(
        self,
        requester_id: Optional[int] = None,
        owner_id: Optional[int] = None
    ) -> List[AccessRequest]:
        """List requests filtered by requester and/or owner, newest first."""
        ...

    # ===========================================
    # Public shares
    # ===========================================

    @abstractmethod
    async def save_public_share(self, share: PublicShare) -> PublicShare:
        ...

    @abstractmethod
    async def find_public_share(self, token: str) -> Optional[PublicShare]:
        ...

    @abstractmethod
    async def delete_public_share(self, share_id: int) -> bool:
        ...
