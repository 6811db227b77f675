"""AsyncPG-based PostgreSQL implementation of the resource store.

SQL text lives in ``queries``; this module only binds parameters and maps
rows to entities. Driver failures are reported as StorageError.
"""

import logging
from typing import Any, List, Optional

import asyncpg

from ...core.entities import AccessRequest, File, Folder, PermissionGrant, PublicShare, User
from ...core.exceptions import ConflictError, StorageError
from ...core.protocols import ResourceStore
from ...core.value_objects import (
    AccessRequestStatus,
    FileRef,
    FolderRef,
    PermissionType,
    ResourceKind,
    ResourceRef,
    resource_ref,
)
from ...database import DatabaseManager
from ...utils import ensure_utc
from .queries import (
    SCHEMA_DDL,
    USER_GET_BY_ID,
    USER_GET_BY_EMAIL,
    FOLDER_GET_BY_ID,
    FOLDER_LIST_CHILDREN,
    FOLDER_LIST_BY_OWNER,
    FILE_GET_BY_ID,
    FILE_LIST_BY_FOLDER,
    FILE_LIST_BY_OWNER,
    GRANT_TABLES,
    GRANT_UPSERT,
    GRANT_GET_BY_USER_AND_RESOURCE,
    GRANT_LIST_BY_USER,
    GRANT_LIST_BY_RESOURCE,
    GRANT_DELETE,
    ACCESS_REQUEST_INSERT,
    ACCESS_REQUEST_UPDATE,
    ACCESS_REQUEST_GET_BY_ID,
    ACCESS_REQUEST_FIND_PENDING,
    ACCESS_REQUEST_LIST,
    PUBLIC_SHARE_INSERT,
    PUBLIC_SHARE_GET_BY_TOKEN,
    PUBLIC_SHARE_DELETE,
)

logger = logging.getLogger(__name__)


class AsyncPGResourceStore(ResourceStore):
    """PostgreSQL resource store on top of DatabaseManager."""

    def __init__(self, database: DatabaseManager, schema: str = "public"):
        """Initialize with a database manager.

        Args:
            database: Pool manager used for every query
            schema: PostgreSQL schema holding the sharing tables
        """
        self._db = database
        self._schema = schema

    async def create_schema(self) -> None:
        """Create the sharing tables if they do not exist."""
        await self._execute(SCHEMA_DDL.format(schema=self._schema))
        logger.info(f"Ensured sharing tables in schema '{self._schema}'")

    # ===========================================
    # Users
    # ===========================================

    async def get_user(self, user_id: int) -> Optional[User]:
        row = await self._fetchrow(self._q(USER_GET_BY_ID), user_id)
        return self._map_user(row) if row else None

    async def find_user_by_email(self, email: str) -> Optional[User]:
        row = await self._fetchrow(self._q(USER_GET_BY_EMAIL), email)
        return self._map_user(row) if row else None

    # ===========================================
    # Resource tree
    # ===========================================

    async def get_folder(self, folder_id: int) -> Optional[Folder]:
        row = await self._fetchrow(self._q(FOLDER_GET_BY_ID), folder_id)
        return self._map_folder(row) if row else None

    async def get_file(self, file_id: int) -> Optional[File]:
        row = await self._fetchrow(self._q(FILE_GET_BY_ID), file_id)
        return self._map_file(row) if row else None

    async def list_child_folders(self, folder_id: int) -> List[Folder]:
        rows = await self._fetch(self._q(FOLDER_LIST_CHILDREN), folder_id)
        return [self._map_folder(row) for row in rows]

    async def list_folder_files(self, folder_id: int) -> List[File]:
        rows = await self._fetch(self._q(FILE_LIST_BY_FOLDER), folder_id)
        return [self._map_file(row) for row in rows]

    async def list_owned_folders(self, user_id: int) -> List[Folder]:
        rows = await self._fetch(self._q(FOLDER_LIST_BY_OWNER), user_id)
        return [self._map_folder(row) for row in rows]

    async def list_owned_files(self, user_id: int) -> List[File]:
        rows = await self._fetch(self._q(FILE_LIST_BY_OWNER), user_id)
        return [self._map_file(row) for row in rows]

    # ===========================================
    # Permission grants
    # ===========================================

    async def list_grants_for_user(self, user_id: int, kind: ResourceKind) -> List[PermissionGrant]:
        rows = await self._fetch(self._grant_q(GRANT_LIST_BY_USER, kind), user_id)
        return [self._map_grant(row, kind) for row in rows]

    async def find_grant(self, user_id: int, resource: ResourceRef) -> Optional[PermissionGrant]:
        row = await self._fetchrow(
            self._grant_q(GRANT_GET_BY_USER_AND_RESOURCE, resource.kind),
            user_id,
            resource.resource_id,
        )
        return self._map_grant(row, resource.kind) if row else None

    async def list_grants_for_resource(self, resource: ResourceRef) -> List[PermissionGrant]:
        rows = await self._fetch(
            self._grant_q(GRANT_LIST_BY_RESOURCE, resource.kind),
            resource.resource_id,
        )
        return [self._map_grant(row, resource.kind) for row in rows]

    async def upsert_grant(
        self,
        user_id: int,
        resource: ResourceRef,
        permission_type: PermissionType
    ) -> PermissionGrant:
        row = await self._fetchrow(
            self._grant_q(GRANT_UPSERT, resource.kind),
            user_id,
            resource.resource_id,
            permission_type.value,
        )
        grant = self._map_grant(row, resource.kind)
        logger.debug(f"Upserted {permission_type} grant {grant.id} for user {user_id} on {resource}")
        return grant

    async def delete_grant(self, grant_id: int, kind: ResourceKind) -> bool:
        status = await self._execute(self._grant_q(GRANT_DELETE, kind), grant_id)
        return status.endswith(" 1")

    # ===========================================
    # Access requests
    # ===========================================

    async def save_access_request(self, request: AccessRequest) -> AccessRequest:
        if request.id is None:
            row = await self._fetchrow(
                self._q(ACCESS_REQUEST_INSERT),
                request.requester_id,
                request.owner_id,
                request.resource.folder_id_or_none,
                request.resource.file_id_or_none,
                request.requested_permission_type.value,
                request.message,
                request.status.value,
                request.denial_reason,
                request.created_at,
                request.updated_at,
            )
        else:
            row = await self._fetchrow(
                self._q(ACCESS_REQUEST_UPDATE),
                request.id,
                request.status.value,
                request.denial_reason,
                request.updated_at,
            )
            if row is None:
                # Another review already moved the request out of Pending
                raise ConflictError(
                    "This request has already been reviewed",
                    details={"request_id": request.id}
                )
        return self._map_access_request(row)

    async def get_access_request(self, request_id: int) -> Optional[AccessRequest]:
        row = await self._fetchrow(self._q(ACCESS_REQUEST_GET_BY_ID), request_id)
        return self._map_access_request(row) if row else None

    async def find_pending_request(
        self,
        requester_id: int,
        resource: ResourceRef
    ) -> Optional[AccessRequest]:
        row = await self._fetchrow(
            self._q(ACCESS_REQUEST_FIND_PENDING),
            requester_id,
            resource.folder_id_or_none,
            resource.file_id_or_none,
        )
        return self._map_access_request(row) if row else None

    async def list_access_requests(
        self,
        requester_id: Optional[int] = None,
        owner_id: Optional[int] = None
    ) -> List[AccessRequest]:
        rows = await self._fetch(self._q(ACCESS_REQUEST_LIST), requester_id, owner_id)
        return [self._map_access_request(row) for row in rows]

    # ===========================================
    # Public shares
    # ===========================================

    async def save_public_share(self, share: PublicShare) -> PublicShare:
        row = await self._fetchrow(
            self._q(PUBLIC_SHARE_INSERT),
            share.token,
            share.owner_id,
            share.resource.folder_id_or_none,
            share.resource.file_id_or_none,
            share.permission_type.value,
            share.created_at,
            share.expires_at,
        )
        return self._map_public_share(row)

    async def find_public_share(self, token: str) -> Optional[PublicShare]:
        row = await self._fetchrow(self._q(PUBLIC_SHARE_GET_BY_TOKEN), token)
        return self._map_public_share(row) if row else None

    async def delete_public_share(self, share_id: int) -> bool:
        status = await self._execute(self._q(PUBLIC_SHARE_DELETE), share_id)
        return status.endswith(" 1")

    # ===========================================
    # Helpers
    # ===========================================

    def _q(self, query: str) -> str:
        return query.format(schema=self._schema)

    def _grant_q(self, query: str, kind: ResourceKind) -> str:
        table, column = GRANT_TABLES[kind.value]
        return query.format(schema=self._schema, table=table, column=column)

    async def _fetch(self, query: str, *args) -> List[Any]:
        try:
            return await self._db.fetch(query, *args)
        except (asyncpg.PostgresError, OSError) as e:
            logger.error(f"Resource store query failed: {e}")
            raise StorageError(f"Resource store query failed: {e}") from e

    async def _fetchrow(self, query: str, *args) -> Optional[Any]:
        try:
            return await self._db.fetchrow(query, *args)
        except (asyncpg.PostgresError, OSError) as e:
            logger.error(f"Resource store query failed: {e}")
            raise StorageError(f"Resource store query failed: {e}") from e

    async def _execute(self, query: str, *args) -> str:
        try:
            return await self._db.execute(query, *args)
        except (asyncpg.PostgresError, OSError) as e:
            logger.error(f"Resource store command failed: {e}")
            raise StorageError(f"Resource store command failed: {e}") from e

    @staticmethod
    def _map_user(row) -> User:
        return User(
            id=row["id"],
            username=row["username"],
            email=row["email"],
            created_at=ensure_utc(row["created_at"]),
        )

    @staticmethod
    def _map_folder(row) -> Folder:
        return Folder(
            id=row["id"],
            name=row["name"],
            owner_id=row["owner_id"],
            parent_folder_id=row["parent_folder_id"],
            created_at=ensure_utc(row["created_at"]),
            updated_at=ensure_utc(row["updated_at"]),
        )

    @staticmethod
    def _map_file(row) -> File:
        return File(
            id=row["id"],
            name=row["name"],
            owner_id=row["owner_id"],
            folder_id=row["folder_id"],
            path=row["path"],
            size=row["size"],
            created_at=ensure_utc(row["created_at"]),
            updated_at=ensure_utc(row["updated_at"]),
        )

    @staticmethod
    def _map_grant(row, kind: ResourceKind) -> PermissionGrant:
        resource = FolderRef(row["resource_id"]) if kind is ResourceKind.FOLDER else FileRef(row["resource_id"])
        return PermissionGrant(
            id=row["id"],
            user_id=row["user_id"],
            resource=resource,
            permission_type=PermissionType.parse(row["permission_type"]),
            created_at=ensure_utc(row["created_at"]),
        )

    @staticmethod
    def _map_access_request(row) -> AccessRequest:
        return AccessRequest(
            id=row["id"],
            requester_id=row["requester_id"],
            owner_id=row["owner_id"],
            resource=resource_ref(folder_id=row["folder_id"], file_id=row["file_id"]),
            requested_permission_type=PermissionType.parse(row["requested_permission_type"]),
            message=row["message"],
            status=AccessRequestStatus(row["status"]),
            denial_reason=row["denial_reason"],
            created_at=ensure_utc(row["created_at"]),
            updated_at=ensure_utc(row["updated_at"]),
        )

    @staticmethod
    def _map_public_share(row) -> PublicShare:
        return PublicShare(
            id=row["id"],
            token=row["token"],
            owner_id=row["owner_id"],
            resource=resource_ref(folder_id=row["folder_id"], file_id=row["file_id"]),
            permission_type=PermissionType.parse(row["permission_type"]),
            created_at=ensure_utc(row["created_at"]),
            expires_at=ensure_utc(row["expires_at"]),
        )
