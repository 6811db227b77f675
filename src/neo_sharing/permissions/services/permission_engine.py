"""Permission engine.

Effective access combines implicit ownership with explicit grants. A grant on
a folder cascades to every descendant folder and file at the same level.
Revocation removes one grant row and does not cascade.
"""

import logging
from typing import List, Optional, Set, Union

from ...core.entities import (
    Folder,
    GrantResult,
    PermissionGrant,
    PermissionView,
    Resource,
    SharedUserView,
    User,
)
from ...core.events import ResourceShared
from ...core.exceptions import InvalidArgumentError, NotFoundError, UnauthorizedError
from ...core.protocols import ResourceStore
from ...core.value_objects import (
    FileRef,
    FolderRef,
    PermissionType,
    ResourceKind,
    ResourceRef,
    ensure_resource_ref,
)
from ...notifications.publisher import EventPublisher


logger = logging.getLogger(__name__)


class PermissionEngine:
    """Resolves, checks, grants and revokes permissions."""

    def __init__(self, store: ResourceStore, publisher: EventPublisher):
        self._store = store
        self._publisher = publisher

    # ===========================================
    # Resolution and checks
    # ===========================================

    async def resolve_user_permissions(self, user_id: int) -> List[PermissionView]:
        """List every resource the user can access and at which level.

        Explicit file and folder grants come first, followed by implicit
        Admin entries (``id == 0``) for owned resources without an explicit
        grant to the owner.
        """
        _validate_user_id(user_id)
        views: List[PermissionView] = []

        for kind, owned_loader in (
            (ResourceKind.FILE, self._store.list_owned_files),
            (ResourceKind.FOLDER, self._store.list_owned_folders),
        ):
            seen: Set[int] = set()
            for grant in await self._store.list_grants_for_user(user_id, kind):
                if grant.resource_id in seen:
                    continue
                resource = await self.get_resource(grant.resource)
                if resource is None:
                    logger.debug(f"Skipping grant {grant.id} on missing {grant.resource}")
                    continue
                seen.add(grant.resource_id)
                views.append(_grant_view(grant, resource))

            for resource in await owned_loader(user_id):
                if resource.id in seen:
                    continue
                seen.add(resource.id)
                views.append(PermissionView(
                    id=0,
                    user_id=user_id,
                    resource_type=resource.kind,
                    resource_id=resource.id,
                    resource_name=resource.name,
                    permission_type=PermissionType.ADMIN,
                    created_at=resource.created_at,
                    is_owner=True,
                ))

        return views

    async def has_permission(
        self,
        user_id: int,
        resource: ResourceRef,
        required_level: Union[PermissionType, str]
    ) -> bool:
        """Check whether the user holds ``required_level`` or stronger.

        Raises:
            InvalidArgumentError: For a bad user id, reference or level name
        """
        _validate_user_id(user_id)
        resource = ensure_resource_ref(resource)
        level = PermissionType.parse(required_level)

        target = await self.get_resource(resource)
        if target is not None and target.is_owned_by(user_id):
            return True

        grant = await self._store.find_grant(user_id, resource)
        return grant is not None and grant.permission_type.satisfies(level)

    async def can_modify(self, user_id: int, resource: ResourceRef) -> bool:
        """Owners and Admin or Contributor grantees may change sharing."""
        resource = ensure_resource_ref(resource)
        target = await self.get_resource(resource)
        if target is not None and target.is_owned_by(user_id):
            return True

        grant = await self._store.find_grant(user_id, resource)
        return grant is not None and grant.permission_type.can_modify

    # ===========================================
    # Grant and revoke
    # ===========================================

    async def grant(
        self,
        acting_user_id: int,
        resource: ResourceRef,
        level: Union[PermissionType, str],
        recipient_email: str
    ) -> GrantResult:
        """Grant ``level`` on a resource to the user with ``recipient_email``.

        A folder grant is then applied to every descendant folder and file.
        Each granted resource publishes a ResourceShared event; publish
        failures are reported through ``notification_sent`` only.

        Raises:
            InvalidArgumentError: For a bad reference, level or empty email
            UnauthorizedError: If the acting user cannot modify the resource
            NotFoundError: If the recipient or the resource does not exist
        """
        resource = ensure_resource_ref(resource)
        level = PermissionType.parse(level)
        if not recipient_email or not recipient_email.strip():
            raise InvalidArgumentError("Recipient email is required")

        if not await self.can_modify(acting_user_id, resource):
            raise UnauthorizedError(
                "User does not have permission to modify this resource",
                details={"user_id": acting_user_id, "resource": str(resource)}
            )

        recipient = await self._store.find_user_by_email(recipient_email.strip())
        if recipient is None:
            raise NotFoundError(
                f"User with email {recipient_email} not found",
                details={"email": recipient_email}
            )

        target = await self.get_resource(resource)
        if target is None:
            raise NotFoundError(
                f"{resource.kind.value} with ID {resource.resource_id} not found",
                details={"resource": str(resource)}
            )

        root_grant = await self._store.upsert_grant(recipient.id, resource, level)
        logger.info(
            f"User {acting_user_id} granted {level} on {resource} to user {recipient.id}"
        )
        notification_sent = await self._notify_shared(acting_user_id, target, level, recipient)

        if isinstance(target, Folder):
            count = await self._cascade(acting_user_id, target, level, recipient)
            if count:
                logger.info(f"Cascaded {level} grant on {resource} to {count} descendants")

        return GrantResult(
            permission=_grant_view(root_grant, target),
            notification_sent=notification_sent,
            resource_type=resource.kind,
        )

    async def revoke(self, grant_id: int, is_file_scoped: bool) -> bool:
        """Delete one grant row.

        Returns:
            True if the grant existed and was removed

        Raises:
            InvalidArgumentError: If ``grant_id`` is not positive
        """
        if isinstance(grant_id, bool) or not isinstance(grant_id, int) or grant_id <= 0:
            raise InvalidArgumentError(
                "Permission ID must be greater than zero",
                details={"grant_id": grant_id}
            )
        kind = ResourceKind.FILE if is_file_scoped else ResourceKind.FOLDER
        removed = await self._store.delete_grant(grant_id, kind)
        if removed:
            logger.info(f"Revoked {kind.value.lower()} grant {grant_id}")
        else:
            logger.debug(f"No {kind.value.lower()} grant {grant_id} to revoke")
        return removed

    # ===========================================
    # Folder directory
    # ===========================================

    async def list_shared_users(self, folder_id: int) -> List[SharedUserView]:
        """Users holding an explicit grant on a folder."""
        shared = []
        for grant in await self._store.list_grants_for_resource(FolderRef(folder_id)):
            user = await self._store.get_user(grant.user_id)
            if user is None:
                continue
            shared.append(SharedUserView(
                user_id=user.id,
                username=user.username,
                email=user.email,
                permission_type=grant.permission_type,
            ))
        return shared

    async def get_folder_owner(self, folder_id: int) -> Optional[User]:
        folder = await self._store.get_folder(folder_id)
        if folder is None:
            return None
        return await self._store.get_user(folder.owner_id)

    async def get_resource(self, resource: ResourceRef) -> Optional[Resource]:
        """Load the folder or file a reference points at."""
        if isinstance(resource, FolderRef):
            return await self._store.get_folder(resource.folder_id)
        return await self._store.get_file(resource.file_id)

    # ===========================================
    # Helpers
    # ===========================================

    async def _cascade(
        self,
        acting_user_id: int,
        root: Folder,
        level: PermissionType,
        recipient: User
    ) -> int:
        """Apply the grant to every descendant of ``root``, depth first."""
        count = 0
        visited: Set[int] = {root.id}
        stack: List[Folder] = [root]

        while stack:
            folder = stack.pop()

            for file in await self._store.list_folder_files(folder.id):
                await self._store.upsert_grant(recipient.id, FileRef(file.id), level)
                await self._notify_shared(acting_user_id, file, level, recipient)
                count += 1

            children = await self._store.list_child_folders(folder.id)
            for child in reversed(children):
                if child.id in visited:
                    logger.warning(f"Folder {child.id} reached twice while cascading from {root.id}")
                    continue
                visited.add(child.id)
                await self._store.upsert_grant(recipient.id, FolderRef(child.id), level)
                await self._notify_shared(acting_user_id, child, level, recipient)
                count += 1
                stack.append(child)

        return count

    async def _notify_shared(
        self,
        acting_user_id: int,
        resource: Resource,
        level: PermissionType,
        recipient: User
    ) -> bool:
        event = ResourceShared(
            sharer_user_id=acting_user_id,
            permission_type=level,
            recipient_email=recipient.email,
            resource_type=resource.kind,
            resource_name=resource.name,
            **ResourceShared.resource_ids(resource.ref),
        )
        return await self._publisher.publish_best_effort(event)


def _grant_view(grant: PermissionGrant, resource: Resource) -> PermissionView:
    return PermissionView(
        id=grant.id,
        user_id=grant.user_id,
        resource_type=grant.resource_kind,
        resource_id=grant.resource_id,
        resource_name=resource.name,
        permission_type=grant.permission_type,
        created_at=grant.created_at,
        is_owner=resource.is_owned_by(grant.user_id),
    )


def _validate_user_id(user_id: int) -> None:
    if isinstance(user_id, bool) or not isinstance(user_id, int) or user_id <= 0:
        raise InvalidArgumentError(
            "User ID must be greater than zero",
            details={"user_id": user_id}
        )
