"""Access request workflow.

A requester asks the owner of a resource for a permission level. The owner
approves, which grants the level through the permission engine, or denies
with an optional reason. Each transition publishes an event after the state
change is stored. The store accepts a review only while the request is still
Pending, so when two reviews race the later one fails with ConflictError
before it grants anything or publishes an event.
"""

import logging
from typing import Dict, List, Optional, Union

from ...config.constants import ACCESS_REQUEST_MESSAGE_MAX_LENGTH
from ...core.entities import AccessRequest, AccessRequestView, Resource, User
from ...core.events import AccessRequestApproved, AccessRequestDenied, AccessRequested
from ...core.exceptions import ConflictError, InvalidArgumentError, NotFoundError, UnauthorizedError
from ...core.protocols import ResourceStore
from ...core.value_objects import PermissionType, ResourceRef, ensure_resource_ref
from ...notifications.publisher import EventPublisher
from ...permissions.services import PermissionEngine


logger = logging.getLogger(__name__)


class AccessRequestWorkflow:
    """Creates, approves, denies and lists access requests."""

    def __init__(self, store: ResourceStore, engine: PermissionEngine, publisher: EventPublisher):
        self._store = store
        self._engine = engine
        self._publisher = publisher

    async def create(
        self,
        requester_id: int,
        resource: ResourceRef,
        requested_level: Union[PermissionType, str],
        message: str = ""
    ) -> AccessRequestView:
        """Open a Pending request addressed to the resource owner.

        Raises:
            InvalidArgumentError: Bad reference, level or message, or missing resource
            NotFoundError: If the requester does not exist
            ConflictError: If the level is already held or a request is pending
        """
        resource = ensure_resource_ref(resource)
        level = PermissionType.parse(requested_level)
        message = message or ""
        if len(message) > ACCESS_REQUEST_MESSAGE_MAX_LENGTH:
            raise InvalidArgumentError(
                f"Message cannot exceed {ACCESS_REQUEST_MESSAGE_MAX_LENGTH} characters",
                details={"length": len(message)}
            )

        target = await self._engine.get_resource(resource)
        if target is None:
            raise InvalidArgumentError(
                f"{resource.kind.value} with ID {resource.resource_id} not found",
                details={"resource": str(resource)}
            )

        requester = await self._require_user(requester_id)
        owner = await self._store.get_user(target.owner_id)

        if await self._engine.has_permission(requester_id, resource, level):
            raise ConflictError(
                "User already has the requested permission level or higher",
                details={"user_id": requester_id, "resource": str(resource), "level": level.value}
            )

        if await self._store.find_pending_request(requester_id, resource) is not None:
            raise ConflictError(
                "A pending request for this resource already exists",
                details={"user_id": requester_id, "resource": str(resource)}
            )

        request = await self._store.save_access_request(AccessRequest(
            id=None,
            requester_id=requester_id,
            owner_id=target.owner_id,
            resource=resource,
            requested_permission_type=level,
            message=message,
        ))
        logger.info(
            f"User {requester_id} requested {level} on {resource} "
            f"from owner {target.owner_id} (request {request.id})"
        )

        view = self._to_view(request, target, requester, owner)
        if owner is None:
            logger.warning(f"Owner {target.owner_id} of {resource} not found, request {request.id} not announced")
            return view

        view.notification_sent = await self._publisher.publish_best_effort(AccessRequested(
            request_id=request.id,
            requester_id=requester.id,
            requester_email=requester.email,
            requester_username=requester.username,
            owner_id=owner.id,
            owner_email=owner.email,
            resource_id=resource.resource_id,
            resource_type=resource.kind,
            resource_name=target.name,
            requested_permission_type=level,
            message=message,
        ))
        return view

    async def approve(self, request_id: int, reviewer_id: int) -> AccessRequestView:
        """Approve a Pending request and grant the requested level.

        The grant runs as the reviewer, so it cascades like any folder grant.

        Raises:
            NotFoundError: Unknown request, requester or resource
            UnauthorizedError: If the reviewer is not the owner
            ConflictError: If the request is no longer Pending
        """
        request = await self._load_for_review(request_id, reviewer_id)
        requester = await self._require_user(request.requester_id)
        target = await self._require_resource(request.resource)

        request.approve()
        request = await self._store.save_access_request(request)
        logger.info(f"Access request {request.id} approved by user {reviewer_id}")

        await self._engine.grant(
            reviewer_id,
            request.resource,
            request.requested_permission_type,
            requester.email,
        )

        view = self._to_view(request, target, requester, await self._store.get_user(reviewer_id))
        view.notification_sent = await self._publisher.publish_best_effort(AccessRequestApproved(
            request_id=request.id,
            requester_id=requester.id,
            requester_email=requester.email,
            owner_id=request.owner_id,
            resource_id=request.resource.resource_id,
            resource_type=request.resource.kind,
            resource_name=target.name,
            granted_permission_type=request.requested_permission_type,
        ))
        return view

    async def deny(self, request_id: int, reviewer_id: int, reason: Optional[str] = None) -> AccessRequestView:
        """Deny a Pending request. No permission changes.

        Raises:
            NotFoundError: Unknown request
            UnauthorizedError: If the reviewer is not the owner
            ConflictError: If the request is no longer Pending
        """
        request = await self._load_for_review(request_id, reviewer_id)

        request.deny(reason or None)
        request = await self._store.save_access_request(request)
        logger.info(f"Access request {request.id} denied by user {reviewer_id}")

        target = await self._engine.get_resource(request.resource)
        requester = await self._store.get_user(request.requester_id)
        view = self._to_view(request, target, requester, await self._store.get_user(reviewer_id))

        if requester is None:
            logger.warning(f"Requester {request.requester_id} not found, denial of {request.id} not announced")
            return view

        view.notification_sent = await self._publisher.publish_best_effort(AccessRequestDenied(
            request_id=request.id,
            requester_id=requester.id,
            requester_email=requester.email,
            owner_id=request.owner_id,
            resource_type=request.resource.kind,
            resource_name=target.name if target else "",
            requested_permission_type=request.requested_permission_type,
            denial_reason=request.denial_reason,
        ))
        return view

    async def get(self, request_id: int) -> AccessRequestView:
        request = await self._store.get_access_request(request_id)
        if request is None:
            raise NotFoundError(
                f"Access request with ID {request_id} not found",
                details={"request_id": request_id}
            )
        return (await self._project([request]))[0]

    async def list_by_requester(self, requester_id: int) -> List[AccessRequestView]:
        return await self._project(await self._store.list_access_requests(requester_id=requester_id))

    async def list_by_owner(self, owner_id: int) -> List[AccessRequestView]:
        return await self._project(await self._store.list_access_requests(owner_id=owner_id))

    # ===========================================
    # Helpers
    # ===========================================

    async def _load_for_review(self, request_id: int, reviewer_id: int) -> AccessRequest:
        request = await self._store.get_access_request(request_id)
        if request is None:
            raise NotFoundError(
                f"Access request with ID {request_id} not found",
                details={"request_id": request_id}
            )
        if request.owner_id != reviewer_id:
            raise UnauthorizedError(
                "Only the resource owner can approve or deny access requests",
                details={"request_id": request_id, "reviewer_id": reviewer_id}
            )
        request.ensure_pending()
        return request

    async def _require_user(self, user_id: int) -> User:
        user = await self._store.get_user(user_id)
        if user is None:
            raise NotFoundError(f"User with ID {user_id} not found", details={"user_id": user_id})
        return user

    async def _require_resource(self, resource: ResourceRef) -> Resource:
        target = await self._engine.get_resource(resource)
        if target is None:
            raise NotFoundError(
                f"{resource.kind.value} with ID {resource.resource_id} not found",
                details={"resource": str(resource)}
            )
        return target

    async def _project(self, requests: List[AccessRequest]) -> List[AccessRequestView]:
        users: Dict[int, Optional[User]] = {}

        async def user(user_id: int) -> Optional[User]:
            if user_id not in users:
                users[user_id] = await self._store.get_user(user_id)
            return users[user_id]

        views = []
        for request in requests:
            target = await self._engine.get_resource(request.resource)
            views.append(self._to_view(
                request,
                target,
                await user(request.requester_id),
                await user(request.owner_id),
            ))
        return views

    @staticmethod
    def _to_view(
        request: AccessRequest,
        target: Optional[Resource],
        requester: Optional[User],
        owner: Optional[User]
    ) -> AccessRequestView:
        return AccessRequestView(
            id=request.id,
            requester_id=request.requester_id,
            owner_id=request.owner_id,
            folder_id=request.resource.folder_id_or_none,
            file_id=request.resource.file_id_or_none,
            requested_permission_type=request.requested_permission_type,
            message=request.message,
            status=request.status,
            denial_reason=request.denial_reason,
            created_at=request.created_at,
            updated_at=request.updated_at,
            resource_type=request.resource.kind.value,
            resource_name=target.name if target else "",
            requester_email=requester.email if requester else "",
            requester_username=requester.username if requester else "",
            owner_email=owner.email if owner else "",
        )
