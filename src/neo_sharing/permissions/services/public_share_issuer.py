"""Public share issuer.

Mints bearer tokens for a resource and redeems them by granting the share's
level to the redeemer on behalf of the share's owner.
"""

import logging
from datetime import datetime
from typing import Optional, Union

from ...config.constants import SHARE_VALIDITY_DAYS
from ...core.entities import GrantResult, PublicShare
from ...core.events import PublicLinkGenerated
from ...core.exceptions import ExpiredError, InvalidArgumentError, NotFoundError, UnauthorizedError
from ...core.protocols import ResourceStore
from ...core.value_objects import PermissionType, ResourceRef, ensure_resource_ref
from ...notifications.publisher import EventPublisher
from ...utils import utc_now
from .permission_engine import PermissionEngine


logger = logging.getLogger(__name__)


class PublicShareIssuer:
    """Issues and redeems public share tokens."""

    def __init__(
        self,
        store: ResourceStore,
        engine: PermissionEngine,
        publisher: EventPublisher,
        validity_days: int = SHARE_VALIDITY_DAYS
    ):
        self._store = store
        self._engine = engine
        self._publisher = publisher
        self._validity_days = validity_days

    async def issue_public_share(
        self,
        acting_user_id: int,
        resource: ResourceRef,
        level: Union[PermissionType, str]
    ) -> str:
        """Create a public share and return its token.

        Raises:
            UnauthorizedError: If the acting user cannot modify the resource
            NotFoundError: If the resource does not exist
        """
        resource = ensure_resource_ref(resource)
        level = PermissionType.parse(level)

        if not await self._engine.can_modify(acting_user_id, resource):
            raise UnauthorizedError(
                "User does not have permission to share this resource",
                details={"user_id": acting_user_id, "resource": str(resource)}
            )

        target = await self._engine.get_resource(resource)
        if target is None:
            raise NotFoundError(
                f"{resource.kind.value} with ID {resource.resource_id} not found",
                details={"resource": str(resource)}
            )

        share = await self._store.save_public_share(PublicShare.issue(
            owner_id=acting_user_id,
            resource=resource,
            permission_type=level,
            validity_days=self._validity_days,
        ))
        logger.info(f"User {acting_user_id} created public {level} share {share.id} for {resource}")

        owner = await self._store.get_user(acting_user_id)
        if owner is None:
            logger.warning(f"Public share {share.id} created by unknown user {acting_user_id}, no notification")
        else:
            await self._publisher.publish_best_effort(PublicLinkGenerated(
                sharer_user_id=acting_user_id,
                permission_type=level,
                share_token=share.token,
                expires_at=share.expires_at,
                resource_type=resource.kind,
                resource_name=target.name,
                owner_email=owner.email,
                **PublicLinkGenerated.resource_ids(resource),
            ))

        return share.token

    async def redeem_public_share(
        self,
        token: str,
        redeemer_email: str,
        now: Optional[datetime] = None
    ) -> GrantResult:
        """Grant the share's level to ``redeemer_email``.

        Expired shares are deleted on first sight.

        Raises:
            InvalidArgumentError: If the token is empty
            NotFoundError: For an unknown token or redeemer
            ExpiredError: If the share is past its expiry
        """
        if not token or not token.strip():
            raise InvalidArgumentError("Share token cannot be empty")

        share = await self._store.find_public_share(token.strip())
        if share is None:
            raise NotFoundError("Invalid or expired share token")

        if share.is_expired(now or utc_now()):
            await self._store.delete_public_share(share.id)
            logger.info(f"Deleted expired public share {share.id}")
            raise ExpiredError(
                "Share link has expired",
                details={"expires_at": share.expires_at.isoformat()}
            )

        if not redeemer_email or await self._store.find_user_by_email(redeemer_email) is None:
            raise NotFoundError(
                f"User with email {redeemer_email} not found",
                details={"email": redeemer_email}
            )

        return await self._engine.grant(
            share.owner_id,
            share.resource,
            share.permission_type,
            redeemer_email,
        )
