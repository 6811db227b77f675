"""Notification handlers for sharing events.

Each handler validates its payload against the event model, renders one
message and hands it to the notifier. Malformed payloads and notifier
failures are logged and treated as handled so the consumer commits them.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Type, TypeVar

from pydantic import ValidationError

from ..core.events import (
    AccessRequestApproved,
    AccessRequestDenied,
    AccessRequested,
    EventType,
    PublicLinkGenerated,
    ResourceShared,
    SharingEvent,
)
from ..core.exceptions import TransportError
from ..core.protocols import Notifier
from ..utils import format_utc


logger = logging.getLogger(__name__)

EventHandler = Callable[[Dict[str, Any]], Awaitable[None]]
E = TypeVar("E", bound=SharingEvent)


class HandlerRegistry:
    """Maps event types to handlers."""

    def __init__(self):
        self._handlers: Dict[EventType, EventHandler] = {}

    def register(self, event_type: EventType, handler: EventHandler) -> None:
        self._handlers[event_type] = handler

    def get(self, event_type: str) -> Optional[EventHandler]:
        try:
            return self._handlers.get(EventType(event_type))
        except ValueError:
            return None

    async def dispatch(self, payload: Dict[str, Any]) -> bool:
        """Run the handler registered for the payload's ``EventType``.

        Returns:
            False when the payload has no known event type
        """
        event_type = payload.get("EventType")
        handler = self.get(event_type) if isinstance(event_type, str) else None
        if handler is None:
            logger.warning(f"Unknown event type: {event_type!r}")
            return False
        await handler(payload)
        return True


class NotificationHandlers:
    """Renders sharing events into email notifications."""

    def __init__(
        self,
        notifier: Notifier,
        app_base_url: str = "https://localhost:7197",
        share_base_url: str = "https://localhost:7197/share"
    ):
        self._notifier = notifier
        self._app_base_url = app_base_url.rstrip("/")
        self._share_base_url = share_base_url.rstrip("/")

    @classmethod
    def from_settings(cls, notifier: Notifier, settings) -> "NotificationHandlers":
        return cls(notifier, settings.app_base_url, settings.share_base_url)

    def build_registry(self) -> HandlerRegistry:
        """Registry with one handler per sharing event type."""
        registry = HandlerRegistry()
        registry.register(EventType.RESOURCE_SHARED, self.handle_resource_shared)
        registry.register(EventType.PUBLIC_LINK_GENERATED, self.handle_public_link_generated)
        registry.register(EventType.ACCESS_REQUESTED, self.handle_access_requested)
        registry.register(EventType.ACCESS_REQUEST_APPROVED, self.handle_access_request_approved)
        registry.register(EventType.ACCESS_REQUEST_DENIED, self.handle_access_request_denied)
        return registry

    async def handle_resource_shared(self, payload: Dict[str, Any]) -> None:
        event = _parse(ResourceShared, payload)
        if event is None:
            return
        kind = event.resource_type.value.lower()
        await self._send(
            event.recipient_email,
            f"New {event.permission_type} Permission Granted",
            f"You have been granted {event.permission_type} access to the {kind} '{event.resource_name}'.",
            event,
        )

    async def handle_public_link_generated(self, payload: Dict[str, Any]) -> None:
        event = _parse(PublicLinkGenerated, payload)
        if event is None:
            return
        kind = event.resource_type.value.lower()
        link = f"{self._share_base_url}/{event.share_token}"
        expires = format_utc(event.expires_at)
        await self._send(
            event.owner_email,
            f"Public Link Created for {event.resource_name}",
            f"You've created a public sharing link for {kind} '{event.resource_name}'.\n\n"
            f"Link: {link}\n"
            f"This link will expire on {expires}.\n\n"
            f"Anyone with this link can access your {kind} with the specified permissions.",
            event,
        )

    async def handle_access_requested(self, payload: Dict[str, Any]) -> None:
        event = _parse(AccessRequested, payload)
        if event is None:
            return
        kind = event.resource_type.value.lower()
        approve_url = f"{self._app_base_url}/api/AccessRequest/{event.request_id}/approve"
        deny_url = f"{self._app_base_url}/api/AccessRequest/{event.request_id}/deny"
        body = (
            f"{event.requester_email} has requested {event.requested_permission_type} access "
            f"to your {kind} '{event.resource_name}'.\n\n"
        )
        if event.message:
            body += f"Message: {event.message}\n\n"
        body += (
            f"To approve this request, click here: {approve_url}\n"
            f"To deny this request, click here: {deny_url}\n\n"
            f"You can also manage all access requests from your dashboard."
        )
        await self._send(event.owner_email, f"Access Request for {event.resource_name}", body, event)

    async def handle_access_request_approved(self, payload: Dict[str, Any]) -> None:
        event = _parse(AccessRequestApproved, payload)
        if event is None:
            return
        kind = event.resource_type.value.lower()
        resource_url = f"{self._app_base_url}/{kind}/{event.resource_id}"
        await self._send(
            event.requester_email,
            f"Access Request Approved for {event.resource_name}",
            f"Good news! Your request for {event.granted_permission_type} access to the {kind} "
            f"'{event.resource_name}' has been approved.\n\n"
            f"You can access it here: {resource_url}",
            event,
        )

    async def handle_access_request_denied(self, payload: Dict[str, Any]) -> None:
        event = _parse(AccessRequestDenied, payload)
        if event is None:
            return
        kind = event.resource_type.value.lower()
        reason = event.denial_reason or "No reason provided"
        await self._send(
            event.requester_email,
            f"Access Request Denied for {event.resource_name}",
            f"Your request for access to the {kind} '{event.resource_name}' has been denied.\n\n"
            f"Reason: {reason}\n\n"
            f"If you believe this is in error, please contact the resource owner directly.",
            event,
        )

    async def _send(self, to_address: str, subject: str, body: str, event: SharingEvent) -> None:
        try:
            await self._notifier.send(to_address, subject, body)
        except TransportError as e:
            logger.error(f"Failed to notify {to_address} about {event.event_type} event {event.event_id}: {e}")
            return
        logger.info(f"Sent {event.event_type} notification to {to_address}")


def _parse(model: Type[E], payload: Dict[str, Any]) -> Optional[E]:
    """Validate a payload, logging and returning None when it is malformed."""
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        logger.warning(f"Skipping malformed {model.event_type} payload, invalid fields: {fields}")
        return None
