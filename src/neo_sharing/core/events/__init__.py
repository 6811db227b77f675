"""Sharing domain events."""

from .domain_events import (
    EventType,
    SharingEvent,
    ResourceShared,
    PublicLinkGenerated,
    AccessRequested,
    AccessRequestApproved,
    AccessRequestDenied,
    EVENT_MODELS,
)

__all__ = [
    "EventType",
    "SharingEvent",
    "ResourceShared",
    "PublicLinkGenerated",
    "AccessRequested",
    "AccessRequestApproved",
    "AccessRequestDenied",
    "EVENT_MODELS",
]
