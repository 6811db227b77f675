"""Protocols for external collaborators."""

from .resource_store import ResourceStore
from .notifier import Notifier
from .message_bus import MessageBus, Delivery

__all__ = [
    "ResourceStore",
    "Notifier",
    "MessageBus",
    "Delivery",
]
