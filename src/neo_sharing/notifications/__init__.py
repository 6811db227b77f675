"""Event publishing and notification delivery."""

from .publisher import EventPublisher
from .handlers import HandlerRegistry, NotificationHandlers
from .consumer import EventConsumer

__all__ = [
    "EventPublisher",
    "HandlerRegistry",
    "NotificationHandlers",
    "EventConsumer",
]
