"""Message bus implementations."""

from .redis_message_bus import RedisMessageBus
from .memory_message_bus import MemoryMessageBus

__all__ = ["RedisMessageBus", "MemoryMessageBus"]
