"""Message bus protocol for durable event delivery.

Delivery is at-least-once: a message that was received but never committed
is handed out again when the same consumer subscribes again.
"""

import asyncio
from abc import abstractmethod
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Optional, Protocol, runtime_checkable


@dataclass
class Delivery:
    """One received message together with its commit callback."""

    message_id: str
    topic: str
    body: str
    redelivered: bool = False
    _ack: Optional[Callable[[], Awaitable[None]]] = field(default=None, repr=False)
    committed: bool = False

    async def commit(self) -> None:
        """Mark the message as processed for this consumer group."""
        if self.committed:
            return
        if self._ack is not None:
            await self._ack()
        self.committed = True


@runtime_checkable
class MessageBus(Protocol):
    """Topic-based publish/subscribe with consumer groups."""

    @abstractmethod
    async def publish(self, topic: str, payload: Dict[str, Any]) -> str:
        """Append a JSON-serializable payload to a topic.

        Returns:
            Message id assigned by the bus

        Raises:
            TransportError: If the bus did not accept the message
        """
        ...

    @abstractmethod
    def subscribe(
        self,
        topic: str,
        group: str,
        consumer: str,
        stop_event: Optional[asyncio.Event] = None
    ) -> AsyncIterator[Delivery]:
        """Yield deliveries for ``consumer`` within ``group``.

        Uncommitted messages previously handed to the same consumer come
        first. The iterator ends once ``stop_event`` is set, checked between
        bounded blocking reads.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        ...
