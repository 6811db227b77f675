"""Event publisher.

Serializes sharing events and hands them to the message bus, retrying
transport failures with bounded exponential backoff. Every event carries its
own ``EventId`` so a consumer can drop duplicates produced by retries.
"""

import asyncio
import logging
from typing import Optional

from ..config.constants import EMAIL_TOPIC
from ..core.events import SharingEvent
from ..core.exceptions import TransportError
from ..core.protocols import MessageBus
from ..infrastructure.retry import RetryPolicy


logger = logging.getLogger(__name__)


class EventPublisher:
    """Publishes sharing events to one topic."""

    def __init__(
        self,
        bus: MessageBus,
        topic: str = EMAIL_TOPIC,
        retry_policy: Optional[RetryPolicy] = None
    ):
        self._bus = bus
        self._topic = topic
        self._retry_policy = retry_policy or RetryPolicy()

    @classmethod
    def from_settings(cls, bus: MessageBus, settings) -> "EventPublisher":
        """Publisher for the configured topic and retry settings."""
        return cls(
            bus,
            topic=settings.event_topic,
            retry_policy=RetryPolicy.from_settings(settings),
        )

    @property
    def topic(self) -> str:
        return self._topic

    async def publish(self, event: SharingEvent) -> str:
        """Publish an event, retrying transport failures.

        Returns:
            Message id assigned by the bus

        Raises:
            TransportError: If every attempt failed
        """
        payload = event.to_payload()
        attempt = 0
        while True:
            try:
                message_id = await self._bus.publish(self._topic, payload)
                logger.info(
                    f"Published {event.event_type} event {event.event_id} "
                    f"to '{self._topic}' as {message_id}"
                )
                return message_id
            except TransportError as e:
                attempt += 1
                if not self._retry_policy.should_retry(attempt):
                    logger.error(
                        f"Giving up on {event.event_type} event {event.event_id} "
                        f"after {attempt} attempts: {e}"
                    )
                    raise TransportError(
                        f"Failed to publish {event.event_type} event: {e.message}",
                        details={
                            "event_id": event.event_id,
                            "event_type": event.event_type.value,
                            "attempts": attempt,
                        }
                    ) from e
                delay_ms = self._retry_policy.calculate_delay(attempt)
                logger.warning(
                    f"Publishing {event.event_type} event {event.event_id} failed "
                    f"(attempt {attempt}), retrying in {delay_ms}ms: {e}"
                )
                await asyncio.sleep(delay_ms / 1000)

    async def publish_best_effort(self, event: SharingEvent) -> bool:
        """Publish an event after a committed write.

        Transport failures are logged and reported as False; they never undo
        the write that produced the event.
        """
        try:
            await self.publish(event)
            return True
        except TransportError as e:
            logger.error(f"Notification for {event.event_type} event {event.event_id} was not sent: {e}")
            return False
