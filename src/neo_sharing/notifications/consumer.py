"""Event consumer.

One long-running loop reads deliveries from the bus, dispatches them by
``EventType`` and commits each one after its handler finished. A message
whose processing raised is left uncommitted and is delivered again after a
restart; the loop itself keeps going.

A publish that reached the stream but reported a failure is retried, so the
same event can arrive twice under different message ids. The consumer
remembers the ``EventId`` of recently handled events and commits repeats
without dispatching them. An id is remembered only after its handler
returned, so a redelivery of a crashed message is still handled.
"""

import asyncio
import json
import logging
import socket
from collections import OrderedDict
from typing import Optional

from ..config.constants import CONSUMER_DEDUPE_WINDOW, DEFAULT_CONSUMER_GROUP, EMAIL_TOPIC
from ..core.exceptions import TransportError
from ..core.protocols import Delivery, MessageBus
from .handlers import HandlerRegistry


logger = logging.getLogger(__name__)


class EventConsumer:
    """Consumes sharing events and drives notification handlers."""

    def __init__(
        self,
        bus: MessageBus,
        registry: HandlerRegistry,
        topic: str = EMAIL_TOPIC,
        group: str = DEFAULT_CONSUMER_GROUP,
        consumer_name: Optional[str] = None,
        reconnect_delay: float = 5.0,
        dedupe_window: int = CONSUMER_DEDUPE_WINDOW
    ):
        self._bus = bus
        self._registry = registry
        self._topic = topic
        self._group = group
        self._consumer_name = consumer_name or f"{group}-{socket.gethostname()}"
        self._reconnect_delay = reconnect_delay
        self._dedupe_window = dedupe_window
        self._seen_event_ids: "OrderedDict[str, None]" = OrderedDict()
        self._stop_event = asyncio.Event()
        self.processed_count = 0
        self.failed_count = 0

    @property
    def consumer_name(self) -> str:
        return self._consumer_name

    @property
    def is_stopping(self) -> bool:
        return self._stop_event.is_set()

    def stop(self) -> None:
        """Ask the loop to finish after the current delivery."""
        if not self._stop_event.is_set():
            logger.info(f"Stopping consumer '{self._consumer_name}'")
        self._stop_event.set()

    async def run(self) -> None:
        """Consume until ``stop`` is called."""
        logger.info(f"Started listening on topic '{self._topic}' as '{self._consumer_name}'")
        while not self._stop_event.is_set():
            try:
                async for delivery in self._bus.subscribe(
                    self._topic,
                    self._group,
                    self._consumer_name,
                    stop_event=self._stop_event
                ):
                    await self.process(delivery)
            except TransportError as e:
                logger.error(f"Consume error on '{self._topic}': {e}")
                await self._wait_before_reconnect()
        logger.info(f"Consumer '{self._consumer_name}' stopped")

    async def process(self, delivery: Delivery) -> bool:
        """Handle one delivery and commit it.

        Returns:
            True if the delivery was committed
        """
        try:
            await self._dispatch(delivery)
        except Exception as e:
            self.failed_count += 1
            logger.exception(
                f"Error processing message {delivery.message_id}: {e}. Message content: {delivery.body}"
            )
            return False

        try:
            await delivery.commit()
        except TransportError as e:
            self.failed_count += 1
            logger.error(f"Failed to commit message {delivery.message_id}: {e}")
            return False

        self.processed_count += 1
        return True

    async def _dispatch(self, delivery: Delivery) -> None:
        try:
            payload = json.loads(delivery.body)
        except json.JSONDecodeError as e:
            logger.warning(f"Skipping message {delivery.message_id} with invalid JSON: {e}")
            return
        if not isinstance(payload, dict):
            logger.warning(f"Skipping message {delivery.message_id}: payload is not an object")
            return

        event_id = payload.get("EventId")
        if isinstance(event_id, str) and event_id in self._seen_event_ids:
            logger.info(
                f"Skipping duplicate event {event_id} in message {delivery.message_id} ({payload.get('EventType')})"
            )
            return

        if delivery.redelivered:
            logger.info(f"Redelivered message {delivery.message_id} ({payload.get('EventType')})")
        await self._registry.dispatch(payload)
        if isinstance(event_id, str):
            self._remember(event_id)

    def _remember(self, event_id: str) -> None:
        if self._dedupe_window <= 0:
            return
        self._seen_event_ids[event_id] = None
        while len(self._seen_event_ids) > self._dedupe_window:
            self._seen_event_ids.popitem(last=False)

    async def _wait_before_reconnect(self) -> None:
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=self._reconnect_delay)
        except asyncio.TimeoutError:
            pass
