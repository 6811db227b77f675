"""Redis Streams message bus.

Each topic is a stream and each consumer group tracks its own position.
XACK is the commit: a message handed to a consumer stays in the group's
pending entries list until acknowledged, and is handed out again the next
time the same consumer subscribes.
"""

import asyncio
import json
import logging
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

from redis.asyncio import Redis
from redis.exceptions import RedisError, ResponseError

from ...core.exceptions import TransportError
from ...core.protocols import Delivery, MessageBus


logger = logging.getLogger(__name__)


class RedisMessageBus(MessageBus):
    """MessageBus backed by Redis Streams consumer groups."""

    def __init__(
        self,
        redis_client: Redis,
        max_len: int = 100000,
        block_ms: int = 1000,
        batch_size: int = 10,
        min_replica_acks: int = 0,
        replica_timeout_ms: int = 1000
    ):
        """Initialize Redis message bus.

        Args:
            redis_client: Async Redis client
            max_len: Approximate maximum stream length
            block_ms: Upper bound for one blocking read; the stop signal is
                checked between reads
            batch_size: Maximum messages fetched per read
            min_replica_acks: Replicas that must confirm a publish, 0 to skip
            replica_timeout_ms: How long to wait for replica confirmation
        """
        self._redis = redis_client
        self._max_len = max_len
        self._block_ms = block_ms
        self._batch_size = batch_size
        self._min_replica_acks = min_replica_acks
        self._replica_timeout_ms = replica_timeout_ms

    @classmethod
    def from_settings(cls, settings) -> "RedisMessageBus":
        """Build a bus and its client from SharingSettings."""
        client = Redis.from_url(settings.redis_url, decode_responses=True)
        return cls(
            client,
            max_len=settings.stream_max_len,
            block_ms=settings.poll_block_ms,
            batch_size=settings.poll_batch_size,
            min_replica_acks=settings.publish_min_replica_acks,
            replica_timeout_ms=settings.publish_replica_timeout_ms,
        )

    async def publish(self, topic: str, payload: Dict[str, Any]) -> str:
        """Append a payload to the topic stream."""
        fields = {
            "event_type": str(payload.get("EventType", "")),
            "payload": json.dumps(payload),
        }
        try:
            message_id = await self._redis.xadd(
                topic,
                fields,
                maxlen=self._max_len,
                approximate=True
            )
            if self._min_replica_acks > 0:
                acked = await self._redis.wait(self._min_replica_acks, self._replica_timeout_ms)
                if acked < self._min_replica_acks:
                    raise TransportError(
                        f"Only {acked} of {self._min_replica_acks} replicas acknowledged message {message_id}",
                        details={"topic": topic, "message_id": str(message_id)}
                    )
        except RedisError as e:
            logger.error(f"Failed to publish to stream '{topic}': {e}")
            raise TransportError(
                f"Failed to publish to stream '{topic}': {e}",
                details={"topic": topic}
            ) from e

        logger.debug(f"Published {fields['event_type']} to stream '{topic}' as {message_id}")
        return str(message_id)

    async def subscribe(
        self,
        topic: str,
        group: str,
        consumer: str,
        stop_event: Optional[asyncio.Event] = None
    ) -> AsyncIterator[Delivery]:
        """Yield deliveries, pending entries first and then new messages."""
        await self._ensure_consumer_group(topic, group)
        logger.info(f"Consumer '{consumer}' subscribed to stream '{topic}' in group '{group}'")

        # Walk this consumer's pending entries once, then switch to new messages.
        cursor = "0"
        while stop_event is None or not stop_event.is_set():
            reading_pending = cursor != ">"
            messages = await self._read(
                topic,
                group,
                consumer,
                cursor,
                block=None if reading_pending else self._block_ms
            )

            if reading_pending and not messages:
                logger.debug(f"No pending entries left for '{consumer}' on '{topic}'")
                cursor = ">"
                continue

            for message_id, fields in messages:
                if reading_pending:
                    cursor = message_id
                if fields is None:
                    # Entry was trimmed from the stream while pending.
                    await self._ack(topic, group, message_id)
                    continue
                yield Delivery(
                    message_id=message_id,
                    topic=topic,
                    body=fields.get("payload", ""),
                    redelivered=reading_pending,
                    _ack=self._make_ack(topic, group, message_id),
                )

    async def close(self) -> None:
        await self._redis.aclose()

    async def _read(
        self,
        topic: str,
        group: str,
        consumer: str,
        cursor: str,
        block: Optional[int]
    ) -> List[Tuple[str, Optional[Dict[str, str]]]]:
        try:
            response = await self._redis.xreadgroup(
                group,
                consumer,
                {topic: cursor},
                count=self._batch_size,
                block=block
            )
        except RedisError as e:
            raise TransportError(
                f"Failed to read from stream '{topic}': {e}",
                details={"topic": topic, "group": group}
            ) from e
        return self._normalize(response)

    @staticmethod
    def _normalize(response) -> List[Tuple[str, Optional[Dict[str, str]]]]:
        """Flatten an XREADGROUP reply into (message_id, fields) pairs."""
        if not response:
            return []
        streams = response.items() if isinstance(response, dict) else response
        messages = []
        for _stream, entries in streams:
            # RESP3 wraps the entries in an extra list.
            if entries and isinstance(entries[0], list) and entries[0] and isinstance(entries[0][0], (list, tuple)):
                entries = entries[0]
            for message_id, fields in entries:
                if isinstance(message_id, bytes):
                    message_id = message_id.decode()
                if fields is not None:
                    fields = {
                        k.decode() if isinstance(k, bytes) else k:
                        v.decode() if isinstance(v, bytes) else v
                        for k, v in fields.items()
                    }
                messages.append((message_id, fields or None))
        return messages

    def _make_ack(self, topic: str, group: str, message_id: str):
        async def ack() -> None:
            await self._ack(topic, group, message_id)
        return ack

    async def _ack(self, topic: str, group: str, message_id: str) -> None:
        try:
            await self._redis.xack(topic, group, message_id)
        except RedisError as e:
            raise TransportError(
                f"Failed to acknowledge message {message_id}: {e}",
                details={"topic": topic, "group": group, "message_id": message_id}
            ) from e

    async def _ensure_consumer_group(self, topic: str, group: str) -> None:
        """Ensure consumer group exists for the stream."""
        try:
            await self._redis.xgroup_create(topic, group, id="0", mkstream=True)
            logger.info(f"Created consumer group '{group}' for stream '{topic}'")
        except ResponseError as e:
            if "BUSYGROUP" not in str(e):
                raise TransportError(
                    f"Failed to create consumer group '{group}': {e}",
                    details={"topic": topic, "group": group}
                ) from e
        except RedisError as e:
            raise TransportError(
                f"Failed to create consumer group '{group}': {e}",
                details={"topic": topic, "group": group}
            ) from e
