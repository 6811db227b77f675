"""In-memory message bus for development and testing.

Mirrors the consumer group semantics of the Redis bus within one process:
each group has a read offset per topic and each consumer a set of pending,
uncommitted message ids that are handed out again on the next subscribe.
"""

import asyncio
import itertools
import json
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

from ...core.protocols import Delivery, MessageBus


logger = logging.getLogger(__name__)


@dataclass
class _GroupState:
    offset: int = 0
    pending: Dict[str, Dict[str, str]] = field(default_factory=dict)
    pending_by_consumer: Dict[str, List[str]] = field(default_factory=lambda: defaultdict(list))


class MemoryMessageBus(MessageBus):
    """MessageBus kept entirely in process memory."""

    def __init__(self, block_ms: int = 50):
        self._block_ms = block_ms
        self._topics: Dict[str, List[Tuple[str, str]]] = defaultdict(list)
        self._groups: Dict[Tuple[str, str], _GroupState] = {}
        self._signals: Dict[str, asyncio.Event] = defaultdict(asyncio.Event)
        self._sequence = itertools.count(1)

    def messages(self, topic: str) -> List[Dict[str, Any]]:
        """Decoded payloads published to ``topic``, oldest first."""
        return [json.loads(body) for _, body in self._topics[topic]]

    def pending_count(self, topic: str, group: str) -> int:
        state = self._groups.get((topic, group))
        return len(state.pending) if state else 0

    async def publish(self, topic: str, payload: Dict[str, Any]) -> str:
        message_id = f"{next(self._sequence)}-0"
        self._topics[topic].append((message_id, json.dumps(payload)))
        self._signals[topic].set()
        logger.debug(f"Published {payload.get('EventType')} to '{topic}' as {message_id}")
        return message_id

    def publish_raw(self, topic: str, body: str) -> str:
        """Append an arbitrary body, bypassing JSON encoding."""
        message_id = f"{next(self._sequence)}-0"
        self._topics[topic].append((message_id, body))
        self._signals[topic].set()
        return message_id

    async def subscribe(
        self,
        topic: str,
        group: str,
        consumer: str,
        stop_event: Optional[asyncio.Event] = None
    ) -> AsyncIterator[Delivery]:
        state = self._groups.setdefault((topic, group), _GroupState())

        for message_id in list(state.pending_by_consumer[consumer]):
            if stop_event is not None and stop_event.is_set():
                return
            if message_id in state.pending:
                yield self._delivery(topic, state, consumer, message_id, redelivered=True)

        while stop_event is None or not stop_event.is_set():
            log = self._topics[topic]
            if state.offset >= len(log):
                signal = self._signals[topic]
                signal.clear()
                try:
                    await asyncio.wait_for(signal.wait(), timeout=self._block_ms / 1000)
                except asyncio.TimeoutError:
                    pass
                continue

            message_id, body = log[state.offset]
            state.offset += 1
            state.pending[message_id] = {"consumer": consumer, "body": body}
            state.pending_by_consumer[consumer].append(message_id)
            yield self._delivery(topic, state, consumer, message_id, redelivered=False)

    async def close(self) -> None:
        return None

    def _delivery(
        self,
        topic: str,
        state: _GroupState,
        consumer: str,
        message_id: str,
        redelivered: bool
    ) -> Delivery:
        async def ack() -> None:
            if state.pending.pop(message_id, None) is not None:
                state.pending_by_consumer[consumer].remove(message_id)

        return Delivery(
            message_id=message_id,
            topic=topic,
            body=state.pending[message_id]["body"],
            redelivered=redelivered,
            _ack=ack,
        )
