"""Tests for the event consumer loop."""

import asyncio
import json
import logging

import pytest

from neo_sharing.core.events import EventType, ResourceShared
from neo_sharing.core.exceptions import TransportError
from neo_sharing.core.protocols import Delivery
from neo_sharing.core.value_objects import PermissionType, ResourceKind
from neo_sharing.infrastructure.bus import MemoryMessageBus
from neo_sharing.infrastructure.retry import RetryPolicy
from neo_sharing.notifications import EventPublisher
from neo_sharing.notifications import EventConsumer, HandlerRegistry, NotificationHandlers

from .conftest import TOPIC, RecordingNotifier

GROUP = "email-notifications"


def shared_payload(email="alice@example.com"):
    return ResourceShared(
        sharer_user_id=1,
        file_id=1,
        permission_type=PermissionType.READER,
        recipient_email=email,
        resource_type=ResourceKind.FILE,
        resource_name="plan.txt",
    ).to_payload()


async def run_until(consumer, condition, timeout=2.0):
    """Run the consumer until ``condition()`` holds, then stop it."""
    task = asyncio.create_task(consumer.run())
    try:
        deadline = asyncio.get_running_loop().time() + timeout
        while not condition():
            if asyncio.get_running_loop().time() > deadline:
                raise AssertionError("consumer did not reach the expected state")
            await asyncio.sleep(0.005)
    finally:
        consumer.stop()
        await asyncio.wait_for(task, timeout)


def make_consumer(bus, notifier, **kwargs):
    registry = NotificationHandlers(notifier).build_registry()
    return EventConsumer(bus, registry, topic=TOPIC, group=GROUP, consumer_name="worker-1", **kwargs)


class TestEventConsumer:

    @pytest.mark.asyncio
    async def test_handles_and_commits(self, bus, notifier):
        await bus.publish(TOPIC, shared_payload("alice@example.com"))
        await bus.publish(TOPIC, shared_payload("bob@example.com"))
        consumer = make_consumer(bus, notifier)

        await run_until(consumer, lambda: consumer.processed_count == 2)

        assert [m[0] for m in notifier.sent] == ["alice@example.com", "bob@example.com"]
        assert bus.pending_count(TOPIC, GROUP) == 0

    @pytest.mark.asyncio
    async def test_malformed_and_unknown_messages_are_committed(self, bus, notifier):
        bus.publish_raw(TOPIC, "not json")
        bus.publish_raw(TOPIC, "[1, 2]")
        await bus.publish(TOPIC, {"EventType": "FolderDeleted"})
        await bus.publish(TOPIC, {"EventType": "ResourceShared", "RecipientEmail": "x@example.com"})
        consumer = make_consumer(bus, notifier)

        await run_until(consumer, lambda: consumer.processed_count == 4)

        assert notifier.sent == []
        assert bus.pending_count(TOPIC, GROUP) == 0

    @pytest.mark.asyncio
    async def test_notifier_failure_is_committed(self, bus):
        await bus.publish(TOPIC, shared_payload())
        consumer = make_consumer(bus, RecordingNotifier(fail=True))

        await run_until(consumer, lambda: consumer.processed_count == 1)

        assert bus.pending_count(TOPIC, GROUP) == 0

    @pytest.mark.asyncio
    async def test_crash_leaves_message_uncommitted_and_loop_running(self, bus, notifier, caplog):
        caplog.set_level(logging.ERROR)
        calls = []

        async def flaky(payload):
            calls.append(payload["RecipientEmail"])
            if payload["RecipientEmail"] == "boom@example.com":
                raise RuntimeError("handler crashed")

        registry = HandlerRegistry()
        registry.register(EventType.RESOURCE_SHARED, flaky)
        consumer = EventConsumer(bus, registry, topic=TOPIC, group=GROUP, consumer_name="worker-1")

        await bus.publish(TOPIC, shared_payload("boom@example.com"))
        await bus.publish(TOPIC, shared_payload("ok@example.com"))

        await run_until(consumer, lambda: consumer.processed_count == 1 and consumer.failed_count == 1)

        assert calls == ["boom@example.com", "ok@example.com"]
        assert bus.pending_count(TOPIC, GROUP) == 1
        assert "handler crashed" in caplog.text

    @pytest.mark.asyncio
    async def test_uncommitted_message_is_redelivered_on_restart(self, bus, notifier):
        attempts = []

        async def crash_once(payload):
            attempts.append(payload["EventId"])
            if len(attempts) == 1:
                raise RuntimeError("transient")

        registry = HandlerRegistry()
        registry.register(EventType.RESOURCE_SHARED, crash_once)
        await bus.publish(TOPIC, shared_payload())

        first = EventConsumer(bus, registry, topic=TOPIC, group=GROUP, consumer_name="worker-1")
        await run_until(first, lambda: first.failed_count == 1)

        restarted = EventConsumer(bus, registry, topic=TOPIC, group=GROUP, consumer_name="worker-1")
        await run_until(restarted, lambda: restarted.processed_count == 1)

        assert len(attempts) == 2
        assert attempts[0] == attempts[1]
        assert bus.pending_count(TOPIC, GROUP) == 0

    @pytest.mark.asyncio
    async def test_stop_before_run_returns_immediately(self, bus, notifier):
        consumer = make_consumer(bus, notifier)
        consumer.stop()

        await asyncio.wait_for(consumer.run(), timeout=1)

        assert consumer.is_stopping

    @pytest.mark.asyncio
    async def test_commit_failure_is_not_counted_as_processed(self, notifier):
        async def failing_ack():
            raise TransportError("ack lost")

        consumer = make_consumer(None, notifier)
        delivery = Delivery(message_id="1-0", topic=TOPIC, body='{"EventType": "Nope"}', _ack=failing_ack)

        assert await consumer.process(delivery) is False
        assert not delivery.committed
        assert consumer.failed_count == 1

    @pytest.mark.asyncio
    async def test_bus_errors_trigger_resubscribe(self, notifier):
        class FlakyBus:
            def __init__(self):
                self.subscriptions = 0

            async def subscribe(self, topic, group, consumer, stop_event=None):
                self.subscriptions += 1
                if self.subscriptions == 1:
                    raise TransportError("connection refused")
                while not stop_event.is_set():
                    await asyncio.sleep(0.005)
                return
                yield

        bus = FlakyBus()
        consumer = make_consumer(bus, notifier, reconnect_delay=0.01)

        await run_until(consumer, lambda: bus.subscriptions >= 2)

        assert bus.subscriptions >= 2


class AckLostBus(MemoryMessageBus):
    """Bus that stores the first publish and then reports it as failed."""

    def __init__(self):
        super().__init__(block_ms=10)
        self.lost_acks = 0

    async def publish(self, topic, payload):
        message_id = await super().publish(topic, payload)
        if self.lost_acks == 0:
            self.lost_acks += 1
            raise TransportError("appended but only 0 of 1 replicas acknowledged")
        return message_id


def delivery_of(payload, message_id="1-0"):
    async def ack():
        return None

    return Delivery(message_id=message_id, topic=TOPIC, body=json.dumps(payload), _ack=ack)


class TestDuplicateEvents:

    @pytest.mark.asyncio
    async def test_retried_publish_sends_one_email(self, notifier):
        bus = AckLostBus()
        publisher = EventPublisher(
            bus,
            topic=TOPIC,
            retry_policy=RetryPolicy(max_retries=1, initial_delay_ms=0, max_delay_ms=0)
        )
        event = ResourceShared(
            sharer_user_id=1,
            file_id=1,
            permission_type=PermissionType.READER,
            recipient_email="alice@example.com",
            resource_type=ResourceKind.FILE,
            resource_name="plan.txt",
        )

        assert await publisher.publish_best_effort(event)
        assert len(bus.messages(TOPIC)) == 2

        consumer = make_consumer(bus, notifier)
        await run_until(consumer, lambda: consumer.processed_count == 2)

        assert [m[0] for m in notifier.sent] == ["alice@example.com"]
        assert bus.pending_count(TOPIC, GROUP) == 0

    @pytest.mark.asyncio
    async def test_repeated_event_id_is_committed_without_dispatch(self, notifier):
        payload = shared_payload()
        consumer = make_consumer(None, notifier)
        first = delivery_of(payload, "1-0")
        repeat = delivery_of(payload, "2-0")

        assert await consumer.process(first)
        assert await consumer.process(repeat)

        assert repeat.committed
        assert len(notifier.sent) == 1
        assert consumer.processed_count == 2

    @pytest.mark.asyncio
    async def test_crashed_event_is_handled_when_seen_again(self):
        attempts = []

        async def crash_once(payload):
            attempts.append(payload["EventId"])
            if len(attempts) == 1:
                raise RuntimeError("transient")

        registry = HandlerRegistry()
        registry.register(EventType.RESOURCE_SHARED, crash_once)
        consumer = EventConsumer(None, registry, topic=TOPIC, group=GROUP, consumer_name="worker-1")
        payload = shared_payload()

        assert await consumer.process(delivery_of(payload, "1-0")) is False
        assert await consumer.process(delivery_of(payload, "2-0")) is True

        assert len(attempts) == 2

    @pytest.mark.asyncio
    async def test_remembered_ids_are_bounded(self, notifier):
        consumer = make_consumer(None, notifier, dedupe_window=2)
        oldest = shared_payload("a@example.com")
        newest = shared_payload("c@example.com")

        for payload in (oldest, shared_payload("b@example.com"), newest):
            await consumer.process(delivery_of(payload))
        await consumer.process(delivery_of(oldest))
        await consumer.process(delivery_of(newest))

        assert [m[0] for m in notifier.sent] == [
            "a@example.com", "b@example.com", "c@example.com", "a@example.com",
        ]

    @pytest.mark.asyncio
    async def test_payload_without_event_id_is_always_dispatched(self, notifier):
        payload = shared_payload()
        del payload["EventId"]
        consumer = make_consumer(None, notifier)

        await consumer.process(delivery_of(payload))
        await consumer.process(delivery_of(payload))

        assert len(notifier.sent) == 2
