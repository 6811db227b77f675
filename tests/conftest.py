"""Pytest configuration and fixtures for neo-sharing tests."""

from typing import List, Optional, Tuple

import pytest

from neo_sharing.access_requests import AccessRequestWorkflow
from neo_sharing.core.exceptions import TransportError
from neo_sharing.infrastructure.bus import MemoryMessageBus
from neo_sharing.infrastructure.repositories import MemoryResourceStore
from neo_sharing.infrastructure.retry import RetryPolicy
from neo_sharing.notifications import EventPublisher
from neo_sharing.permissions import PermissionEngine, PublicShareIssuer


TOPIC = "email_topic"


class RecordingNotifier:
    """Notifier that keeps every message instead of sending it."""

    def __init__(self, fail: bool = False):
        self.sent: List[Tuple[str, str, str, Optional[str]]] = []
        self.fail = fail

    async def send(self, to_address, subject, body, attachment_path=None):
        if self.fail:
            raise TransportError(f"SMTP unavailable for {to_address}")
        self.sent.append((to_address, subject, body, attachment_path))


def seed_tree(store):
    """Seed a store with a small tree and return it.

    owner (1) owns:
        Projects (folder 1)
            plan.txt (file 1)
            Designs (folder 2)
                logo.png (file 2)
                Drafts (folder 4)
                    sketch.png (file 4)
        Private (folder 3)
            secret.txt (file 3)
    alice (2), bob (3) and carol (4) own nothing.
    """
    store.add_user("owner", "owner@example.com", user_id=1)
    store.add_user("alice", "alice@example.com", user_id=2)
    store.add_user("bob", "bob@example.com", user_id=3)
    store.add_user("carol", "carol@example.com", user_id=4)

    store.add_folder("Projects", owner_id=1, folder_id=1)
    store.add_folder("Designs", owner_id=1, parent_folder_id=1, folder_id=2)
    store.add_folder("Private", owner_id=1, folder_id=3)
    store.add_folder("Drafts", owner_id=1, parent_folder_id=2, folder_id=4)

    store.add_file("plan.txt", owner_id=1, folder_id=1, size=120, file_id=1)
    store.add_file("logo.png", owner_id=1, folder_id=2, size=2048, file_id=2)
    store.add_file("secret.txt", owner_id=1, folder_id=3, size=64, file_id=3)
    store.add_file("sketch.png", owner_id=1, folder_id=4, size=512, file_id=4)
    return store


@pytest.fixture
def store():
    return seed_tree(MemoryResourceStore())


@pytest.fixture
def bus():
    return MemoryMessageBus(block_ms=10)


@pytest.fixture
def publisher(bus):
    return EventPublisher(
        bus,
        topic=TOPIC,
        retry_policy=RetryPolicy(max_retries=0, initial_delay_ms=0, max_delay_ms=0)
    )


@pytest.fixture
def engine(store, publisher):
    return PermissionEngine(store, publisher)


@pytest.fixture
def issuer(store, engine, publisher):
    return PublicShareIssuer(store, engine, publisher)


@pytest.fixture
def workflow(store, engine, publisher):
    return AccessRequestWorkflow(store, engine, publisher)


@pytest.fixture
def notifier():
    return RecordingNotifier()


def published(bus, event_type: Optional[str] = None):
    """Payloads on the test topic, optionally filtered by event type."""
    messages = bus.messages(TOPIC)
    if event_type is None:
        return messages
    return [m for m in messages if m["EventType"] == event_type]
