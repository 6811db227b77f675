"""Notification worker entry point.

Run with ``python -m neo_sharing.worker`` or the ``neo-sharing-worker``
console script. SIGINT and SIGTERM stop the consumer at the next poll
boundary.
"""

import asyncio
import logging
import signal
from typing import Optional

from .config import SharingSettings, get_settings, setup_logging
from .infrastructure.adapters import EmailConfiguration, SMTPEmailNotifier
from .infrastructure.bus import RedisMessageBus
from .notifications import EventConsumer, NotificationHandlers


logger = logging.getLogger(__name__)


def build_consumer(settings: SharingSettings, bus: RedisMessageBus) -> EventConsumer:
    """Wire the notifier, handlers and consumer from settings."""
    notifier = SMTPEmailNotifier(EmailConfiguration.from_settings(settings))
    handlers = NotificationHandlers.from_settings(notifier, settings)
    return EventConsumer(
        bus,
        handlers.build_registry(),
        topic=settings.event_topic,
        group=settings.consumer_group,
        consumer_name=settings.consumer_name,
        dedupe_window=settings.consumer_dedupe_window,
    )


async def run_worker(settings: Optional[SharingSettings] = None) -> None:
    settings = settings or get_settings()
    bus = RedisMessageBus.from_settings(settings)
    consumer = build_consumer(settings, bus)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, consumer.stop)
        except NotImplementedError:
            # Windows event loops have no signal handler support.
            signal.signal(sig, lambda *_: loop.call_soon_threadsafe(consumer.stop))

    logger.info(f"Starting {settings.app_name} notification worker ({settings.environment})")
    try:
        await consumer.run()
    finally:
        await bus.close()
        logger.info(
            f"Worker finished: {consumer.processed_count} processed, {consumer.failed_count} failed"
        )


def main() -> None:
    setup_logging()
    asyncio.run(run_worker())


if __name__ == "__main__":
    main()
