"""Notifier protocol for outbound notifications."""

from abc import abstractmethod
from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class Notifier(Protocol):
    """Delivers a plain-text message to one address."""

    @abstractmethod
    async def send(
        self,
        to_address: str,
        subject: str,
        body: str,
        attachment_path: Optional[str] = None
    ) -> None:
        """Send a notification.

        Args:
            to_address: Recipient address
            subject: Message subject
            body: Plain-text body
            attachment_path: Optional path of a file to attach

        Raises:
            TransportError: If the message could not be delivered
        """
        ...
