"""SMTP email notifier.

Sends plain-text notifications over SMTP. The blocking smtplib calls run in
the default executor so the event loop is never blocked.
"""

import asyncio
import logging
import mimetypes
import os
import smtplib
from dataclasses import dataclass
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from ...core.exceptions import InvalidArgumentError, TransportError
from ...core.protocols import Notifier


logger = logging.getLogger(__name__)


@dataclass
class EmailConfiguration:
    """Email configuration for SMTP delivery."""

    smtp_host: str
    smtp_port: int
    username: str
    password: str
    from_address: str
    use_tls: bool = True
    use_ssl: bool = False
    timeout_seconds: int = 30

    @classmethod
    def from_settings(cls, settings) -> "EmailConfiguration":
        return cls(
            smtp_host=settings.smtp_host,
            smtp_port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password.get_secret_value(),
            from_address=settings.from_address,
            use_tls=settings.smtp_use_tls,
            use_ssl=settings.smtp_use_ssl,
            timeout_seconds=settings.smtp_timeout_seconds,
        )


class SMTPEmailNotifier(Notifier):
    """Notifier that delivers email through an SMTP server."""

    def __init__(self, configuration: EmailConfiguration):
        """Initialize notifier with email configuration.

        Args:
            configuration: SMTP configuration for email delivery
        """
        self._config = configuration

    async def send(
        self,
        to_address: str,
        subject: str,
        body: str,
        attachment_path: Optional[str] = None
    ) -> None:
        if not to_address:
            raise InvalidArgumentError("Recipient address is required")

        message = self._build_message(to_address, subject, body, attachment_path)

        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._send_blocking, message, to_address)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {to_address}: {e}")
            raise TransportError(
                f"Failed to send email to {to_address}: {e}",
                details={"to": to_address, "subject": subject}
            ) from e

        logger.info(f"Email sent to {to_address}: {subject}")

    def _build_message(
        self,
        to_address: str,
        subject: str,
        body: str,
        attachment_path: Optional[str]
    ) -> MIMEMultipart:
        message = MIMEMultipart()
        message["From"] = self._config.from_address
        message["To"] = to_address
        message["Subject"] = subject
        message.attach(MIMEText(body, "plain", "utf-8"))

        if attachment_path:
            if not os.path.isfile(attachment_path):
                raise InvalidArgumentError(
                    f"Attachment not found: {attachment_path}",
                    details={"attachment_path": attachment_path}
                )
            content_type, _ = mimetypes.guess_type(attachment_path)
            subtype = content_type.split("/", 1)[1] if content_type else "octet-stream"
            with open(attachment_path, "rb") as handle:
                part = MIMEApplication(handle.read(), _subtype=subtype)
            part.add_header(
                "Content-Disposition",
                "attachment",
                filename=os.path.basename(attachment_path)
            )
            message.attach(part)

        return message

    def _connect(self) -> smtplib.SMTP:
        config = self._config
        smtp_class = smtplib.SMTP_SSL if config.use_ssl else smtplib.SMTP
        return smtp_class(config.smtp_host, config.smtp_port, timeout=config.timeout_seconds)

    def _send_blocking(self, message: MIMEMultipart, to_address: str) -> None:
        """Blocking SMTP session, run in the executor."""
        server = self._connect()
        try:
            if self._config.use_tls and not self._config.use_ssl:
                server.starttls()
            if self._config.username and self._config.password:
                server.login(self._config.username, self._config.password)
            server.send_message(message, to_addrs=[to_address])
        finally:
            server.quit()
