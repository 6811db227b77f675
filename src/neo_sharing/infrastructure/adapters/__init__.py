"""Notifier adapters."""

from .smtp_email_notifier import EmailConfiguration, SMTPEmailNotifier

__all__ = ["EmailConfiguration", "SMTPEmailNotifier"]
