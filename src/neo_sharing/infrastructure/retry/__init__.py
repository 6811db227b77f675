"""Retry support."""

from .retry_policy import BackoffType, RetryPolicy

__all__ = ["BackoffType", "RetryPolicy"]
