"""Utility helpers for neo-sharing."""

from .datetime import utc_now, ensure_utc, format_utc

__all__ = ["utc_now", "ensure_utc", "format_utc"]
