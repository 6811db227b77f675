"""Database access for neo-sharing."""

from .connection import DatabaseManager

__all__ = ["DatabaseManager"]
