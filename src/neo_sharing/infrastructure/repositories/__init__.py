"""Resource store implementations."""

from .asyncpg_resource_store import AsyncPGResourceStore
from .memory_resource_store import MemoryResourceStore

__all__ = ["AsyncPGResourceStore", "MemoryResourceStore"]
