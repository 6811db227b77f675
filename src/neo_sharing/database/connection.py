"""
asyncpg pool used by the PostgreSQL resource store.

The pool is opened lazily on first use. ``DatabaseManager`` is also an async
context manager so short-lived tools can write::

    async with DatabaseManager.from_settings(settings) as db:
        await AsyncPGResourceStore(db).create_schema()
"""
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

import asyncpg
from asyncpg import Connection, Pool, Record
import logging

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Owns one asyncpg pool and runs single statements on it."""

    def __init__(
        self,
        dsn: str,
        app_name: str = "neo-sharing",
        min_size: int = 2,
        max_size: int = 10,
        command_timeout: float = 60
    ):
        # SQLAlchemy-style URLs are accepted for convenience
        self.dsn = dsn.replace("postgresql+asyncpg://", "postgresql://", 1)
        self.app_name = app_name
        self.min_size = min_size
        self.max_size = max_size
        self.command_timeout = command_timeout
        self._pool: Optional[Pool] = None

    @classmethod
    def from_settings(cls, settings) -> "DatabaseManager":
        """Build a manager from SharingSettings."""
        return cls(
            settings.database_url,
            app_name=settings.app_name,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
            command_timeout=settings.db_command_timeout,
        )

    @property
    def is_open(self) -> bool:
        return self._pool is not None

    async def open(self) -> Pool:
        if self._pool is None:
            logger.info(f"Opening database pool for '{self.app_name}' (max {self.max_size} connections)")
            self._pool = await asyncpg.create_pool(
                self.dsn,
                min_size=self.min_size,
                max_size=self.max_size,
                command_timeout=self.command_timeout,
                server_settings={"application_name": self.app_name},
            )
        return self._pool

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.info("Database pool closed")

    async def __aenter__(self) -> "DatabaseManager":
        await self.open()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[Connection]:
        """Borrow a pooled connection for several statements."""
        pool = await self.open()
        async with pool.acquire() as conn:
            yield conn

    async def execute(self, query: str, *args) -> str:
        """Run a statement and return its status tag, e.g. ``DELETE 1``."""
        async with self.connection() as conn:
            return await conn.execute(query, *args)

    async def fetch(self, query: str, *args) -> List[Record]:
        async with self.connection() as conn:
            return await conn.fetch(query, *args)

    async def fetchrow(self, query: str, *args) -> Optional[Record]:
        async with self.connection() as conn:
            return await conn.fetchrow(query, *args)

    async def ping(self) -> bool:
        """True when the database answers a trivial query."""
        try:
            async with self.connection() as conn:
                return await conn.fetchval("SELECT 1") == 1
        except (asyncpg.PostgresError, OSError) as e:
            logger.error(f"Database ping failed: {e}")
            return False
