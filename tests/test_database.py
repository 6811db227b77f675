"""Tests for the asyncpg pool manager."""

from unittest.mock import AsyncMock, MagicMock, patch

import asyncpg
import pytest

from neo_sharing.config import SharingSettings
from neo_sharing.database import DatabaseManager


@pytest.fixture
def connection():
    conn = AsyncMock()
    conn.execute.return_value = "DELETE 1"
    conn.fetchval.return_value = 1
    return conn


@pytest.fixture
def pool(connection):
    pool = MagicMock()
    pool.acquire.return_value.__aenter__.return_value = connection
    pool.close = AsyncMock()
    return pool


class TestDatabaseManager:

    def test_from_settings_normalizes_dsn(self):
        settings = SharingSettings(
            _env_file=None,
            database_url="postgresql+asyncpg://app@db:5432/sharing",
            db_pool_max_size=4,
        )

        db = DatabaseManager.from_settings(settings)

        assert db.dsn == "postgresql://app@db:5432/sharing"
        assert db.max_size == 4
        assert db.is_open is False

    @pytest.mark.asyncio
    async def test_pool_opens_lazily_once(self, pool, connection):
        db = DatabaseManager("postgresql://localhost/sharing", app_name="sharing-tests")

        with patch("neo_sharing.database.connection.asyncpg.create_pool", new=AsyncMock(return_value=pool)) as create:
            status = await db.execute("DELETE FROM t WHERE id = $1", 3)
            await db.fetch("SELECT 1")

        assert status == "DELETE 1"
        create.assert_awaited_once()
        assert create.call_args.kwargs["server_settings"] == {"application_name": "sharing-tests"}
        connection.execute.assert_awaited_once_with("DELETE FROM t WHERE id = $1", 3)

    @pytest.mark.asyncio
    async def test_context_manager_closes_pool(self, pool):
        with patch("neo_sharing.database.connection.asyncpg.create_pool", new=AsyncMock(return_value=pool)):
            async with DatabaseManager("postgresql://localhost/sharing") as db:
                assert db.is_open

        pool.close.assert_awaited_once()
        assert db.is_open is False

    @pytest.mark.asyncio
    async def test_ping(self, pool, connection):
        db = DatabaseManager("postgresql://localhost/sharing")

        with patch("neo_sharing.database.connection.asyncpg.create_pool", new=AsyncMock(return_value=pool)):
            assert await db.ping() is True
            connection.fetchval.side_effect = asyncpg.exceptions.ConnectionDoesNotExistError("gone")
            assert await db.ping() is False
