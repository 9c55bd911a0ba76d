"""Unit tests for eventide.db pool lifecycle and the API's DatabaseManager."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
from fastapi import HTTPException

from eventide.api.db import DatabaseManager, pool_or_503
from eventide.config import DatabaseConfig
from eventide.db import Database

pytestmark = pytest.mark.unit


def test_pool_kwargs_follow_config() -> None:
    db = Database(
        DatabaseConfig(
            host="db.internal",
            port=6543,
            user="app",
            password="s3cret",
            name="tide",
            ssl="require",
            min_pool_size=2,
            max_pool_size=5,
        )
    )

    assert db.pool_kwargs() == {
        "host": "db.internal",
        "port": 6543,
        "user": "app",
        "password": "s3cret",
        "database": "tide",
        "min_size": 2,
        "max_size": 5,
        "ssl": "require",
    }
    assert db.dsn_label == "app@db.internal:6543/tide"


def test_ssl_left_to_asyncpg_when_unset() -> None:
    assert "ssl" not in Database(DatabaseConfig()).pool_kwargs()


@patch("eventide.db.asyncpg.create_pool", new_callable=AsyncMock)
async def test_connect_opens_pool_once(mock_create_pool: AsyncMock) -> None:
    pool = AsyncMock()
    mock_create_pool.return_value = pool
    db = Database(DatabaseConfig(name="tide"))

    assert await db.connect() is pool
    assert await db.connect() is pool

    mock_create_pool.assert_awaited_once()
    assert mock_create_pool.await_args.kwargs["database"] == "tide"


@patch("eventide.db.asyncpg.create_pool", new_callable=AsyncMock)
async def test_connect_propagates_errors(mock_create_pool: AsyncMock) -> None:
    mock_create_pool.side_effect = ConnectionRefusedError("connection refused")
    db = Database(DatabaseConfig())

    with pytest.raises(ConnectionRefusedError):
        await db.connect()

    assert db.pool is None


async def test_close_is_idempotent() -> None:
    db = Database(DatabaseConfig())
    pool = AsyncMock()
    db.pool = pool

    await db.close()
    await db.close()

    pool.close.assert_awaited_once()
    assert db.pool is None


class TestDatabaseManager:
    @patch("eventide.db.asyncpg.create_pool", new_callable=AsyncMock)
    async def test_from_config_connects_once(self, mock_create_pool: AsyncMock) -> None:
        pool = AsyncMock()
        mock_create_pool.return_value = pool
        mgr = DatabaseManager.from_config(DatabaseConfig(name="tide", host="db", port=6543))

        await mgr.connect()
        await mgr.connect()

        assert mgr.db_name == "tide"
        assert mgr.pool() is pool
        assert mock_create_pool.await_count == 1

    def test_pool_before_connect_raises_key_error(self) -> None:
        mgr = DatabaseManager(Database(DatabaseConfig(name="tide")))

        with pytest.raises(KeyError):
            mgr.pool()

    def test_pool_or_503(self) -> None:
        mgr = DatabaseManager(Database(DatabaseConfig(name="tide")))

        with pytest.raises(HTTPException) as exc_info:
            pool_or_503(mgr)

        assert exc_info.value.status_code == 503
