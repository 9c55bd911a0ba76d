"""Database connection manager for the Eventide API.

Wraps the single asyncpg pool every router reads from and writes to.
"""

from __future__ import annotations

import logging

import asyncpg
from fastapi import HTTPException

from eventide.config import DatabaseConfig
from eventide.db import Database

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Owns the application's connection pool.

    Usage::

        mgr = DatabaseManager.from_config(config.database)
        await mgr.connect()
        rows = await mgr.pool().fetch("SELECT * FROM labels")
        await mgr.close()
    """

    def __init__(self, database: Database) -> None:
        self._database = database

    @classmethod
    def from_config(cls, config: DatabaseConfig) -> DatabaseManager:
        return cls(Database(config))

    @property
    def db_name(self) -> str:
        return self._database.db_name

    async def connect(self) -> None:
        await self._database.connect()

    def pool(self) -> asyncpg.Pool:
        """Return the connection pool.

        Raises KeyError if the pool has not been created.
        """
        if self._database.pool is None:
            raise KeyError(f"No pool for database: {self._database.db_name}")
        return self._database.pool

    async def close(self) -> None:
        try:
            await self._database.close()
        except Exception:
            logger.warning("Error closing pool for %s", self._database.db_name, exc_info=True)


def pool_or_503(db: DatabaseManager) -> asyncpg.Pool:
    """Return the manager's pool, or raise HTTPException 503 when it is down."""
    try:
        return db.pool()
    except KeyError:
        raise HTTPException(status_code=503, detail="Database is not available")
