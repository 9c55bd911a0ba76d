"""asyncpg pool lifecycle for the Eventide row store.

Connection settings come from ``DatabaseConfig`` (see ``eventide.config``),
which already merges ``eventide.toml`` with ``DATABASE_URL`` / ``POSTGRES_*``.
"""

from __future__ import annotations

import logging
from typing import Any

import asyncpg

from eventide.config import DatabaseConfig

logger = logging.getLogger(__name__)


class Database:
    """One asyncpg pool against an existing Eventide database.

    Tables, keys and cascades are managed outside this package; ``connect``
    never creates or migrates anything.
    """

    def __init__(self, config: DatabaseConfig) -> None:
        self.config = config
        self.pool: asyncpg.Pool | None = None

    @property
    def db_name(self) -> str:
        return self.config.name

    @property
    def dsn_label(self) -> str:
        """``user@host:port/name``, safe to log (no password)."""
        cfg = self.config
        return f"{cfg.user}@{cfg.host}:{cfg.port}/{cfg.name}"

    def pool_kwargs(self) -> dict[str, Any]:
        cfg = self.config
        kwargs: dict[str, Any] = {
            "host": cfg.host,
            "port": cfg.port,
            "user": cfg.user,
            "password": cfg.password,
            "database": cfg.name,
            "min_size": cfg.min_pool_size,
            "max_size": cfg.max_pool_size,
        }
        if cfg.ssl is not None:
            kwargs["ssl"] = cfg.ssl
        return kwargs

    async def connect(self) -> asyncpg.Pool:
        """Open the pool. Calling it again while open returns the same pool."""
        if self.pool is not None:
            return self.pool
        try:
            self.pool = await asyncpg.create_pool(**self.pool_kwargs())
        except (OSError, asyncpg.PostgresError):
            logger.error("Could not open pool for %s", self.dsn_label)
            raise
        logger.info(
            "Opened pool for %s (%d-%d connections)",
            self.dsn_label,
            self.config.min_pool_size,
            self.config.max_pool_size,
        )
        return self.pool

    async def close(self) -> None:
        pool, self.pool = self.pool, None
        if pool is not None:
            await pool.close()
            logger.info("Closed pool for %s", self.dsn_label)
