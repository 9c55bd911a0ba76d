"""Application-wide dependencies for the Eventide API.

Provides module-level singletons (database manager, identity client,
message feed) with ``init_*``/``shutdown_*`` functions called from the app
lifespan, and FastAPI dependency functions that hand them to routers.

Every router declares its own ``_get_db_manager`` stub; ``wire_db_dependencies``
points those stubs at the singleton so tests can override them per router.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import Depends, Header

from eventide.api.db import DatabaseManager
from eventide.config import DatabaseConfig, IdentityConfig
from eventide.core.logging import set_user_context
from eventide.errors import AuthenticationError
from eventide.identity import Identity, IdentityClient
from eventide.realtime import MessageFeed

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

_db_manager: DatabaseManager | None = None


async def init_db_manager(config: DatabaseConfig) -> DatabaseManager:
    """Create the DatabaseManager singleton and open its pool.

    Called once during app startup (in the lifespan handler).
    """
    global _db_manager  # noqa: PLW0603

    mgr = DatabaseManager.from_config(config)
    await mgr.connect()
    _db_manager = mgr
    return mgr


async def shutdown_db_manager() -> None:
    """Close the DatabaseManager singleton. Called during app shutdown."""
    global _db_manager  # noqa: PLW0603
    if _db_manager is not None:
        await _db_manager.close()
        _db_manager = None


def get_db_manager() -> DatabaseManager:
    """FastAPI dependency: provides the DatabaseManager singleton."""
    if _db_manager is None:
        raise RuntimeError("DatabaseManager not initialized — call init_db_manager() first")
    return _db_manager


def wire_db_dependencies(app: FastAPI) -> None:
    """Override all router-level ``_get_db_manager`` stubs with the singleton."""
    from eventide.api.routers import (
        collaborations,
        events,
        invitations,
        labels,
        messages,
        notes,
        todos,
    )

    for module in [collaborations, events, invitations, labels, messages, notes, todos]:
        app.dependency_overrides[module._get_db_manager] = get_db_manager


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------

_identity_client: IdentityClient | None = None


def init_identity_client(config: IdentityConfig) -> IdentityClient:
    global _identity_client  # noqa: PLW0603
    _identity_client = IdentityClient(
        config.url,
        api_key=config.api_key,
        timeout_s=config.timeout_s,
    )
    logger.info("Identity provider configured at %s", config.url)
    return _identity_client


async def shutdown_identity_client() -> None:
    global _identity_client  # noqa: PLW0603
    if _identity_client is not None:
        await _identity_client.close()
        _identity_client = None


def get_identity_client() -> IdentityClient:
    """FastAPI dependency: provides the IdentityClient singleton."""
    if _identity_client is None:
        raise RuntimeError("IdentityClient not initialized — call init_identity_client() first")
    return _identity_client


def _bearer_token(authorization: str | None) -> str:
    if not authorization:
        raise AuthenticationError("Missing session token")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("Authorization header must be 'Bearer <token>'")
    return token.strip()


async def get_current_user(
    authorization: str | None = Header(default=None),
    client: IdentityClient = Depends(get_identity_client),
) -> Identity:
    """FastAPI dependency: the verified caller behind the bearer token.

    The verified email is also bound to the logging context so every log
    line for this request carries ``user``.
    """
    identity = await client.verify(_bearer_token(authorization))
    set_user_context(identity.email)
    return identity


# ---------------------------------------------------------------------------
# Realtime
# ---------------------------------------------------------------------------

_message_feed: MessageFeed | None = None


def init_message_feed() -> MessageFeed:
    global _message_feed  # noqa: PLW0603
    _message_feed = MessageFeed()
    return _message_feed


def shutdown_message_feed() -> None:
    global _message_feed  # noqa: PLW0603
    if _message_feed is not None:
        _message_feed.close()
        _message_feed = None


def get_message_feed() -> MessageFeed:
    """FastAPI dependency: provides the MessageFeed singleton."""
    if _message_feed is None:
        raise RuntimeError("MessageFeed not initialized — call init_message_feed() first")
    return _message_feed
