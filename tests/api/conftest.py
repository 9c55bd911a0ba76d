"""Shared fixtures and helpers for Eventide API tests.

Covers:
- ``wire_app``: overrides every router's DB stub, the caller identity and
  the message feed on a FastAPI app
- Shared app fixture (module-scoped) to avoid per-test create_app() overhead
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from fastapi import FastAPI

from eventide.api.app import create_app
from eventide.api.db import DatabaseManager
from eventide.api.deps import get_current_user, get_message_feed
from eventide.api.routers import (
    collaborations,
    events,
    invitations,
    labels,
    messages,
    notes,
    todos,
)
from eventide.config import EventideConfig
from eventide.identity import Identity
from eventide.realtime import MessageFeed
from tests.conftest import ALICE

_ROUTER_MODULES = [collaborations, events, invitations, labels, messages, notes, todos]


def make_identity(email: str = ALICE) -> Identity:
    return Identity(user_id=f"user-{email.split('@')[0]}", email=email)


def wire_app(
    app: FastAPI,
    pool: AsyncMock | None,
    *,
    email: str = ALICE,
    feed: MessageFeed | None = None,
) -> MagicMock:
    """Point every router at a mocked DatabaseManager and sign in *email*.

    Passing ``pool=None`` simulates a database that failed to come up.
    Returns the mock manager so tests can inspect it.
    """
    mock_db = MagicMock(spec=DatabaseManager)
    if pool is None:
        mock_db.pool.side_effect = KeyError("No pool for database: eventide")
    else:
        mock_db.pool.return_value = pool

    for module in _ROUTER_MODULES:
        app.dependency_overrides[module._get_db_manager] = lambda: mock_db
    identity = make_identity(email)
    app.dependency_overrides[get_current_user] = lambda: identity
    feed = feed or MessageFeed()
    app.dependency_overrides[get_message_feed] = lambda: feed
    return mock_db


def client_for(app: FastAPI) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")


# ---------------------------------------------------------------------------
# Shared app fixture (module-scoped)
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def app() -> FastAPI:
    """A single FastAPI app instance shared across all tests in a module.

    Tests must not rely on ``dependency_overrides`` persisting between
    tests — the ``clear_dependency_overrides`` autouse fixture resets the
    overrides dict after every test function so there is no state leakage.
    """
    return create_app(config=EventideConfig())


@pytest.fixture(autouse=True)
def clear_dependency_overrides(request: pytest.FixtureRequest) -> None:
    """Clear dependency_overrides on the shared app after each test function."""
    yield
    if "app" in request.fixturenames:
        shared_app = request.getfixturevalue("app")
        shared_app.dependency_overrides.clear()
