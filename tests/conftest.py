"""Shared test fixtures and helpers for the Eventide test suite.

Provides:
- row factories returning dicts that mimic asyncpg Records;
- ``by_sql`` to build mock side effects keyed on SQL fragments;
- ``make_pool`` / ``make_conn`` for AsyncMock pools with working
  ``pool.acquire()`` and ``conn.transaction()`` context managers.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID, uuid4

import pytest

ALICE = "alice@example.com"
BOB = "bob@example.com"
CAROL = "carol@example.com"

_NOW = datetime(2026, 10, 19, 9, 30, tzinfo=UTC)


# ---------------------------------------------------------------------------
# Row factories
# ---------------------------------------------------------------------------


def make_event_row(
    *,
    event_id: UUID | None = None,
    user_email: str = ALICE,
    title: str = "Dentist",
    details: str = "",
    when: datetime | None = _NOW,
    is_indefinite: bool = False,
    category: str | None = "Health",
    label_id: UUID | None = None,
    collab_id: UUID | None = None,
    collab_name: str | None = None,
) -> dict:
    return {
        "event_id": event_id or uuid4(),
        "user_email": user_email,
        "title": title,
        "details": details,
        "datetime": when,
        "is_indefinite": is_indefinite,
        "category": category,
        "label_id": label_id,
        "collab_id": collab_id,
        "created_at": _NOW,
        "label_name": None,
        "label_color": None,
        "collab_name": collab_name,
    }


def make_project_row(
    *,
    project_id: UUID | None = None,
    user_email: str = ALICE,
    name: str = "Inbox",
    collab_id: UUID | None = None,
    created_at: datetime = _NOW,
) -> dict:
    return {
        "project_id": project_id or uuid4(),
        "user_email": user_email,
        "name": name,
        "collab_id": collab_id,
        "created_at": created_at,
        "collab_name": None,
    }


def make_todo_row(
    *,
    todo_id: UUID | None = None,
    project_id: UUID | None = None,
    user_email: str = ALICE,
    title: str = "Buy milk",
    priority: str = "Casual",
    completed: bool = False,
    completed_at: datetime | None = None,
    subtasks: list | str | None = None,
    collab_id: UUID | None = None,
) -> dict:
    return {
        "todo_id": todo_id or uuid4(),
        "user_email": user_email,
        "project_id": project_id or uuid4(),
        "title": title,
        "description": None,
        "due_date": None,
        "priority": priority,
        "completed": completed,
        "completed_at": completed_at,
        "label_id": None,
        "subtasks": json.dumps(subtasks or []) if not isinstance(subtasks, str) else subtasks,
        "collab_id": collab_id,
        "created_at": _NOW,
        "label_name": None,
        "label_color": None,
        "collab_name": None,
    }


def make_label_row(
    *,
    label_id: UUID | None = None,
    user_email: str = ALICE,
    name: str = "Urgent",
    color: str = "#ff0000",
) -> dict:
    return {
        "label_id": label_id or uuid4(),
        "user_email": user_email,
        "name": name,
        "color": color,
        "created_at": _NOW,
    }


def make_notebook_row(
    *,
    notebook_id: UUID | None = None,
    user_email: str = ALICE,
    name: str = "Journal",
    collab_id: UUID | None = None,
) -> dict:
    return {
        "notebook_id": notebook_id or uuid4(),
        "user_email": user_email,
        "name": name,
        "collab_id": collab_id,
        "created_at": _NOW,
        "collab_name": None,
    }


def make_note_row(
    *,
    note_id: UUID | None = None,
    notebook_id: UUID | None = None,
    user_email: str = ALICE,
    title: str = "Untitled Note",
    content: str = "",
    collab_id: UUID | None = None,
    updated_at: datetime = _NOW,
) -> dict:
    return {
        "note_id": note_id or uuid4(),
        "notebook_id": notebook_id or uuid4(),
        "user_email": user_email,
        "title": title,
        "content": content,
        "collab_id": collab_id,
        "created_at": _NOW,
        "updated_at": updated_at,
    }


def make_collab_row(
    *,
    collab_id: UUID | None = None,
    name: str = "Family",
    owner_email: str = ALICE,
) -> dict:
    return {
        "collab_id": collab_id or uuid4(),
        "name": name,
        "owner_email": owner_email,
        "created_at": _NOW,
    }


def make_member_row(*, collab_id: UUID, user_email: str = ALICE, role: str = "owner") -> dict:
    return {
        "collab_id": collab_id,
        "user_email": user_email,
        "role": role,
        "joined_at": _NOW,
    }


def make_invitation_row(
    *,
    invite_id: UUID | None = None,
    collab_id: UUID | None = None,
    inviter_email: str = ALICE,
    invitee_email: str = BOB,
    role: str = "editor",
    status: str = "pending",
) -> dict:
    return {
        "invite_id": invite_id or uuid4(),
        "collab_id": collab_id or uuid4(),
        "inviter_email": inviter_email,
        "invitee_email": invitee_email,
        "role": role,
        "status": status,
        "created_at": _NOW,
    }


def make_message_row(
    *,
    message_id: UUID | None = None,
    collab_id: UUID | None = None,
    user_email: str = ALICE,
    content: str = "hello",
    client_key: str | None = None,
) -> dict:
    return {
        "message_id": message_id or uuid4(),
        "collab_id": collab_id or uuid4(),
        "user_email": user_email,
        "content": content,
        "client_key": client_key,
        "created_at": _NOW,
    }


# ---------------------------------------------------------------------------
# Mock pool helpers
# ---------------------------------------------------------------------------


def by_sql(*routes: tuple[str, Any], default: Any = None) -> Callable[..., Any]:
    """Build a side effect returning the result of the first matching SQL fragment.

    Each route is ``(fragment, result)``. ``result`` may be a plain value, an
    exception instance (raised), or a callable taking the query arguments.
    """

    def _side_effect(sql: str, *args: Any) -> Any:
        for fragment, result in routes:
            if fragment in sql:
                if isinstance(result, BaseException):
                    raise result
                if callable(result):
                    return result(*args)
                return result
        return default

    return _side_effect


class MockAcquire:
    """Async context manager returned by ``pool.acquire()``."""

    def __init__(self, conn: AsyncMock) -> None:
        self.conn = conn

    async def __aenter__(self):
        return self.conn

    async def __aexit__(self, *args):
        return False


def make_conn(
    *,
    fetchrow: Callable[..., Any] | None = None,
    execute: Callable[..., Any] | None = None,
) -> AsyncMock:
    """An AsyncMock connection with ``conn.transaction()`` wired as a context manager."""
    conn = AsyncMock()
    conn.fetchrow = AsyncMock(side_effect=fetchrow or (lambda *a: None))
    conn.execute = AsyncMock(side_effect=execute or (lambda *a: "OK"))
    tx_ctx = MagicMock()
    tx_ctx.__aenter__ = AsyncMock(return_value=None)
    tx_ctx.__aexit__ = AsyncMock(return_value=False)
    conn.transaction = MagicMock(return_value=tx_ctx)
    return conn


def make_pool(
    *,
    fetch: Callable[..., Any] | None = None,
    fetchrow: Callable[..., Any] | None = None,
    fetchval: Callable[..., Any] | None = None,
    execute: Callable[..., Any] | None = None,
    conn: AsyncMock | None = None,
) -> AsyncMock:
    """An AsyncMock pool whose query methods delegate to the given side effects."""
    pool = AsyncMock()
    pool.fetch = AsyncMock(side_effect=fetch or (lambda *a: []))
    pool.fetchrow = AsyncMock(side_effect=fetchrow or (lambda *a: None))
    pool.fetchval = AsyncMock(side_effect=fetchval or (lambda *a: None))
    pool.execute = AsyncMock(side_effect=execute or (lambda *a: "OK"))
    pool.acquire = MagicMock(return_value=MockAcquire(conn or make_conn()))
    return pool


def role_lookup(roles: dict[str, str | None]) -> Callable[..., Any]:
    """fetchval route result for ``SELECT role FROM collaboration_members``."""

    def _lookup(collab_id: Any, email: str) -> str | None:
        return roles.get(email)

    return _lookup


@pytest.fixture
def notifications() -> list:
    """Collects Notification objects emitted by client stores."""
    return []
