"""Todo rows.

A todo always lives in a project. On create, ``project_id`` may be a
project id, a project name or the literal ``"Inbox"``; names are resolved
(and created if needed) in the todo's owner context.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import Any

from eventide.errors import NotFoundError, ValidationError
from eventide.resources import projects as projects_ops
from eventide.resources._common import (
    build_update,
    decode_jsonb,
    ensure_can_write,
    is_uuid,
    parse_optional_uuid,
    parse_uuid,
    require_own_label,
    require_text,
    require_writer,
    store_errors,
    visible_clause,
)

logger = logging.getLogger(__name__)

PRIORITIES = ("Very Important", "Important", "Not Important", "Casual")
DEFAULT_PRIORITY = "Casual"

_UPDATABLE = (
    "title",
    "description",
    "due_date",
    "priority",
    "completed",
    "completed_at",
    "label_id",
    "subtasks",
    "project_id",
)

_JOINED_SELECT = """
    SELECT t.*,
           l.name  AS label_name,
           l.color AS label_color,
           c.name  AS collab_name
    FROM {source} t
    LEFT JOIN labels l ON l.label_id = t.label_id
    LEFT JOIN collaborations c ON c.collab_id = t.collab_id
"""


def _joined(source: str) -> str:
    return _JOINED_SELECT.format(source=source)


def _row_to_todo(row: Any) -> dict[str, Any]:
    todo = dict(row)
    todo["subtasks"] = decode_jsonb(todo.get("subtasks"), default=[])
    return todo


def _validate_priority(priority: Any) -> str:
    if priority is None:
        return DEFAULT_PRIORITY
    if priority not in PRIORITIES:
        raise ValidationError(f"Unknown priority: {priority!r}")
    return priority


async def resolve_project_id(
    pool: Any, email: str, project_ref: Any, collab_id: Any = None
) -> Any:
    """Resolve the project a new todo belongs to.

    - shared todos use the referenced project when it belongs to the same
      space, otherwise the space's ``Collabed`` project;
    - ``None`` or ``"Inbox"`` resolves to the caller's personal Inbox;
    - a UUID must name a project visible in the same owner context;
    - any other string is a project name, created when missing.
    """
    if project_ref is not None and is_uuid(project_ref):
        row = await pool.fetchrow(
            "SELECT * FROM projects WHERE project_id = $1",
            parse_uuid(project_ref, "project_id"),
        )
        if row is not None and row["collab_id"] == collab_id:
            if collab_id is not None or row["user_email"] == email:
                return row["project_id"]
        if collab_id is None:
            raise NotFoundError("Project not found")

    if collab_id is not None:
        project = await projects_ops.get_or_create_project(
            pool, email, projects_ops.COLLAB_PROJECT, collab_id
        )
        return project["project_id"]

    name = projects_ops.INBOX if not project_ref else str(project_ref).strip()
    if not name:
        name = projects_ops.INBOX
    project = await projects_ops.get_or_create_project(pool, email, name)
    return project["project_id"]


async def _move_target(pool: Any, email: str, current: Any, project_ref: Any) -> Any:
    """Return the project a todo may move to: same space, and the caller's own if personal."""
    project_uuid = parse_uuid(project_ref, "project_id")
    row = await pool.fetchrow("SELECT * FROM projects WHERE project_id = $1", project_uuid)
    if row is None or row["collab_id"] != current["collab_id"]:
        raise NotFoundError("Project not found")
    if current["collab_id"] is None and row["user_email"] != email:
        raise NotFoundError("Project not found")
    return project_uuid


async def list_todos(pool: Any, email: str) -> list[dict[str, Any]]:
    """Return visible todos in creation order."""
    rows = await pool.fetch(
        _joined("todos") + f" WHERE {visible_clause('t')} ORDER BY t.created_at ASC",
        email,
    )
    return [_row_to_todo(r) for r in rows]


async def create_todo(pool: Any, email: str, data: dict[str, Any]) -> dict[str, Any]:
    title = require_text(data.get("title"), "title")
    priority = _validate_priority(data.get("priority"))
    collab_id = parse_optional_uuid(data.get("collab_id"), "collab_id")
    if collab_id is not None:
        await require_writer(pool, collab_id, email)

    label_id = await require_own_label(pool, email, data.get("label_id"))
    project_id = await resolve_project_id(pool, email, data.get("project_id"), collab_id)

    with store_errors(missing_parent="Project, label or collaboration not found"):
        row = await pool.fetchrow(
            "WITH t AS ("
            " INSERT INTO todos"
            " (user_email, project_id, title, description, due_date, priority,"
            "  label_id, subtasks, collab_id)"
            " VALUES ($1, $2, $3, $4, $5, $6, $7, $8::jsonb, $9) RETURNING *)" + _joined("t"),
            email,
            project_id,
            title,
            data.get("description"),
            data.get("due_date"),
            priority,
            label_id,
            json.dumps(data.get("subtasks") or []),
            collab_id,
        )
    logger.info("Created todo %s in project %s", row["todo_id"], project_id)
    return _row_to_todo(row)


async def update_todo(
    pool: Any, email: str, todo_id: Any, changes: dict[str, Any]
) -> dict[str, Any]:
    """Apply a partial patch; toggling ``completed`` stamps ``completed_at``."""
    todo_uuid = parse_uuid(todo_id, "todo_id")
    current = await pool.fetchrow("SELECT * FROM todos WHERE todo_id = $1", todo_uuid)
    await ensure_can_write(pool, current, email, "Todo")

    changes = {k: v for k, v in changes.items() if k != "completed_at"}
    if "title" in changes:
        changes["title"] = require_text(changes["title"], "title")
    if "priority" in changes:
        if changes["priority"] is None:
            raise ValidationError("priority cannot be null")
        changes["priority"] = _validate_priority(changes["priority"])
    if "label_id" in changes:
        changes["label_id"] = await require_own_label(pool, email, changes["label_id"])
    if "project_id" in changes:
        changes["project_id"] = await _move_target(pool, email, current, changes["project_id"])
    if "subtasks" in changes:
        changes["subtasks"] = json.dumps(changes["subtasks"] or [])
    if "completed" in changes:
        changes["completed"] = bool(changes["completed"])
        changes["completed_at"] = datetime.now(UTC) if changes["completed"] else None

    sql, args = build_update(
        "todos",
        "todo_id",
        todo_uuid,
        changes,
        _UPDATABLE,
        casts={"subtasks": "::jsonb"},
    )
    with store_errors(missing_parent="Project or label not found"):
        row = await pool.fetchrow(f"WITH t AS ({sql})" + _joined("t"), *args)
    return _row_to_todo(row)


async def delete_todo(pool: Any, email: str, todo_id: Any) -> None:
    todo_uuid = parse_uuid(todo_id, "todo_id")
    current = await pool.fetchrow("SELECT * FROM todos WHERE todo_id = $1", todo_uuid)
    await ensure_can_write(pool, current, email, "Todo")
    await pool.execute("DELETE FROM todos WHERE todo_id = $1", todo_uuid)
    logger.info("Deleted todo %s", todo_uuid)
