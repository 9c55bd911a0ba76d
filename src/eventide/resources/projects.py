"""Todo project rows.

Every user has a personal ``Inbox`` project and each collaboration space
gets a ``Collabed`` project on first use; both are created on demand.
"""

from __future__ import annotations

import logging
from typing import Any

from eventide.resources._common import (
    ensure_can_write,
    parse_optional_uuid,
    parse_uuid,
    require_text,
    require_writer,
    store_errors,
    visible_clause,
)
from eventide.views import sort_projects

logger = logging.getLogger(__name__)

INBOX = "Inbox"
COLLAB_PROJECT = "Collabed"


async def list_projects(pool: Any, email: str) -> list[dict[str, Any]]:
    """Return visible projects in creation order with ``Inbox`` first."""
    rows = await pool.fetch(
        "SELECT p.*, c.name AS collab_name FROM projects p"
        " LEFT JOIN collaborations c ON c.collab_id = p.collab_id"
        f" WHERE {visible_clause('p')} ORDER BY p.created_at ASC",
        email,
    )
    return sort_projects([dict(r) for r in rows])


async def create_project(pool: Any, email: str, data: dict[str, Any]) -> dict[str, Any]:
    name = require_text(data.get("name"), "name")
    collab_id = parse_optional_uuid(data.get("collab_id"), "collab_id")
    if collab_id is not None:
        await require_writer(pool, collab_id, email)

    with store_errors(missing_parent="Collaboration not found"):
        row = await pool.fetchrow(
            "INSERT INTO projects (user_email, name, collab_id) VALUES ($1, $2, $3) RETURNING *",
            email,
            name,
            collab_id,
        )
    logger.info("Created project %s (%s)", row["project_id"], name)
    return dict(row)


async def find_project_by_name(
    pool: Any, email: str, name: str, collab_id: Any = None
) -> dict[str, Any] | None:
    """Find a project by case-insensitive name in one owner context.

    Personal lookups match the caller's projects without a collaboration;
    shared lookups match any project of *collab_id*.
    """
    if collab_id is None:
        row = await pool.fetchrow(
            "SELECT * FROM projects WHERE user_email = $1 AND collab_id IS NULL"
            " AND lower(name) = lower($2) ORDER BY created_at LIMIT 1",
            email,
            name,
        )
    else:
        row = await pool.fetchrow(
            "SELECT * FROM projects WHERE collab_id = $1"
            " AND lower(name) = lower($2) ORDER BY created_at LIMIT 1",
            collab_id,
            name,
        )
    return dict(row) if row is not None else None


async def get_or_create_project(
    pool: Any, email: str, name: str, collab_id: Any = None
) -> dict[str, Any]:
    """Return the named project in the given context, creating it if absent."""
    existing = await find_project_by_name(pool, email, name, collab_id)
    if existing is not None:
        return existing
    return await create_project(pool, email, {"name": name, "collab_id": collab_id})


async def delete_project(pool: Any, email: str, project_id: Any) -> None:
    """Delete a project; its todos go with it via the foreign-key cascade."""
    project_uuid = parse_uuid(project_id, "project_id")
    current = await pool.fetchrow("SELECT * FROM projects WHERE project_id = $1", project_uuid)
    await ensure_can_write(pool, current, email, "Project")
    await pool.execute("DELETE FROM projects WHERE project_id = $1", project_uuid)
    logger.info("Deleted project %s", project_uuid)
