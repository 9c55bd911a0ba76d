"""Notebook and note rows.

A note inherits its owner context (personal or shared) from its notebook.
Deleting a notebook removes its notes through the foreign-key cascade.
"""

from __future__ import annotations

import logging
from typing import Any

from eventide.resources._common import (
    build_update,
    ensure_can_write,
    parse_optional_uuid,
    parse_uuid,
    require_text,
    require_writer,
    store_errors,
    visible_clause,
)

logger = logging.getLogger(__name__)

DEFAULT_NOTE_TITLE = "Untitled Note"

_NOTE_UPDATABLE = ("title", "content")


# ---------------------------------------------------------------------------
# Notebooks
# ---------------------------------------------------------------------------


async def list_notebooks(pool: Any, email: str) -> list[dict[str, Any]]:
    """Return visible notebooks, newest first."""
    rows = await pool.fetch(
        "SELECT n.*, c.name AS collab_name FROM notebooks n"
        " LEFT JOIN collaborations c ON c.collab_id = n.collab_id"
        f" WHERE {visible_clause('n')} ORDER BY n.created_at DESC",
        email,
    )
    return [dict(r) for r in rows]


async def create_notebook(pool: Any, email: str, data: dict[str, Any]) -> dict[str, Any]:
    name = require_text(data.get("name"), "name")
    collab_id = parse_optional_uuid(data.get("collab_id"), "collab_id")
    if collab_id is not None:
        await require_writer(pool, collab_id, email)

    with store_errors(missing_parent="Collaboration not found"):
        row = await pool.fetchrow(
            "INSERT INTO notebooks (user_email, name, collab_id) VALUES ($1, $2, $3) RETURNING *",
            email,
            name,
            collab_id,
        )
    logger.info("Created notebook %s", row["notebook_id"])
    return dict(row)


async def delete_notebook(pool: Any, email: str, notebook_id: Any) -> None:
    notebook_uuid = parse_uuid(notebook_id, "notebook_id")
    current = await pool.fetchrow(
        "SELECT * FROM notebooks WHERE notebook_id = $1",
        notebook_uuid,
    )
    await ensure_can_write(pool, current, email, "Notebook")
    await pool.execute("DELETE FROM notebooks WHERE notebook_id = $1", notebook_uuid)
    logger.info("Deleted notebook %s", notebook_uuid)


# ---------------------------------------------------------------------------
# Notes
# ---------------------------------------------------------------------------


async def list_notes(pool: Any, email: str) -> list[dict[str, Any]]:
    """Return visible notes, most recently updated first."""
    rows = await pool.fetch(
        f"SELECT n.* FROM notes n WHERE {visible_clause('n')} ORDER BY n.updated_at DESC",
        email,
    )
    return [dict(r) for r in rows]


async def create_note(pool: Any, email: str, data: dict[str, Any]) -> dict[str, Any]:
    """Create a note inside a notebook the caller may write to."""
    notebook_uuid = parse_uuid(data.get("notebook_id"), "notebook_id")
    notebook = await pool.fetchrow(
        "SELECT * FROM notebooks WHERE notebook_id = $1",
        notebook_uuid,
    )
    await ensure_can_write(pool, notebook, email, "Notebook")

    title = (data.get("title") or "").strip() or DEFAULT_NOTE_TITLE
    with store_errors(missing_parent="Notebook not found"):
        row = await pool.fetchrow(
            "INSERT INTO notes (notebook_id, user_email, title, content, collab_id)"
            " VALUES ($1, $2, $3, $4, $5) RETURNING *",
            notebook_uuid,
            email,
            title,
            data.get("content") or "",
            notebook["collab_id"],
        )
    logger.info("Created note %s in notebook %s", row["note_id"], notebook_uuid)
    return dict(row)


async def update_note(
    pool: Any, email: str, note_id: Any, changes: dict[str, Any]
) -> dict[str, Any]:
    """Patch title/content and bump ``updated_at``."""
    note_uuid = parse_uuid(note_id, "note_id")
    current = await pool.fetchrow("SELECT * FROM notes WHERE note_id = $1", note_uuid)
    await ensure_can_write(pool, current, email, "Note")

    changes = dict(changes)
    if "title" in changes:
        changes["title"] = require_text(changes["title"], "title")
    if "content" in changes and changes["content"] is None:
        changes["content"] = ""

    sql, args = build_update(
        "notes",
        "note_id",
        note_uuid,
        changes,
        _NOTE_UPDATABLE,
        extra_set=("updated_at = now()",),
    )
    row = await pool.fetchrow(sql, *args)
    return dict(row)


async def delete_note(pool: Any, email: str, note_id: Any) -> None:
    note_uuid = parse_uuid(note_id, "note_id")
    current = await pool.fetchrow("SELECT * FROM notes WHERE note_id = $1", note_uuid)
    await ensure_can_write(pool, current, email, "Note")
    await pool.execute("DELETE FROM notes WHERE note_id = $1", note_uuid)
    logger.info("Deleted note %s", note_uuid)
