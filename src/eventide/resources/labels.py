"""Label rows. Labels are strictly personal and referenced by events and todos."""

from __future__ import annotations

import logging
from typing import Any

from eventide.resources._common import (
    build_update,
    parse_uuid,
    require_own_label,
    require_text,
    store_errors,
)

logger = logging.getLogger(__name__)

_UPDATABLE = ("name", "color")


async def list_labels(pool: Any, email: str) -> list[dict[str, Any]]:
    rows = await pool.fetch(
        "SELECT * FROM labels WHERE user_email = $1 ORDER BY name ASC",
        email,
    )
    return [dict(r) for r in rows]


async def create_label(pool: Any, email: str, data: dict[str, Any]) -> dict[str, Any]:
    name = require_text(data.get("name"), "name")
    color = require_text(data.get("color"), "color")
    with store_errors(conflict=f"A label named '{name}' already exists"):
        row = await pool.fetchrow(
            "INSERT INTO labels (user_email, name, color) VALUES ($1, $2, $3) RETURNING *",
            email,
            name,
            color,
        )
    return dict(row)


async def update_label(
    pool: Any, email: str, label_id: Any, changes: dict[str, Any]
) -> dict[str, Any]:
    label_uuid = await require_own_label(pool, email, parse_uuid(label_id, "label_id"))
    changes = dict(changes)
    for field in _UPDATABLE:
        if field in changes:
            changes[field] = require_text(changes[field], field)
    sql, args = build_update("labels", "label_id", label_uuid, changes, _UPDATABLE)
    with store_errors(conflict="A label with that name already exists"):
        row = await pool.fetchrow(sql, *args)
    return dict(row)


async def delete_label(pool: Any, email: str, label_id: Any) -> None:
    """Delete a label; referencing events/todos are unset by the schema."""
    label_uuid = await require_own_label(pool, email, parse_uuid(label_id, "label_id"))
    await pool.execute("DELETE FROM labels WHERE label_id = $1", label_uuid)
    logger.info("Deleted label %s", label_uuid)
