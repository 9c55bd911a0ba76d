"""Collaboration space rows.

Creating a space inserts the space and its ``owner`` member row in one
transaction. Deleting a space removes its members, invitations, messages
and shared content through the schema's cascades.
"""

from __future__ import annotations

import logging
from typing import Any

from eventide.errors import ForbiddenError, NotFoundError
from eventide.resources._common import ROLE_OWNER, member_role, parse_uuid, require_text

logger = logging.getLogger(__name__)


async def list_for_member(pool: Any, email: str) -> list[dict[str, Any]]:
    """Return the spaces *email* belongs to, with the caller's role."""
    rows = await pool.fetch(
        """
        SELECT c.*, m.role AS my_role
        FROM collaborations c
        JOIN collaboration_members m ON m.collab_id = c.collab_id
        WHERE m.user_email = $1
        ORDER BY c.created_at ASC
        """,
        email,
    )
    return [dict(r) for r in rows]


async def create_collaboration(pool: Any, email: str, data: dict[str, Any]) -> dict[str, Any]:
    """Create a space owned by *email* and register the owner membership."""
    name = require_text(data.get("name"), "name")
    async with pool.acquire() as conn:
        async with conn.transaction():
            row = await conn.fetchrow(
                "INSERT INTO collaborations (name, owner_email) VALUES ($1, $2) RETURNING *",
                name,
                email,
            )
            await conn.execute(
                "INSERT INTO collaboration_members (collab_id, user_email, role)"
                " VALUES ($1, $2, $3)",
                row["collab_id"],
                email,
                ROLE_OWNER,
            )
    logger.info("Created collaboration %s owned by %s", row["collab_id"], email)
    result = dict(row)
    result["my_role"] = ROLE_OWNER
    return result


async def fetch_collaboration(pool: Any, collab_id: Any) -> dict[str, Any]:
    """Return the space row or raise ``NotFoundError``."""
    collab_uuid = parse_uuid(collab_id, "collab_id")
    row = await pool.fetchrow("SELECT * FROM collaborations WHERE collab_id = $1", collab_uuid)
    if row is None:
        raise NotFoundError("Collaboration not found")
    return dict(row)


async def get_collaboration(pool: Any, email: str, collab_id: Any) -> dict[str, Any]:
    """Return a space for one of its members; anyone else sees a 404."""
    collab = await fetch_collaboration(pool, collab_id)
    role = await member_role(pool, collab["collab_id"], email)
    if role is None:
        raise NotFoundError("Collaboration not found")
    collab["my_role"] = role
    return collab


async def rename_collaboration(
    pool: Any, email: str, collab_id: Any, name: Any
) -> dict[str, Any]:
    collab = await fetch_collaboration(pool, collab_id)
    if collab["owner_email"] != email:
        raise ForbiddenError("Only the owner can rename the space")
    new_name = require_text(name, "name")
    row = await pool.fetchrow(
        "UPDATE collaborations SET name = $2 WHERE collab_id = $1 RETURNING *",
        collab["collab_id"],
        new_name,
    )
    logger.info("Renamed collaboration %s", collab["collab_id"])
    return dict(row)


async def delete_collaboration(pool: Any, email: str, collab_id: Any) -> None:
    collab = await fetch_collaboration(pool, collab_id)
    if collab["owner_email"] != email:
        raise ForbiddenError("Only the owner can delete the space")
    await pool.execute("DELETE FROM collaborations WHERE collab_id = $1", collab["collab_id"])
    logger.info("Deleted collaboration %s", collab["collab_id"])
