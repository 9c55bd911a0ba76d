"""Collaboration membership rows.

The owner's membership is fixed: it is never demoted or removed here.
Owners and admins manage other members; any member may leave.
"""

from __future__ import annotations

import logging
from typing import Any

from eventide.errors import ForbiddenError, NotFoundError, ValidationError
from eventide.resources._common import (
    MANAGE_ROLES,
    ROLE_ADMIN,
    ROLE_EDITOR,
    ROLE_OWNER,
    ROLE_VIEWER,
    parse_uuid,
    require_member,
)

logger = logging.getLogger(__name__)

ASSIGNABLE_ROLES = (ROLE_ADMIN, ROLE_EDITOR, ROLE_VIEWER)


async def list_members(pool: Any, email: str, collab_id: Any) -> list[dict[str, Any]]:
    """Return the members of a space, owner first then by join time."""
    collab_uuid = parse_uuid(collab_id, "collab_id")
    await require_member(pool, collab_uuid, email)
    rows = await pool.fetch(
        """
        SELECT * FROM collaboration_members
        WHERE collab_id = $1
        ORDER BY (role = 'owner') DESC, joined_at ASC
        """,
        collab_uuid,
    )
    return [dict(r) for r in rows]


async def _fetch_member(pool: Any, collab_id: Any, member_email: str) -> dict[str, Any]:
    row = await pool.fetchrow(
        "SELECT * FROM collaboration_members WHERE collab_id = $1 AND user_email = $2",
        collab_id,
        member_email,
    )
    if row is None:
        raise NotFoundError("Member not found")
    return dict(row)


async def update_role(
    pool: Any, email: str, collab_id: Any, member_email: str, role: Any
) -> dict[str, Any]:
    """Change a member's role. Only owners and admins may do this."""
    collab_uuid = parse_uuid(collab_id, "collab_id")
    if role not in ASSIGNABLE_ROLES:
        raise ValidationError(f"role must be one of {', '.join(ASSIGNABLE_ROLES)}")

    caller_role = await require_member(pool, collab_uuid, email)
    if caller_role not in MANAGE_ROLES:
        raise ForbiddenError("Only owners and admins can change member roles")

    member_email = member_email.strip().lower()
    target = await _fetch_member(pool, collab_uuid, member_email)
    if target["role"] == ROLE_OWNER:
        raise ForbiddenError("The owner's role cannot be changed")

    row = await pool.fetchrow(
        "UPDATE collaboration_members SET role = $3"
        " WHERE collab_id = $1 AND user_email = $2 RETURNING *",
        collab_uuid,
        member_email,
        role,
    )
    logger.info("Changed role of %s in %s to %s", member_email, collab_uuid, role)
    return dict(row)


async def remove_member(pool: Any, email: str, collab_id: Any, member_email: str) -> None:
    """Remove a member, or let the caller leave the space."""
    collab_uuid = parse_uuid(collab_id, "collab_id")
    caller_role = await require_member(pool, collab_uuid, email)

    member_email = member_email.strip().lower()
    target = await _fetch_member(pool, collab_uuid, member_email)
    if target["role"] == ROLE_OWNER:
        raise ForbiddenError("The owner cannot be removed from the space")
    if member_email != email and caller_role not in MANAGE_ROLES:
        raise ForbiddenError("Only owners and admins can remove members")

    await pool.execute(
        "DELETE FROM collaboration_members WHERE collab_id = $1 AND user_email = $2",
        collab_uuid,
        member_email,
    )
    logger.info("Removed %s from collaboration %s", member_email, collab_uuid)
