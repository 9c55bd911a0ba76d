"""Invitation rows.

An invitation moves from ``pending`` to ``accepted`` or ``declined``
exactly once. Accepting inserts the membership row in the same transaction
as the status change; the status update is conditional on the row still
being pending so two concurrent responses cannot both succeed.
"""

from __future__ import annotations

import logging
from typing import Any

from eventide.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from eventide.resources._common import (
    MANAGE_ROLES,
    ROLE_EDITOR,
    member_role,
    parse_uuid,
    require_member,
    require_text,
    store_errors,
)
from eventide.resources.collaborations import fetch_collaboration
from eventide.resources.members import ASSIGNABLE_ROLES

logger = logging.getLogger(__name__)

STATUS_PENDING = "pending"
STATUS_ACCEPTED = "accepted"
STATUS_DECLINED = "declined"

STATUSES = (STATUS_PENDING, STATUS_ACCEPTED, STATUS_DECLINED)
RESPONSES = (STATUS_ACCEPTED, STATUS_DECLINED)

DEFAULT_INVITE_ROLE = ROLE_EDITOR

_ALREADY_INVITED = "This user has already been invited to this space."
_ALREADY_MEMBER = "This user is already a member of this space."


async def list_for_invitee(
    pool: Any, email: str, status: str | None = None
) -> list[dict[str, Any]]:
    """Return invitations addressed to *email*, newest first."""
    query = """
        SELECT i.*, c.name AS collab_name
        FROM invitations i
        JOIN collaborations c ON c.collab_id = i.collab_id
        WHERE i.invitee_email = $1
    """
    args: list[Any] = [email]
    if status is not None:
        if status not in STATUSES:
            raise ValidationError(f"status must be one of {', '.join(STATUSES)}")
        args.append(status)
        query += " AND i.status = $2"
    query += " ORDER BY i.created_at DESC"
    rows = await pool.fetch(query, *args)
    return [dict(r) for r in rows]


async def list_for_collab(pool: Any, email: str, collab_id: Any) -> list[dict[str, Any]]:
    """Return the pending invitations of a space (members only)."""
    collab_uuid = parse_uuid(collab_id, "collab_id")
    await require_member(pool, collab_uuid, email)
    rows = await pool.fetch(
        "SELECT * FROM invitations WHERE collab_id = $1 AND status = 'pending'"
        " ORDER BY created_at ASC",
        collab_uuid,
    )
    return [dict(r) for r in rows]


async def create_invitation(pool: Any, email: str, data: dict[str, Any]) -> dict[str, Any]:
    """Invite *invitee_email* into a space on behalf of an owner or admin."""
    collab = await fetch_collaboration(pool, data.get("collab_id"))
    collab_id = collab["collab_id"]
    invitee = require_text(data.get("invitee_email"), "invitee_email").lower()
    role = data.get("role") or DEFAULT_INVITE_ROLE
    if role not in ASSIGNABLE_ROLES:
        raise ValidationError(f"role must be one of {', '.join(ASSIGNABLE_ROLES)}")

    caller_role = await member_role(pool, collab_id, email)
    if caller_role not in MANAGE_ROLES:
        raise ForbiddenError("Only owners and admins can invite members")

    if await member_role(pool, collab_id, invitee) is not None:
        raise ConflictError(_ALREADY_MEMBER)

    pending = await pool.fetchval(
        "SELECT invite_id FROM invitations"
        " WHERE collab_id = $1 AND invitee_email = $2 AND status = 'pending'",
        collab_id,
        invitee,
    )
    if pending is not None:
        raise ConflictError(_ALREADY_INVITED)

    with store_errors(conflict=_ALREADY_INVITED, missing_parent="Collaboration not found"):
        row = await pool.fetchrow(
            "INSERT INTO invitations (collab_id, inviter_email, invitee_email, role, status)"
            " VALUES ($1, $2, $3, $4, 'pending') RETURNING *",
            collab_id,
            email,
            invitee,
            role,
        )
    logger.info("Invited %s to collaboration %s as %s", invitee, collab_id, role)
    result = dict(row)
    result["collab_name"] = collab["name"]
    return result


async def _fetch_invitation(pool: Any, invite_id: Any) -> dict[str, Any]:
    invite_uuid = parse_uuid(invite_id, "invite_id")
    row = await pool.fetchrow("SELECT * FROM invitations WHERE invite_id = $1", invite_uuid)
    if row is None:
        raise NotFoundError("Invitation not found")
    return dict(row)


async def respond_to_invitation(
    pool: Any, email: str, invite_id: Any, status: Any
) -> dict[str, Any]:
    """Accept or decline a pending invitation addressed to the caller.

    Raises
    ------
    ValidationError
        If *status* is not ``accepted`` or ``declined``.
    NotFoundError
        If the invitation does not exist.
    ForbiddenError
        If the caller is not the invitee.
    ConflictError
        If the invitation was already answered.
    """
    if status not in RESPONSES:
        raise ValidationError(f"status must be one of {', '.join(RESPONSES)}")

    invitation = await _fetch_invitation(pool, invite_id)
    if invitation["invitee_email"] != email:
        raise ForbiddenError("Only the invitee can respond to this invitation")
    if invitation["status"] != STATUS_PENDING:
        raise ConflictError(f"Invitation has already been {invitation['status']}")

    async with pool.acquire() as conn:
        async with conn.transaction():
            row = await conn.fetchrow(
                "UPDATE invitations SET status = $2"
                " WHERE invite_id = $1 AND status = 'pending' RETURNING *",
                invitation["invite_id"],
                status,
            )
            if row is None:
                raise ConflictError("Invitation has already been answered")
            if status == STATUS_ACCEPTED:
                await conn.execute(
                    "INSERT INTO collaboration_members (collab_id, user_email, role)"
                    " VALUES ($1, $2, $3)"
                    " ON CONFLICT (collab_id, user_email) DO NOTHING",
                    row["collab_id"],
                    email,
                    row["role"],
                )
    logger.info("Invitation %s %s by %s", row["invite_id"], status, email)
    return dict(row)


async def revoke_invitation(pool: Any, email: str, invite_id: Any) -> None:
    """Delete a pending invitation. Only owners and admins of the space may."""
    invitation = await _fetch_invitation(pool, invite_id)
    caller_role = await member_role(pool, invitation["collab_id"], email)
    if caller_role not in MANAGE_ROLES:
        raise ForbiddenError("Only owners and admins can revoke invitations")
    if invitation["status"] != STATUS_PENDING:
        raise ConflictError(f"Invitation has already been {invitation['status']}")
    await pool.execute("DELETE FROM invitations WHERE invite_id = $1", invitation["invite_id"])
    logger.info("Revoked invitation %s", invitation["invite_id"])
