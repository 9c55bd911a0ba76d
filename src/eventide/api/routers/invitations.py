"""Invitation endpoints.

Provides a router mounted at ``/api``:

- ``/invitations`` — the caller's invitations, sending, answering, revoking;
- ``/collaborations/{collab_id}/invitations`` — a space's pending invitations.
"""

from __future__ import annotations

from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from eventide.api.db import DatabaseManager, pool_or_503
from eventide.api.deps import get_current_user
from eventide.api.models import MessageResponse
from eventide.api.models.collaborations import (
    Invitation,
    InvitationCreate,
    InvitationResponse,
)
from eventide.identity import Identity
from eventide.resources import invitations as invitations_ops

router = APIRouter(prefix="/api", tags=["invitations"])


def _get_db_manager() -> DatabaseManager:
    """Dependency stub -- overridden at app startup or in tests."""
    raise RuntimeError("DatabaseManager not initialized")


@router.get("/invitations", response_model=list[Invitation])
async def list_my_invitations(
    status: Literal["pending", "accepted", "declined"] | None = Query(default=None),
    user: Identity = Depends(get_current_user),
    db: DatabaseManager = Depends(_get_db_manager),
) -> list[dict]:
    """Return invitations addressed to the caller, optionally filtered by status."""
    return await invitations_ops.list_for_invitee(pool_or_503(db), user.email, status)


@router.get("/collaborations/{collab_id}/invitations", response_model=list[Invitation])
async def list_space_invitations(
    collab_id: UUID,
    user: Identity = Depends(get_current_user),
    db: DatabaseManager = Depends(_get_db_manager),
) -> list[dict]:
    return await invitations_ops.list_for_collab(pool_or_503(db), user.email, collab_id)


@router.post("/invitations", response_model=Invitation, status_code=201)
async def create_invitation(
    body: InvitationCreate,
    user: Identity = Depends(get_current_user),
    db: DatabaseManager = Depends(_get_db_manager),
) -> dict:
    """Invite someone into a space. The caller must be its owner or an admin."""
    return await invitations_ops.create_invitation(pool_or_503(db), user.email, body.model_dump())


@router.patch("/invitations/{invite_id}", response_model=Invitation)
async def respond_to_invitation(
    invite_id: UUID,
    body: InvitationResponse,
    user: Identity = Depends(get_current_user),
    db: DatabaseManager = Depends(_get_db_manager),
) -> dict:
    """Accept or decline an invitation addressed to the caller."""
    return await invitations_ops.respond_to_invitation(
        pool_or_503(db), user.email, invite_id, body.status
    )


@router.delete("/invitations/{invite_id}", response_model=MessageResponse)
async def revoke_invitation(
    invite_id: UUID,
    user: Identity = Depends(get_current_user),
    db: DatabaseManager = Depends(_get_db_manager),
) -> MessageResponse:
    await invitations_ops.revoke_invitation(pool_or_503(db), user.email, invite_id)
    return MessageResponse(message="Invitation revoked")
