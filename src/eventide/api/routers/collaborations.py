"""Collaboration space and membership endpoints.

Provides a single router mounted at ``/api/collaborations``:

- the spaces themselves (list, create, get, rename, delete);
- ``/{collab_id}/members`` for listing members, changing roles and
  removing members (or leaving).
"""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends

from eventide.api.db import DatabaseManager, pool_or_503
from eventide.api.deps import get_current_user
from eventide.api.models import MessageResponse
from eventide.api.models.collaborations import (
    Collaboration,
    CollaborationCreate,
    CollaborationRename,
    Member,
    MemberRoleUpdate,
)
from eventide.identity import Identity
from eventide.resources import collaborations as collab_ops
from eventide.resources import members as members_ops

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/collaborations", tags=["collaborations"])


def _get_db_manager() -> DatabaseManager:
    """Dependency stub -- overridden at app startup or in tests."""
    raise RuntimeError("DatabaseManager not initialized")


# ---------------------------------------------------------------------------
# Spaces
# ---------------------------------------------------------------------------


@router.get("", response_model=list[Collaboration])
async def list_collaborations(
    user: Identity = Depends(get_current_user),
    db: DatabaseManager = Depends(_get_db_manager),
) -> list[dict]:
    """Return the spaces the caller is a member of."""
    return await collab_ops.list_for_member(pool_or_503(db), user.email)


@router.post("", response_model=Collaboration, status_code=201)
async def create_collaboration(
    body: CollaborationCreate,
    user: Identity = Depends(get_current_user),
    db: DatabaseManager = Depends(_get_db_manager),
) -> dict:
    """Create a space; the caller becomes its owner."""
    return await collab_ops.create_collaboration(pool_or_503(db), user.email, body.model_dump())


@router.get("/{collab_id}", response_model=Collaboration)
async def get_collaboration(
    collab_id: UUID,
    user: Identity = Depends(get_current_user),
    db: DatabaseManager = Depends(_get_db_manager),
) -> dict:
    return await collab_ops.get_collaboration(pool_or_503(db), user.email, collab_id)


@router.patch("/{collab_id}", response_model=Collaboration)
async def rename_collaboration(
    collab_id: UUID,
    body: CollaborationRename,
    user: Identity = Depends(get_current_user),
    db: DatabaseManager = Depends(_get_db_manager),
) -> dict:
    """Rename a space. Only its owner may do this."""
    return await collab_ops.rename_collaboration(pool_or_503(db), user.email, collab_id, body.name)


@router.delete("/{collab_id}", response_model=MessageResponse)
async def delete_collaboration(
    collab_id: UUID,
    user: Identity = Depends(get_current_user),
    db: DatabaseManager = Depends(_get_db_manager),
) -> MessageResponse:
    await collab_ops.delete_collaboration(pool_or_503(db), user.email, collab_id)
    return MessageResponse(message="Collaboration deleted successfully")


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------


@router.get("/{collab_id}/members", response_model=list[Member])
async def list_members(
    collab_id: UUID,
    user: Identity = Depends(get_current_user),
    db: DatabaseManager = Depends(_get_db_manager),
) -> list[dict]:
    return await members_ops.list_members(pool_or_503(db), user.email, collab_id)


@router.patch("/{collab_id}/members/{member_email}", response_model=Member)
async def update_member_role(
    collab_id: UUID,
    member_email: str,
    body: MemberRoleUpdate,
    user: Identity = Depends(get_current_user),
    db: DatabaseManager = Depends(_get_db_manager),
) -> dict:
    return await members_ops.update_role(
        pool_or_503(db), user.email, collab_id, member_email, body.role
    )


@router.delete("/{collab_id}/members/{member_email}", response_model=MessageResponse)
async def remove_member(
    collab_id: UUID,
    member_email: str,
    user: Identity = Depends(get_current_user),
    db: DatabaseManager = Depends(_get_db_manager),
) -> MessageResponse:
    """Remove a member, or leave the space when *member_email* is the caller."""
    await members_ops.remove_member(pool_or_503(db), user.email, collab_id, member_email)
    return MessageResponse(message="Member removed successfully")
