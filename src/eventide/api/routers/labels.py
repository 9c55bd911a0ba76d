"""Label endpoints, mounted at ``/api/labels``. Labels are private to their owner."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends

from eventide.api.db import DatabaseManager, pool_or_503
from eventide.api.deps import get_current_user
from eventide.api.models import MessageResponse
from eventide.api.models.labels import Label, LabelCreate, LabelUpdate
from eventide.identity import Identity
from eventide.resources import labels as labels_ops

router = APIRouter(prefix="/api/labels", tags=["labels"])


def _get_db_manager() -> DatabaseManager:
    """Dependency stub -- overridden at app startup or in tests."""
    raise RuntimeError("DatabaseManager not initialized")


@router.get("", response_model=list[Label])
async def list_labels(
    user: Identity = Depends(get_current_user),
    db: DatabaseManager = Depends(_get_db_manager),
) -> list[dict]:
    return await labels_ops.list_labels(pool_or_503(db), user.email)


@router.post("", response_model=Label, status_code=201)
async def create_label(
    body: LabelCreate,
    user: Identity = Depends(get_current_user),
    db: DatabaseManager = Depends(_get_db_manager),
) -> dict:
    return await labels_ops.create_label(pool_or_503(db), user.email, body.model_dump())


@router.patch("/{label_id}", response_model=Label)
async def update_label(
    label_id: UUID,
    body: LabelUpdate,
    user: Identity = Depends(get_current_user),
    db: DatabaseManager = Depends(_get_db_manager),
) -> dict:
    return await labels_ops.update_label(
        pool_or_503(db), user.email, label_id, body.model_dump(exclude_unset=True)
    )


@router.delete("/{label_id}", response_model=MessageResponse)
async def delete_label(
    label_id: UUID,
    user: Identity = Depends(get_current_user),
    db: DatabaseManager = Depends(_get_db_manager),
) -> MessageResponse:
    await labels_ops.delete_label(pool_or_503(db), user.email, label_id)
    return MessageResponse(message="Label deleted successfully")
