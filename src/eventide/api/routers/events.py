"""Calendar event endpoints.

Provides a router mounted at ``/api/events``. Listing returns the caller's
personal events plus those of every collaboration they belong to.
"""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends

from eventide.api.db import DatabaseManager, pool_or_503
from eventide.api.deps import get_current_user
from eventide.api.models import MessageResponse
from eventide.api.models.events import Event, EventCreate, EventUpdate
from eventide.identity import Identity
from eventide.resources import events as events_ops

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/events", tags=["events"])


def _get_db_manager() -> DatabaseManager:
    """Dependency stub -- overridden at app startup or in tests."""
    raise RuntimeError("DatabaseManager not initialized")


@router.get("", response_model=list[Event])
async def list_events(
    user: Identity = Depends(get_current_user),
    db: DatabaseManager = Depends(_get_db_manager),
) -> list[dict]:
    """Return visible events, newest first with indefinite events last."""
    return await events_ops.list_events(pool_or_503(db), user.email)


@router.post("", response_model=Event, status_code=201)
async def create_event(
    body: EventCreate,
    user: Identity = Depends(get_current_user),
    db: DatabaseManager = Depends(_get_db_manager),
) -> dict:
    return await events_ops.create_event(pool_or_503(db), user.email, body.model_dump())


@router.patch("/{event_id}", response_model=Event)
async def update_event(
    event_id: UUID,
    body: EventUpdate,
    user: Identity = Depends(get_current_user),
    db: DatabaseManager = Depends(_get_db_manager),
) -> dict:
    return await events_ops.update_event(
        pool_or_503(db), user.email, event_id, body.model_dump(exclude_unset=True)
    )


@router.delete("/{event_id}", response_model=MessageResponse)
async def delete_event(
    event_id: UUID,
    user: Identity = Depends(get_current_user),
    db: DatabaseManager = Depends(_get_db_manager),
) -> MessageResponse:
    await events_ops.delete_event(pool_or_503(db), user.email, event_id)
    return MessageResponse(message="Event deleted successfully")
