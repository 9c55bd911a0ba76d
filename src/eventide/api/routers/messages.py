"""Collaboration chat endpoints.

Provides a router mounted at ``/api/collaborations/{collab_id}/messages``
with history, posting and a Server-Sent Events stream of new messages.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncGenerator
from uuid import UUID

from fastapi import APIRouter, Depends
from starlette.requests import Request
from starlette.responses import StreamingResponse

from eventide.api.db import DatabaseManager, pool_or_503
from eventide.api.deps import get_current_user, get_message_feed
from eventide.api.models.collaborations import ChatMessage, ChatMessageCreate
from eventide.identity import Identity
from eventide.realtime import SHUTDOWN, MessageFeed
from eventide.resources import messages as messages_ops
from eventide.resources._common import require_member

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/collaborations", tags=["collaborations", "messages"])

KEEPALIVE_SECONDS = 30.0


def _get_db_manager() -> DatabaseManager:
    """Dependency stub -- overridden at app startup or in tests."""
    raise RuntimeError("DatabaseManager not initialized")


@router.get("/{collab_id}/messages", response_model=list[ChatMessage])
async def list_messages(
    collab_id: UUID,
    user: Identity = Depends(get_current_user),
    db: DatabaseManager = Depends(_get_db_manager),
) -> list[dict]:
    """Return the space's chat history in insertion order."""
    return await messages_ops.list_messages(pool_or_503(db), user.email, collab_id)


@router.post("/{collab_id}/messages", response_model=ChatMessage, status_code=201)
async def post_message(
    collab_id: UUID,
    body: ChatMessageCreate,
    user: Identity = Depends(get_current_user),
    db: DatabaseManager = Depends(_get_db_manager),
    feed: MessageFeed = Depends(get_message_feed),
) -> dict:
    """Post a message and fan it out to the space's stream subscribers.

    Re-posting a ``client_key`` already stored returns the original message
    without publishing it again.
    """
    row, created = await messages_ops.post_message(
        pool_or_503(db), user.email, collab_id, body.content, body.client_key
    )
    if created:
        feed.publish(collab_id, row)
    return row


async def _message_stream(
    request: Request, feed: MessageFeed, collab_id: UUID
) -> AsyncGenerator[str, None]:
    """Yield SSE-formatted messages until the client disconnects."""
    queue = feed.subscribe(collab_id)
    try:
        yield "event: connected\ndata: {\"status\": \"ok\"}\n\n"

        while True:
            if await request.is_disconnected():
                break
            try:
                message = await asyncio.wait_for(queue.get(), timeout=KEEPALIVE_SECONDS)
                if message is SHUTDOWN:
                    break
                payload = ChatMessage.model_validate(message).model_dump_json()
                yield f"event: message\ndata: {payload}\n\n"
            except TimeoutError:
                yield ": keepalive\n\n"
    finally:
        feed.unsubscribe(collab_id, queue)


@router.get("/{collab_id}/messages/stream")
async def stream_messages(
    collab_id: UUID,
    request: Request,
    user: Identity = Depends(get_current_user),
    db: DatabaseManager = Depends(_get_db_manager),
    feed: MessageFeed = Depends(get_message_feed),
) -> StreamingResponse:
    """Server-Sent Events stream of messages posted after connecting.

    Event types:
    - connected: Initial connection confirmation
    - message: A newly inserted chat message row
    """
    await require_member(pool_or_503(db), collab_id, user.email)
    return StreamingResponse(
        _message_stream(request, feed, collab_id),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
