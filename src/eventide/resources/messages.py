"""Collaboration chat message rows.

A message may carry a client-generated ``client_key``. Posting the same key
twice in one space returns the stored row instead of inserting a duplicate.
"""

from __future__ import annotations

import logging
from typing import Any

from eventide.resources._common import parse_uuid, require_member, require_text

logger = logging.getLogger(__name__)


async def list_messages(pool: Any, email: str, collab_id: Any) -> list[dict[str, Any]]:
    """Return a space's messages in insertion order (members only)."""
    collab_uuid = parse_uuid(collab_id, "collab_id")
    await require_member(pool, collab_uuid, email)
    rows = await pool.fetch(
        "SELECT * FROM collaboration_messages WHERE collab_id = $1"
        " ORDER BY created_at ASC, message_id ASC",
        collab_uuid,
    )
    return [dict(r) for r in rows]


async def post_message(
    pool: Any, email: str, collab_id: Any, content: Any, client_key: str | None = None
) -> tuple[dict[str, Any], bool]:
    """Insert a message and return ``(row, created)``.

    ``created`` is False when *client_key* matched an existing message, in
    which case that earlier row is returned unchanged.
    """
    collab_uuid = parse_uuid(collab_id, "collab_id")
    await require_member(pool, collab_uuid, email)
    text = require_text(content, "content")
    client_key = client_key or None

    if client_key is None:
        row = await pool.fetchrow(
            "INSERT INTO collaboration_messages (collab_id, user_email, content)"
            " VALUES ($1, $2, $3) RETURNING *",
            collab_uuid,
            email,
            text,
        )
        return dict(row), True

    row = await pool.fetchrow(
        "INSERT INTO collaboration_messages (collab_id, user_email, content, client_key)"
        " VALUES ($1, $2, $3, $4)"
        " ON CONFLICT (collab_id, client_key) DO NOTHING RETURNING *",
        collab_uuid,
        email,
        text,
        client_key,
    )
    if row is not None:
        return dict(row), True

    existing = await pool.fetchrow(
        "SELECT * FROM collaboration_messages WHERE collab_id = $1 AND client_key = $2",
        collab_uuid,
        client_key,
    )
    logger.debug("Duplicate message key %s in %s", client_key, collab_uuid)
    return dict(existing), False
