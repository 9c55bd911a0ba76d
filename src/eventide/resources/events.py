"""Calendar event rows.

Events are listed with their label and collaboration name joined in.
Indefinite events carry no ``datetime``.
"""

from __future__ import annotations

import logging
from typing import Any

from eventide.errors import ValidationError
from eventide.resources._common import (
    build_update,
    ensure_can_write,
    parse_optional_uuid,
    parse_uuid,
    require_own_label,
    require_text,
    require_writer,
    store_errors,
    visible_clause,
)

logger = logging.getLogger(__name__)

CATEGORIES = ("Personal", "Work", "Social", "Health", "Other")

_UPDATABLE = ("title", "details", "datetime", "is_indefinite", "category", "label_id")

_JOINED_SELECT = """
    SELECT e.*,
           l.name  AS label_name,
           l.color AS label_color,
           c.name  AS collab_name
    FROM {source} e
    LEFT JOIN labels l ON l.label_id = e.label_id
    LEFT JOIN collaborations c ON c.collab_id = e.collab_id
"""


def _joined(source: str) -> str:
    return _JOINED_SELECT.format(source=source)


def _validate_category(category: Any) -> None:
    if category is not None and category not in CATEGORIES:
        raise ValidationError(f"Unknown category: {category!r}")


async def list_events(pool: Any, email: str) -> list[dict[str, Any]]:
    """Return the caller's personal events plus those of their collaborations.

    Newest first; indefinite events (no datetime) sort last.
    """
    rows = await pool.fetch(
        _joined("events")
        + f" WHERE {visible_clause('e')} ORDER BY e.datetime DESC NULLS LAST, e.created_at DESC",
        email,
    )
    return [dict(r) for r in rows]


async def create_event(pool: Any, email: str, data: dict[str, Any]) -> dict[str, Any]:
    """Insert a new event owned by *email* (or shared into ``collab_id``)."""
    title = require_text(data.get("title"), "title")
    is_indefinite = bool(data.get("is_indefinite", False))
    when = None if is_indefinite else data.get("datetime")
    if not is_indefinite and when is None:
        raise ValidationError("datetime is required unless the event is indefinite")
    _validate_category(data.get("category"))

    collab_id = parse_optional_uuid(data.get("collab_id"), "collab_id")
    if collab_id is not None:
        await require_writer(pool, collab_id, email)
    label_id = await require_own_label(pool, email, data.get("label_id"))

    with store_errors(missing_parent="Label or collaboration not found"):
        row = await pool.fetchrow(
            "WITH e AS ("
            " INSERT INTO events"
            " (user_email, title, details, datetime, is_indefinite, category, label_id, collab_id)"
            " VALUES ($1, $2, $3, $4, $5, $6, $7, $8) RETURNING *)" + _joined("e"),
            email,
            title,
            data.get("details") or "",
            when,
            is_indefinite,
            data.get("category"),
            label_id,
            collab_id,
        )
    logger.info("Created event %s", row["event_id"])
    return dict(row)


async def update_event(
    pool: Any, email: str, event_id: Any, changes: dict[str, Any]
) -> dict[str, Any]:
    """Apply a partial patch to an event the caller may edit."""
    event_uuid = parse_uuid(event_id, "event_id")
    current = await pool.fetchrow("SELECT * FROM events WHERE event_id = $1", event_uuid)
    await ensure_can_write(pool, current, email, "Event")

    changes = dict(changes)
    if "title" in changes:
        changes["title"] = require_text(changes["title"], "title")
    if "category" in changes:
        _validate_category(changes["category"])
    if "label_id" in changes:
        changes["label_id"] = await require_own_label(pool, email, changes["label_id"])
    if "is_indefinite" in changes and changes["is_indefinite"] is None:
        raise ValidationError("is_indefinite cannot be null")
    if changes.get("is_indefinite"):
        changes["datetime"] = None
    is_indefinite = changes.get("is_indefinite", current["is_indefinite"])
    when = changes.get("datetime", current["datetime"])
    if not is_indefinite and when is None:
        raise ValidationError("datetime is required unless the event is indefinite")

    sql, args = build_update("events", "event_id", event_uuid, changes, _UPDATABLE)
    with store_errors(missing_parent="Label not found"):
        row = await pool.fetchrow(f"WITH e AS ({sql})" + _joined("e"), *args)
    return dict(row)


async def delete_event(pool: Any, email: str, event_id: Any) -> None:
    event_uuid = parse_uuid(event_id, "event_id")
    current = await pool.fetchrow("SELECT * FROM events WHERE event_id = $1", event_uuid)
    await ensure_can_write(pool, current, email, "Event")
    await pool.execute("DELETE FROM events WHERE event_id = $1", event_uuid)
    logger.info("Deleted event %s", event_uuid)
