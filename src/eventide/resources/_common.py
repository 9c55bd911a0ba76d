"""Shared helpers for the row-store access functions.

Covers identifier parsing, JSONB decoding, partial-update SQL building,
membership lookups and the translation of asyncpg constraint errors into
the domain error taxonomy.
"""

from __future__ import annotations

import json
import uuid
from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager
from typing import Any

import asyncpg

from eventide.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError

ROLE_OWNER = "owner"
ROLE_ADMIN = "admin"
ROLE_EDITOR = "editor"
ROLE_VIEWER = "viewer"

MANAGE_ROLES = frozenset({ROLE_OWNER, ROLE_ADMIN})
WRITE_ROLES = frozenset({ROLE_OWNER, ROLE_ADMIN, ROLE_EDITOR})

# Rows visible to a caller: their own, plus everything in spaces they belong to.
VISIBLE_TO_CALLER = (
    "({alias}.user_email = $1 OR {alias}.collab_id IN "
    "(SELECT collab_id FROM collaboration_members WHERE user_email = $1))"
)


def visible_clause(alias: str) -> str:
    """Return the visibility predicate for table alias *alias* (caller email is ``$1``)."""
    return VISIBLE_TO_CALLER.format(alias=alias)


def parse_uuid(value: Any, field: str) -> uuid.UUID:
    """Parse *value* as a UUID or raise ``ValidationError`` naming *field*."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (ValueError, AttributeError, TypeError):
        raise ValidationError(f"Invalid {field}: {value!r}")


def parse_optional_uuid(value: Any, field: str) -> uuid.UUID | None:
    """Parse an optional UUID; ``None`` and empty strings map to ``None``."""
    if value is None or value == "":
        return None
    return parse_uuid(value, field)


def is_uuid(value: Any) -> bool:
    """Return True when *value* looks like a UUID."""
    try:
        parse_uuid(value, "id")
    except ValidationError:
        return False
    return True


def decode_jsonb(value: Any, default: Any = None) -> Any:
    """Decode a JSONB column that asyncpg may hand back as text."""
    if value is None:
        return default
    if isinstance(value, str):
        return json.loads(value)
    return value


def require_text(value: Any, field: str) -> str:
    """Return *value* stripped, or raise ``ValidationError`` if it is blank."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"A valid {field} is required")
    return value.strip()


def build_update(
    table: str,
    key_column: str,
    key: Any,
    changes: Mapping[str, Any],
    allowed: Iterable[str],
    *,
    casts: Mapping[str, str] | None = None,
    extra_set: Iterable[str] = (),
) -> tuple[str, list[Any]]:
    """Build a parameterized ``UPDATE ... RETURNING *`` for a partial patch.

    Only columns listed in *allowed* are written; anything else in
    *changes* is ignored. Column names never come from user input, only
    from *allowed*. *extra_set* holds literal assignments such as
    ``"updated_at = now()"``.

    Raises
    ------
    ValidationError
        If the patch touches no writable column.
    """
    casts = casts or {}
    assignments: list[str] = []
    args: list[Any] = [key]
    for column in allowed:
        if column not in changes:
            continue
        args.append(changes[column])
        cast = casts.get(column, "")
        assignments.append(f"{column} = ${len(args)}{cast}")

    if not assignments:
        raise ValidationError("No updatable fields provided")

    assignments.extend(extra_set)
    sql = f"UPDATE {table} SET {', '.join(assignments)} WHERE {key_column} = $1 RETURNING *"
    return sql, args


@contextmanager
def store_errors(
    *,
    conflict: str = "A row with the same key already exists",
    missing_parent: str = "Referenced row does not exist",
) -> Iterator[None]:
    """Translate asyncpg constraint violations into domain errors.

    Unique violations become ``ConflictError`` (409); foreign-key violations
    become ``NotFoundError`` (404); not-null and check violations become
    ``ValidationError`` (400). Everything else propagates unchanged and is
    reported as a 500 by the API layer.
    """
    try:
        yield
    except asyncpg.UniqueViolationError as exc:
        raise ConflictError(conflict) from exc
    except asyncpg.ForeignKeyViolationError as exc:
        raise NotFoundError(missing_parent) from exc
    except (asyncpg.NotNullViolationError, asyncpg.CheckViolationError) as exc:
        raise ValidationError(str(exc)) from exc


# ---------------------------------------------------------------------------
# Membership
# ---------------------------------------------------------------------------


async def member_role(pool: Any, collab_id: uuid.UUID, email: str) -> str | None:
    """Return *email*'s role in *collab_id*, or None when not a member."""
    return await pool.fetchval(
        "SELECT role FROM collaboration_members WHERE collab_id = $1 AND user_email = $2",
        collab_id,
        email,
    )


async def require_member(pool: Any, collab_id: uuid.UUID, email: str) -> str:
    """Return the caller's role, raising ``ForbiddenError`` for non-members."""
    role = await member_role(pool, collab_id, email)
    if role is None:
        raise ForbiddenError("You are not a member of this collaboration")
    return role


async def require_writer(pool: Any, collab_id: uuid.UUID, email: str) -> str:
    """Return the caller's role if it may create or edit shared rows."""
    role = await require_member(pool, collab_id, email)
    if role not in WRITE_ROLES:
        raise ForbiddenError("Viewers cannot modify this collaboration's content")
    return role


async def ensure_can_write(pool: Any, row: Mapping[str, Any] | None, email: str, noun: str) -> None:
    """Check the caller may modify *row* (a personal or shared entity).

    Personal rows of other users are reported as missing rather than
    forbidden so their existence is not revealed. Shared rows need a writer
    role in the space; having created the row is not enough once the
    creator has left.
    """
    if row is None:
        raise NotFoundError(f"{noun} not found")

    collab_id = row["collab_id"]
    if collab_id is None:
        if row["user_email"] != email:
            raise NotFoundError(f"{noun} not found")
        return

    role = await member_role(pool, collab_id, email)
    if role is None:
        if row["user_email"] == email:
            raise ForbiddenError(f"You are no longer a member of this {noun.lower()}'s space")
        raise NotFoundError(f"{noun} not found")
    if role not in WRITE_ROLES:
        raise ForbiddenError(f"Viewers cannot modify this {noun.lower()}")


async def require_own_label(pool: Any, email: str, label_id: Any) -> uuid.UUID | None:
    """Parse an optional label reference and check the caller owns it.

    Labels are personal, so another user's label is reported as missing.
    """
    label_uuid = parse_optional_uuid(label_id, "label_id")
    if label_uuid is None:
        return None
    owner = await pool.fetchval("SELECT user_email FROM labels WHERE label_id = $1", label_uuid)
    if owner != email:
        raise NotFoundError("Label not found")
    return label_uuid
