"""Optimistic-update state machine for client-side collections.

A collection is an ordered tuple of rows keyed by one field. Every mutation
is an ``Operation`` that starts ``pending`` (already applied locally) and
ends ``applied`` (reconciled with the server row) or ``rolled_back``
(local effect reverted). ``reduce`` is pure: it never mutates its inputs
and has no I/O, so it works the same under any UI or event loop.
"""

from __future__ import annotations

import enum
import itertools
from dataclasses import dataclass, field, replace
from typing import Any

Row = dict[str, Any]

_op_ids = itertools.count(1)

# Settled operations kept for inspection. Pending ones are never dropped.
SETTLED_HISTORY = 50


class OperationStatus(enum.StrEnum):
    PENDING = "pending"
    APPLIED = "applied"
    ROLLED_BACK = "rolled_back"


class OperationKind(enum.StrEnum):
    ADD = "add"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class Operation:
    """One local mutation and what is needed to undo it."""

    kind: OperationKind
    key: Any
    row: Row | None = None
    previous: Row | None = None
    index: int | None = None
    status: OperationStatus = OperationStatus.PENDING
    error: str | None = None
    op_id: int = field(default_factory=lambda: next(_op_ids))


@dataclass(frozen=True)
class CollectionState:
    key_field: str
    items: tuple[Row, ...] = ()
    operations: tuple[Operation, ...] = ()

    def find(self, key: Any) -> Row | None:
        for item in self.items:
            if item.get(self.key_field) == key:
                return item
        return None

    def operation(self, op_id: int) -> Operation | None:
        for op in self.operations:
            if op.op_id == op_id:
                return op
        return None

    @property
    def pending(self) -> tuple[Operation, ...]:
        return tuple(op for op in self.operations if op.status is OperationStatus.PENDING)


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Loaded:
    """Replace the collection with a fresh server fetch."""

    items: tuple[Row, ...]


@dataclass(frozen=True)
class Cleared:
    """Drop everything (sign-out)."""


@dataclass(frozen=True)
class Begin:
    """Apply *operation* locally and record it as pending."""

    operation: Operation


@dataclass(frozen=True)
class Confirm:
    """The server accepted the operation; *row* is its authoritative row."""

    op_id: int
    row: Row | None = None


@dataclass(frozen=True)
class Fail:
    """The server rejected the operation; revert its local effect."""

    op_id: int
    error: str


@dataclass(frozen=True)
class Upsert:
    """Merge a server row: replace the row with the same key or append it."""

    row: Row


Action = Loaded | Cleared | Begin | Confirm | Fail | Upsert


# ---------------------------------------------------------------------------
# Operation constructors
# ---------------------------------------------------------------------------


def add_operation(state: CollectionState, row: Row) -> Operation:
    return Operation(kind=OperationKind.ADD, key=row.get(state.key_field), row=dict(row))


def update_operation(state: CollectionState, key: Any, patch: Row) -> Operation:
    previous = state.find(key)
    merged = {**(previous or {}), **patch}
    return Operation(kind=OperationKind.UPDATE, key=key, row=merged, previous=previous)


def delete_operation(state: CollectionState, key: Any) -> Operation:
    previous = state.find(key)
    index = state.items.index(previous) if previous is not None else None
    return Operation(kind=OperationKind.DELETE, key=key, previous=previous, index=index)


# ---------------------------------------------------------------------------
# Reducer
# ---------------------------------------------------------------------------


def _replace_row(state: CollectionState, key: Any, row: Row) -> tuple[Row, ...]:
    return tuple(row if item.get(state.key_field) == key else item for item in state.items)


def _without_row(state: CollectionState, key: Any) -> tuple[Row, ...]:
    return tuple(item for item in state.items if item.get(state.key_field) != key)


def _set_status(
    state: CollectionState, op_id: int, status: OperationStatus, error: str | None = None
) -> tuple[Operation, ...]:
    operations = [
        replace(op, status=status, error=error) if op.op_id == op_id else op
        for op in state.operations
    ]
    settled = [op for op in operations if op.status is not OperationStatus.PENDING]
    drop = {op.op_id for op in settled[: max(len(settled) - SETTLED_HISTORY, 0)]}
    return tuple(op for op in operations if op.op_id not in drop)


def _begin(state: CollectionState, op: Operation) -> CollectionState:
    if op.kind is OperationKind.ADD:
        items = state.items + (op.row,)
    elif op.kind is OperationKind.UPDATE:
        items = _replace_row(state, op.key, op.row) if op.previous is not None else state.items
    else:
        items = _without_row(state, op.key)
    return replace(state, items=items, operations=state.operations + (op,))


def _confirm(state: CollectionState, action: Confirm) -> CollectionState:
    op = state.operation(action.op_id)
    if op is None or op.status is not OperationStatus.PENDING:
        return state
    items = state.items
    if op.kind is not OperationKind.DELETE and action.row is not None:
        if state.find(op.key) is not None:
            row = action.row
            if op.kind is OperationKind.UPDATE:
                # keep joined fields the PATCH response may omit
                row = {**(op.row or {}), **action.row}
            items = _replace_row(state, op.key, row)
        elif op.kind is OperationKind.ADD:
            items = items + (action.row,)
    return replace(
        state,
        items=items,
        operations=_set_status(state, op.op_id, OperationStatus.APPLIED),
    )


def _rollback(state: CollectionState, action: Fail) -> CollectionState:
    op = state.operation(action.op_id)
    if op is None or op.status is not OperationStatus.PENDING:
        return state
    if op.kind is OperationKind.ADD:
        items = _without_row(state, op.key)
    elif op.kind is OperationKind.UPDATE:
        items = _replace_row(state, op.key, op.previous) if op.previous is not None else state.items
    elif op.previous is not None and state.find(op.key) is None:
        position = min(op.index if op.index is not None else len(state.items), len(state.items))
        items = state.items[:position] + (op.previous,) + state.items[position:]
    else:
        items = state.items
    return replace(
        state,
        items=items,
        operations=_set_status(state, op.op_id, OperationStatus.ROLLED_BACK, action.error),
    )


def _upsert(state: CollectionState, row: Row) -> CollectionState:
    key = row.get(state.key_field)
    if key is not None and state.find(key) is not None:
        return replace(state, items=_replace_row(state, key, row))
    return replace(state, items=state.items + (row,))


def reduce(state: CollectionState, action: Action) -> CollectionState:
    """Return the collection state after *action*."""
    if isinstance(action, Loaded):
        return CollectionState(key_field=state.key_field, items=tuple(action.items))
    if isinstance(action, Cleared):
        return CollectionState(key_field=state.key_field)
    if isinstance(action, Begin):
        return _begin(state, action.operation)
    if isinstance(action, Confirm):
        return _confirm(state, action)
    if isinstance(action, Fail):
        return _rollback(state, action)
    if isinstance(action, Upsert):
        return _upsert(state, action.row)
    raise TypeError(f"Unknown action: {action!r}")
