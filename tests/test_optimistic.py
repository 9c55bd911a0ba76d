"""Tests for the optimistic-update reducer."""

from __future__ import annotations

import pytest

from eventide.client.optimistic import (
    SETTLED_HISTORY,
    Begin,
    Cleared,
    CollectionState,
    Confirm,
    Fail,
    Loaded,
    OperationKind,
    OperationStatus,
    Upsert,
    add_operation,
    delete_operation,
    reduce,
    update_operation,
)

pytestmark = pytest.mark.unit


def _loaded(*rows):
    return reduce(CollectionState(key_field="id"), Loaded(items=tuple(rows)))


A = {"id": "a", "title": "Alpha", "label_name": "Urgent"}
B = {"id": "b", "title": "Beta"}
C = {"id": "c", "title": "Gamma"}


class TestLoadAndClear:
    def test_loaded_replaces_items_and_drops_operations(self):
        state = _loaded(A)
        state = reduce(state, Begin(add_operation(state, B)))

        state = reduce(state, Loaded(items=(C,)))

        assert state.items == (C,)
        assert state.operations == ()

    def test_cleared(self):
        state = reduce(_loaded(A, B), Cleared())

        assert state.items == ()
        assert state.key_field == "id"


class TestAdd:
    def test_pending_add_is_visible_then_replaced_by_server_row(self):
        state = _loaded(A)
        op = add_operation(state, {"id": "tmp-1", "title": "New"})

        state = reduce(state, Begin(op))
        assert state.items[-1]["title"] == "New"
        assert state.operation(op.op_id).status is OperationStatus.PENDING

        server = {"id": "srv-1", "title": "New", "created_at": "2026-10-19T09:30:00Z"}
        state = reduce(state, Confirm(op.op_id, server))

        assert state.items == (A, server)
        assert state.operation(op.op_id).status is OperationStatus.APPLIED
        assert state.pending == ()

    def test_failed_add_is_removed(self):
        state = _loaded(A)
        op = add_operation(state, {"id": "tmp-1", "title": "New"})
        state = reduce(state, Begin(op))

        state = reduce(state, Fail(op.op_id, "boom"))

        assert state.items == (A,)
        rolled = state.operation(op.op_id)
        assert rolled.status is OperationStatus.ROLLED_BACK
        assert rolled.error == "boom"


class TestUpdate:
    def test_confirm_keeps_joined_fields_missing_from_response(self):
        state = _loaded(A, B)
        op = update_operation(state, "a", {"title": "Alpha 2"})
        state = reduce(state, Begin(op))
        assert state.find("a")["title"] == "Alpha 2"

        state = reduce(state, Confirm(op.op_id, {"id": "a", "title": "Alpha 2!"}))

        assert state.find("a") == {"id": "a", "title": "Alpha 2!", "label_name": "Urgent"}

    def test_failed_update_restores_previous_row(self):
        state = _loaded(A, B)
        op = update_operation(state, "a", {"title": "Broken"})
        state = reduce(state, Begin(op))

        state = reduce(state, Fail(op.op_id, "rejected"))

        assert state.items == (A, B)

    def test_update_of_unknown_key_changes_nothing(self):
        state = _loaded(A)
        op = update_operation(state, "zzz", {"title": "Ghost"})

        state = reduce(state, Begin(op))

        assert state.items == (A,)
        assert op.kind is OperationKind.UPDATE


class TestDelete:
    def test_failed_delete_reinserts_at_original_position(self):
        state = _loaded(A, B, C)
        op = delete_operation(state, "b")
        state = reduce(state, Begin(op))
        assert state.items == (A, C)

        state = reduce(state, Fail(op.op_id, "nope"))

        assert state.items == (A, B, C)

    def test_confirmed_delete_stays_deleted(self):
        state = _loaded(A, B)
        op = delete_operation(state, "a")
        state = reduce(state, Begin(op))

        state = reduce(state, Confirm(op.op_id))

        assert state.items == (B,)
        assert state.operation(op.op_id).status is OperationStatus.APPLIED


class TestSettledOperations:
    def test_second_settlement_is_ignored(self):
        state = _loaded(A)
        op = add_operation(state, B)
        state = reduce(state, Begin(op))
        state = reduce(state, Confirm(op.op_id, B))

        after = reduce(state, Fail(op.op_id, "late failure"))

        assert after is state

    def test_unknown_operation_is_ignored(self):
        state = _loaded(A)

        assert reduce(state, Confirm(9999, B)) is state

    def test_history_is_capped_but_pending_operations_survive(self):
        state = _loaded()
        waiting = add_operation(state, {"id": "waiting"})
        state = reduce(state, Begin(waiting))

        for n in range(SETTLED_HISTORY + 10):
            op = add_operation(state, {"id": n})
            state = reduce(state, Begin(op))
            state = reduce(state, Confirm(op.op_id, {"id": n}))

        settled = [o for o in state.operations if o.status is not OperationStatus.PENDING]
        assert len(settled) == SETTLED_HISTORY
        assert state.pending == (waiting,)
        assert state.operation(op.op_id).status is OperationStatus.APPLIED
        assert len(state.items) == SETTLED_HISTORY + 11


class TestUpsert:
    def test_replaces_existing_or_appends(self):
        state = _loaded(A)

        state = reduce(state, Upsert({"id": "a", "title": "Alpha v2"}))
        state = reduce(state, Upsert(B))

        assert state.items == ({"id": "a", "title": "Alpha v2"}, B)

    def test_unknown_action_raises(self):
        with pytest.raises(TypeError):
            reduce(_loaded(), object())
