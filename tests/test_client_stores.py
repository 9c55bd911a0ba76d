"""Tests for the API client and the client-side resource stores.

The HTTP layer is faked with ``httpx.MockTransport`` so every store runs
its real request/reconcile/rollback path.
"""

from __future__ import annotations

import json

import httpx
import pytest

from eventide.client import (
    ApiError,
    CollaborationStore,
    EventideClient,
    EventStore,
    InvitationStore,
    NoteStore,
    TodoStore,
)

pytestmark = pytest.mark.unit


class FakeApi:
    """Route table for MockTransport: ``(method, path) -> (status, body)``."""

    def __init__(self, routes: dict[tuple[str, str], tuple[int, object]]) -> None:
        self.routes = dict(routes)
        self.calls: list[tuple[str, str, object]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        self.calls.append((request.method, request.url.path, body))
        status, payload = self.routes.get(
            (request.method, request.url.path),
            (404, {"error": "Not Found", "code": "NOT_FOUND"}),
        )
        return httpx.Response(status, json=payload)

    def client(self, token: str | None = "tok") -> EventideClient:
        return EventideClient("http://api.test", token=token, transport=httpx.MockTransport(self))


# ---------------------------------------------------------------------------
# EventideClient
# ---------------------------------------------------------------------------


class TestEventideClient:
    async def test_sends_bearer_token(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json=[])

        client = EventideClient(
            "http://api.test", token="tok", transport=httpx.MockTransport(handler)
        )
        assert await client.get("/api/labels") == []
        assert seen["auth"] == "Bearer tok"

        client.set_token(None)
        await client.get("/api/labels")
        assert seen["auth"] is None
        await client.aclose()

    async def test_error_body_becomes_api_error(self):
        api = FakeApi({("POST", "/api/labels"): (409, {"error": "Dup", "code": "CONFLICT"})})
        client = api.client()

        with pytest.raises(ApiError) as exc_info:
            await client.post("/api/labels", {"name": "x", "color": "#000"})

        assert exc_info.value.status_code == 409
        assert exc_info.value.message == "Dup"
        assert exc_info.value.code == "CONFLICT"

    async def test_transport_failure_is_status_zero(self):
        def handler(request):
            raise httpx.ConnectError("refused")

        client = EventideClient("http://api.test", transport=httpx.MockTransport(handler))

        with pytest.raises(ApiError) as exc_info:
            await client.get("/api/events")

        assert exc_info.value.status_code == 0

    async def test_stream_events_parses_sse(self):
        stream = (
            'event: connected\ndata: {"status": "ok"}\n\n'
            ": keepalive\n\n"
            'event: message\ndata: {"content": "hi"}\n\n'
        )

        def handler(request):
            return httpx.Response(
                200, content=stream.encode(), headers={"content-type": "text/event-stream"}
            )

        client = EventideClient("http://api.test", transport=httpx.MockTransport(handler))

        events = [pair async for pair in client.stream_events("/api/x/stream")]

        assert events == [("connected", {"status": "ok"}), ("message", {"content": "hi"})]


# ---------------------------------------------------------------------------
# Generic store behaviour
# ---------------------------------------------------------------------------


class TestResourceStore:
    async def test_identity_loads_and_sign_out_clears(self):
        api = FakeApi({("GET", "/api/events"): (200, [{"event_id": "e1", "title": "Dentist"}])})
        store = EventStore(api.client())

        await store.set_identity("alice@example.com")
        assert [e["title"] for e in store.items] == ["Dentist"]

        await store.set_identity(None)
        assert store.items == []

    async def test_load_failure_notifies_and_keeps_state(self, notifications):
        api = FakeApi({("GET", "/api/events"): (500, {"error": "db down", "code": "X"})})
        store = EventStore(api.client(), notifications.append)

        assert await store.load() is False
        assert store.items == []
        assert notifications[0].message == "db down"

    async def test_add_applies_server_row(self):
        created = {"event_id": "e9", "title": "Gym"}
        api = FakeApi({("POST", "/api/events"): (201, created)})
        store = EventStore(api.client())

        row = await store.add({"title": "Gym", "is_indefinite": True})

        assert row == created
        assert store.items == [created]

    async def test_failed_add_leaves_collection_untouched(self, notifications):
        api = FakeApi(
            {("POST", "/api/events"): (400, {"error": "A valid title is required", "code": "V"})}
        )
        store = EventStore(api.client(), notifications.append)

        assert await store.add({"title": ""}) is None
        assert store.items == []
        assert notifications[0].title == "Could not add event"

    async def test_update_reconciles_with_server_row(self):
        api = FakeApi(
            {
                ("GET", "/api/events"): (200, [{"event_id": "e1", "title": "Dentist"}]),
                ("PATCH", "/api/events/e1"): (200, {"event_id": "e1", "title": "Orthodontist"}),
            }
        )
        store = EventStore(api.client())
        await store.load()

        await store.update("e1", {"title": "Ortho"})

        assert store.get("e1")["title"] == "Orthodontist"
        assert api.calls[-1] == ("PATCH", "/api/events/e1", {"title": "Ortho"})

    async def test_failed_update_reverts_and_reports_raw_message(self, notifications):
        api = FakeApi(
            {
                ("GET", "/api/events"): (200, [{"event_id": "e1", "title": "Dentist"}]),
                ("PATCH", "/api/events/e1"): (403, {"error": "Viewers cannot", "code": "F"}),
            }
        )
        store = EventStore(api.client(), notifications.append)
        await store.load()

        assert await store.update("e1", {"title": "Hacked"}) is None

        assert store.get("e1")["title"] == "Dentist"
        assert notifications[-1].message == "Viewers cannot"

    async def test_failed_delete_restores_position(self, notifications):
        rows = [{"event_id": k, "title": k} for k in ("a", "b", "c")]
        api = FakeApi(
            {
                ("GET", "/api/events"): (200, rows),
                ("DELETE", "/api/events/b"): (404, {"error": "Event not found", "code": "N"}),
            }
        )
        store = EventStore(api.client(), notifications.append)
        await store.load()

        assert await store.delete("b") is False
        assert [e["event_id"] for e in store.items] == ["a", "b", "c"]


# ---------------------------------------------------------------------------
# Todos and projects
# ---------------------------------------------------------------------------


class TestTodoStore:
    async def test_load_creates_missing_inbox_and_sorts_it_first(self):
        inbox = {"project_id": "p-inbox", "name": "Inbox", "collab_id": None}
        api = FakeApi(
            {
                ("GET", "/api/todos"): (200, []),
                ("GET", "/api/projects"): (
                    200,
                    [{"project_id": "p-work", "name": "Work", "collab_id": None}],
                ),
                ("POST", "/api/projects"): (201, inbox),
            }
        )
        store = TodoStore(api.client())

        await store.set_identity("alice@example.com")

        assert [p["name"] for p in store.projects.items] == ["Inbox", "Work"]
        assert ("POST", "/api/projects", {"name": "Inbox"}) in api.calls

    async def test_no_inbox_created_when_projects_fail_to_load(self):
        api = FakeApi(
            {
                ("GET", "/api/todos"): (200, []),
                ("GET", "/api/projects"): (500, {"error": "down", "code": "X"}),
            }
        )
        store = TodoStore(api.client())

        await store.load()

        assert all(method != "POST" for method, _, _ in api.calls)

    async def test_toggle_completed(self):
        todo = {"todo_id": "t1", "title": "Buy milk", "completed": False, "project_id": "p"}
        api = FakeApi(
            {
                ("GET", "/api/todos"): (200, [todo]),
                ("GET", "/api/projects"): (200, [{"project_id": "p", "name": "Inbox"}]),
                ("PATCH", "/api/todos/t1"): (
                    200,
                    {**todo, "completed": True, "completed_at": "2026-10-19T09:30:00Z"},
                ),
            }
        )
        store = TodoStore(api.client())
        await store.load()

        await store.toggle_completed("t1")

        assert store.get("t1")["completed"] is True
        assert api.calls[-1][2] == {"completed": True}

    async def test_delete_project_drops_its_todos(self):
        api = FakeApi(
            {
                ("GET", "/api/todos"): (
                    200,
                    [
                        {"todo_id": "t1", "project_id": "p-old"},
                        {"todo_id": "t2", "project_id": "p-inbox"},
                    ],
                ),
                ("GET", "/api/projects"): (
                    200,
                    [
                        {"project_id": "p-inbox", "name": "Inbox", "collab_id": None},
                        {"project_id": "p-old", "name": "Old", "collab_id": None},
                    ],
                ),
                ("DELETE", "/api/projects/p-old"): (200, {"message": "ok"}),
            }
        )
        store = TodoStore(api.client())
        await store.load()

        assert await store.delete_project("p-old") is True
        assert [t["todo_id"] for t in store.items] == ["t2"]
        assert [p["project_id"] for p in store.projects.items] == ["p-inbox"]


class TestNoteStore:
    async def test_delete_notebook_drops_its_notes(self):
        api = FakeApi(
            {
                ("GET", "/api/notes"): (
                    200,
                    [
                        {"note_id": "n1", "notebook_id": "nb1"},
                        {"note_id": "n2", "notebook_id": "nb2"},
                    ],
                ),
                ("GET", "/api/notebooks"): (
                    200,
                    [{"notebook_id": "nb1"}, {"notebook_id": "nb2"}],
                ),
                ("DELETE", "/api/notebooks/nb1"): (200, {"message": "ok"}),
            }
        )
        store = NoteStore(api.client())
        await store.set_identity("alice@example.com")

        assert await store.delete_notebook("nb1") is True
        assert [n["note_id"] for n in store.items] == ["n2"]

        await store.set_identity(None)
        assert store.items == [] and store.notebooks.items == []


# ---------------------------------------------------------------------------
# Collaborations and invitations
# ---------------------------------------------------------------------------


class TestCollaborationStores:
    async def test_leaving_a_space_drops_it(self):
        api = FakeApi(
            {
                ("GET", "/api/collaborations"): (
                    200,
                    [{"collab_id": "c1", "name": "Family"}, {"collab_id": "c2", "name": "Work"}],
                ),
                ("DELETE", "/api/collaborations/c1/members/bob@example.com"): (
                    200,
                    {"message": "Member removed successfully"},
                ),
            }
        )
        store = CollaborationStore(api.client())
        await store.set_identity("bob@example.com")

        assert await store.remove_member("c1", "bob@example.com") is True
        assert [c["collab_id"] for c in store.items] == ["c2"]

    async def test_rename_failure_reverts(self, notifications):
        api = FakeApi(
            {
                ("GET", "/api/collaborations"): (200, [{"collab_id": "c1", "name": "Family"}]),
                ("PATCH", "/api/collaborations/c1"): (
                    403,
                    {"error": "Only the owner can rename the space", "code": "FORBIDDEN"},
                ),
            }
        )
        store = CollaborationStore(api.client(), notifications.append)
        await store.load()

        await store.rename("c1", "Mine")

        assert store.get("c1")["name"] == "Family"
        assert notifications[-1].message == "Only the owner can rename the space"

    async def test_accepting_invitation_reloads_spaces(self):
        invite = {"invite_id": "i1", "collab_id": "c9", "status": "pending"}
        api = FakeApi(
            {
                ("GET", "/api/invitations"): (200, [invite]),
                ("PATCH", "/api/invitations/i1"): (200, {**invite, "status": "accepted"}),
                ("GET", "/api/collaborations"): (200, [{"collab_id": "c9", "name": "Club"}]),
            }
        )
        collaborations = CollaborationStore(api.client())
        store = InvitationStore(api.client(), collaborations=collaborations)
        await store.load()
        assert [i["invite_id"] for i in store.pending] == ["i1"]

        await store.respond("i1", "accepted")

        assert store.pending == []
        assert [c["collab_id"] for c in collaborations.items] == ["c9"]

    async def test_duplicate_invitation_message_is_surfaced(self, notifications):
        message = "This user has already been invited to this space."
        api = FakeApi(
            {("POST", "/api/invitations"): (409, {"error": message, "code": "CONFLICT"})}
        )
        store = InvitationStore(api.client(), notifications.append)

        assert await store.send("c1", "bob@example.com") is None
        assert notifications[-1].message == message
