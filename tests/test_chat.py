"""Tests for the client-side chat store and its de-duplication by client key."""

from __future__ import annotations

import json

import httpx
import pytest

from eventide.client import ChatStore, EventideClient

pytestmark = pytest.mark.unit

COLLAB = "c0ffee00-0000-0000-0000-000000000001"
PATH = f"/api/collaborations/{COLLAB}/messages"


def _server_row(key, message_id="m-1", content="dinner at 7"):
    return {
        "message_id": message_id,
        "collab_id": COLLAB,
        "user_email": "alice@example.com",
        "content": content,
        "client_key": key,
        "created_at": "2026-10-19T09:30:00Z",
    }


def _store(handler, notifier=None, keys=("k1", "k2", "k3")):
    client = EventideClient("http://api.test", token="tok", transport=httpx.MockTransport(handler))
    key_iter = iter(keys)
    return ChatStore(
        client,
        COLLAB,
        "alice@example.com",
        notifier=notifier,
        key_factory=lambda: next(key_iter),
    )


class TestSend:
    async def test_send_posts_key_and_reconciles(self):
        posted = []

        def handler(request):
            body = json.loads(request.content)
            posted.append(body)
            return httpx.Response(201, json=_server_row(body["client_key"]))

        store = _store(handler)

        row = await store.send("  dinner at 7 ")

        assert posted == [{"content": "dinner at 7", "client_key": "k1"}]
        assert row["message_id"] == "m-1"
        assert store.messages == [_server_row("k1")]

    async def test_feed_echo_before_response_does_not_duplicate(self):
        store = None

        def handler(request):
            body = json.loads(request.content)
            # the live feed delivers the row while the POST is still in flight
            store.receive(_server_row(body["client_key"]))
            return httpx.Response(201, json=_server_row(body["client_key"]))

        store = _store(handler)

        await store.send("dinner at 7")

        assert len(store.messages) == 1
        assert store.messages[0]["message_id"] == "m-1"

    async def test_feed_echo_after_response_is_ignored(self):
        def handler(request):
            body = json.loads(request.content)
            return httpx.Response(201, json=_server_row(body["client_key"]))

        store = _store(handler)
        await store.send("dinner at 7")

        store.receive(_server_row("k1"))

        assert len(store.messages) == 1

    async def test_failed_send_is_removed_and_reported(self, notifications):
        def handler(request):
            return httpx.Response(
                403, json={"error": "You are not a member of this collaboration", "code": "F"}
            )

        store = _store(handler, notifier=notifications.append)

        assert await store.send("hello?") is None
        assert store.messages == []
        assert notifications[0].title == "Message not sent"

    async def test_blank_message_is_not_sent(self):
        def handler(request):
            raise AssertionError("nothing should be posted")

        store = _store(handler)

        assert await store.send("   ") is None
        assert store.messages == []


class TestReceive:
    async def test_other_members_messages_are_appended(self):
        store = _store(lambda request: httpx.Response(200, json=[]))

        store.receive({**_server_row(None, message_id="m-7"), "user_email": "bob@example.com"})
        store.receive({**_server_row(None, message_id="m-8"), "content": "on my way"})

        assert [m["message_id"] for m in store.messages] == ["m-7", "m-8"]

    async def test_load_and_clear(self):
        history = [_server_row(None, message_id="m-1"), _server_row("kx", message_id="m-2")]
        store = _store(lambda request: httpx.Response(200, json=history))

        await store.load()
        assert [m["message_id"] for m in store.messages] == ["m-1", "m-2"]

        store.clear()
        assert store.messages == []

    async def test_listen_merges_stream_messages(self):
        stream = (
            'event: connected\ndata: {"status": "ok"}\n\n'
            f"event: message\ndata: {json.dumps(_server_row(None, message_id='m-3'))}\n\n"
        )

        def handler(request):
            assert request.url.path == f"{PATH}/stream"
            return httpx.Response(200, content=stream.encode())

        store = _store(handler)

        await store.listen()

        assert [m["message_id"] for m in store.messages] == ["m-3"]
