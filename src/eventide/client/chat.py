"""Client-side chat for one collaboration space.

Outgoing messages are shown immediately with a client-generated
``client_key``. The server stores and echoes that key, so when the same
message arrives from the live feed (before or after the POST response) it
replaces the optimistic copy instead of appearing twice.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from typing import Any

from eventide.client.api import ApiError, EventideClient
from eventide.client.optimistic import (
    Begin,
    Cleared,
    CollectionState,
    Confirm,
    Fail,
    Loaded,
    Upsert,
    add_operation,
    reduce,
)
from eventide.client.stores import Notification, Notifier

logger = logging.getLogger(__name__)


def new_client_key() -> str:
    return uuid.uuid4().hex


class ChatStore:
    """Message list of one collaboration, keyed by ``client_key``."""

    def __init__(
        self,
        client: EventideClient,
        collab_id: Any,
        author_email: str,
        notifier: Notifier | None = None,
        key_factory: Callable[[], str] = new_client_key,
    ) -> None:
        self.client = client
        self.collab_id = str(collab_id)
        self.author_email = author_email
        self.notifier = notifier
        self.key_factory = key_factory
        self.state = CollectionState(key_field="client_key")

    @property
    def path(self) -> str:
        return f"/api/collaborations/{self.collab_id}/messages"

    @property
    def messages(self) -> list[dict[str, Any]]:
        return list(self.state.items)

    def _dispatch(self, action) -> None:
        self.state = reduce(self.state, action)

    def _has_message_id(self, message_id: Any) -> bool:
        if message_id is None:
            return False
        return any(str(m.get("message_id")) == str(message_id) for m in self.state.items)

    async def load(self) -> None:
        try:
            rows = await self.client.get(self.path)
        except ApiError as exc:
            self._notify("Could not load messages", exc.message)
            return
        self._dispatch(Loaded(tuple(rows or [])))

    def clear(self) -> None:
        self._dispatch(Cleared())

    def receive(self, row: dict[str, Any]) -> None:
        """Merge a row from the live feed.

        A row matching a local optimistic message by ``client_key`` replaces
        it; a row already present by ``message_id`` is ignored.
        """
        if self._has_message_id(row.get("message_id")):
            return
        self._dispatch(Upsert(row))

    async def send(self, content: str) -> dict[str, Any] | None:
        """Show *content* immediately, then post it with an idempotency key."""
        text = content.strip()
        if not text:
            return None
        key = self.key_factory()
        optimistic = {
            "message_id": None,
            "collab_id": self.collab_id,
            "user_email": self.author_email,
            "content": text,
            "client_key": key,
            "created_at": None,
        }
        op = add_operation(self.state, optimistic)
        self._dispatch(Begin(op))
        try:
            row = await self.client.post(self.path, {"content": text, "client_key": key})
        except ApiError as exc:
            self._dispatch(Fail(op.op_id, exc.message))
            self._notify("Message not sent", exc.message)
            return None
        self._dispatch(Confirm(op.op_id, row))
        return row

    async def listen(self) -> None:
        """Consume the space's live feed until the stream ends."""
        async for event, data in self.client.stream_events(f"{self.path}/stream"):
            if event == "message":
                self.receive(data)

    def _notify(self, title: str, message: str) -> None:
        logger.info("%s: %s", title, message)
        if self.notifier is not None:
            self.notifier(Notification(title=title, message=message))
