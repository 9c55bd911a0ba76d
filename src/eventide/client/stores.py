"""Client-side resource stores.

Each store keeps the signed-in user's collection of one resource in memory.
Updates and deletes are applied locally first, sent to the API, then either
reconciled with the server row or reverted; a failure is reported through
the store's notifier with the server's raw error message. Adds are applied
once the server has returned the created row.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
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
    delete_operation,
    reduce,
    update_operation,
)
from eventide.views import INBOX, inbox_project_ids, sort_projects

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notification:
    """A user-facing message raised by a store."""

    title: str
    message: str
    level: str = "error"


Notifier = Callable[[Notification], None]


class ResourceStore:
    """In-memory collection of one API resource with optimistic mutations.

    Subclasses set ``path`` (the collection endpoint), ``key_field`` (the
    row's id column) and ``noun`` (used in notifications).
    """

    path: str = ""
    key_field: str = ""
    noun: str = "item"

    def __init__(self, client: EventideClient, notifier: Notifier | None = None) -> None:
        self.client = client
        self.notifier = notifier
        self.state = CollectionState(key_field=self.key_field)
        self.identity: str | None = None

    @property
    def items(self) -> list[dict[str, Any]]:
        return list(self.state.items)

    def get(self, key: Any) -> dict[str, Any] | None:
        return self.state.find(key)

    def _notify(self, title: str, message: str) -> None:
        logger.info("%s: %s", title, message)
        if self.notifier is not None:
            self.notifier(Notification(title=title, message=message))

    def _dispatch(self, action) -> None:
        self.state = reduce(self.state, action)

    def _item_path(self, key: Any) -> str:
        return f"{self.path}/{key}"

    async def set_identity(self, email: str | None) -> None:
        """Reload for a newly signed-in user, or clear on sign-out."""
        self.identity = email
        if email is None:
            self._dispatch(Cleared())
            return
        await self.load()

    async def load(self) -> bool:
        """Replace the collection with the server's; False when the fetch failed."""
        try:
            rows = await self.client.get(self.path)
        except ApiError as exc:
            self._notify(f"Could not load {self.noun}s", exc.message)
            return False
        self._dispatch(Loaded(tuple(self._prepare(rows or []))))
        return True

    def _prepare(self, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Hook for subclasses to order rows after a fetch."""
        return rows

    async def add(self, data: dict[str, Any]) -> dict[str, Any] | None:
        """Create a row and apply it once the server has confirmed it."""
        try:
            row = await self.client.post(self.path, data)
        except ApiError as exc:
            self._notify(f"Could not add {self.noun}", exc.message)
            return None
        self._dispatch(Upsert(row))
        return row

    async def update(self, key: Any, patch: dict[str, Any]) -> dict[str, Any] | None:
        """Patch a row optimistically; revert it if the server refuses."""
        op = update_operation(self.state, key, patch)
        self._dispatch(Begin(op))
        try:
            row = await self.client.patch(self._item_path(key), patch)
        except ApiError as exc:
            self._dispatch(Fail(op.op_id, exc.message))
            self._notify(f"Could not update {self.noun}", exc.message)
            return None
        self._dispatch(Confirm(op.op_id, row))
        return row

    async def delete(self, key: Any) -> bool:
        """Remove a row optimistically; put it back if the server refuses."""
        op = delete_operation(self.state, key)
        self._dispatch(Begin(op))
        try:
            await self.client.delete(self._item_path(key))
        except ApiError as exc:
            self._dispatch(Fail(op.op_id, exc.message))
            self._notify(f"Could not delete {self.noun}", exc.message)
            return False
        self._dispatch(Confirm(op.op_id))
        return True


class EventStore(ResourceStore):
    path = "/api/events"
    key_field = "event_id"
    noun = "event"


class LabelStore(ResourceStore):
    path = "/api/labels"
    key_field = "label_id"
    noun = "label"


class ProjectStore(ResourceStore):
    path = "/api/projects"
    key_field = "project_id"
    noun = "project"

    def _prepare(self, rows):
        return sort_projects(rows)

    async def ensure_inbox(self) -> dict[str, Any] | None:
        """Create the personal Inbox project when the user has none."""
        if inbox_project_ids(self.state.items):
            return None
        row = await self.add({"name": INBOX})
        if row is not None:
            self._dispatch(Loaded(tuple(sort_projects(list(self.state.items)))))
        return row


class TodoStore(ResourceStore):
    """Todos plus the projects they are grouped into."""

    path = "/api/todos"
    key_field = "todo_id"
    noun = "todo"

    def __init__(self, client: EventideClient, notifier: Notifier | None = None) -> None:
        super().__init__(client, notifier)
        self.projects = ProjectStore(client, notifier)

    async def set_identity(self, email: str | None) -> None:
        self.projects.identity = email
        if email is None:
            self.projects._dispatch(Cleared())
        await super().set_identity(email)

    async def load(self) -> bool:
        loaded = await super().load()
        if await self.projects.load():
            await self.projects.ensure_inbox()
        return loaded

    async def toggle_completed(self, todo_id: Any) -> dict[str, Any] | None:
        todo = self.get(todo_id)
        if todo is None:
            return None
        return await self.update(todo_id, {"completed": not todo.get("completed")})

    async def delete_project(self, project_id: Any) -> bool:
        """Delete a project and drop its todos locally once confirmed."""
        deleted = await self.projects.delete(project_id)
        if deleted:
            remaining = tuple(
                t for t in self.state.items if str(t.get("project_id")) != str(project_id)
            )
            self._dispatch(Loaded(remaining))
        return deleted


class NotebookStore(ResourceStore):
    path = "/api/notebooks"
    key_field = "notebook_id"
    noun = "notebook"


class NoteStore(ResourceStore):
    """Notes plus the notebooks that contain them."""

    path = "/api/notes"
    key_field = "note_id"
    noun = "note"

    def __init__(self, client: EventideClient, notifier: Notifier | None = None) -> None:
        super().__init__(client, notifier)
        self.notebooks = NotebookStore(client, notifier)

    async def set_identity(self, email: str | None) -> None:
        self.notebooks.identity = email
        if email is None:
            self.notebooks._dispatch(Cleared())
        await super().set_identity(email)

    async def load(self) -> bool:
        loaded = await super().load()
        await self.notebooks.load()
        return loaded

    async def delete_notebook(self, notebook_id: Any) -> bool:
        deleted = await self.notebooks.delete(notebook_id)
        if deleted:
            remaining = tuple(
                n for n in self.state.items if str(n.get("notebook_id")) != str(notebook_id)
            )
            self._dispatch(Loaded(remaining))
        return deleted


class CollaborationStore(ResourceStore):
    path = "/api/collaborations"
    key_field = "collab_id"
    noun = "collaboration"

    async def rename(self, collab_id: Any, name: str) -> dict[str, Any] | None:
        return await self.update(collab_id, {"name": name})

    async def members(self, collab_id: Any) -> list[dict[str, Any]]:
        try:
            return await self.client.get(f"{self.path}/{collab_id}/members")
        except ApiError as exc:
            self._notify("Could not load members", exc.message)
            return []

    async def change_role(
        self, collab_id: Any, member_email: str, role: str
    ) -> dict[str, Any] | None:
        try:
            return await self.client.patch(
                f"{self.path}/{collab_id}/members/{member_email}", {"role": role}
            )
        except ApiError as exc:
            self._notify("Could not change role", exc.message)
            return None

    async def remove_member(self, collab_id: Any, member_email: str) -> bool:
        """Remove a member; removing yourself also drops the space locally."""
        try:
            await self.client.delete(f"{self.path}/{collab_id}/members/{member_email}")
        except ApiError as exc:
            self._notify("Could not remove member", exc.message)
            return False
        if self.identity is not None and member_email.lower() == self.identity:
            remaining = tuple(
                c for c in self.state.items if str(c.get("collab_id")) != str(collab_id)
            )
            self._dispatch(Loaded(remaining))
        return True


class InvitationStore(ResourceStore):
    """Invitations addressed to the signed-in user.

    Accepting an invitation reloads *collaborations* (when given) so the
    new space shows up.
    """

    path = "/api/invitations"
    key_field = "invite_id"
    noun = "invitation"

    def __init__(
        self,
        client: EventideClient,
        notifier: Notifier | None = None,
        collaborations: CollaborationStore | None = None,
    ) -> None:
        super().__init__(client, notifier)
        self.collaborations = collaborations

    @property
    def pending(self) -> list[dict[str, Any]]:
        return [i for i in self.state.items if i.get("status") == "pending"]

    async def respond(self, invite_id: Any, status: str) -> dict[str, Any] | None:
        row = await self.update(invite_id, {"status": status})
        if row is not None and status == "accepted" and self.collaborations is not None:
            await self.collaborations.load()
        return row

    async def send(
        self, collab_id: Any, invitee_email: str, role: str = "editor"
    ) -> dict[str, Any] | None:
        """Invite someone into a space; the invitation is not added locally."""
        try:
            return await self.client.post(
                self.path,
                {"collab_id": str(collab_id), "invitee_email": invitee_email, "role": role},
            )
        except ApiError as exc:
            self._notify("Could not send invitation", exc.message)
            return None

    async def revoke(self, invite_id: Any) -> bool:
        return await self.delete(invite_id)
