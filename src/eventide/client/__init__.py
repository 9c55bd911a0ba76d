"""Client-side stores for the Eventide API."""

from eventide.client.api import ApiError, EventideClient
from eventide.client.chat import ChatStore
from eventide.client.stores import (
    CollaborationStore,
    EventStore,
    InvitationStore,
    LabelStore,
    Notification,
    NoteStore,
    TodoStore,
)

__all__ = [
    "ApiError",
    "ChatStore",
    "CollaborationStore",
    "EventStore",
    "EventideClient",
    "InvitationStore",
    "LabelStore",
    "NoteStore",
    "Notification",
    "TodoStore",
]
