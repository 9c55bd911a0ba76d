"""Collaboration, membership and invitation models."""

from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel

MemberRole = Literal["owner", "admin", "editor", "viewer"]
AssignableRole = Literal["admin", "editor", "viewer"]
InvitationStatus = Literal["pending", "accepted", "declined"]


class Collaboration(BaseModel):
    """A collaboration space; ``my_role`` is the caller's role when known."""

    collab_id: UUID
    name: str
    owner_email: str
    created_at: datetime | None = None
    my_role: MemberRole | None = None


class CollaborationCreate(BaseModel):
    name: str


class CollaborationRename(BaseModel):
    name: str


class Member(BaseModel):
    collab_id: UUID
    user_email: str
    role: MemberRole
    joined_at: datetime | None = None


class MemberRoleUpdate(BaseModel):
    role: AssignableRole


class Invitation(BaseModel):
    invite_id: UUID
    collab_id: UUID
    inviter_email: str
    invitee_email: str
    role: MemberRole
    status: InvitationStatus
    created_at: datetime | None = None
    collab_name: str | None = None


class InvitationCreate(BaseModel):
    collab_id: UUID
    invitee_email: str
    role: AssignableRole = "editor"


class InvitationResponse(BaseModel):
    """Request body for answering an invitation."""

    status: Literal["accepted", "declined"]


class ChatMessage(BaseModel):
    message_id: UUID
    collab_id: UUID
    user_email: str
    content: str
    client_key: str | None = None
    created_at: datetime | None = None


class ChatMessageCreate(BaseModel):
    content: str
    client_key: str | None = None
