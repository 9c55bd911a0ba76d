"""Notebook and note request/response models."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class Notebook(BaseModel):
    notebook_id: UUID
    user_email: str
    name: str
    collab_id: UUID | None = None
    created_at: datetime | None = None
    collab_name: str | None = None


class NotebookCreate(BaseModel):
    name: str
    collab_id: UUID | None = None


class Note(BaseModel):
    note_id: UUID
    notebook_id: UUID
    user_email: str
    title: str
    content: str = ""
    collab_id: UUID | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class NoteCreate(BaseModel):
    """Request body for creating a note; the owner context comes from the notebook."""

    notebook_id: UUID
    title: str | None = None
    content: str | None = None


class NoteUpdate(BaseModel):
    title: str | None = None
    content: str | None = None
