"""Label request/response models."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class Label(BaseModel):
    label_id: UUID
    user_email: str
    name: str
    color: str
    created_at: datetime | None = None


class LabelCreate(BaseModel):
    name: str
    color: str


class LabelUpdate(BaseModel):
    name: str | None = None
    color: str | None = None
