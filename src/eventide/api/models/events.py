"""Event request/response models."""

from __future__ import annotations

import datetime as dt
from typing import Literal
from uuid import UUID

from pydantic import BaseModel

Category = Literal["Personal", "Work", "Social", "Health", "Other"]


class Event(BaseModel):
    """An event row with its label and collaboration name joined in."""

    event_id: UUID
    user_email: str
    title: str
    details: str | None = None
    datetime: dt.datetime | None = None
    is_indefinite: bool = False
    category: Category | None = None
    label_id: UUID | None = None
    collab_id: UUID | None = None
    created_at: dt.datetime | None = None
    label_name: str | None = None
    label_color: str | None = None
    collab_name: str | None = None


class EventCreate(BaseModel):
    title: str
    details: str | None = None
    datetime: dt.datetime | None = None
    is_indefinite: bool = False
    category: Category | None = None
    label_id: UUID | None = None
    collab_id: UUID | None = None


class EventUpdate(BaseModel):
    """Partial patch; only fields present in the body are written."""

    title: str | None = None
    details: str | None = None
    datetime: dt.datetime | None = None
    is_indefinite: bool | None = None
    category: Category | None = None
    label_id: UUID | None = None
