"""Todo and project request/response models."""

from __future__ import annotations

import datetime as dt
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

Priority = Literal["Very Important", "Important", "Not Important", "Casual"]


class Subtask(BaseModel):
    id: str
    name: str
    completed: bool = False


class Todo(BaseModel):
    """A todo row with its label and collaboration name joined in."""

    todo_id: UUID
    user_email: str
    project_id: UUID
    title: str
    description: str | None = None
    due_date: dt.date | None = None
    priority: Priority = "Casual"
    completed: bool = False
    completed_at: dt.datetime | None = None
    label_id: UUID | None = None
    subtasks: list[Subtask] = Field(default_factory=list)
    collab_id: UUID | None = None
    created_at: dt.datetime | None = None
    label_name: str | None = None
    label_color: str | None = None
    collab_name: str | None = None


class TodoCreate(BaseModel):
    """Request body for creating a todo.

    ``project_id`` accepts a project id, a project name or ``"Inbox"``.
    """

    title: str
    project_id: str | None = None
    description: str | None = None
    due_date: dt.date | None = None
    priority: Priority = "Casual"
    label_id: UUID | None = None
    subtasks: list[Subtask] = Field(default_factory=list)
    collab_id: UUID | None = None


class TodoUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    due_date: dt.date | None = None
    priority: Priority | None = None
    completed: bool | None = None
    label_id: UUID | None = None
    subtasks: list[Subtask] | None = None
    project_id: UUID | None = None


class Project(BaseModel):
    project_id: UUID
    user_email: str
    name: str
    collab_id: UUID | None = None
    created_at: dt.datetime | None = None
    collab_name: str | None = None


class ProjectCreate(BaseModel):
    name: str
    collab_id: UUID | None = None
