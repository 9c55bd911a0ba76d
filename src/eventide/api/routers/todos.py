"""Todo and project endpoints.

Provides two routers: ``/api/todos`` and ``/api/projects``. A new todo's
``project_id`` may be a project id, a project name or ``"Inbox"``.
"""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends

from eventide.api.db import DatabaseManager, pool_or_503
from eventide.api.deps import get_current_user
from eventide.api.models import MessageResponse
from eventide.api.models.todos import Project, ProjectCreate, Todo, TodoCreate, TodoUpdate
from eventide.identity import Identity
from eventide.resources import projects as projects_ops
from eventide.resources import todos as todos_ops

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/todos", tags=["todos"])
projects_router = APIRouter(prefix="/api/projects", tags=["todos", "projects"])


def _get_db_manager() -> DatabaseManager:
    """Dependency stub -- overridden at app startup or in tests."""
    raise RuntimeError("DatabaseManager not initialized")


# ---------------------------------------------------------------------------
# Todos
# ---------------------------------------------------------------------------


@router.get("", response_model=list[Todo])
async def list_todos(
    user: Identity = Depends(get_current_user),
    db: DatabaseManager = Depends(_get_db_manager),
) -> list[dict]:
    return await todos_ops.list_todos(pool_or_503(db), user.email)


@router.post("", response_model=Todo, status_code=201)
async def create_todo(
    body: TodoCreate,
    user: Identity = Depends(get_current_user),
    db: DatabaseManager = Depends(_get_db_manager),
) -> dict:
    """Create a todo, resolving its project by id or name."""
    return await todos_ops.create_todo(pool_or_503(db), user.email, body.model_dump())


@router.patch("/{todo_id}", response_model=Todo)
async def update_todo(
    todo_id: UUID,
    body: TodoUpdate,
    user: Identity = Depends(get_current_user),
    db: DatabaseManager = Depends(_get_db_manager),
) -> dict:
    """Patch a todo; toggling ``completed`` sets or clears ``completed_at``."""
    return await todos_ops.update_todo(
        pool_or_503(db), user.email, todo_id, body.model_dump(exclude_unset=True)
    )


@router.delete("/{todo_id}", response_model=MessageResponse)
async def delete_todo(
    todo_id: UUID,
    user: Identity = Depends(get_current_user),
    db: DatabaseManager = Depends(_get_db_manager),
) -> MessageResponse:
    await todos_ops.delete_todo(pool_or_503(db), user.email, todo_id)
    return MessageResponse(message="Todo deleted successfully")


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------


@projects_router.get("", response_model=list[Project])
async def list_projects(
    user: Identity = Depends(get_current_user),
    db: DatabaseManager = Depends(_get_db_manager),
) -> list[dict]:
    """Return visible projects in creation order, ``Inbox`` first."""
    return await projects_ops.list_projects(pool_or_503(db), user.email)


@projects_router.post("", response_model=Project, status_code=201)
async def create_project(
    body: ProjectCreate,
    user: Identity = Depends(get_current_user),
    db: DatabaseManager = Depends(_get_db_manager),
) -> dict:
    return await projects_ops.create_project(pool_or_503(db), user.email, body.model_dump())


@projects_router.delete("/{project_id}", response_model=MessageResponse)
async def delete_project(
    project_id: UUID,
    user: Identity = Depends(get_current_user),
    db: DatabaseManager = Depends(_get_db_manager),
) -> MessageResponse:
    """Delete a project together with its todos."""
    await projects_ops.delete_project(pool_or_503(db), user.email, project_id)
    return MessageResponse(message="Project deleted successfully")
