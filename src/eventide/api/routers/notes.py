"""Notebook and note endpoints.

Provides two routers: ``/api/notebooks`` and ``/api/notes``. Deleting a
notebook deletes its notes.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends

from eventide.api.db import DatabaseManager, pool_or_503
from eventide.api.deps import get_current_user
from eventide.api.models import MessageResponse
from eventide.api.models.notes import Note, NoteCreate, Notebook, NotebookCreate, NoteUpdate
from eventide.identity import Identity
from eventide.resources import notes as notes_ops

router = APIRouter(prefix="/api/notes", tags=["notes"])
notebooks_router = APIRouter(prefix="/api/notebooks", tags=["notes", "notebooks"])


def _get_db_manager() -> DatabaseManager:
    """Dependency stub -- overridden at app startup or in tests."""
    raise RuntimeError("DatabaseManager not initialized")


# ---------------------------------------------------------------------------
# Notebooks
# ---------------------------------------------------------------------------


@notebooks_router.get("", response_model=list[Notebook])
async def list_notebooks(
    user: Identity = Depends(get_current_user),
    db: DatabaseManager = Depends(_get_db_manager),
) -> list[dict]:
    return await notes_ops.list_notebooks(pool_or_503(db), user.email)


@notebooks_router.post("", response_model=Notebook, status_code=201)
async def create_notebook(
    body: NotebookCreate,
    user: Identity = Depends(get_current_user),
    db: DatabaseManager = Depends(_get_db_manager),
) -> dict:
    return await notes_ops.create_notebook(pool_or_503(db), user.email, body.model_dump())


@notebooks_router.delete("/{notebook_id}", response_model=MessageResponse)
async def delete_notebook(
    notebook_id: UUID,
    user: Identity = Depends(get_current_user),
    db: DatabaseManager = Depends(_get_db_manager),
) -> MessageResponse:
    await notes_ops.delete_notebook(pool_or_503(db), user.email, notebook_id)
    return MessageResponse(message="Notebook deleted successfully")


# ---------------------------------------------------------------------------
# Notes
# ---------------------------------------------------------------------------


@router.get("", response_model=list[Note])
async def list_notes(
    user: Identity = Depends(get_current_user),
    db: DatabaseManager = Depends(_get_db_manager),
) -> list[dict]:
    """Return visible notes, most recently updated first."""
    return await notes_ops.list_notes(pool_or_503(db), user.email)


@router.post("", response_model=Note, status_code=201)
async def create_note(
    body: NoteCreate,
    user: Identity = Depends(get_current_user),
    db: DatabaseManager = Depends(_get_db_manager),
) -> dict:
    return await notes_ops.create_note(pool_or_503(db), user.email, body.model_dump())


@router.patch("/{note_id}", response_model=Note)
async def update_note(
    note_id: UUID,
    body: NoteUpdate,
    user: Identity = Depends(get_current_user),
    db: DatabaseManager = Depends(_get_db_manager),
) -> dict:
    return await notes_ops.update_note(
        pool_or_503(db), user.email, note_id, body.model_dump(exclude_unset=True)
    )


@router.delete("/{note_id}", response_model=MessageResponse)
async def delete_note(
    note_id: UUID,
    user: Identity = Depends(get_current_user),
    db: DatabaseManager = Depends(_get_db_manager),
) -> MessageResponse:
    await notes_ops.delete_note(pool_or_503(db), user.email, note_id)
    return MessageResponse(message="Note deleted successfully")
