"""
Notes API Router

Minimal CRUD for journal notes. Every content edit bumps ``updated_at``,
which is what queues the note for re-embedding on the next sync cycle.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status

from journal.api.deps import get_resources
from journal.core.errors import StoreError
from journal.core.resources import Resources
from journal.schemas.notes import Note, NoteCreate, NoteRead, NoteUpdate

router = APIRouter()


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Note not found")


def _unavailable(e: StoreError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=f"Note store unavailable: {e}",
    )


@router.post("", response_model=NoteRead, status_code=status.HTTP_201_CREATED)
async def create_note(
    note: NoteCreate,
    resources: Resources = Depends(get_resources),
) -> Note:
    """
    Create a new note.

    The note is immediately readable but won't appear in chat context
    until the sync scheduler has embedded it.
    """
    try:
        return await resources.store.create(resources.settings.OWNER_ID, note)
    except StoreError as e:
        raise _unavailable(e) from e


@router.get("/{note_id}", response_model=NoteRead)
async def read_note(
    note_id: UUID,
    resources: Resources = Depends(get_resources),
) -> Note:
    """Retrieve a single note by ID."""
    try:
        note = await resources.store.get_by_id(resources.settings.OWNER_ID, note_id)
    except StoreError as e:
        raise _unavailable(e) from e
    if note is None:
        raise _not_found()
    return note


@router.patch("/{note_id}", response_model=NoteRead)
async def update_note(
    note_id: UUID,
    changes: NoteUpdate,
    resources: Resources = Depends(get_resources),
) -> Note:
    """Partially update a note; it becomes stale until re-embedded."""
    try:
        note = await resources.store.update_content(
            resources.settings.OWNER_ID,
            note_id,
            changes,
        )
    except StoreError as e:
        raise _unavailable(e) from e
    if note is None:
        raise _not_found()
    return note


@router.delete("/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
async def archive_note(
    note_id: UUID,
    resources: Resources = Depends(get_resources),
) -> None:
    """Archive a note. Archived notes are never retrieved or cited."""
    try:
        archived = await resources.store.archive(resources.settings.OWNER_ID, note_id)
    except StoreError as e:
        raise _unavailable(e) from e
    if not archived:
        raise _not_found()
