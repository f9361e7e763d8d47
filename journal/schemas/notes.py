"""
Note Schemas

Pydantic models shared by the stores, services and API layer.
Separates concerns: Note (store snapshot), NoteCreate (input),
NoteUpdate (partial), NoteRead (output).
"""

from __future__ import annotations

from datetime import date, datetime
from typing import NamedTuple
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class Note(BaseModel):
    """
    Detached snapshot of a stored note.

    Returned by every ``NoteStore`` method so services never hold a live
    database session. ``embedding`` is only populated by reads that need it.
    """

    model_config = ConfigDict(frozen=True)

    id: UUID
    owner_id: UUID
    title: str = ""
    body_text: str = ""
    day: date
    archived: bool = False
    created_at: datetime
    updated_at: datetime
    embedding: list[float] | None = None
    embedding_synced_at: datetime | None = None

    @property
    def is_stale(self) -> bool:
        """
        True when the note needs (re-)embedding.

        Derived purely from the stored fields: no vector, no sync
        timestamp, or a content edit newer than the last sync.
        """
        return (
            self.embedding is None
            or self.embedding_synced_at is None
            or self.updated_at > self.embedding_synced_at
        )


class ScoredNote(NamedTuple):
    """One nearest-neighbour hit: the note and its cosine distance (lower = nearer)."""

    note: Note
    distance: float


class NoteCreate(BaseModel):
    """Request schema for POST /notes."""

    title: str = Field(default="", max_length=500, description="Note title")
    body_text: str = Field(default="", description="Plain-text note body")
    day: date = Field(description="Calendar day the note is filed under")


class NoteUpdate(BaseModel):
    """
    Request schema for PATCH /notes/{id}.

    All fields optional to support partial updates.
    """

    title: str | None = Field(default=None, max_length=500)
    body_text: str | None = None
    day: date | None = None


class NoteRead(BaseModel):
    """Full Note representation returned by the API (vector omitted)."""

    id: UUID
    title: str
    body_text: str
    day: date
    created_at: datetime
    updated_at: datetime
    embedding_synced_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)  # Builds from Note snapshots
