"""
Chat and Sync API Schemas

Pydantic models for the question-answering endpoint and the
embedding scheduler control surface.
"""

from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from journal.schemas.notes import NoteRead


class ChatRequest(BaseModel):
    """Request body for a single question."""

    model_config = ConfigDict(str_strip_whitespace=True)

    message: str = Field(
        ...,
        min_length=1,
        max_length=2000,
        description="Natural language question about the journal",
    )


class ChatResponse(BaseModel):
    """Answer plus the notes the model actually cited."""

    response: str = Field(description="Generated answer text (citation line removed)")
    source_entries: list[NoteRead] = Field(
        default_factory=list,
        description="Cited notes, in the order the model cited them",
    )
    message_id: UUID = Field(description="Identifier of this answer turn")


class SyncStatusResponse(BaseModel):
    """State of the background embedding scheduler."""

    running: bool
    interval_seconds: float
    batch_size: int


class SyncReportResponse(BaseModel):
    """Outcome of one manually triggered sync cycle."""

    fetched: int
    embedded: int
    failed: int
    skipped: bool


class ReloadResponse(BaseModel):
    """Configuration now in effect after a reload."""

    status: str = "reloaded"
    store_backend: str
    embedding_model: str
    chat_model: str
    vector_search_enabled: bool
