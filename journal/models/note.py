"""
Note Model

Journal notes with the two sync-related columns used by the embedding
scheduler: an optional vector and the timestamp of its last write.
Uses the pgvector extension for cosine similarity queries.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime

from pgvector.sqlalchemy import Vector
from sqlalchemy import Boolean, Date, DateTime, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from journal.models.base import Base, TimestampMixin

# Output size of nomic-embed-text; fixed per deployment
EMBEDDING_DIMENSION: int = 768


class NoteRecord(Base, TimestampMixin):
    """
    Persistent storage for journal notes.

    Attributes:
        id: UUID primary key (generated Python-side).
        owner_id: Owning user; every query is scoped by it.
        title: Note title, may be empty.
        body_text: Plain-text body, already extracted from rich text.
        day: Calendar day the note is filed under.
        archived: Soft delete flag. Archived notes are never synced or retrieved.
        embedding: 768-dim vector (NULL until the scheduler embeds the note).
        embedding_synced_at: When ``embedding`` was last written.
    """

    __tablename__ = "notes"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    owner_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    body_text: Mapped[str] = mapped_column(Text, nullable=False, default="")
    day: Mapped[date] = mapped_column(Date, nullable=False)
    archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    embedding: Mapped[list[float] | None] = mapped_column(
        Vector(EMBEDDING_DIMENSION),
        nullable=True,
    )
    embedding_synced_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<NoteRecord(id={self.id!s:.8}, title='{self.title[:20]}')>"
