"""
Note Repository

Data access layer for journal notes backed by PostgreSQL + pgvector.
Implements the ``NoteStore`` contract: stale-batch selection for the
embedding scheduler, guarded vector writes, and cosine nearest-neighbour
search for retrieval.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime

from sqlalchemy import ColumnElement, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.sql import func

from journal.core.errors import StoreError
from journal.models.note import NoteRecord
from journal.schemas.notes import Note, NoteCreate, NoteUpdate, ScoredNote

logger = logging.getLogger(__name__)


def stale_condition() -> ColumnElement[bool]:
    """
    SQL form of ``Note.is_stale``.

    A note needs embedding when it has no vector, no sync timestamp,
    or was edited after its last sync.
    """
    return or_(
        NoteRecord.embedding.is_(None),
        NoteRecord.embedding_synced_at.is_(None),
        NoteRecord.updated_at > NoteRecord.embedding_synced_at,
    )


def to_note(record: NoteRecord) -> Note:
    """Detach an ORM record into a ``Note`` snapshot."""
    # pgvector hands back numpy arrays; snapshots hold plain floats
    embedding = (
        [float(x) for x in record.embedding] if record.embedding is not None else None
    )
    return Note(
        id=record.id,
        owner_id=record.owner_id,
        title=record.title,
        body_text=record.body_text,
        day=record.day,
        archived=record.archived,
        created_at=record.created_at,
        updated_at=record.updated_at,
        embedding=embedding,
        embedding_synced_at=record.embedding_synced_at,
    )


class NoteRepository:
    """
    pgvector-backed ``NoteStore``.

    Each method opens its own session from the injected factory: the
    scheduler runs outside any HTTP request, and request handlers never
    share a session with it.

    Key guarantees:
        - ``upsert_vector``: a single UPDATE sets the vector and
          ``embedding_synced_at`` together.
        - ``nearest``: uses pgvector's ``cosine_distance`` (HNSW index on
          ``notes.embedding``), ordered by distance; equal distances
          within the returned rows are ordered by id.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self, action: str) -> AsyncIterator[AsyncSession]:
        """Open a session, translating driver failures into ``StoreError``."""
        try:
            async with self._session_factory() as session:
                yield session
        except (SQLAlchemyError, OSError) as e:
            raise StoreError(f"{action} failed: {e}") from e

    # ------------------------------------------------------------------
    # Embedding sync
    # ------------------------------------------------------------------

    async def fetch_stale_batch(self, owner_id: uuid.UUID, limit: int) -> list[Note]:
        """
        Select notes whose embedding is missing or older than their content.

        Not exhaustive: callers get at most ``limit`` notes and pick up the
        rest on later calls.
        """
        stmt = (
            select(NoteRecord)
            .where(
                NoteRecord.owner_id == owner_id,
                NoteRecord.archived.is_(False),
                stale_condition(),
            )
            .order_by(NoteRecord.updated_at.desc(), NoteRecord.id)
            .limit(limit)
        )
        async with self._session("fetch_stale_batch") as session:
            result = await session.execute(stmt)
            return [to_note(r) for r in result.scalars().all()]

    async def upsert_vector(
        self,
        note_id: uuid.UUID,
        vector: list[float],
        *,
        expected_updated_at: datetime | None = None,
    ) -> bool:
        """
        Store a vector and stamp ``embedding_synced_at = now()``.

        Args:
            note_id: Note to update.
            vector: Embedding of the note's current text.
            expected_updated_at: If given, only write when the note's
                ``updated_at`` still has this value, so an edit that lands
                while the vector was being computed keeps the note stale.

        Returns:
            True if a row was written.
        """
        stmt = (
            update(NoteRecord)
            .where(NoteRecord.id == note_id, NoteRecord.archived.is_(False))
            .values(embedding=vector, embedding_synced_at=func.now())
        )
        if expected_updated_at is not None:
            stmt = stmt.where(NoteRecord.updated_at == expected_updated_at)

        async with self._session("upsert_vector") as session:
            result = await session.execute(stmt)
            await session.commit()
            return bool(result.rowcount)

    # ------------------------------------------------------------------
    # Retrieval
    # ------------------------------------------------------------------

    async def nearest(
        self,
        owner_id: uuid.UUID,
        query_vector: list[float],
        k: int,
    ) -> list[ScoredNote]:
        """
        Return the ``k`` notes closest to ``query_vector`` by cosine distance.

        Returns:
            ``ScoredNote`` tuples, nearest first.
        """
        if k <= 0:
            return []

        distance = NoteRecord.embedding.cosine_distance(query_vector).label("distance")
        stmt = (
            select(NoteRecord, distance)
            .where(
                NoteRecord.owner_id == owner_id,
                NoteRecord.archived.is_(False),
                NoteRecord.embedding.is_not(None),
            )
            .order_by(distance)
            .limit(k)
        )
        async with self._session("nearest") as session:
            result = await session.execute(stmt)
            hits = [ScoredNote(to_note(row[0]), float(row[1])) for row in result.all()]
        # Distance alone keeps the HNSW index usable; ties settle by id here
        hits.sort(key=lambda s: (s.distance, s.note.id))
        return hits

    async def get_by_id(self, owner_id: uuid.UUID, note_id: uuid.UUID) -> Note | None:
        """Look up a live (non-archived) note. Returns None if not found."""
        async with self._session("get_by_id") as session:
            record = await self._load(session, owner_id, note_id)
            return to_note(record) if record is not None else None

    # ------------------------------------------------------------------
    # Content writes
    # ------------------------------------------------------------------

    async def create(self, owner_id: uuid.UUID, note_in: NoteCreate) -> Note:
        """Insert a note. It starts stale (no embedding yet)."""
        record = NoteRecord(owner_id=owner_id, **note_in.model_dump())
        async with self._session("create") as session:
            session.add(record)
            await session.commit()
            await session.refresh(record)  # Load server-side timestamps
            logger.info("Created note %s", record.id)
            return to_note(record)

    async def update_content(
        self,
        owner_id: uuid.UUID,
        note_id: uuid.UUID,
        note_in: NoteUpdate,
    ) -> Note | None:
        """
        Apply a partial update and bump ``updated_at``.

        The bump is what makes the note stale again for the scheduler. One
        UPDATE ... RETURNING stamped with ``clock_timestamp()`` when the row
        is written, so a sync write committed before it is always older
        than the edit.
        """
        changes = note_in.model_dump(exclude_unset=True, exclude_none=True)
        stmt = (
            update(NoteRecord)
            .where(
                NoteRecord.id == note_id,
                NoteRecord.owner_id == owner_id,
                NoteRecord.archived.is_(False),
            )
            .values(**changes, updated_at=func.clock_timestamp())
            .returning(NoteRecord)
        )
        async with self._session("update_content") as session:
            result = await session.execute(stmt)
            record = result.scalars().first()
            await session.commit()
            return to_note(record) if record is not None else None

    async def archive(self, owner_id: uuid.UUID, note_id: uuid.UUID) -> bool:
        """Soft-delete a note. Its vector is left in place but never served."""
        stmt = (
            update(NoteRecord)
            .where(
                NoteRecord.id == note_id,
                NoteRecord.owner_id == owner_id,
                NoteRecord.archived.is_(False),
            )
            .values(archived=True, updated_at=func.clock_timestamp())
        )
        async with self._session("archive") as session:
            result = await session.execute(stmt)
            await session.commit()
            return bool(result.rowcount)

    @staticmethod
    async def _load(
        session: AsyncSession,
        owner_id: uuid.UUID,
        note_id: uuid.UUID,
    ) -> NoteRecord | None:
        stmt = select(NoteRecord).where(
            NoteRecord.id == note_id,
            NoteRecord.owner_id == owner_id,
            NoteRecord.archived.is_(False),
        )
        result = await session.execute(stmt)
        return result.scalars().first()
