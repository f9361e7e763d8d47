"""
Note Store Contract

The interface the sync scheduler, the retrieval orchestrator and the
API layer depend on. Two implementations ship with the package:

    - NoteRepository: PostgreSQL + pgvector (production).
    - InMemoryNoteStore: numpy-backed, for tests and database-less runs.

Every method is scoped to a single owner passed explicitly by the caller,
except ``upsert_vector`` which addresses a note by its globally unique id.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from journal.schemas.notes import Note, NoteCreate, NoteUpdate, ScoredNote


class NoteStore(Protocol):
    """
    Async note storage with vector search.

    Key guarantees:
        - ``fetch_stale_batch``: stale, non-archived notes, most recently
          updated first, at most ``limit`` of them.
        - ``upsert_vector``: vector and sync timestamp land together or not
          at all.
        - ``nearest``: ascending cosine distance, ties broken by id,
          archived and unembedded notes excluded, at most ``k`` results.
    """

    async def fetch_stale_batch(self, owner_id: UUID, limit: int) -> list[Note]: ...

    async def upsert_vector(
        self,
        note_id: UUID,
        vector: list[float],
        *,
        expected_updated_at: datetime | None = None,
    ) -> bool: ...

    async def nearest(
        self,
        owner_id: UUID,
        query_vector: list[float],
        k: int,
    ) -> list[ScoredNote]: ...

    async def get_by_id(self, owner_id: UUID, note_id: UUID) -> Note | None: ...

    async def create(self, owner_id: UUID, note_in: NoteCreate) -> Note: ...

    async def update_content(
        self,
        owner_id: UUID,
        note_id: UUID,
        note_in: NoteUpdate,
    ) -> Note | None: ...

    async def archive(self, owner_id: UUID, note_id: UUID) -> bool: ...
