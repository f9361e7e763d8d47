"""
In-Memory Note Store

numpy-backed ``NoteStore`` for tests and for running the service
without PostgreSQL (``STORE_BACKEND=memory``). Mirrors the SQL
repository's ordering and filtering rules exactly.

No method suspends between reading and writing state, so on a single
event loop each call is atomic with respect to the others.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import numpy as np

from journal.core.errors import StoreError
from journal.schemas.notes import Note, NoteCreate, NoteUpdate, ScoredNote

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def cosine_distance(a: np.ndarray, b: np.ndarray) -> float:
    """
    ``1 - cos(a, b)``, in [0, 2].

    Zero vectors carry no direction; they are scored as orthogonal (1.0).
    """
    norm = float(np.linalg.norm(a) * np.linalg.norm(b))
    if norm == 0.0:
        return 1.0
    return 1.0 - float(np.dot(a, b)) / norm


class InMemoryNoteStore:
    """
    Dict-backed note store with brute-force cosine search.

    Usage::

        store = InMemoryNoteStore(dimension=768)
        note = await store.create(owner_id, NoteCreate(title="Standup", day=today))
        await store.upsert_vector(note.id, vector)
        hits = await store.nearest(owner_id, query_vector, k=5)

    Args:
        dimension: Required vector length; other lengths are rejected
            the way pgvector rejects them.
        clock: Source of timestamps (injectable for tests).
    """

    def __init__(
        self,
        dimension: int,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._dimension = dimension
        self._clock = clock
        self._last_stamp: datetime | None = None
        self._notes: dict[uuid.UUID, Note] = {}

    def _stamp(self) -> datetime:
        """Strictly increasing timestamps, so an edit never ties with a sync."""
        now = self._clock()
        if self._last_stamp is not None and now <= self._last_stamp:
            now = self._last_stamp + timedelta(microseconds=1)
        self._last_stamp = now
        return now

    @property
    def dimension(self) -> int:
        """Vector length accepted by ``upsert_vector``."""
        return self._dimension

    # ------------------------------------------------------------------
    # Embedding sync
    # ------------------------------------------------------------------

    async def fetch_stale_batch(self, owner_id: uuid.UUID, limit: int) -> list[Note]:
        stale = [
            n
            for n in self._notes.values()
            if n.owner_id == owner_id and not n.archived and n.is_stale
        ]
        # Newest edit first, id as tie-break (two stable passes)
        stale.sort(key=lambda n: n.id)
        stale.sort(key=lambda n: n.updated_at, reverse=True)
        return stale[: max(limit, 0)]

    async def upsert_vector(
        self,
        note_id: uuid.UUID,
        vector: list[float],
        *,
        expected_updated_at: datetime | None = None,
    ) -> bool:
        if len(vector) != self._dimension:
            raise StoreError(
                f"upsert_vector failed: expected {self._dimension} dimensions, "
                f"not {len(vector)}"
            )
        note = self._notes.get(note_id)
        if note is None or note.archived:
            return False
        if expected_updated_at is not None and note.updated_at != expected_updated_at:
            return False

        self._notes[note_id] = note.model_copy(
            update={
                "embedding": [float(x) for x in vector],
                "embedding_synced_at": self._stamp(),
            }
        )
        return True

    # ------------------------------------------------------------------
    # Retrieval
    # ------------------------------------------------------------------

    async def nearest(
        self,
        owner_id: uuid.UUID,
        query_vector: list[float],
        k: int,
    ) -> list[ScoredNote]:
        if k <= 0:
            return []

        query = np.asarray(query_vector, dtype=np.float64)
        scored = [
            ScoredNote(n, cosine_distance(query, np.asarray(n.embedding, dtype=np.float64)))
            for n in self._notes.values()
            if n.owner_id == owner_id and not n.archived and n.embedding is not None
        ]
        scored.sort(key=lambda s: (s.distance, s.note.id))
        return scored[:k]

    async def get_by_id(self, owner_id: uuid.UUID, note_id: uuid.UUID) -> Note | None:
        note = self._notes.get(note_id)
        if note is None or note.owner_id != owner_id or note.archived:
            return None
        return note

    # ------------------------------------------------------------------
    # Content writes
    # ------------------------------------------------------------------

    async def create(self, owner_id: uuid.UUID, note_in: NoteCreate) -> Note:
        now = self._stamp()
        note = Note(
            id=uuid.uuid4(),
            owner_id=owner_id,
            created_at=now,
            updated_at=now,
            **note_in.model_dump(),
        )
        self._notes[note.id] = note
        logger.debug("Created note %s", note.id)
        return note

    async def update_content(
        self,
        owner_id: uuid.UUID,
        note_id: uuid.UUID,
        note_in: NoteUpdate,
    ) -> Note | None:
        note = await self.get_by_id(owner_id, note_id)
        if note is None:
            return None
        changes = note_in.model_dump(exclude_unset=True, exclude_none=True)
        changes["updated_at"] = self._stamp()
        updated = note.model_copy(update=changes)
        self._notes[note_id] = updated
        return updated

    async def archive(self, owner_id: uuid.UUID, note_id: uuid.UUID) -> bool:
        note = await self.get_by_id(owner_id, note_id)
        if note is None:
            return False
        self._notes[note_id] = note.model_copy(
            update={"archived": True, "updated_at": self._stamp()}
        )
        return True
