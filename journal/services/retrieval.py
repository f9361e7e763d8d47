"""
Retrieval Orchestrator

Answers a question from the owner's own journal:
question → embedding → nearest notes → grounded prompt → completion →
citation parsing → cited notes re-fetched for display.

Stateless per call; concurrent requests share nothing but the store
and the client.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field

from journal.core.errors import BackendError, StoreError
from journal.repositories.base import NoteStore
from journal.schemas.notes import Note
from journal.services.citations import CITATION_MARKER, parse_citations
from journal.services.llm import ModelBackend

logger = logging.getLogger(__name__)

DEFAULT_TOP_K: int = 5

SYSTEM_PROMPT = (
    "You are a helpful AI assistant with access to the user's journal entries. "
    "Use the provided context to answer questions about past events, meetings, "
    "and notes.\n\n"
)

CONTEXT_HEADER = "Here are some relevant journal entries:\n\n"

NO_CONTEXT_NOTICE = (
    "No relevant journal entries were found for this question. "
    "Say so in your answer.\n\n"
)

CITATION_DIRECTIVE = (
    f"IMPORTANT: After your response, on a new line, add '{CITATION_MARKER} ' "
    "followed by ONLY the numbers of the journal entries you actually used "
    f"(e.g., '{CITATION_MARKER} 1, 3' or '{CITATION_MARKER} none' if you didn't "
    "use any). Provide a helpful response based on the journal entries above."
)


@dataclass(frozen=True)
class Answer:
    """One answered question."""

    answer_id: uuid.UUID
    text: str
    cited_notes: list[Note] = field(default_factory=list)
    retrieved_count: int = 0


def build_context(notes: list[Note]) -> str:
    """Render notes as a numbered list; ordinals start at 1."""
    parts = [CONTEXT_HEADER]
    for i, note in enumerate(notes, start=1):
        parts.append(f"{i}. {note.title} (Date: {note.day.isoformat()})\n{note.body_text}\n\n")
    return "".join(parts)


def build_prompt(question: str, notes: list[Note]) -> str:
    """Assemble the full completion prompt around ``question``."""
    context = build_context(notes) if notes else NO_CONTEXT_NOTICE
    return f"{SYSTEM_PROMPT}{context}User Question: {question}\n\n{CITATION_DIRECTIVE}"


class RetrievalOrchestrator:
    """
    Retrieval-augmented answering over one owner's notes.

    Degradation:
        - Query embedding fails: answered without context.
        - Store unreachable: ``StoreError`` propagates.
        - Completion fails: ``BackendError`` propagates.
        - Citation line missing or garbled: answered with fewer citations.

    Usage::

        orchestrator = RetrievalOrchestrator(store, client, top_k=5)
        answer = await orchestrator.answer("What did we decide on Monday?", owner_id)
    """

    def __init__(
        self,
        store: NoteStore,
        client: ModelBackend,
        *,
        top_k: int = DEFAULT_TOP_K,
    ) -> None:
        self._store = store
        self._client = client
        self._top_k = top_k

    @property
    def top_k(self) -> int:
        return self._top_k

    async def answer(self, question: str, owner_id: uuid.UUID) -> Answer:
        """
        Answer ``question`` from ``owner_id``'s notes.

        Returns:
            Answer with trimmed text and cited notes in citation order.

        Raises:
            StoreError: The nearest-neighbour query failed.
            BackendError: The completion call failed.
        """
        notes = await self._retrieve(question, owner_id)

        prompt = build_prompt(question, notes)
        completion = await self._client.complete(prompt)

        parsed = parse_citations(completion, len(notes))
        cited = await self._resolve(owner_id, [notes[i - 1] for i in parsed.ordinals])

        logger.info(
            "Answered question (retrieved=%d, cited=%d)",
            len(notes),
            len(cited),
        )
        return Answer(
            answer_id=uuid.uuid4(),
            text=parsed.answer,
            cited_notes=cited,
            retrieved_count=len(notes),
        )

    async def _retrieve(self, question: str, owner_id: uuid.UUID) -> list[Note]:
        """Top-k notes for ``question``; empty when the query can't be embedded."""
        try:
            query_vector = await self._client.embed(question)
        except BackendError as e:
            logger.warning("Query embedding failed, answering without context: %s", e)
            return []

        if not any(query_vector):
            return []

        hits = await self._store.nearest(owner_id, query_vector, self._top_k)
        return [hit.note for hit in hits]

    async def _resolve(self, owner_id: uuid.UUID, notes: list[Note]) -> list[Note]:
        """Re-fetch cited notes; ones archived or unreadable since are skipped."""
        resolved: list[Note] = []
        for note in notes:
            try:
                fresh = await self._store.get_by_id(owner_id, note.id)
            except StoreError as e:
                logger.warning("Could not re-fetch cited note %s: %s", note.id, e)
                continue
            if fresh is not None:
                resolved.append(fresh)
        return resolved
