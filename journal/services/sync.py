"""
Embedding Sync Scheduler

Background task that keeps every note's vector in step with its text.

Each cycle pulls a bounded batch of stale notes (no vector, or edited
since the last sync), embeds them one at a time, and writes the vectors
back with a fresh sync timestamp. Runs once on ``start()`` and then on a
fixed-rate tick until ``stop()``.

Guarantees:
    - At most one cycle runs at a time. A trigger that finds a cycle in
      progress is dropped, not queued.
    - One note's failure never aborts the batch; the note stays stale and
      is retried on the next cycle.
    - ``stop()`` takes effect between cycles: it never interrupts a cycle,
      but no new cycle starts once it has returned.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import NamedTuple

from journal.core.errors import BackendError, StoreError
from journal.repositories.base import NoteStore
from journal.services.llm import ModelBackend

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS: float = 60.0
DEFAULT_BATCH_SIZE: int = 10


class SyncReport(NamedTuple):
    """Outcome of one cycle."""

    fetched: int = 0
    embedded: int = 0
    failed: int = 0
    skipped: bool = False


def build_embedding_text(title: str, body_text: str) -> str:
    """Title, blank line, body. A blank title is left out entirely."""
    if title.strip():
        return f"{title}\n\n{body_text}"
    return body_text


class SyncScheduler:
    """
    Recurring, mutex-serialized embedding job.

    Usage::

        scheduler = SyncScheduler(store, client, owner_id, interval=60)
        scheduler.start()          # inside a running event loop
        ...
        await scheduler.aclose()   # stop and wait for an in-flight cycle

    Args:
        store: Where stale notes come from and vectors go to.
        client: Embedding backend.
        owner_id: Owner whose notes are kept in sync.
        interval: Seconds between cycle starts.
        batch_size: Maximum notes embedded per cycle.
    """

    def __init__(
        self,
        store: NoteStore,
        client: ModelBackend,
        owner_id: uuid.UUID,
        *,
        interval: float = DEFAULT_INTERVAL_SECONDS,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")

        self._store = store
        self._client = client
        self._owner_id = owner_id
        self._interval = interval
        self._batch_size = batch_size

        self._cycle_lock = asyncio.Lock()
        self._task: asyncio.Task[None] | None = None
        self._stop_event: asyncio.Event | None = None
        # Stopped loops that may still be finishing an in-flight cycle
        self._retiring: set[asyncio.Task[None]] = set()

    @property
    def interval(self) -> float:
        """Seconds between cycle starts."""
        return self._interval

    @property
    def batch_size(self) -> int:
        """Maximum notes embedded per cycle."""
        return self._batch_size

    @property
    def is_running(self) -> bool:
        """True while the background loop is alive and not asked to stop."""
        return self._task is not None and not self._task.done()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """
        Start the background loop. No-op if already running.

        Must be called from within a running event loop.
        """
        if self.is_running:
            return

        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(
            self._run(self._stop_event),
            name="embedding-sync",
        )
        logger.info(
            "Embedding sync started (interval=%.0fs, batch=%d)",
            self._interval,
            self._batch_size,
        )

    def stop(self) -> None:
        """
        Ask the background loop to exit. No-op if not running.

        Returns immediately; an in-flight cycle is allowed to finish.
        """
        task, self._task = self._task, None
        if task is None:
            return

        if self._stop_event is not None:
            self._stop_event.set()
        if not task.done():
            self._retiring.add(task)
            task.add_done_callback(self._retiring.discard)
        logger.info("Embedding sync stopped")

    async def aclose(self, *, cancel: bool = False) -> None:
        """
        Stop and wait for the loop to exit.

        Args:
            cancel: Also cancel an in-flight cycle instead of letting it finish.
        """
        self.stop()
        pending = set(self._retiring)
        if not pending:
            return
        if cancel:
            for task in pending:
                task.cancel()
        await asyncio.wait(pending)

    # ------------------------------------------------------------------
    # Cycles
    # ------------------------------------------------------------------

    async def run_cycle(self) -> SyncReport:
        """
        Run one sync cycle now, unless one is already in progress.

        Returns:
            SyncReport; ``skipped=True`` when the trigger was dropped.
        """
        if self._cycle_lock.locked():
            logger.debug("Embedding sync cycle already running; trigger dropped")
            return SyncReport(skipped=True)

        async with self._cycle_lock:
            return await self._sync_batch()

    async def _run(self, stop_event: asyncio.Event) -> None:
        """Fixed-rate loop; ticks that fall inside a slow cycle are dropped."""
        loop = asyncio.get_running_loop()
        next_tick = loop.time()
        try:
            while not stop_event.is_set():
                try:
                    await self.run_cycle()
                except Exception:
                    logger.exception("Embedding sync cycle crashed")

                next_tick += self._interval
                now = loop.time()
                if next_tick <= now:
                    missed = int((now - next_tick) // self._interval) + 1
                    logger.debug("Embedding sync cycle overran %d tick(s)", missed)
                    next_tick += missed * self._interval

                try:
                    await asyncio.wait_for(stop_event.wait(), timeout=next_tick - now)
                except TimeoutError:
                    pass
        finally:
            logger.debug("Embedding sync loop exited")

    async def _sync_batch(self) -> SyncReport:
        """Fetch, embed and store one batch. Caller holds the cycle lock."""
        try:
            notes = await self._store.fetch_stale_batch(self._owner_id, self._batch_size)
        except StoreError as e:
            logger.error("Error fetching notes needing embeddings: %s", e)
            return SyncReport()

        if not notes:
            return SyncReport()

        logger.info("Updating embeddings for %d notes", len(notes))

        embedded = 0
        failed = 0
        for note in notes:
            text = build_embedding_text(note.title, note.body_text)
            try:
                vector = await self._client.embed(text)
            except BackendError as e:
                logger.error("Error generating embedding for note %s: %s", note.id, e)
                failed += 1
                continue

            try:
                written = await self._store.upsert_vector(
                    note.id,
                    vector,
                    expected_updated_at=note.updated_at,
                )
            except StoreError as e:
                logger.error("Error storing embedding for note %s: %s", note.id, e)
                failed += 1
                continue

            if written:
                embedded += 1
            else:
                logger.info(
                    "Note %s was edited or archived during sync; left for next cycle",
                    note.id,
                )

        logger.info(
            "Embedding sync: %d/%d notes updated (%d failed)",
            embedded,
            len(notes),
            failed,
        )
        return SyncReport(fetched=len(notes), embedded=embedded, failed=failed)
