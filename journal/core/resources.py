"""
Application Resources

Everything a configuration epoch needs, built together and replaced together:
settings, note store, model client, sync scheduler and orchestrator.

A ``Resources`` bundle is immutable. Reloading configuration never edits
the live bundle: ``ResourceHolder.reload`` builds and checks a complete
new one, swaps the reference in a single assignment, then retires the
old one. Request handlers read ``holder.current`` once per request, so a
request always sees one consistent bundle.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from journal.core.config import Settings, ensure_valid, load_settings
from journal.core.database import create_engine, create_session_factory, dispose, ping
from journal.core.errors import StoreError
from journal.repositories import InMemoryNoteStore, NoteRepository, NoteStore
from journal.services.llm import OllamaClient
from journal.services.retrieval import RetrievalOrchestrator
from journal.services.sync import SyncScheduler

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Resources:
    """One configuration epoch's worth of collaborators."""

    settings: Settings
    store: NoteStore
    client: OllamaClient
    scheduler: SyncScheduler
    orchestrator: RetrievalOrchestrator
    engine: AsyncEngine | None = None


ResourceFactory = Callable[..., Resources]


def build_resources(settings: Settings, *, store: NoteStore | None = None) -> Resources:
    """
    Wire up a bundle for ``settings``. Performs no I/O.

    Args:
        settings: Validated settings.
        store: Reuse this store instead of building one (keeps an
            in-memory store's notes across a reload).
    """
    engine: AsyncEngine | None = None
    if store is None:
        if settings.STORE_BACKEND == "memory":
            store = InMemoryNoteStore(dimension=settings.VECTOR_DIMENSIONS)
        else:
            engine = create_engine(settings)
            store = NoteRepository(create_session_factory(engine))

    client = OllamaClient.from_settings(settings)
    scheduler = SyncScheduler(
        store,
        client,
        settings.OWNER_ID,
        interval=settings.VECTOR_UPDATE_INTERVAL,
        batch_size=settings.SYNC_BATCH_SIZE,
    )
    orchestrator = RetrievalOrchestrator(store, client, top_k=settings.RETRIEVAL_TOP_K)
    return Resources(
        settings=settings,
        store=store,
        client=client,
        scheduler=scheduler,
        orchestrator=orchestrator,
        engine=engine,
    )


async def check_resources(resources: Resources) -> None:
    """
    Startup checks for a freshly built bundle.

    Raises:
        StoreError: Database unreachable.
        ConfigurationError: Embedding dimension mismatch (when verification is on).
        BackendError: Dimension probe failed.
    """
    if resources.engine is not None:
        try:
            await ping(resources.engine)
        except (SQLAlchemyError, OSError) as e:
            raise StoreError(f"Database connection failed: {e}") from e

    if resources.settings.VERIFY_EMBEDDING_DIMENSION:
        await resources.client.verify_dimension()


async def release_resources(resources: Resources, *, cancel: bool = False) -> None:
    """Stop the bundle's scheduler, then dispose its engine."""
    await resources.scheduler.aclose(cancel=cancel)
    if resources.engine is not None:
        await dispose(resources.engine)


class ResourceHolder:
    """
    Owns the live ``Resources`` bundle and swaps it on reload.

    Usage::

        holder = ResourceHolder(settings)
        await holder.start()
        resources = holder.current
        ...
        await holder.reload()      # re-read the environment
        await holder.close()
    """

    def __init__(
        self,
        settings: Settings,
        factory: ResourceFactory = build_resources,
        settings_loader: Callable[[], Settings] = load_settings,
    ) -> None:
        self._settings = settings
        self._factory = factory
        self._settings_loader = settings_loader
        self._current: Resources | None = None
        self._reload_lock = asyncio.Lock()

    @property
    def current(self) -> Resources:
        """The live bundle. Raises RuntimeError before ``start()``."""
        if self._current is None:
            raise RuntimeError("Resources not started")
        return self._current

    @property
    def settings(self) -> Settings:
        """Settings of the live bundle (or the initial ones before start)."""
        return self._current.settings if self._current is not None else self._settings

    @property
    def started(self) -> bool:
        return self._current is not None

    async def start(self) -> Resources:
        """Validate, build, check and activate the initial bundle."""
        async with self._reload_lock:
            if self._current is not None:
                return self._current
            resources = await self._prepare(self._settings)
            self._activate(resources)
            self._current = resources
            logger.info(
                "Resources ready (store=%s, embedding_model=%s, chat_model=%s)",
                resources.settings.STORE_BACKEND,
                resources.settings.EMBEDDING_MODEL,
                resources.settings.CHAT_MODEL,
            )
            return resources

    async def reload(self, settings: Settings | None = None) -> Resources:
        """
        Replace the live bundle with one built from ``settings``.

        Reads the environment when ``settings`` is omitted. If anything
        fails before the swap, the current bundle stays live and the
        error propagates.

        Raises:
            ConfigurationError, StoreError, BackendError: New bundle rejected.
        """
        async with self._reload_lock:
            old = self.current
            new_settings = settings if settings is not None else self._settings_loader()

            reuse = None
            if (
                new_settings.STORE_BACKEND == "memory"
                and old.settings.STORE_BACKEND == "memory"
                and new_settings.VECTOR_DIMENSIONS == old.settings.VECTOR_DIMENSIONS
            ):
                reuse = old.store

            new = await self._prepare(new_settings, store=reuse)

            # A scheduler stopped by hand stays stopped across the reload
            resume = old.scheduler.is_running or not old.settings.ENABLE_VECTOR_SEARCH

            # One scheduler at a time: let the old cycle finish first
            await old.scheduler.aclose()
            self._activate(new, run_scheduler=resume)
            self._current = new
            self._settings = new_settings

            if old.engine is not None:
                await dispose(old.engine)
            logger.info("Configuration reloaded")
            return new

    async def close(self, *, cancel: bool = False) -> None:
        """Stop the scheduler and release the database pool. Idempotent."""
        async with self._reload_lock:
            resources, self._current = self._current, None
            if resources is not None:
                await release_resources(resources, cancel=cancel)

    async def _prepare(self, settings: Settings, store: NoteStore | None = None) -> Resources:
        ensure_valid(settings)
        if store is not None:
            resources = self._factory(settings, store=store)
        else:
            resources = self._factory(settings)
        try:
            await check_resources(resources)
        except BaseException:
            if resources.engine is not None:
                await dispose(resources.engine)
            raise
        return resources

    @staticmethod
    def _activate(resources: Resources, *, run_scheduler: bool = True) -> None:
        if not resources.settings.ENABLE_VECTOR_SEARCH:
            logger.info("Vector search disabled; embedding sync not started")
        elif run_scheduler:
            resources.scheduler.start()
        else:
            logger.info("Embedding sync was stopped; leaving it stopped")
