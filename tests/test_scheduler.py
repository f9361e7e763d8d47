"""
Sync Scheduler Tests

Runs against the in-memory store and the fake backend from conftest,
so cycles are deterministic and need no network.
"""

import asyncio
import uuid
from datetime import date
from unittest.mock import AsyncMock

import pytest

from journal.core.errors import StoreError
from journal.schemas.notes import NoteCreate, NoteUpdate
from journal.services.sync import SyncReport, SyncScheduler, build_embedding_text

DAY = date(2026, 3, 2)


async def wait_until(predicate, timeout: float = 2.0) -> None:
    """Poll ``predicate`` on the event loop until it holds."""
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


def make_scheduler(store, backend, owner_id, **kwargs) -> SyncScheduler:
    kwargs.setdefault("interval", 3600)
    return SyncScheduler(store, backend, owner_id, **kwargs)


# ---------------------------------------------------------------------------
# Embedding text
# ---------------------------------------------------------------------------


def test_embedding_text_joins_title_and_body():
    assert build_embedding_text("Standup", "Shipped it") == "Standup\n\nShipped it"


def test_embedding_text_blank_title_is_body_only():
    assert build_embedding_text("", "Shipped it") == "Shipped it"
    assert build_embedding_text("   ", "Shipped it") == "Shipped it"


def test_rejects_invalid_cadence(store, backend, owner_id):
    with pytest.raises(ValueError):
        SyncScheduler(store, backend, owner_id, interval=0)
    with pytest.raises(ValueError):
        SyncScheduler(store, backend, owner_id, batch_size=0)


# ---------------------------------------------------------------------------
# Cycles
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_empty_stale_set_does_nothing(store, backend, owner_id):
    scheduler = make_scheduler(store, backend, owner_id)

    report = await scheduler.run_cycle()

    assert report == SyncReport()
    assert backend.embed_calls == []


@pytest.mark.asyncio
async def test_cycle_embeds_only_stale_notes(store, backend, owner_id):
    """5 notes, 3 already synced: one cycle embeds exactly the other 2."""
    fresh = []
    for i in range(3):
        note = await store.create(owner_id, NoteCreate(title=f"Synced {i}", day=DAY))
        await store.upsert_vector(note.id, [1.0] * store.dimension)
        fresh.append(await store.get_by_id(owner_id, note.id))
    stale = [
        await store.create(owner_id, NoteCreate(title=f"New {i}", body_text="body", day=DAY))
        for i in range(2)
    ]
    scheduler = make_scheduler(store, backend, owner_id, batch_size=10)

    report = await scheduler.run_cycle()

    assert report == SyncReport(fetched=2, embedded=2, failed=0)
    assert sorted(backend.embed_calls) == sorted(f"{n.title}\n\nbody" for n in stale)
    for note in stale:
        assert not (await store.get_by_id(owner_id, note.id)).is_stale
    for note in fresh:
        after = await store.get_by_id(owner_id, note.id)
        assert after.embedding_synced_at == note.embedding_synced_at


@pytest.mark.asyncio
async def test_cycle_respects_batch_size(store, backend, owner_id):
    for i in range(5):
        await store.create(owner_id, NoteCreate(title=f"Note {i}", day=DAY))
    scheduler = make_scheduler(store, backend, owner_id, batch_size=2)

    first = await scheduler.run_cycle()

    assert first.fetched == 2
    assert len(await store.fetch_stale_batch(owner_id, 10)) == 3


@pytest.mark.asyncio
async def test_one_failing_note_does_not_abort_batch(store, backend, owner_id):
    good = await store.create(owner_id, NoteCreate(title="Good", day=DAY))
    bad = await store.create(owner_id, NoteCreate(title="Poison", day=DAY))
    backend.fail_embed_on = {"Poison"}
    scheduler = make_scheduler(store, backend, owner_id)

    report = await scheduler.run_cycle()

    assert report == SyncReport(fetched=2, embedded=1, failed=1)
    assert not (await store.get_by_id(owner_id, good.id)).is_stale
    assert (await store.get_by_id(owner_id, bad.id)).is_stale


@pytest.mark.asyncio
async def test_store_write_failure_is_counted(store, backend, owner_id):
    await store.create(owner_id, NoteCreate(title="One", day=DAY))
    store.upsert_vector = AsyncMock(side_effect=StoreError("disk full"))
    scheduler = make_scheduler(store, backend, owner_id)

    report = await scheduler.run_cycle()

    assert report == SyncReport(fetched=1, embedded=0, failed=1)


@pytest.mark.asyncio
async def test_fetch_failure_ends_cycle_quietly(backend, owner_id):
    broken = AsyncMock()
    broken.fetch_stale_batch.side_effect = StoreError("connection refused")
    scheduler = make_scheduler(broken, backend, owner_id)

    assert await scheduler.run_cycle() == SyncReport()
    assert backend.embed_calls == []


@pytest.mark.asyncio
async def test_edit_during_cycle_keeps_note_stale(store, backend, owner_id):
    note = await store.create(owner_id, NoteCreate(title="Draft", day=DAY))

    async def edit_while_embedding(_text):
        await store.update_content(owner_id, note.id, NoteUpdate(body_text="Rewritten"))

    backend.on_embed = edit_while_embedding
    scheduler = make_scheduler(store, backend, owner_id)

    report = await scheduler.run_cycle()

    assert report == SyncReport(fetched=1, embedded=0, failed=0)
    assert (await store.get_by_id(owner_id, note.id)).is_stale


@pytest.mark.asyncio
async def test_concurrent_trigger_is_dropped(store, backend, owner_id):
    await store.create(owner_id, NoteCreate(title="Slow", day=DAY))
    backend.gate = asyncio.Event()
    backend.entered = asyncio.Event()
    scheduler = make_scheduler(store, backend, owner_id)

    in_flight = asyncio.create_task(scheduler.run_cycle())
    await backend.entered.wait()

    dropped = await scheduler.run_cycle()
    backend.gate.set()
    completed = await in_flight

    assert dropped == SyncReport(skipped=True)
    assert completed.embedded == 1
    assert len(backend.embed_calls) == 1


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_start_runs_first_cycle_immediately(store, backend, owner_id):
    note = await store.create(owner_id, NoteCreate(title="Standup", day=DAY))
    scheduler = make_scheduler(store, backend, owner_id)

    scheduler.start()
    try:
        await wait_until(lambda: not store._notes[note.id].is_stale)
    finally:
        await scheduler.aclose()

    assert not scheduler.is_running


@pytest.mark.asyncio
async def test_double_start_runs_one_loop(store, backend, owner_id):
    scheduler = make_scheduler(store, backend, owner_id)

    scheduler.start()
    task = scheduler._task
    scheduler.start()

    assert scheduler._task is task
    assert scheduler.is_running
    await scheduler.aclose()
    assert not scheduler.is_running


@pytest.mark.asyncio
async def test_stop_is_idempotent(store, backend, owner_id):
    scheduler = make_scheduler(store, backend, owner_id)

    scheduler.stop()
    scheduler.start()
    scheduler.stop()
    scheduler.stop()
    await scheduler.aclose()

    assert not scheduler.is_running


@pytest.mark.asyncio
async def test_restart_after_stop(store, backend, owner_id):
    scheduler = make_scheduler(store, backend, owner_id)

    scheduler.start()
    await scheduler.aclose()
    scheduler.start()

    assert scheduler.is_running
    await scheduler.aclose()


@pytest.mark.asyncio
async def test_concurrent_start_stop_leaves_consistent_state(store, backend, owner_id):
    scheduler = make_scheduler(store, backend, owner_id)

    async def toggle(i: int) -> None:
        await asyncio.sleep(0)
        if i % 2:
            scheduler.start()
        else:
            scheduler.stop()

    await asyncio.gather(*(toggle(i) for i in range(20)))
    scheduler.start()
    running = [t for t in asyncio.all_tasks() if t.get_name() == "embedding-sync" and not t.done()]
    assert scheduler.is_running
    assert scheduler._task in running

    await scheduler.aclose()
    assert not scheduler.is_running
    assert scheduler._retiring == set()
    assert not [t for t in asyncio.all_tasks() if t.get_name() == "embedding-sync" and not t.done()]


@pytest.mark.asyncio
async def test_stop_lets_in_flight_cycle_finish(store, backend, owner_id):
    note = await store.create(owner_id, NoteCreate(title="Slow", day=DAY))
    backend.gate = asyncio.Event()
    backend.entered = asyncio.Event()
    scheduler = make_scheduler(store, backend, owner_id, interval=0.01)

    scheduler.start()
    await backend.entered.wait()
    scheduler.stop()
    assert not scheduler.is_running

    backend.gate.set()
    await scheduler.aclose()

    assert not (await store.get_by_id(owner_id, note.id)).is_stale
    # No cycle started after stop(): the only embed call is the in-flight one
    await store.create(owner_id, NoteCreate(title="After stop", day=DAY))
    await asyncio.sleep(0.05)
    assert len(backend.embed_calls) == 1


@pytest.mark.asyncio
async def test_aclose_cancel_interrupts_cycle(store, backend, owner_id):
    note = await store.create(owner_id, NoteCreate(title="Stuck", day=DAY))
    backend.gate = asyncio.Event()
    backend.entered = asyncio.Event()
    scheduler = make_scheduler(store, backend, owner_id)

    scheduler.start()
    await backend.entered.wait()
    await asyncio.wait_for(scheduler.aclose(cancel=True), timeout=1.0)

    assert not scheduler.is_running
    assert (await store.get_by_id(owner_id, note.id)).is_stale


@pytest.mark.asyncio
async def test_loop_survives_unexpected_cycle_error(store, backend, owner_id):
    scheduler = make_scheduler(store, backend, owner_id, interval=0.01)
    calls = 0
    original = scheduler._sync_batch

    async def flaky():
        nonlocal calls
        calls += 1
        if calls == 1:
            raise RuntimeError("boom")
        return await original()

    scheduler._sync_batch = flaky
    scheduler.start()
    try:
        await wait_until(lambda: calls >= 2)
    finally:
        await scheduler.aclose()


@pytest.mark.asyncio
async def test_background_loop_picks_up_later_edits(store, backend, owner_id):
    scheduler = make_scheduler(store, backend, owner_id, interval=0.02)
    scheduler.start()
    try:
        note = await store.create(owner_id, NoteCreate(title="Later", day=DAY))
        await wait_until(lambda: not store._notes[note.id].is_stale)
    finally:
        await scheduler.aclose()


def test_exposes_cadence(store, backend):
    scheduler = make_scheduler(store, backend, uuid.uuid4())
    assert scheduler.batch_size == 10
    assert scheduler.interval == 3600
