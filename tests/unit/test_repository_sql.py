"""
SQL Repository Unit Tests

Checks the statements NoteRepository sends to PostgreSQL by capturing
them from a mocked session and compiling with the postgresql dialect.
Runs without a database.
"""

import uuid
from datetime import UTC, date, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import OperationalError

from journal.core.errors import StoreError
from journal.models.note import NoteRecord
from journal.repositories.notes import NoteRepository
from journal.schemas.notes import NoteUpdate


def make_repository(rows=None, rowcount=1, first=None):
    """NoteRepository over a session mock that records executed statements."""
    result = MagicMock()
    result.scalars.return_value.all.return_value = rows or []
    result.scalars.return_value.first.return_value = first
    result.all.return_value = rows or []
    result.rowcount = rowcount

    session = MagicMock()
    session.execute = AsyncMock(return_value=result)
    session.commit = AsyncMock()

    factory = MagicMock()
    factory.return_value.__aenter__.return_value = session
    return NoteRepository(factory), session


def compiled(session) -> str:
    stmt = session.execute.call_args.args[0]
    return str(stmt.compile(dialect=postgresql.dialect()))


def make_record(note_id: uuid.UUID, title: str = "Standup") -> NoteRecord:
    stamp = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)
    return NoteRecord(
        id=note_id,
        owner_id=uuid.UUID(int=1),
        title=title,
        body_text="Shipped the importer.",
        day=date(2026, 3, 2),
        archived=False,
        created_at=stamp,
        updated_at=stamp,
        embedding=None,
        embedding_synced_at=None,
    )


@pytest.mark.asyncio
async def test_fetch_stale_batch_query():
    repo, session = make_repository()

    assert await repo.fetch_stale_batch(uuid.uuid4(), 10) == []

    sql = compiled(session)
    assert "notes.embedding IS NULL" in sql
    assert "notes.embedding_synced_at IS NULL" in sql
    assert "notes.updated_at > notes.embedding_synced_at" in sql
    assert "notes.archived IS false" in sql
    assert "ORDER BY notes.updated_at DESC, notes.id" in sql
    assert "LIMIT" in sql


@pytest.mark.asyncio
async def test_nearest_orders_by_cosine_distance_only():
    repo, session = make_repository()

    assert await repo.nearest(uuid.uuid4(), [0.1] * 768, k=5) == []

    sql = compiled(session)
    assert "<=>" in sql
    assert "notes.embedding IS NOT NULL" in sql
    order_by = sql.split("ORDER BY")[1].split("LIMIT")[0]
    assert order_by.strip() == "distance"


@pytest.mark.asyncio
async def test_nearest_breaks_distance_ties_by_id():
    low, mid, high = (uuid.UUID(int=n) for n in (1, 2, 3))
    rows = [
        (make_record(high), 0.25),
        (make_record(low), 0.25),
        (make_record(mid), 0.1),
    ]
    repo, _ = make_repository(rows=rows)

    hits = await repo.nearest(uuid.UUID(int=1), [0.1] * 768, k=3)

    assert [h.note.id for h in hits] == [mid, low, high]
    assert [h.distance for h in hits] == [0.1, 0.25, 0.25]


@pytest.mark.asyncio
async def test_nearest_with_zero_k_skips_query():
    repo, session = make_repository()

    assert await repo.nearest(uuid.uuid4(), [0.1] * 768, k=0) == []
    session.execute.assert_not_called()


@pytest.mark.asyncio
async def test_upsert_vector_stamps_sync_time_and_guards_edits():
    repo, session = make_repository(rowcount=1)

    written = await repo.upsert_vector(
        uuid.uuid4(),
        [0.1] * 768,
        expected_updated_at=datetime(2026, 3, 2, tzinfo=UTC),
    )

    assert written is True
    session.commit.assert_awaited_once()
    sql = compiled(session)
    assert sql.startswith("UPDATE notes SET")
    assert "embedding_synced_at=now()" in sql
    assert "notes.updated_at =" in sql
    assert "updated_at=" not in sql.split("WHERE")[0]


@pytest.mark.asyncio
async def test_upsert_vector_reports_no_row():
    repo, _ = make_repository(rowcount=0)

    assert await repo.upsert_vector(uuid.uuid4(), [0.1] * 768) is False


@pytest.mark.asyncio
async def test_archive_stamps_write_time():
    repo, session = make_repository(rowcount=1)

    assert await repo.archive(uuid.uuid4(), uuid.uuid4()) is True

    session.execute.assert_awaited_once()
    sql = compiled(session)
    assert sql.startswith("UPDATE notes SET archived=")
    assert "updated_at=clock_timestamp()" in sql
    assert "now()" not in sql


@pytest.mark.asyncio
async def test_update_content_is_one_update_returning():
    repo, session = make_repository(first=None)

    note = await repo.update_content(uuid.uuid4(), uuid.uuid4(), NoteUpdate(title="Retro"))

    assert note is None

    # No separate read: the edit and its timestamp land in one statement
    session.execute.assert_awaited_once()
    session.commit.assert_awaited_once()
    sql = compiled(session)
    set_clause = sql.split("WHERE")[0]
    assert sql.startswith("UPDATE notes SET")
    assert "title=" in set_clause
    assert "body_text=" not in set_clause
    assert "updated_at=clock_timestamp()" in set_clause
    assert "now()" not in sql
    assert "notes.owner_id =" in sql
    assert "notes.archived IS false" in sql
    assert "RETURNING notes.id" in sql


@pytest.mark.asyncio
async def test_update_content_returns_written_row():
    note_id = uuid.uuid4()
    repo, _ = make_repository(first=make_record(note_id, title="Retro"))

    note = await repo.update_content(uuid.UUID(int=1), note_id, NoteUpdate(title="Retro"))

    assert note is not None
    assert note.id == note_id
    assert note.title == "Retro"


@pytest.mark.asyncio
async def test_driver_errors_become_store_errors():
    repo, session = make_repository()
    session.execute.side_effect = OperationalError("SELECT", {}, ConnectionRefusedError())

    with pytest.raises(StoreError, match="fetch_stale_batch failed"):
        await repo.fetch_stale_batch(uuid.uuid4(), 10)
