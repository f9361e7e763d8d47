"""add note embeddings

Revision ID: 8b6e04d5c2a9
Revises: 3f1c9a2b7d40
Create Date: 2026-10-12 10:05:52.918733

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from pgvector.sqlalchemy import Vector

# revision identifiers, used by Alembic.
revision: str = "8b6e04d5c2a9"
down_revision: str | Sequence[str] | None = "3f1c9a2b7d40"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Add the vector + sync timestamp columns and their indexes."""
    op.execute("CREATE EXTENSION IF NOT EXISTS vector")

    op.add_column("notes", sa.Column("embedding", Vector(768), nullable=True))
    op.add_column(
        "notes",
        sa.Column("embedding_synced_at", sa.DateTime(timezone=True), nullable=True),
    )

    # HNSW index for fast cosine similarity search
    op.execute(
        """
        CREATE INDEX IF NOT EXISTS ix_notes_embedding_hnsw
        ON notes
        USING hnsw (embedding vector_cosine_ops)
        WITH (m = 16, ef_construction = 64)
        """
    )

    # Stale-batch lookups only ever scan live notes
    op.execute(
        """
        CREATE INDEX IF NOT EXISTS ix_notes_embedding_synced_at
        ON notes (owner_id, embedding_synced_at)
        WHERE archived = false
        """
    )


def downgrade() -> None:
    """Drop the vector columns and their indexes."""
    op.execute("DROP INDEX IF EXISTS ix_notes_embedding_synced_at")
    op.execute("DROP INDEX IF EXISTS ix_notes_embedding_hnsw")
    op.drop_column("notes", "embedding_synced_at")
    op.drop_column("notes", "embedding")
