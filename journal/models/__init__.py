"""Models package - re-exports all models for convenient imports."""

from journal.models.base import Base, TimestampMixin
from journal.models.note import EMBEDDING_DIMENSION, NoteRecord

__all__ = [
    "Base",
    "TimestampMixin",
    "NoteRecord",
    "EMBEDDING_DIMENSION",
]
