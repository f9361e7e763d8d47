"""Repositories package."""

from journal.repositories.base import NoteStore
from journal.repositories.memory import InMemoryNoteStore
from journal.repositories.notes import NoteRepository

__all__ = [
    "NoteStore",
    "InMemoryNoteStore",
    "NoteRepository",
]
