"""Services package."""

from journal.services.llm import ModelBackend, OllamaClient
from journal.services.retrieval import Answer, RetrievalOrchestrator
from journal.services.sync import SyncReport, SyncScheduler

__all__ = [
    "ModelBackend",
    "OllamaClient",
    "Answer",
    "RetrievalOrchestrator",
    "SyncReport",
    "SyncScheduler",
]
