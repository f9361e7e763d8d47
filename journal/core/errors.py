"""
Error Taxonomy

Exceptions raised by the journal retrieval core. Callers decide per
call-site whether a failure degrades the request or aborts it:

    - BackendError: the embedding/completion server misbehaved.
      Subclasses distinguish transport failures, timeouts and
      malformed payloads.
    - StoreError: the note store could not be read or written.
    - ConfigurationError: fatal at startup, never recovered at runtime.
"""

from __future__ import annotations


class JournalError(Exception):
    """Base class for all journal errors."""


class BackendError(JournalError):
    """The model-serving backend failed to produce a usable result."""


class BackendUnavailableError(BackendError):
    """Connection failure or non-2xx status from the backend."""


class BackendTimeoutError(BackendError):
    """The backend did not answer within the configured timeout."""


class MalformedResponseError(BackendError):
    """The backend answered, but the payload does not match the contract."""


class StoreError(JournalError):
    """A note store read or write failed."""


class ConfigurationError(JournalError):
    """
    Invalid deployment configuration.

    Attributes:
        issues: Individual ``"FIELD: message"`` problems, when known.
    """

    def __init__(self, message: str, issues: list[str] | None = None) -> None:
        super().__init__(message)
        self.issues = issues or []
